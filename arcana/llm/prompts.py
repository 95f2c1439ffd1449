"""
Prompt Templates

Instructions sent to the LLM providers.
"""


class PromptTemplates:
    """Prompt templates for shelf recognition and reading cards."""

    SHELF_RECOGNITION = """You are an expert bibliographer. Identify EVERY book visible in this photo of a bookshelf.

For each book, read the spine (or cover) and extract:
- "title": the full title as printed
- "author": the author's name as printed
- "publisher": the publisher name, only if legible (logos count)
- "collection": the series or imprint collection (e.g. "Folio SF", "Penguin Classics"), only if legible
- "isbn": an ISBN-10 or ISBN-13, only if clearly readable
- "confidence": a number from 0 to 1 reflecting how legible the title and author are

Rules:
- Be exhaustive, including tilted, thin or partially hidden spines
- If a title or author is only partially legible, give your best reading and lower the confidence
- If a book is completely illegible, leave it out entirely; never invent a book
- Omit optional fields you cannot read rather than guessing
- If no book is detectable, return an empty array []

Return ONLY a raw JSON array, with no markdown and no backticks:
[
  {"title": "Book Title", "author": "Author Name", "publisher": "Publisher", "confidence": 0.85}
]"""

    READING_CARD = """Write a reading card for this book, for a family library where both children and adults read.

- Title: {title}
- Author: {author}

The card has:
- "summary": an in-depth summary in 5 to 7 sentences
- "themes": the 3 to 5 main themes, a few words each
- "discussionQuestions": 3 open questions to talk about the book, simple enough for a child who read it
- "readingLevel": the recommended readership (e.g. "8-12 years", "Teen", "Adult")

Write in the language the book was published in. If you do not know this book, say so in the summary rather than inventing a plot.

Return ONLY a raw JSON object, with no markdown and no backticks:
{{"summary": "...", "themes": ["..."], "discussionQuestions": ["..."], "readingLevel": "..."}}"""
