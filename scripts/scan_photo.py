"""
Scan a shelf photo from the command line.

Runs a local image through the full pipeline with the services configured
in .env (recognition provider, Google Books, catalog database) and prints
the report.

    python scripts/scan_photo.py shelf.jpg
    python scripts/scan_photo.py shelf.jpg --database-url sqlite+aiosqlite:///./scratch.db
"""

import argparse
import asyncio
import mimetypes
import os
import sys
from dataclasses import replace

from dotenv import load_dotenv

# Add project root to python path to allow imports
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

load_dotenv()

from arcana.api.dependencies import ServiceContainer, Settings
from arcana.exceptions import RecognitionError


def print_progress(event):
    suffix = f" ({event.books_found} found)" if event.books_found is not None else ""
    print(f"[{event.progress:3d}%] {event.step}: {event.message}{suffix}")


async def scan(image_path: str, settings: Settings) -> int:
    mime_type, _ = mimetypes.guess_type(image_path)
    if mime_type not in settings.allowed_image_type_set:
        print(f"Error: unsupported image type {mime_type} for {image_path}")
        return 1

    with open(image_path, "rb") as f:
        image = f.read()

    services = ServiceContainer(settings)
    try:
        await services.book_repository.init()
        report = await services.reconciler.reconcile_shelf(
            image, mime_type, on_progress=print_progress
        )
    except RecognitionError as e:
        print(f"Recognition failed: {e.message} ({e.detail})")
        return 2
    finally:
        await services.close()

    print("-" * 50)
    print(report.message)
    for book in report.books:
        marker = "NEW" if book.is_new_book else f"DUP (copy {book.copy_number})"
        print(f"  {marker:<14} {book.title} by {book.author}  [{book.confidence:.2f}]")
    stats = report.stats
    print(
        f"detected={stats.detected} added={stats.added} "
        f"duplicates={stats.duplicates} skipped={stats.skipped}"
    )
    return 0


def main():
    parser = argparse.ArgumentParser(description="Scan a bookshelf photo into the catalog.")
    parser.add_argument("image", help="Path to the shelf photo")
    parser.add_argument("--database-url", help="Catalog database (defaults to DATABASE_URL)")
    args = parser.parse_args()

    if not os.path.exists(args.image):
        print(f"Error: Image not found at {args.image}")
        sys.exit(1)

    settings = Settings.from_env()
    if args.database_url:
        settings = replace(settings, database_url=args.database_url)

    sys.exit(asyncio.run(scan(args.image, settings)))


if __name__ == "__main__":
    main()
