"""
Arcana HTTP API

FastAPI application exposing shelf scanning and the family catalog.
"""
