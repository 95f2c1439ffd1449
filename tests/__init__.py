"""
Arcana Test Suite

Tests are organized into:
- unit/: Unit tests for individual components
- integration/: API tests over the ASGI app
"""
