"""
FastAPI REST API for the Bookshelf Social site.

This package provides:
- Catalog endpoints for genres, authors and books
- User signup, login, profiles, suspension and follows
- Review listing, CRUD and favorites
- Bearer token authentication
"""
