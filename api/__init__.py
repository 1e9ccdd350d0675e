"""
FastAPI RESTful API for the Library Catalog.

This module provides a REST API for:
- Logging in and receiving a bearer token
- Creating, reading, updating and deleting authors
- Creating, reading, updating and deleting books
"""
