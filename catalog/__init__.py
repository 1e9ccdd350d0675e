"""
Core of the library catalog.

This package holds everything below the HTTP layer:
- Document schemas for users, tokens, authors and books
- Credential verification and bearer token issuing/validation
- Field, uniqueness and cross-reference validation for catalog writes
- MongoDB connection and index management
"""
