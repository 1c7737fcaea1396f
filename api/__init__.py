"""
FastAPI RESTful API for the Book Library.

This module provides:
- CRUD operations over books stored in PostgreSQL
- URL cleanup that strips tracking query parameters
"""
