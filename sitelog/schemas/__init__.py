"""
SiteLog Backend: API Schemas
===============================

Pydantic models defining the HTTP contract. Kept separate from the ORM
models so the API controls exactly which columns are exposed.
"""
