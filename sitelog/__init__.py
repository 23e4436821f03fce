"""
SiteLog Backend: Application Package Initializer
===================================================

What: REST backend for landfill and site inspection reports.
Who:  Imported by uvicorn (sitelog.main:app), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │   Routes (API Layer) + Token Guard  │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (Auth, Reports, Files)    │  ← Validation, orchestration
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │  Database handle  │  Upload dir     │  ← Relational store, file sink
    └─────────────────────────────────────┘

    A report is written as one transaction (report row + its media rows);
    photo files land on disk before that transaction and are removed again
    if it fails.
"""

__version__ = "1.0.0"
