"""
SiteLog Backend: ORM Models
==============================

Importing this package registers every table with `Base.metadata`
(used by Alembic autogenerate and `Database.create_all`).
"""

from sitelog.models.report import Report, ReportMedia
from sitelog.models.user import User

__all__ = ["Report", "ReportMedia", "User"]
