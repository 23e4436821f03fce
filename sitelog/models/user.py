"""
SiteLog Backend: User SQLAlchemy Model
=========================================

What:  ORM model for the `users` table (the credential store).
How:   Rows are created once at registration and never updated or deleted.

Table Design Rationale:
    - Integer primary key: ids are embedded in tokens and report rows
    - email UNIQUE: the login identifier; the unique index also backs lookups
    - password_hash: bcrypt output (60 chars); never serialized to clients
    - role: assigned by the server ('user'), never taken from the request
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from sitelog.database import Base

DEFAULT_ROLE = "user"


class User(Base):
    """A registered account that can sign in and author reports."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Login identifier",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash; never exposed by the API",
    )

    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DEFAULT_ROLE,
        server_default=text(f"'{DEFAULT_ROLE}'"),
    )

    display_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
