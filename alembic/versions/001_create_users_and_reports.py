"""Create users, reports and report_media tables

Revision ID: 001
Revises: None
Create Date: 2024-03-01 00:00:00.000000+00:00

What:  Initial schema: the credential store, inspection reports and the
       photo attachments that belong to them.
How:   Serial integer keys; reports.created_by is SET NULL on user delete,
       report_media rows CASCADE with their report.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False, comment="Login identifier"),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=False,
            comment="bcrypt hash; never exposed by the API",
        ),
        sa.Column(
            "role",
            sa.String(50),
            nullable=False,
            server_default=sa.text("'user'"),
        ),
        sa.Column("display_name", sa.String(120), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "reports",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("site_name", sa.Text(), nullable=False),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("weather", sa.Text(), nullable=True),
        sa.Column("tonnage", sa.Double(), nullable=True),
        sa.Column("cover_material", sa.Text(), nullable=True),
        sa.Column("status", sa.String(120), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        # JSON rather than JSONB: key order is preserved on read
        sa.Column(
            "extras",
            sa.JSON(),
            nullable=False,
            server_default=sa.text("'{}'"),
            comment="Caller-supplied structured data, stored verbatim",
        ),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )

    # Matches the list endpoint's ORDER BY report_date DESC, id DESC
    op.create_index(
        "idx_reports_date_id",
        "reports",
        [sa.text("report_date DESC"), sa.text("id DESC")],
    )

    op.create_table(
        "report_media",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("report_id", sa.Integer(), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("mime_type", sa.String(255), nullable=False),
        sa.Column("path", sa.Text(), nullable=False),
        sa.Column(
            "uploaded_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["report_id"], ["reports.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_report_media_report_id", "report_media", ["report_id"])


def downgrade() -> None:
    op.drop_index("idx_report_media_report_id", table_name="report_media")
    op.drop_table("report_media")
    op.drop_index("idx_reports_date_id", table_name="reports")
    op.drop_table("reports")
    op.drop_table("users")
