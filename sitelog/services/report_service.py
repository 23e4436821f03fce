"""
SiteLog Backend: Report Service (Business Logic Orchestrator)
================================================================

What:  Creates reports with their photo attachments, lists them with
       filters and pagination, and fetches one report with its media.
Why:   Encapsulates all report business logic, independent of HTTP concerns.
How:   Composes FileService (attachment sink) and the database session.

Creation Flow (POST /api/reports):
    ┌───────────┐    ┌──────────────┐    ┌──────────────────────────────┐
    │ Validate  │───▶│ Store files  │───▶│ One transaction:             │
    │ fields    │    │ (FileService)│    │  INSERT report               │
    └───────────┘    └──────────────┘    │  INSERT report_media × N     │
                                         │  COMMIT (or ROLLBACK all)    │
                                         └──────────────────────────────┘

    On transaction failure:
    - Everything inserted so far is rolled back; no partial report is visible
    - Files written for this request are removed from disk
    - DatabaseError propagates to the error handler (500)
"""

import logging
from datetime import date
from typing import Any, List, Optional, Sequence

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.exceptions import DatabaseError, NotFoundError, ValidationError
from sitelog.models.report import Report, ReportMedia
from sitelog.models.user import User
from sitelog.schemas.auth import CurrentUser
from sitelog.schemas.report import (
    AttachmentResponse,
    ReportCreate,
    ReportDetailResponse,
    ReportListItem,
    ReportListResponse,
    ReportResponse,
    parse_iso_date,
)
from sitelog.services.file_service import FileService, StoredFile, file_service

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _parse_int(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def normalize_limit(value: Any) -> int:
    """Absent, unparseable or zero → 20; otherwise clamped to [0, 100]."""
    limit = _parse_int(value, 0) or DEFAULT_PAGE_SIZE
    return max(0, min(limit, MAX_PAGE_SIZE))


def normalize_offset(value: Any) -> int:
    return max(0, _parse_int(value, 0))


def _parse_date_filter(name: str, value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(
            message=f"{name} must be ISO8601 date",
            field=name,
            errors=[{"field": name, "message": f"{name} must be ISO8601 date"}],
        )


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ReportService:
    """
    Business logic layer for report operations.

    Error Handling Strategy:
        SQLAlchemy errors are wrapped in DatabaseError (hides internal
        details). NotFoundError and ValidationError propagate as-is.
    """

    def _report_response(self, report: Report, created_by_email: Optional[str]) -> ReportResponse:
        response = ReportResponse.model_validate(report)
        response.created_by_email = created_by_email
        return response

    def _attachment_response(self, media: ReportMedia, storage: FileService) -> AttachmentResponse:
        return AttachmentResponse(
            id=media.id,
            filename=media.filename,
            mime_type=media.mime_type,
            path=media.path,
            url=storage.public_url(media.filename),
            uploaded_at=media.uploaded_at,
        )

    async def submit_report(
        self,
        db: AsyncSession,
        payload: ReportCreate,
        uploads: Sequence[UploadFile],
        current_user: Optional[CurrentUser],
        storage: Optional[FileService] = None,
    ) -> ReportDetailResponse:
        """
        Store the uploads, then create the report and its media rows.

        Raises:
            ValidationError: Too many files or a file over the size limit
            FileStorageError: A file could not be written
            DatabaseError: The report transaction failed (files are removed)
        """
        storage = storage or file_service
        stored = await storage.save_uploads(uploads)
        try:
            return await self.create_report(db, payload, stored, current_user, storage)
        except Exception:
            await storage.cleanup_files(stored)
            raise

    async def create_report(
        self,
        db: AsyncSession,
        payload: ReportCreate,
        files: Sequence[StoredFile],
        current_user: Optional[CurrentUser],
        storage: Optional[FileService] = None,
    ) -> ReportDetailResponse:
        """
        Insert one report and one media row per stored file in a single transaction.

        created_by is the caller's id, or NULL when no identity is supplied.
        Attachments are returned in the order the files were submitted.

        Raises:
            DatabaseError: Any insert failed; the whole transaction was rolled back
        """
        report = Report(
            site_name=payload.site_name,
            report_date=payload.report_date,
            weather=payload.weather,
            tonnage=payload.tonnage,
            cover_material=payload.cover_material,
            status=payload.status,
            notes=payload.notes,
            extras=payload.extras,
            created_by=current_user.id if current_user else None,
        )
        storage = storage or file_service
        media_rows: List[ReportMedia] = []

        try:
            db.add(report)
            await db.flush()  # assigns report.id for the media foreign keys

            for stored_file in files:
                media = ReportMedia(
                    report_id=report.id,
                    filename=stored_file.filename,
                    mime_type=stored_file.mime_type,
                    path=stored_file.path,
                )
                db.add(media)
                await db.flush()
                media_rows.append(media)

            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Create report failed: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Unable to save report",
                context={"error_type": type(e).__name__, "attachments": len(files)},
            )

        logger.info("Report %s created with %d attachment(s)", report.id, len(media_rows))
        return ReportDetailResponse(
            report=self._report_response(
                report, current_user.email if current_user else None
            ),
            attachments=[self._attachment_response(media, storage) for media in media_rows],
        )

    async def list_reports(
        self,
        db: AsyncSession,
        site_name: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        limit: Any = None,
        offset: Any = None,
    ) -> ReportListResponse:
        """
        List report summaries, newest report_date first.

        Filters compose with AND:
            site_name: case-insensitive substring of reports.site_name
            date_from / date_to: inclusive bounds on reports.report_date

        Ordering: report_date DESC, id DESC (ties broken by newest id).

        Raises:
            ValidationError: date_from or date_to is not an ISO 8601 date
            DatabaseError: Query execution failed
        """
        page_size = normalize_limit(limit)
        page_offset = normalize_offset(offset)
        from_date = _parse_date_filter("dateFrom", date_from)
        to_date = _parse_date_filter("dateTo", date_to)

        query = (
            select(
                Report.id,
                Report.site_name,
                Report.report_date,
                Report.status,
                Report.tonnage,
                Report.weather,
                Report.created_at,
                User.email.label("created_by_email"),
            )
            .select_from(Report)
            .outerjoin(User, Report.created_by == User.id)
        )

        if site_name:
            query = query.where(
                Report.site_name.ilike(f"%{_escape_like(site_name)}%", escape="\\")
            )
        if from_date:
            query = query.where(Report.report_date >= from_date)
        if to_date:
            query = query.where(Report.report_date <= to_date)

        query = (
            query.order_by(Report.report_date.desc(), Report.id.desc())
            .limit(page_size)
            .offset(page_offset)
        )

        try:
            result = await db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("List reports failed: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Unable to fetch reports",
                context={"error_type": type(e).__name__},
            )

        return ReportListResponse(
            items=[ReportListItem.model_validate(dict(row._mapping)) for row in rows],
            limit=page_size,
            offset=page_offset,
        )

    async def get_report(
        self,
        db: AsyncSession,
        report_id: int,
        storage: Optional[FileService] = None,
    ) -> ReportDetailResponse:
        """
        Fetch one report with its creator's email and its attachments.

        Attachments are ordered by upload time, oldest first.

        Raises:
            NotFoundError: No report has this id (→ 404)
            DatabaseError: Query execution failed (→ 500)
        """
        storage = storage or file_service
        try:
            result = await db.execute(
                select(Report, User.email)
                .outerjoin(User, Report.created_by == User.id)
                .where(Report.id == report_id)
            )
            row = result.one_or_none()
            if row is None:
                raise NotFoundError(resource="report", resource_id=str(report_id))
            report, created_by_email = row

            media_result = await db.execute(
                select(ReportMedia)
                .where(ReportMedia.report_id == report_id)
                .order_by(ReportMedia.uploaded_at.asc(), ReportMedia.id.asc())
            )
            media_rows = media_result.scalars().all()
        except NotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error("Get report %s failed: %s", report_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Unable to fetch report",
                context={"report_id": report_id},
            )

        return ReportDetailResponse(
            report=self._report_response(report, created_by_email),
            attachments=[self._attachment_response(media, storage) for media in media_rows],
        )


report_service = ReportService()
