"""
SiteLog Backend: Report Route Handlers
=========================================

What:  POST /api/reports, GET /api/reports, GET /api/reports/{id}.
Why:   The inspection reports resource; every route requires a bearer token.
How:   Extracts input, delegates to ReportService, returns JSON.

Request Flow (POST /api/reports):
    1. Token Guard resolves the caller (401 if missing/invalid)
    2. The body is read as multipart/form-data (fields + "photos" files)
       or as application/json (fields only)
    3. Fields validate into ReportCreate (400 on failure, nothing written)
    4. ReportService stores the photos and inserts report + media rows
    5. 201 Created with {report, attachments}
"""

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from sitelog.database import get_db_session
from sitelog.dependencies import get_current_user, get_file_service
from sitelog.exceptions import ValidationError
from sitelog.schemas.auth import CurrentUser
from sitelog.schemas.common import ErrorResponse, field_errors
from sitelog.schemas.report import ReportCreate, ReportDetailResponse, ReportListResponse
from sitelog.services.file_service import FileService
from sitelog.services.report_service import report_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["Reports"])

PHOTOS_FIELD = "photos"


@dataclass
class ReportSubmission:
    """Validated report fields plus the raw photo uploads, in submission order."""

    payload: ReportCreate
    photos: List[UploadFile] = field(default_factory=list)


def _validate_fields(fields: Dict[str, Any]) -> ReportCreate:
    try:
        return ReportCreate.model_validate(fields)
    except PydanticValidationError as exc:
        raise ValidationError(
            message="Invalid report fields",
            errors=field_errors(exc.errors()),
        )


async def read_report_submission(request: Request) -> AsyncGenerator[ReportSubmission, None]:
    """
    Parse the create-report body from either multipart form data or JSON.

    Form fields arrive as strings (extras as a JSON string); a JSON body may
    carry extras as a JSON value. Upload handles are closed once the
    request finishes.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError(message="Request body must be valid JSON")
        if not isinstance(body, dict):
            raise ValidationError(message="Request body must be a JSON object")
        yield ReportSubmission(payload=_validate_fields(body))
        return

    form = await request.form()
    fields: Dict[str, Any] = {}
    photos: List[UploadFile] = []
    try:
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if key != PHOTOS_FIELD:
                    raise ValidationError(
                        message=f"Unexpected file field '{key}'; attach photos under '{PHOTOS_FIELD}'",
                        field=key,
                    )
                photos.append(value)
            else:
                fields.setdefault(key, value)

        submission = ReportSubmission(payload=_validate_fields(fields), photos=photos)
        yield submission
    finally:
        await form.close()


@router.post(
    "",
    status_code=201,
    response_model=ReportDetailResponse,
    responses={
        400: {"description": "Invalid fields or uploads", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create a report with up to 5 photos",
    description=(
        "multipart/form-data with siteName, reportDate, weather, tonnage, coverMaterial, "
        "status, notes, extras (JSON string) and up to 5 files under 'photos' (5MB each). "
        "application/json with the same field names is accepted for reports without photos."
    ),
)
async def create_report(
    current_user: CurrentUser = Depends(get_current_user),
    submission: ReportSubmission = Depends(read_report_submission),
    db: AsyncSession = Depends(get_db_session),
    storage: FileService = Depends(get_file_service),
) -> ReportDetailResponse:
    logger.info(
        "Received report submission: site=%s, photos=%d",
        submission.payload.site_name,
        len(submission.photos),
    )
    return await report_service.submit_report(
        db=db,
        payload=submission.payload,
        uploads=submission.photos,
        current_user=current_user,
        storage=storage,
    )


@router.get(
    "",
    response_model=ReportListResponse,
    responses={
        400: {"description": "Malformed date filter", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List reports with filters and pagination",
)
async def list_reports(
    site_name: Optional[str] = Query(default=None, alias="siteName", description="Case-insensitive substring"),
    date_from: Optional[str] = Query(default=None, alias="dateFrom", description="Inclusive lower bound (ISO 8601)"),
    date_to: Optional[str] = Query(default=None, alias="dateTo", description="Inclusive upper bound (ISO 8601)"),
    limit: Optional[str] = Query(default=None, description="Page size, default 20, max 100"),
    offset: Optional[str] = Query(default=None, description="Rows to skip, default 0"),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ReportListResponse:
    """
    Page through report summaries ordered by report_date DESC, id DESC.

    limit and offset are lenient: unparseable values fall back to their
    defaults rather than failing the request.
    """
    return await report_service.list_reports(
        db=db,
        site_name=site_name,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{report_id}",
    response_model=ReportDetailResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Report not found", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get one report with its attachments",
)
async def get_report(
    report_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    storage: FileService = Depends(get_file_service),
) -> ReportDetailResponse:
    return await report_service.get_report(db=db, report_id=report_id, storage=storage)
