"""
SiteLog Backend: Report Request/Response Schemas
===================================================

What:  Pydantic models for the reports resource.
Why:   `ReportCreate` is the single place where report input is validated,
       whether it arrives as multipart form fields or as a JSON body.
       Response models control exactly which columns are exposed.

Input rules (ReportCreate):
    - siteName:  required, non-empty after trimming
    - reportDate: ISO 8601 date; a full ISO datetime is truncated to its date
    - tonnage:   optional, finite, >= 0 ("12.5" from a form is accepted)
    - status:    optional, <= 120 chars
    - extras:    optional JSON string or JSON value; stored verbatim
    - empty-string optional fields are treated as absent
"""

import json
from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


def parse_iso_date(value: Any) -> date:
    """Parse an ISO 8601 date or datetime string into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError("must be an ISO8601 date")
    candidate = value.strip()
    try:
        return date.fromisoformat(candidate)
    except ValueError:
        pass
    # Datetime forms such as 2024-03-01T08:30:00Z
    if candidate.endswith(("Z", "z")):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate).date()
    except ValueError:
        raise ValueError("must be an ISO8601 date") from None


class ReportCreate(BaseModel):
    """Validated fields for a new report."""

    site_name: str = Field(min_length=1)
    report_date: date
    weather: Optional[str] = None
    tonnage: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    cover_material: Optional[str] = None
    status: Optional[str] = Field(default=None, max_length=120)
    notes: Optional[str] = None
    extras: Any = Field(default_factory=dict)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def drop_blank_optionals(cls, data: Any) -> Any:
        """HTML forms send "" for untouched inputs; treat those as absent."""
        if isinstance(data, dict):
            required = {"siteName", "site_name", "reportDate", "report_date"}
            return {
                key: value
                for key, value in data.items()
                if key in required or not (isinstance(value, str) and value.strip() == "")
            }
        return data

    @field_validator("site_name", mode="before")
    @classmethod
    def strip_site_name(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("report_date", mode="before")
    @classmethod
    def validate_report_date(cls, v: Any) -> date:
        return parse_iso_date(v)

    @field_validator("extras", mode="before")
    @classmethod
    def parse_extras(cls, v: Any) -> Any:
        """Form submissions carry extras as a JSON string; JSON bodies may send the value itself."""
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except ValueError:
                raise ValueError("extras must be valid JSON") from None
        if v is None:
            return {}
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AttachmentResponse(BaseModel):
    id: int
    filename: str
    mime_type: str
    path: str = Field(description="Location inside the upload directory")
    url: str = Field(description="Public URL under the static upload prefix")
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportResponse(BaseModel):
    """Full report row, as returned by create and get-by-id."""
    id: int
    site_name: str
    report_date: date
    weather: Optional[str] = None
    tonnage: Optional[float] = None
    cover_material: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    extras: Any = None
    created_by: Optional[int] = None
    created_by_email: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReportDetailResponse(BaseModel):
    report: ReportResponse
    attachments: List[AttachmentResponse]


class ReportListItem(BaseModel):
    """Summary columns shown in list views; no notes, extras or attachments."""
    id: int
    site_name: str
    report_date: date
    status: Optional[str] = None
    tonnage: Optional[float] = None
    weather: Optional[str] = None
    created_at: datetime
    created_by_email: Optional[str] = None


class ReportListResponse(BaseModel):
    items: List[ReportListItem]
    limit: int = Field(description="Effective page size after clamping")
    offset: int
