"""
SiteLog Backend: Shared Response Schemas
===========================================

Error and health payloads used across every router.
"""

from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Invalid report fields",
            "errors": [{"field": "siteName", "message": "Field required"}],
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    errors: Optional[List[Dict[str, Any]]] = Field(default=None, description="Per-field problems")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(default="ok", description="Always 'ok' while the process serves requests")
    version: str
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float


def field_errors(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Flatten pydantic error dicts into {"field", "message"} pairs.

    Location prefixes added by FastAPI ("body", "query", "path") are dropped,
    so a bad email in a JSON body is reported as field "email".
    """
    flattened = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in {"body", "query", "path", "header"}:
            loc = loc[1:]
        flattened.append(
            {
                "field": ".".join(loc) or None,
                "message": error.get("msg", "Invalid value"),
            }
        )
    return flattened
