"""
SiteLog Backend: Auth Request/Response Schemas
=================================================

What:  Pydantic models for POST /api/auth/register and POST /api/auth/login.
How:   FastAPI validates request bodies against these models; failures are
       rendered as 400 with an `errors` list by the global handler.

Field naming:
    The public contract uses camelCase (`displayName`). Models accept both
    the alias and the Python name so services and tests can build them
    directly.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RegisterRequest(BaseModel):
    email: EmailStr = Field(description="Login email, must be unique")
    password: str = Field(min_length=8, description="At least 8 characters")
    display_name: Optional[str] = Field(
        default=None,
        max_length=120,
        alias="displayName",
        description="Optional name shown in the UI",
    )

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)


class CurrentUser(BaseModel):
    """
    Caller identity decoded from a bearer token.

    Produced by the Token Guard and passed explicitly into service calls.
    """
    id: int
    email: str
    role: str


class UserPublic(BaseModel):
    """Public view of a user; the password hash is never part of it."""
    id: int
    email: str
    role: str
    display_name: Optional[str] = Field(default=None, serialization_alias="displayName")

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    token: str = Field(description="Bearer token, valid for 12 hours")
    user: UserPublic
