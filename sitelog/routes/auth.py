"""
SiteLog Backend: Auth Route Handlers
=======================================

What:  POST /api/auth/register and POST /api/auth/login.
How:   FastAPI validates the JSON body against RegisterRequest/LoginRequest
       (failures → 400 with an `errors` list), then AuthService does the work.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.database import get_db_session
from sitelog.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from sitelog.schemas.common import ErrorResponse
from sitelog.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid input or email already registered", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Register a new user",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    """Create an account with the default role and return a bearer token."""
    return await auth_service.register(db, payload)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid input", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Log in with email and password",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    """
    Exchange credentials for a bearer token.

    Unknown email and wrong password produce the same 401 response.
    """
    return await auth_service.login(db, payload)
