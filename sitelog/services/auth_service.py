"""
SiteLog Backend: Auth Service
================================

What:  Registration, login and bearer-token verification.
Why:   Keeps credential handling out of the route layer.
How:   bcrypt hashing (passlib) runs in a worker thread so the event loop
       stays free; tokens are HS256 JWTs carrying {id, email, role}.

Information hiding on login:
    An unknown email and a wrong password raise the same
    AuthenticationError("Invalid credentials"). For unknown emails a
    comparison against a dummy hash still runs, so response timing does not
    reveal which check failed either.
"""

import logging
from functools import lru_cache

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from sitelog.exceptions import AuthenticationError, ConflictError, DatabaseError
from sitelog.models.user import DEFAULT_ROLE, User
from sitelog.schemas.auth import (
    AuthResponse,
    CurrentUser,
    LoginRequest,
    RegisterRequest,
    UserPublic,
)
from sitelog.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return get_password_hash("sitelog-dummy-password")


class AuthService:
    """
    Business logic for user accounts.

    Responsibilities:
        - register(): create a user and issue a token
        - login(): verify credentials and issue a token
        - identify(): turn a bearer token back into a CurrentUser
    """

    def issue_token(self, user: User) -> str:
        return create_access_token({"id": user.id, "email": user.email, "role": user.role})

    def _auth_response(self, user: User) -> AuthResponse:
        return AuthResponse(token=self.issue_token(user), user=UserPublic.model_validate(user))

    async def register(self, db: AsyncSession, payload: RegisterRequest) -> AuthResponse:
        """
        Create a user with the default role.

        Raises:
            ConflictError: The email is already registered (→ 400)
            DatabaseError: The store failed (→ 500)
        """
        try:
            existing = await db.execute(select(User.id).where(User.email == payload.email))
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(message="User already exists", context={"email": payload.email})

            password_hash = await run_in_threadpool(get_password_hash, payload.password)
            user = User(
                email=payload.email,
                password_hash=password_hash,
                role=DEFAULT_ROLE,
                display_name=payload.display_name,
            )
            db.add(user)
            await db.flush()
            await db.commit()
        except ConflictError:
            raise
        except IntegrityError:
            # A concurrent registration won the unique index race
            await db.rollback()
            raise ConflictError(message="User already exists", context={"email": payload.email})
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Register failed: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Unable to register user",
                context={"error_type": type(e).__name__},
            )

        logger.info("User registered: id=%s", user.id)
        return self._auth_response(user)

    async def login(self, db: AsyncSession, payload: LoginRequest) -> AuthResponse:
        """
        Verify credentials and issue a fresh token.

        Raises:
            AuthenticationError: Unknown email or wrong password (→ 401, same message)
            DatabaseError: The store failed (→ 500)
        """
        try:
            result = await db.execute(select(User).where(User.email == payload.email))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Login failed: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Unable to log in",
                context={"error_type": type(e).__name__},
            )

        if user is None:
            await run_in_threadpool(verify_password, payload.password, _dummy_hash())
            raise AuthenticationError(INVALID_CREDENTIALS)

        valid = await run_in_threadpool(verify_password, payload.password, user.password_hash)
        if not valid:
            raise AuthenticationError(INVALID_CREDENTIALS, context={"user_id": user.id})

        return self._auth_response(user)

    def identify(self, token: str) -> CurrentUser:
        """
        Decode a bearer token into the caller identity.

        Raises:
            AuthenticationError: Token is malformed, expired, badly signed,
                                 or lacks the identity claims.
        """
        try:
            payload = decode_access_token(token)
        except ValueError:
            raise AuthenticationError("Invalid or expired token")

        try:
            return CurrentUser.model_validate(payload)
        except PydanticValidationError:
            raise AuthenticationError("Invalid or expired token")


auth_service = AuthService()
