"""
SiteLog Backend: Route Dependencies (Token Guard)
====================================================

What:  FastAPI dependencies shared by protected routes.
How:   `get_current_user` reads `Authorization: Bearer <token>`, verifies it
       and returns a CurrentUser. Route handlers pass that value explicitly
       into service calls; no identity is kept in ambient state.

Rejections raise AuthenticationError, rendered as 401 with
`WWW-Authenticate: Bearer` by the global handler.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sitelog.exceptions import AuthenticationError
from sitelog.schemas.auth import CurrentUser
from sitelog.services.auth_service import auth_service
from sitelog.services.file_service import FileService

# auto_error=False: missing headers go through our own 401 shape instead of
# HTTPBearer's default 403
bearer_scheme = HTTPBearer(auto_error=False, description="Token from /api/auth/login")


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """Return the caller identity encoded in the bearer token, or reject with 401."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")

    user = auth_service.identify(credentials.credentials)
    # Read by the access log; services receive the identity as a parameter
    request.state.user_id = user.id
    return user


def get_file_service(request: Request) -> FileService:
    """The Attachment Sink built by create_app(), matching the static mount."""
    return request.app.state.file_service
