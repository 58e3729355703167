# backend/lessonbook/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

Identity is established by the upstream session gateway, which forwards
the signed-in user's id and email as request headers. Tests replace
``get_current_user_optional`` through ``app.dependency_overrides``.
"""

import logging
from typing import Optional

from fastapi import Depends, Request

from ...core.config import Settings, settings
from ...core.exceptions import ForbiddenException, UnauthorizedException
from ...principal import CurrentUser, RequestContext

logger = logging.getLogger(__name__)

MAX_USER_ID_LENGTH = 26


def get_settings() -> Settings:
    """Settings snapshot for the request."""
    return settings


def get_current_user_optional(
    request: Request, app_settings: Settings = Depends(get_settings)
) -> Optional[CurrentUser]:
    """Resolve the forwarded identity, or None for anonymous requests."""
    user_id = (request.headers.get(app_settings.auth_user_id_header) or "").strip()
    if not user_id:
        return None
    if len(user_id) > MAX_USER_ID_LENGTH:
        logger.warning("Rejected forwarded user id with unexpected length")
        return None
    email = (request.headers.get(app_settings.auth_user_email_header) or "").strip() or None
    return CurrentUser(id=user_id, email=email)


def get_current_user(
    user: Optional[CurrentUser] = Depends(get_current_user_optional),
) -> CurrentUser:
    """
    Require an authenticated user.

    Raises:
        HTTPException: 401 if no identity was forwarded
    """
    if user is None:
        raise UnauthorizedException(
            "Not authenticated", code="NOT_AUTHENTICATED"
        ).to_http_exception()
    return user


def get_request_context(
    user: CurrentUser = Depends(get_current_user),
    app_settings: Settings = Depends(get_settings),
) -> RequestContext:
    """Explicit context handed to booking operations."""
    return RequestContext(user=user, settings=app_settings)


def require_teacher_owner(teacher_id: str, user: CurrentUser) -> None:
    """
    Teacher-only routes act on the caller's own calendar.

    Raises:
        HTTPException: 403 when the path teacher is not the caller
    """
    if user.id != teacher_id:
        logger.info(
            "Forbidden teacher access",
            extra={"teacher_id": teacher_id, "user_id": user.id},
        )
        raise ForbiddenException(
            "Forbidden", code="TEACHER_OWNERSHIP_REQUIRED"
        ).to_http_exception()
