# backend/lessonbook/errors.py
"""
Unified error envelope.

Every error leaves the API as a problem document::

    {"type", "title", "status", "detail", "instance", "code", "errors"?, "request_id"?}

Request validation failures are client errors and are reported as 400.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException, RepositoryException
from .core.request_context import get_request_id

logger = logging.getLogger(__name__)

VALIDATION_ERROR_CODE = "VALIDATION_ERROR"


def _title_from_status(status_code: int) -> str:
    mapping = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        409: "Conflict",
        422: "Unprocessable Entity",
        500: "Internal Server Error",
        502: "Bad Gateway",
    }
    return mapping.get(status_code, "Error")


def _problem(
    *,
    status_code: int,
    detail: Optional[str] = None,
    instance: Optional[str] = None,
    code: Optional[str] = None,
    errors: Optional[Any] = None,
) -> Dict[str, Any]:
    problem: Dict[str, Any] = {
        "type": "about:blank",
        "title": _title_from_status(status_code),
        "status": status_code,
        "detail": detail or "",
        "instance": instance or "",
    }
    if code:
        problem["code"] = code
    if errors:
        problem["errors"] = errors
    request_id = get_request_id()
    if request_id:
        problem["request_id"] = request_id
    return problem


def _parse_detail(detail: Any) -> tuple[Optional[str], Optional[str], Optional[Any]]:
    if isinstance(detail, dict):
        code = detail.get("code") if isinstance(detail.get("code"), str) else None
        message = detail.get("message") or detail.get("detail")
        detail_text = message if isinstance(message, str) else None
        errors = detail.get("details") or detail.get("errors")
        return detail_text, code, errors
    if isinstance(detail, str):
        return detail, None, None
    if detail is None:
        return None, None, None
    return str(detail), None, None


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail_text, code, errors = _parse_detail(exc.detail)
        problem = _problem(
            status_code=exc.status_code,
            detail=detail_text,
            instance=request.url.path,
            code=code,
            errors=jsonable_encoder(errors) if errors is not None else None,
        )
        return JSONResponse(problem, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        problem = _problem(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request validation failed",
            instance=request.url.path,
            code=VALIDATION_ERROR_CODE,
            errors=jsonable_encoder(exc.errors(), custom_encoder={ValueError: str}),
        )
        return JSONResponse(problem, status_code=status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        http_exc = exc.to_http_exception()
        return await http_exception_handler(request, http_exc)

    @app.exception_handler(RepositoryException)
    async def repository_exception_handler(
        request: Request, exc: RepositoryException
    ) -> JSONResponse:
        logger.error(f"Repository failure on {request.url.path}: {str(exc)}")
        problem = _problem(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Data access failed",
            instance=request.url.path,
            code="REPOSITORY_ERROR",
        )
        return JSONResponse(problem, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
