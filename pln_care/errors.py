from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ComplaintError(Exception):
    """Business-rule violation; carries the HTTP status it maps to."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationFailed(ComplaintError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidStatus(ValidationFailed):
    pass


class InvalidTransition(ValidationFailed):
    pass


class NotModifiable(ValidationFailed):
    pass


class AccessDenied(ComplaintError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ComplaintError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(ComplaintError):
    status_code = status.HTTP_409_CONFLICT


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ComplaintError)
    async def _complaint_error(request: Request, exc: ComplaintError):
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Something went wrong"},
        )
