# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""JSON error bodies for unhandled failures and domain errors."""

import logging
import math
from collections.abc import Awaitable, Callable
from typing import Any, cast

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.exceptions import (
    ConcurrentModification,
    ListingLimitReached,
    MinimumStayUnavailable,
    RelistError,
)
from src.services.messages import error_message, resolve_language

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn unexpected exceptions into a generic 500 body.

    The traceback is logged; the client only sees the error type.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except Exception:
            logger.exception(
                "Unhandled exception for %s %s", request.method, request.url.path
            )

            return create_error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "An internal error occurred. Please try again later.",
                "internal_error",
            )


def create_error_response(
    status_code: int,
    message: str,
    error_type: str = "error",
    extra: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Create a standardized error response.

    Args:
        status_code: HTTP status code.
        message: User-facing error message.
        error_type: Error type identifier.
        extra: Additional fields for the response body.
        headers: Additional response headers.

    Returns:
        JSONResponse with error details.
    """
    content: dict[str, Any] = {
        "detail": message,
        "type": error_type,
    }
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def relist_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a domain error with a localized message.

    Args:
        request: Request that failed.
        exc: The raised :class:`RelistError`.

    Returns:
        JSONResponse with the error's status, type and message.
    """
    error = cast("RelistError", exc)
    lang = resolve_language(
        request.query_params.get("lang"), request.headers.get("Accept-Language")
    )
    limit = error.limit if isinstance(error, ListingLimitReached) else None

    extra: dict[str, Any] = {"reason": str(error)}
    headers: dict[str, str] | None = None
    if isinstance(error, MinimumStayUnavailable):
        extra["selected"] = error.selected.isoformat()
        extra["days_remaining"] = error.days_remaining
    elif isinstance(error, ListingLimitReached):
        extra["limit"] = error.limit
    elif isinstance(error, ConcurrentModification) and error.retry_after is not None:
        headers = {"Retry-After": str(math.ceil(error.retry_after))}

    logger.info(
        "%s %s failed: %s (%s)",
        request.method,
        request.url.path,
        error.error_type,
        error,
    )
    return create_error_response(
        error.status_code,
        error_message(error.error_type, lang, limit=limit) or str(error),
        error.error_type,
        extra=extra,
        headers=headers,
    )
