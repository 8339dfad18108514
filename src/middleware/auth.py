# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""Authentication middleware trusting the upstream identity gateway."""

import logging
from collections.abc import Awaitable, Callable

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.config import get_settings
from src.middleware.error_handler import create_error_response

logger = logging.getLogger(__name__)

# Header carrying the identity verified by the gateway
USER_ID_HEADER = "X-User-Id"

# Identity used in standalone mode when no header is sent
STANDALONE_USER_ID = "standalone"

# Served without an identity
PUBLIC_PATHS = frozenset(
    {
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
    }
)


def is_public_path(path: str) -> bool:
    """Return True for health and documentation routes open to anyone."""
    return path in PUBLIC_PATHS


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Middleware requiring the gateway's identity header.

    In standalone mode the header is optional and a fixed development
    identity is used when it is missing.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Attach the caller identity to request.state or answer 401."""
        settings = get_settings()
        path = request.url.path

        if is_public_path(path):
            return await call_next(request)

        user_id = request.headers.get(USER_ID_HEADER)
        if not user_id and settings.standalone_mode:
            logger.debug("Standalone mode: using development identity for %s", path)
            user_id = STANDALONE_USER_ID

        if not user_id:
            logger.warning("Unauthorized access attempt to %s", path)
            response = create_error_response(
                status.HTTP_401_UNAUTHORIZED,
                "Authentication required",
                "unauthorized",
            )
            response.headers["WWW-Authenticate"] = USER_ID_HEADER
            return response

        request.state.user_id = user_id
        logger.debug("Authenticated request from user %s to %s", user_id, path)

        return await call_next(request)


def get_current_user(request: Request) -> str | None:
    """Identity stored by the middleware, or None on public routes."""
    return getattr(request.state, "user_id", None)
