# SPDX-FileCopyrightText: 2026 Andrew Grimberg <tykeal@bardicgrove.org>
# SPDX-License-Identifier: Apache-2.0
"""FastAPI application entry point for Rental Relist."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api import bookings, health, properties
from src.config import get_settings
from src.database import init_db
from src.exceptions import RelistError
from src.middleware.auth import AuthenticationMiddleware
from src.middleware.error_handler import ErrorHandlerMiddleware, relist_error_handler
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Configure logging and create tables before serving requests."""
    setup_logging()
    app.state.settings = get_settings()

    await init_db()
    logger.info("Database ready")

    yield

    logger.info("Shutting down")


def create_app() -> FastAPI:
    """Build the API with its middleware stack and routers.

    Docs are served only in standalone mode; behind the gateway they are
    hidden.

    Returns:
        Application ready for uvicorn or an ASGI test transport.
    """
    settings = get_settings()

    app = FastAPI(
        title="Rental Relist",
        description=(
            "Week-granular rental bookings with automatic relisting of "
            "cancelled stays"
        ),
        version="0.1.0",
        docs_url="/docs" if settings.standalone_mode else None,
        redoc_url="/redoc" if settings.standalone_mode else None,
        lifespan=lifespan,
    )

    # Add middleware (order matters - last added is outermost)
    app.add_middleware(AuthenticationMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)

    # Availability is read by public booking widgets
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RelistError, relist_error_handler)

    app.include_router(health.router)
    app.include_router(properties.router)
    app.include_router(bookings.router)

    return app


app = create_app()
