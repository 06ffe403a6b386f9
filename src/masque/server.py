"""FastAPI server for Masque.

Serves the catalog, synthetic identity and noise operations over HTTP and
maps query-time failures onto status codes.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from masque.catalog.store import TemplateStore
from masque.config import MasqueConfig, load_config
from masque.exceptions import (
    CombinationsExhaustedError,
    NoBrowsersAvailableError,
    NoTemplatesAvailableError,
)
from masque.identity.composer import SyntheticIdentityComposer
from masque.routes import create_catalog_router, create_identity_router, create_noise_router

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)


class MasqueServer:
    """Owns one template store and one composer and exposes them over HTTP."""

    def __init__(
        self,
        config: MasqueConfig | None = None,
        store: TemplateStore | None = None,
    ) -> None:
        """Initialize the Masque server.

        Args:
            config: Optional configuration. If None, loads from masque.yaml.
            store: Optional prebuilt store. If None, one is built from the
                ``catalog`` section of the configuration.
        """
        self.config = config or load_config()
        self.store = store or TemplateStore.from_config(self.config.catalog)
        self.composer = SyntheticIdentityComposer(
            self.store, max_attempts=self.config.identity.max_attempts
        )
        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI application.

        Returns:
            A configured FastAPI instance with routes and error handlers.
        """

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
            self._startup()
            yield
            logger.info("Masque shutting down")

        app = FastAPI(
            title="Masque",
            docs_url=None,
            redoc_url=None,
            openapi_url=None,
            lifespan=lifespan,
        )

        @app.get("/health")
        async def health_check() -> dict[str, str]:
            return {"status": "ok"}

        app.include_router(create_catalog_router(self.store))
        app.include_router(create_identity_router(self.composer))
        app.include_router(create_noise_router(self.config.noise))

        app.add_exception_handler(NoTemplatesAvailableError, _not_found)
        app.add_exception_handler(NoBrowsersAvailableError, _not_found)
        app.add_exception_handler(CombinationsExhaustedError, _conflict)
        app.add_exception_handler(ValueError, _unprocessable)

        return app

    def _startup(self) -> None:
        """Load the catalog eagerly so the first request does not pay for it."""
        self.store.initialize()
        logger.info(
            "Masque started on %s:%d with %d templates",
            self.config.server.host,
            self.config.server.port,
            self.store.get_template_count(),
        )


def _error(status_code: int, error_type: str, exc: Exception) -> JSONResponse:
    return JSONResponse({"error": error_type, "message": str(exc)}, status_code=status_code)


async def _not_found(request: Request, exc: Exception) -> JSONResponse:
    return _error(404, "not_found", exc)


async def _conflict(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("Identity generation exhausted: %s", exc)
    return _error(409, "combinations_exhausted", exc)


async def _unprocessable(request: Request, exc: Exception) -> JSONResponse:
    return _error(422, "invalid_request", exc)


def create_app(config_path: str | None = None) -> FastAPI:
    """Create a Masque FastAPI application.

    This is the main entry point for ASGI servers like uvicorn.

    Args:
        config_path: Optional path to the masque.yaml config file.

    Returns:
        A configured FastAPI application.
    """
    config = load_config(config_path)
    server = MasqueServer(config)
    return server.app
