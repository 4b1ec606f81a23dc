"""FastAPI application for the JASB ledger."""

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jasb import __version__
from jasb.api.routes import (
    bets_router,
    feed_router,
    games_router,
    stakes_router,
    users_router,
)
from jasb.config import Settings, get_settings
from jasb.database.session import dispose_engine
from jasb.errors import BadRequestError, LedgerError
from jasb.observability import initialize_logfire
from jasb.services import default_collaborators
from jasb.services.external_notifier import WebhookRelay

logger = logging.getLogger(__name__)


def error_body(error: LedgerError) -> Dict[str, str]:
    return {"error": error.kind, "message": str(error)}


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(x) for x in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    error = BadRequestError(details or "Invalid request.")
    return JSONResponse(status_code=error.status_code, content=error_body(error))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app; the relay and Logfire are set up in the lifespan."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        initialize_logfire(settings, app)
        logger.info(f"Starting JASB API ({settings.environment})")

        async with AsyncExitStack() as stack:
            if settings.notifier.webhook_url:
                relay = await stack.enter_async_context(WebhookRelay(settings.notifier))
                default_collaborators.relay = relay
            try:
                yield
            finally:
                default_collaborators.relay = None
                logger.info("Shutting down JASB API")
                await dispose_engine()

    app = FastAPI(
        title="JASB API",
        description="Wagering ledger and bet resolution",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    @app.get("/health", tags=["Health"])
    async def health_check() -> Dict[str, str]:
        return {"status": "healthy", "service": "jasb-api", "version": __version__}

    app.include_router(users_router)
    app.include_router(games_router)
    app.include_router(bets_router)
    app.include_router(stakes_router)
    app.include_router(feed_router)

    return app
