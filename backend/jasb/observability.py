"""Logfire cloud observability initialization and instrumentation."""

import logging

import logfire

from jasb import __version__
from jasb.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings, app=None) -> None:
    """
    Initialize Logfire with instrumentation.

    Must be called once at startup, before requests are served.

    Instruments:
    - FastAPI (request spans) when an app is given
    - HTTPX clients (feed webhook relay)
    - SQLAlchemy (ledger statements)
    - Python logging (bridges to Logfire)
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="jasb",
            service_version=__version__,
            environment=settings.environment,
        )

        if app is not None:
            logfire.instrument_fastapi(app)

        logfire.instrument_httpx()

        from jasb.database.session import get_engine

        logfire.instrument_sqlalchemy(engine=get_engine().sync_engine)

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
