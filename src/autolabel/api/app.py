"""FastAPI application with lifespan management.

This module creates and configures the FastAPI application with:
- Lifespan handler for startup/shutdown
- Route registration
- Observability instrumentation
- Task supervision for the report poller
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from autolabel.agent.loop import ReportPoller

import httpx
from fastapi import FastAPI

from autolabel import __version__
from autolabel.agent.pipeline import build_poller
from autolabel.api.routes import health
from autolabel.config import get_settings
from autolabel.infra.chat import ChatGateway
from autolabel.infra.observability import configure_observability, instrument_app
from autolabel.infra.ozone import OzoneClient
from autolabel.infra.session import AtpSession

logger = logging.getLogger(__name__)


async def supervise(
    poller: ReportPoller,
    shutdown_event: asyncio.Event,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
) -> None:
    """Run the poller with automatic restart on failure.

    Restart delays double from ``initial_delay`` up to ``max_delay``.

    Args:
        poller: The report poller to run
        shutdown_event: Set to stop the poller and the supervisor
        initial_delay: First restart delay in seconds
        max_delay: Upper bound on the restart delay
    """
    restart_delay = initial_delay

    while not shutdown_event.is_set():
        try:
            logger.info("Starting report poller...")
            await poller.run(shutdown_event)
        except asyncio.CancelledError:
            logger.info("Report poller cancelled")
            break
        except Exception:
            logger.exception("Report poller crashed, restarting in %.1fs", restart_delay)
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=restart_delay)
                break  # Shutdown requested during delay
            except TimeoutError:
                pass  # Timeout expired, restart
            # Exponential backoff for restarts
            restart_delay = min(restart_delay * 2, max_delay)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    Startup sequence:
    1. Configure observability (Logfire)
    2. Create httpx.AsyncClient
    3. Create the labeler and DM sessions and their clients
    4. Log both sessions in
    5. Build the report pipeline
    6. Start the report poller as a supervised background task

    Shutdown sequence:
    1. Stop the poller (wait for completion)
    2. Close httpx client

    Args:
        app: The FastAPI application

    Yields:
        Nothing - just manages lifecycle
    """
    logger.info("Starting application...")
    settings = get_settings()

    # 1. Configure observability
    configure_observability()

    # 2. Create HTTP client
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout))

    # 3. Sessions and clients; each account has its own session
    labeler_session = AtpSession(
        http_client,
        settings.service_url,
        settings.labeler_username,
        settings.labeler_password,
    )
    dm_session = AtpSession(
        http_client,
        settings.service_url,
        settings.dm_username,
        settings.dm_password,
    )
    ozone = OzoneClient(labeler_session, settings.labeler_did)
    chat = ChatGateway(dm_session, settings.chat_service_url)

    # 4. Log in. The labeler login is required; the DM session logs in
    # again on first use if it fails here.
    try:
        await ozone.login()
    except Exception:
        await http_client.aclose()
        raise
    try:
        await dm_session.login()
    except Exception:
        logger.exception("DM account login failed, notifications will retry on first use")

    # 5. Build pipeline
    poller = build_poller(settings, ozone, chat)

    app.state.http = http_client
    app.state.ozone = ozone
    app.state.chat = chat
    app.state.poller = poller

    # 6. Start poller with supervision (disabled in tests)
    shutdown_event = asyncio.Event()
    supervisor_task: asyncio.Task[None] | None = None
    if settings.environment != "test":
        supervisor_task = asyncio.create_task(supervise(poller, shutdown_event))
        logger.info("Poller supervisor started")

    # Instrument the app with observability
    instrument_app(app)

    logger.info("Application started successfully")

    try:
        yield
    finally:
        logger.info("Shutting down application...")

        # 1. Signal shutdown and cancel supervisor
        shutdown_event.set()
        if supervisor_task is not None:
            supervisor_task.cancel()
            try:
                await supervisor_task
            except asyncio.CancelledError:
                pass
            logger.info("Poller supervisor stopped")

        # 2. Close HTTP client
        await http_client.aclose()
        logger.info("HTTP client closed")

        logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Autolabel",
        description="Moderation auto-labeler for Ozone",
        version=__version__,
        lifespan=lifespan,
    )

    # Register routers
    app.include_router(health.router)

    return app


# Application instance
app = create_app()
