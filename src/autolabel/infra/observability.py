"""Observability configuration with Logfire integration."""

from __future__ import annotations

from typing import TYPE_CHECKING

import logfire

from autolabel.config import get_settings

if TYPE_CHECKING:
    from fastapi import FastAPI


def configure_observability() -> None:
    """Configure Logfire for observability.

    Call once at application startup.
    """
    settings = get_settings()
    # Console output only in development mode
    console_option = (
        logfire.ConsoleOptions(min_log_level=settings.log_level.lower())  # type: ignore[arg-type]
        if settings.environment == "development"
        else False
    )
    # Only send to Logfire if token is present
    send_to_logfire = "if-token-present" if not settings.logfire_token else True
    logfire.configure(
        token=settings.logfire_token,
        service_name="autolabel",
        service_version=settings.version,
        environment=settings.environment,
        console=console_option,
        send_to_logfire=send_to_logfire,
    )


def instrument_app(app: FastAPI) -> None:
    """Instrument FastAPI and outgoing HTTP calls.

    This enables:
    - HTTP request/response tracing for the health endpoint
    - Outgoing HTTP requests to the PDS, Ozone and chat services
    """
    logfire.instrument_fastapi(app)
    logfire.instrument_httpx()
