"""
Application factory for FastAPI.

Builds the demo application, wraps it in the capture middleware and wires
the transport lifecycle into the FastAPI lifespan:

- startup connects every transport that has a connection lifecycle before
  the server accepts traffic. A connection failure aborts startup unless
  ``recording_required`` is off, in which case the transport is dropped.
- shutdown drains pending dispatches, then closes every transport and logs
  any records that could not be delivered.

Usage:
    from recorder.main import create_app
    from recorder.settings import Settings

    # Default app (uses get_settings())
    app = create_app()

    # Test app with custom settings and transports
    test_settings = Settings(environment="test", _env_file=None)
    test_app = create_app(settings=test_settings, transports=[fake_transport])
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional, Sequence

import sentry_sdk
from fastapi import FastAPI

from application.ports import (
    ManagedTransport,
    Transport,
    TransportConnectionError,
    transport_name,
)
from infrastructure import JsonlFileTransport, KafkaExchangeProducer
from recorder.capture import ExchangeDispatcher, install_capture
from recorder.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    transports: Optional[Sequence[Transport]] = None,
) -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Args:
        settings: Optional Settings instance. If not provided, uses get_settings()
                  which loads from environment variables.
        transports: Optional transports to record to. If not provided, they are
                    built from settings (see build_transports).

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    _init_sentry(settings)

    if transports is None:
        transports = build_transports(settings)
    dispatcher = ExchangeDispatcher(transports)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        connected = await connect_transports(dispatcher, settings)
        try:
            yield
        finally:
            await shutdown_transports(dispatcher, connected, settings)

    app = FastAPI(
        title="HTTP Exchange Recorder",
        description="Demo API whose traffic is recorded to Kafka",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    install_capture(
        app,
        dispatcher=dispatcher,
        exclude_paths=settings.capture_exclude_paths_list,
        redact_headers=settings.capture_redact_headers_list,
    )

    _include_routers(app)
    _log_recording_config(settings, dispatcher)

    return app


def build_transports(settings: Settings) -> List[Transport]:
    """Build the transports described by settings, in dispatch order."""
    transports: List[Transport] = []
    if settings.recording_enabled:
        transports.append(KafkaExchangeProducer.from_settings(settings))
    if settings.exchange_log_path:
        transports.append(JsonlFileTransport(settings.exchange_log_path))
    return transports


async def connect_transports(
    dispatcher: ExchangeDispatcher, settings: Settings
) -> List[ManagedTransport]:
    """
    Connect every managed transport of the dispatcher.

    Returns:
        The transports that connected successfully

    Raises:
        TransportConnectionError: If a transport failed to connect and
            recording is required
    """
    connected: List[ManagedTransport] = []
    for transport in dispatcher.transports:
        if not isinstance(transport, ManagedTransport):
            continue
        name = transport_name(transport)
        try:
            await transport.connect()
        except TransportConnectionError:
            if settings.recording_required:
                logger.critical("Transport %s failed to connect; refusing to start", name)
                await shutdown_transports(dispatcher, connected, settings)
                raise
            logger.exception("Transport %s failed to connect; serving without it", name)
            dispatcher.remove(transport)
            continue
        connected.append(transport)
        logger.info("Transport %s connected", name)
    return connected


async def shutdown_transports(
    dispatcher: ExchangeDispatcher,
    transports: Sequence[ManagedTransport],
    settings: Settings,
) -> int:
    """
    Drain pending dispatches and close transports.

    Returns:
        Total number of exchanges that were not delivered
    """
    timeout = settings.shutdown_timeout_seconds
    undelivered = await dispatcher.drain(timeout)
    for transport in transports:
        name = transport_name(transport)
        try:
            dropped = await transport.close(timeout)
        except Exception:
            logger.exception("Error while closing transport %s", name)
            continue
        undelivered += dropped
        logger.info("Closed transport %s", name)
    if undelivered:
        logger.error("Shut down with %d undelivered exchange(s)", undelivered)
    return undelivered


def _init_sentry(settings: Settings) -> None:
    """Initialize Sentry SDK if DSN is configured."""
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,
        )
        logger.info("Sentry initialized for exchange recorder")


def _include_routers(app: FastAPI) -> None:
    """Include all API routers in the application."""
    from api.routers import health_router, users_router

    app.include_router(health_router)
    app.include_router(users_router)


def _log_recording_config(settings: Settings, dispatcher: ExchangeDispatcher) -> None:
    """Log what will be recorded where at startup."""
    names = [transport_name(t) for t in dispatcher.transports]
    if names:
        logger.info("Recording exchanges to: %s", ", ".join(names))
    else:
        logger.warning("No exchange transports configured; traffic will not be recorded")

    if settings.capture_exclude_paths_list:
        logger.info("Not recording paths: %s", ", ".join(settings.capture_exclude_paths_list))


# Default app instance for uvicorn
# This allows: uvicorn recorder.main:app
app = create_app()
