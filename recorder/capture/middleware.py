"""
ASGI capture middleware.

Records every HTTP request/response pair that passes through the app and
hands the finished record to the configured transports. The response path
is never delayed or altered: body bytes are teed as the application reads
them and as the server writes them, and dispatch is scheduled only after
the final response chunk has been passed to the server.

Usage::

    from recorder.capture import install_capture

    install_capture(app, transports=[producer])

``install_capture`` wraps the whole middleware stack, including Starlette's
ServerErrorMiddleware, so the 500 written for an unhandled exception is
recorded too. ``app.add_middleware(CaptureMiddleware, ...)`` would sit inside
that error handler and miss it.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from starlette.applications import Starlette
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from application.ports import Transport

from .builder import begin, complete
from .dispatch import ExchangeDispatcher

logger = logging.getLogger(__name__)


class CaptureMiddleware:
    """Middleware that records exchanges and dispatches them to transports."""

    def __init__(
        self,
        app: ASGIApp,
        transports: Sequence[Transport] = (),
        dispatcher: ExchangeDispatcher | None = None,
        exclude_paths: Iterable[str] = (),
        redact_headers: Iterable[str] = (),
    ) -> None:
        if dispatcher is not None and transports:
            raise ValueError("Pass either transports or a dispatcher, not both")
        self.app = app
        self.dispatcher = dispatcher if dispatcher is not None else ExchangeDispatcher(transports)
        self.exclude_paths = frozenset(exclude_paths)
        self.redact_headers = tuple(redact_headers)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        try:
            pending = begin(scope, redact_headers=self.redact_headers)
        except Exception:
            logger.exception(
                "Failed to start capture for %s %s", scope.get("method"), scope.get("path")
            )
            await self.app(scope, receive, send)
            return

        async def receive_wrapper() -> Message:
            message = await receive()
            try:
                pending.observe_request(message)
            except Exception:
                logger.exception("Failed to capture request body for %s", pending.path)
            return message

        async def send_wrapper(message: Message) -> None:
            await send(message)
            try:
                if pending.observe_response(message) and not pending.completed:
                    self.dispatcher.dispatch(complete(pending))
            except Exception:
                logger.exception(
                    "Failed to capture exchange for %s %s", pending.method, pending.path
                )

        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        finally:
            if not pending.finished:
                logger.debug(
                    "Response for %s %s never completed; no exchange recorded",
                    pending.method,
                    pending.path,
                )


def install_capture(app: Starlette, **options: Any) -> None:
    """
    Install CaptureMiddleware as the outermost layer of ``app``.

    Starlette builds its middleware stack lazily on the first request, so
    this must be called before the app serves traffic.

    Args:
        app: FastAPI or Starlette application
        **options: Keyword arguments for CaptureMiddleware
    """
    build_stack = app.build_middleware_stack

    def build_middleware_stack() -> ASGIApp:
        return CaptureMiddleware(build_stack(), **options)

    app.build_middleware_stack = build_middleware_stack
