"""ASGI middleware that attaches a per-request CSP header."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import structlog
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from cspbuilder.core.compiler import CSPBuilder
from cspbuilder.models.policy import ConnectionContext

logger = structlog.get_logger()

_CSP_HEADER_NAMES = frozenset({
    "content-security-policy",
    "content-security-policy-report-only",
})


class HeadersAlreadySentError(RuntimeError):
    """The response start message has already gone out; headers are final."""


def inject_header(message: Message, builder: CSPBuilder, context: ConnectionContext) -> None:
    """Add the compiled CSP header to an ``http.response.start`` message.

    A CSP header the application set itself is left alone.
    """
    if message.get("type") != "http.response.start":
        raise HeadersAlreadySentError(
            f"Cannot add CSP header to a {message.get('type')!r} message"
        )
    message.setdefault("headers", [])
    headers = MutableHeaders(scope=message)
    if any(name in headers for name in _CSP_HEADER_NAMES):
        logger.debug("csp_header_preserved")
        return
    for name, value in builder.get_header_array(context).items():
        if value:
            headers[name] = value


class CSPHeaderMiddleware:
    """Build a fresh CSPBuilder per request and send its header.

    The builder is placed on ``request.state.csp`` so handlers can register
    nonces or hashes for inline content before the response starts.
    """

    def __init__(
        self,
        app: ASGIApp,
        policy_factory: Callable[[], Mapping[str, Any]],
        **builder_options: Any,
    ) -> None:
        self.app = app
        self.policy_factory = policy_factory
        self.builder_options = builder_options

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        builder = CSPBuilder(self.policy_factory(), **self.builder_options)
        scope.setdefault("state", {})["csp"] = builder
        context = ConnectionContext.from_scheme(scope.get("scheme", "http"))

        async def send_with_csp(message: Message) -> None:
            if message["type"] == "http.response.start":
                inject_header(message, builder, context)
            await send(message)

        await self.app(scope, receive, send_with_csp)
