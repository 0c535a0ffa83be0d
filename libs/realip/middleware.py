"""ASGI middleware that resolves the client IP for every request.

The resolved IP is stored in the request state, so handlers read it with
``request.state.client_ip`` or :func:`get_client_ip`. Requests whose peer
address is unusable are rejected with a 400 (HTTP) or closed with policy
violation 1008 (WebSocket) before reaching the application.

Example:
    >>> from fastapi import FastAPI, Request
    >>> app = FastAPI()
    >>> add_realip_middleware(app, get_settings().to_resolver_config())
    >>>
    >>> @app.get("/whoami")
    ... async def whoami(request: Request) -> dict:
    ...     return {"client_ip": get_client_ip(request)}
"""

from __future__ import annotations

import logging

from starlette.datastructures import Headers
from starlette.requests import HTTPConnection
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from libs.realip.addresses import join_host_port
from libs.realip.exceptions import InvalidRemoteAddressError
from libs.realip.metrics import realip_invalid_remote_addr_total, realip_resolutions_total
from libs.realip.resolver import ClientIPResolver, ResolverConfig

logger = logging.getLogger(__name__)

CLIENT_IP_STATE_KEY = "client_ip"

WS_POLICY_VIOLATION = 1008


def peer_address_from_scope(scope: Scope) -> str:
    """Format the ASGI ``client`` tuple as ``host:port`` ("" when absent)."""
    client = scope.get("client")
    if not client:
        return ""
    host, port = client[0], client[1]
    return join_host_port(str(host), port)


class RealIPMiddleware:
    """Resolves the client IP and attaches it to ``scope["state"]``.

    Args:
        app: ASGI application to wrap
        config: Validated resolver configuration, shared read-only
    """

    def __init__(self, app: ASGIApp, config: ResolverConfig) -> None:
        self.app = app
        self.resolver = ClientIPResolver(config)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        peer_address = peer_address_from_scope(scope)
        try:
            resolution = self.resolver.resolve(peer_address, Headers(scope=scope))
        except InvalidRemoteAddressError as exc:
            realip_invalid_remote_addr_total.inc()
            logger.warning(
                "Rejected request with invalid remote address",
                extra={"remote_addr": exc.remote_addr, "reason": exc.reason},
            )
            if scope["type"] == "websocket":
                await send({"type": "websocket.close", "code": WS_POLICY_VIOLATION})
                return
            response = JSONResponse(exc.to_dict(), status_code=exc.status_code)
            await response(scope, receive, send)
            return

        realip_resolutions_total.labels(source=resolution.source.value).inc()
        scope.setdefault("state", {})[CLIENT_IP_STATE_KEY] = resolution.client_ip
        await self.app(scope, receive, send)


def get_client_ip(connection: HTTPConnection) -> str | None:
    """Return the client IP stored by :class:`RealIPMiddleware`, if it ran."""
    return getattr(connection.state, CLIENT_IP_STATE_KEY, None)


def add_realip_middleware(app: ASGIApp, config: ResolverConfig) -> None:
    """Register :class:`RealIPMiddleware` on a Starlette/FastAPI app."""
    app.add_middleware(RealIPMiddleware, config=config)  # type: ignore[attr-defined]


__all__ = [
    "CLIENT_IP_STATE_KEY",
    "RealIPMiddleware",
    "add_realip_middleware",
    "get_client_ip",
    "peer_address_from_scope",
]
