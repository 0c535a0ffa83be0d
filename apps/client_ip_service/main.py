"""
Client IP Service - FastAPI Application

Reports the client IP the platform attributes to each request. Useful for
checking a trusted proxy deployment end to end: put the service behind the
same load balancers as the real services and compare ``/whoami`` with the
address you expect.

Run:
    REALIP_TRUSTED_PROXIES=10.0.0.0/8 uvicorn apps.client_ip_service.main:app
"""

from typing import Any

from fastapi import FastAPI, Request
from prometheus_client import make_asgi_app
from pydantic import BaseModel

from libs.common.logging import (
    add_request_id_middleware,
    configure_logging,
    get_logger,
    get_or_create_request_id,
    log_with_context,
)
from libs.realip import ResolverConfig, add_realip_middleware, get_client_ip
from libs.realip.settings import RealIPSettings, get_settings

logger = get_logger(__name__)


class WhoAmIResponse(BaseModel):
    """Resolved client identity for the current request."""

    client_ip: str | None
    request_id: str | None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    trusted_networks: int
    trust_all_proxies: bool


def create_app(
    settings: RealIPSettings | None = None,
    config: ResolverConfig | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Settings to use (defaults to environment via get_settings())
        config: Pre-built resolver config; compiled from settings when omitted
        configure_logs: Install the JSON root log handler

    Raises:
        ConfigurationError: If the trusted proxy settings are invalid. The
            service must not start with a broken trust configuration.
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(service_name=settings.service_name, log_level=settings.log_level)

    if config is None:
        config = settings.to_resolver_config()

    log_with_context(
        logger,
        "INFO",
        "Client IP resolution configured",
        trusted_header=config.trusted_header,
        ip_headers=list(config.ip_headers),
        trusted_networks=[str(n) for n in config.trusted_proxies],
        trust_all_proxies=config.trusted_proxies.trust_all,
    )

    app = FastAPI(title="Client IP Service")

    # Added last = outermost, so rejected requests still carry a request ID
    add_realip_middleware(app, config)
    add_request_id_middleware(app)

    app.mount("/metrics", make_asgi_app())

    @app.get("/whoami", response_model=WhoAmIResponse)
    async def whoami(request: Request) -> dict[str, Any]:
        return {"client_ip": get_client_ip(request), "request_id": get_or_create_request_id()}

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz() -> dict[str, Any]:
        return {
            "status": "ok",
            "service": settings.service_name,
            "trusted_networks": len(config.trusted_proxies),
            "trust_all_proxies": config.trusted_proxies.trust_all,
        }

    return app


def __getattr__(name: str) -> Any:
    # `app` is built on first access; importing the module reads no settings
    if name == "app":
        application = create_app()
        globals()["app"] = application
        return application
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
