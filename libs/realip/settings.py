"""
Client IP resolution settings loaded from environment variables.

Uses Pydantic Settings for type-safe configuration. All settings use the
``REALIP_`` prefix and can also come from a ``.env`` file.

Example:
    export REALIP_TRUSTED_PROXIES="10.0.0.0/8, lb.internal"
    export REALIP_TRUSTED_HEADER="Cf-Connecting-IP"

    >>> from libs.realip.settings import get_settings
    >>> config = get_settings().to_resolver_config()
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from libs.realip.resolver import DEFAULT_IP_HEADERS, ResolverConfig
from libs.realip.trust_set import DEFAULT_DNS_TIMEOUT_SECONDS, ProxyTrustSet


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class RealIPSettings(BaseSettings):
    """
    Client IP resolution configuration.

    List-valued settings are comma-separated strings so they can be set
    directly from the environment.
    """

    model_config = SettingsConfigDict(
        env_prefix="REALIP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    trusted_header: str = Field(
        default="",
        description="Header believed unconditionally, e.g. Cf-Connecting-IP (empty disables)",
    )
    ip_headers: str = Field(
        default=",".join(DEFAULT_IP_HEADERS),
        description="Comma-separated forwarding headers to consult, in priority order",
    )
    trusted_proxies: str = Field(
        default="",
        description="Comma-separated trusted proxy IPs, CIDR blocks or hostnames",
    )
    trust_all_proxies: bool = Field(
        default=False,
        description="Believe forwarding headers from every peer. Never use in production.",
    )
    dns_timeout_seconds: float = Field(
        default=DEFAULT_DNS_TIMEOUT_SECONDS,
        gt=0,
        le=60,
        description="Timeout for resolving hostname entries in trusted_proxies",
    )

    service_name: str = Field(default="client_ip_service", description="Service name in logs")
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @field_validator("trusted_header", "ip_headers", "trusted_proxies")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @property
    def ip_header_list(self) -> list[str]:
        return _split_csv(self.ip_headers)

    @property
    def trusted_proxy_list(self) -> list[str]:
        return _split_csv(self.trusted_proxies)

    def to_resolver_config(self) -> ResolverConfig:
        """Compile settings into a validated resolver configuration.

        Hostname entries are resolved here, once.

        Raises:
            ConfigurationError: If any trusted proxy entry is invalid.
        """
        trust_set = ProxyTrustSet.build(
            self.trusted_proxy_list,
            trust_all=self.trust_all_proxies,
            dns_timeout=self.dns_timeout_seconds,
        )
        return ResolverConfig(
            trusted_header=self.trusted_header or None,
            ip_headers=tuple(self.ip_header_list),
            trusted_proxies=trust_set,
        )


@lru_cache
def get_settings() -> RealIPSettings:
    """Return the cached settings instance (environment is read once)."""
    return RealIPSettings()


__all__ = ["RealIPSettings", "get_settings"]
