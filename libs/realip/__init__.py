"""Trusted-proxy client IP resolution.

Build the configuration once at startup, then resolve per request:

    >>> config = ResolverConfig(trusted_proxies=ProxyTrustSet.build(["192.168.0.0/16"]))
    >>> resolve_client_ip(config, "192.168.0.1:5000", {"X-Forwarded-For": "1.1.1.1,2.2.2.2"})
    '2.2.2.2'
"""

from libs.realip.addresses import join_host_port, parse_ip, split_host_port
from libs.realip.chain import split_chain, walk_chain
from libs.realip.exceptions import ConfigurationError, InvalidRemoteAddressError, RealIPError
from libs.realip.middleware import RealIPMiddleware, add_realip_middleware, get_client_ip
from libs.realip.resolver import (
    DEFAULT_IP_HEADERS,
    ClientIPResolver,
    Resolution,
    ResolutionSource,
    ResolverConfig,
    resolve_client_ip,
)
from libs.realip.settings import RealIPSettings, get_settings
from libs.realip.trust_set import ProxyTrustSet, parse_proxy_spec

__all__ = [
    # Core
    "ProxyTrustSet",
    "parse_proxy_spec",
    "walk_chain",
    "split_chain",
    "ClientIPResolver",
    "ResolverConfig",
    "Resolution",
    "ResolutionSource",
    "DEFAULT_IP_HEADERS",
    "resolve_client_ip",
    # Address helpers
    "parse_ip",
    "split_host_port",
    "join_host_port",
    # Errors
    "RealIPError",
    "ConfigurationError",
    "InvalidRemoteAddressError",
    # Integration
    "RealIPMiddleware",
    "add_realip_middleware",
    "get_client_ip",
    "RealIPSettings",
    "get_settings",
]
