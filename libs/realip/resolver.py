"""Client IP resolution for requests arriving through reverse proxies.

Resolution order (first hit wins):
1. ``trusted_header`` - if configured and its value is a single valid IP.
   Meant for edge infrastructure (e.g. a CDN) that strips any client-supplied
   copy of the header before setting its own.
2. Candidate forwarding headers (``ip_headers``) - only when the immediate
   peer is a trusted proxy, walked right-to-left with :func:`walk_chain`.
3. The peer address itself.

The peer address must always parse; an unusable peer raises
:class:`InvalidRemoteAddressError`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from libs.realip.addresses import parse_ip, split_host_port
from libs.realip.chain import walk_chain
from libs.realip.exceptions import InvalidRemoteAddressError
from libs.realip.trust_set import ProxyTrustSet

logger = logging.getLogger(__name__)

DEFAULT_IP_HEADERS: tuple[str, ...] = ("X-Real-IP", "X-Forwarded-For")


class ResolutionSource(str, Enum):
    """Where the resolved client IP came from."""

    TRUSTED_HEADER = "trusted_header"
    FORWARDED_HEADER = "forwarded_header"
    PEER = "peer"


@dataclass(frozen=True)
class ResolverConfig:
    """Validated, read-only resolver configuration.

    Build once at startup (see ``RealIPSettings.to_resolver_config``) and share
    across requests.

    Attributes:
        trusted_header: Header that is believed unconditionally (None disables)
        ip_headers: Candidate forwarding headers, in priority order
        trusted_proxies: Peers whose forwarding headers are believed
    """

    trusted_header: str | None = None
    ip_headers: tuple[str, ...] = DEFAULT_IP_HEADERS
    trusted_proxies: ProxyTrustSet = field(default_factory=ProxyTrustSet)

    def __post_init__(self) -> None:
        # Normalise "" to None and lists to tuples so the config stays hashable
        if not self.trusted_header:
            object.__setattr__(self, "trusted_header", None)
        object.__setattr__(self, "ip_headers", tuple(self.ip_headers))


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one request."""

    client_ip: str
    source: ResolutionSource
    header: str | None = None


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup that also works on plain dicts."""
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


class ClientIPResolver:
    """Resolves the originating client IP from a peer address and headers.

    Holds no mutable state; a single instance may serve concurrent requests.

    Example:
        >>> config = ResolverConfig(trusted_proxies=ProxyTrustSet.build(["192.168.0.0/16"]))
        >>> resolver = ClientIPResolver(config)
        >>> resolver.resolve("192.168.0.1:5000", {"X-Forwarded-For": "1.1.1.1,2.2.2.2"}).client_ip
        '2.2.2.2'
    """

    def __init__(self, config: ResolverConfig) -> None:
        self.config = config

    def resolve(self, peer_address: str, headers: Mapping[str, str]) -> Resolution:
        """Resolve the client IP for one request.

        Args:
            peer_address: Immediate peer as ``host:port``
            headers: Request headers

        Returns:
            Resolution with the client IP and the source that produced it

        Raises:
            InvalidRemoteAddressError: If the peer address is unusable
        """
        config = self.config

        if config.trusted_header:
            value = get_header(headers, config.trusted_header)
            if value is not None and parse_ip(value) is not None:
                return Resolution(value, ResolutionSource.TRUSTED_HEADER, config.trusted_header)

        try:
            peer_host, _port = split_host_port(peer_address)
        except ValueError as exc:
            raise InvalidRemoteAddressError(peer_address, str(exc)) from exc
        peer_ip = parse_ip(peer_host)
        if peer_ip is None:
            raise InvalidRemoteAddressError(peer_address, f"host {peer_host!r} is not an IP")

        if config.trusted_proxies.contains(peer_ip):
            for header_name in config.ip_headers:
                client_ip = walk_chain(get_header(headers, header_name), config.trusted_proxies)
                if client_ip:
                    logger.debug(
                        "Using forwarded client IP from trusted proxy",
                        extra={"peer": peer_host, "header": header_name, "client_ip": client_ip},
                    )
                    return Resolution(client_ip, ResolutionSource.FORWARDED_HEADER, header_name)
        else:
            logger.debug(
                "Ignoring forwarding headers from untrusted peer",
                extra={"peer": peer_host},
            )

        return Resolution(peer_host, ResolutionSource.PEER)


def resolve_client_ip(
    config: ResolverConfig, peer_address: str, headers: Mapping[str, str]
) -> str:
    """Resolve and return only the client IP string."""
    return ClientIPResolver(config).resolve(peer_address, headers).client_ip


__all__ = [
    "DEFAULT_IP_HEADERS",
    "ClientIPResolver",
    "Resolution",
    "ResolutionSource",
    "ResolverConfig",
    "get_header",
    "resolve_client_ip",
]
