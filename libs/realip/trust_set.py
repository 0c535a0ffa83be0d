"""Compiled set of trusted reverse proxy networks.

The set is built once at startup from a list of specs, each of which is an IP
literal, a CIDR block, or a hostname. Hostnames are resolved exactly once,
during construction; a lookup failure aborts construction. After that the set
is immutable and can be shared by any number of concurrent requests.

An empty set trusts nobody. Trusting every peer requires the explicit
``trust_all`` flag.
"""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass

from libs.realip.addresses import IPAddress, IPNetwork, parse_ip
from libs.realip.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DNS_TIMEOUT_SECONDS = 5.0

_NUMERIC_LITERAL = re.compile(r"^(?:[0-9.]+|0[xX].*)$")


def _lookup_host(hostname: str) -> list[IPAddress]:
    infos = socket.getaddrinfo(hostname, None, proto=socket.IPPROTO_TCP)
    addresses: list[IPAddress] = []
    for family, _type, _proto, _canon, sockaddr in infos:
        if family not in (socket.AF_INET, socket.AF_INET6):
            continue
        # Link-local IPv6 results may carry a "%scope" suffix
        addr = parse_ip(str(sockaddr[0]).split("%", 1)[0])
        if addr is not None and addr not in addresses:
            addresses.append(addr)
    return addresses


def resolve_hostname(hostname: str, timeout: float = DEFAULT_DNS_TIMEOUT_SECONDS) -> list[IPAddress]:
    """Resolve a hostname to all of its addresses within ``timeout`` seconds.

    Raises:
        ConfigurationError: On lookup failure, timeout, or an empty answer.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="realip-dns")
    try:
        future = executor.submit(_lookup_host, hostname)
        try:
            addresses = future.result(timeout=timeout)
        except FutureTimeoutError:
            raise ConfigurationError(
                f"hostname lookup timed out after {timeout}s", spec=hostname
            ) from None
        except (OSError, UnicodeError) as exc:
            raise ConfigurationError(f"invalid hostname: {exc}", spec=hostname) from exc
    finally:
        # Do not block startup on a hung resolver thread
        executor.shutdown(wait=False)

    if not addresses:
        raise ConfigurationError("invalid hostname: no addresses returned", spec=hostname)
    return addresses


def parse_proxy_spec(
    spec: str, dns_timeout: float = DEFAULT_DNS_TIMEOUT_SECONDS
) -> list[IPNetwork]:
    """Compile one trusted proxy spec into networks.

    - ``"10.0.0.0/8"`` is parsed as a CIDR block (host bits are masked off)
    - ``"10.0.0.1"`` / ``"::1"`` become /32 and /128 networks
    - anything else is looked up via DNS and every address becomes a
      singleton network

    Raises:
        ConfigurationError: If the spec is empty, malformed, or does not resolve.
    """
    value = spec.strip()
    if not value:
        raise ConfigurationError("empty trusted proxy entry", spec=spec)

    if "/" in value:
        try:
            return [ipaddress.ip_network(value, strict=False)]
        except ValueError as exc:
            raise ConfigurationError(f"invalid CIDR: {exc}", spec=spec) from exc

    addr = parse_ip(value)
    if addr is not None:
        return [ipaddress.ip_network(addr)]

    # The system resolver would read "10.1" or "0x7f.1" as inet_aton shorthand
    if _NUMERIC_LITERAL.match(value) or ":" in value:
        raise ConfigurationError("invalid IP literal", spec=spec)

    addresses = resolve_hostname(value, timeout=dns_timeout)
    logger.info(
        "Resolved trusted proxy hostname",
        extra={"hostname": value, "addresses": [str(a) for a in addresses]},
    )
    return [ipaddress.ip_network(a) for a in addresses]


@dataclass(frozen=True)
class ProxyTrustSet:
    """Immutable collection of trusted proxy networks.

    Use :meth:`build` to compile operator specs; the constructor accepts
    already-parsed networks.

    Example:
        >>> trust = ProxyTrustSet.build(["192.168.0.0/16", "2.2.2.2"])
        >>> "192.168.4.20" in trust
        True
        >>> trust.contains("8.8.8.8")
        False
    """

    networks: tuple[IPNetwork, ...] = ()
    trust_all: bool = False

    @classmethod
    def build(
        cls,
        specs: Iterable[str],
        *,
        trust_all: bool = False,
        dns_timeout: float = DEFAULT_DNS_TIMEOUT_SECONDS,
    ) -> ProxyTrustSet:
        """Compile trusted proxy specs, failing fast on the first bad entry.

        Args:
            specs: IP literals, CIDR blocks or hostnames
            trust_all: Treat every peer as trusted (permissive mode)
            dns_timeout: Bound in seconds for each hostname lookup

        Raises:
            ConfigurationError: If any spec is invalid or fails to resolve.
        """
        networks: list[IPNetwork] = []
        for spec in specs:
            for network in parse_proxy_spec(spec, dns_timeout=dns_timeout):
                if network not in networks:
                    networks.append(network)

        if trust_all:
            logger.warning(
                "Trusting forwarding headers from every peer (INSECURE)",
                extra={"configured_networks": len(networks)},
            )
        return cls(networks=tuple(networks), trust_all=trust_all)

    def contains(self, ip: IPAddress | str) -> bool:
        """Return True if ``ip`` belongs to any trusted network."""
        addr = parse_ip(ip.strip() if isinstance(ip, str) else str(ip))
        if addr is None:
            return False
        if self.trust_all:
            return True
        # IPv4 addresses are never members of IPv6 networks and vice versa
        return any(addr in network for network in self.networks if network.version == addr.version)

    def __contains__(self, ip: object) -> bool:
        if not isinstance(ip, str | ipaddress.IPv4Address | ipaddress.IPv6Address):
            return False
        return self.contains(ip)

    def __iter__(self) -> Iterator[IPNetwork]:
        return iter(self.networks)

    def __len__(self) -> int:
        return len(self.networks)


__all__ = [
    "DEFAULT_DNS_TIMEOUT_SECONDS",
    "ProxyTrustSet",
    "parse_proxy_spec",
    "resolve_hostname",
]
