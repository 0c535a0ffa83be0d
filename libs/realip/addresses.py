"""Address parsing helpers shared by the trust set, chain walker and resolver."""

from __future__ import annotations

import ipaddress

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network


def parse_ip(text: str) -> IPAddress | None:
    """Parse an IP literal, returning None instead of raising.

    IPv4-mapped IPv6 addresses (``::ffff:10.0.0.1``) are unwrapped to their
    IPv4 form so they match IPv4 networks in the trust set. Zoned IPv6
    addresses (``fe80::1%eth0``) are rejected.
    """
    if not text:
        return None
    try:
        addr = ipaddress.ip_address(text)
    except ValueError:
        return None
    if isinstance(addr, ipaddress.IPv6Address) and addr.scope_id is not None:
        return None
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        return addr.ipv4_mapped
    return addr


def split_host_port(address: str) -> tuple[str, str]:
    """Split ``host:port`` or ``[host]:port`` into its parts.

    Raises:
        ValueError: If the port is missing, an IPv6 host is not bracketed,
            or the brackets are unbalanced.

    Example:
        >>> split_host_port("[::1]:8080")
        ('::1', '8080')
    """
    if not address:
        raise ValueError("missing address")

    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {address!r}")
        host = address[1:end]
        rest = address[end + 1 :]
        if not rest.startswith(":"):
            raise ValueError(f"missing port in address {address!r}")
        port = rest[1:]
        if "[" in host or "]" in port or "[" in port:
            raise ValueError(f"unexpected bracket in address {address!r}")
        return host, port

    idx = address.rfind(":")
    if idx < 0:
        raise ValueError(f"missing port in address {address!r}")
    host, port = address[:idx], address[idx + 1 :]
    if ":" in host:
        raise ValueError(f"too many colons in address {address!r}")
    if "[" in host or "]" in host or "]" in port:
        raise ValueError(f"unexpected bracket in address {address!r}")
    return host, port


def join_host_port(host: str, port: int | str) -> str:
    """Inverse of :func:`split_host_port`; brackets IPv6 hosts."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


__all__ = ["IPAddress", "IPNetwork", "join_host_port", "parse_ip", "split_host_port"]
