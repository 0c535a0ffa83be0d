"""Right-to-left walk over a forwarding header chain.

Each proxy appends the address it received the request from, so in
``"client, proxy1, proxy2"`` the rightmost entry was written by the peer we
are talking to and every entry further left was written by a hop further
upstream. An entry is only believable if the hop to its right is a trusted
proxy.
"""

from __future__ import annotations

from libs.realip.addresses import IPAddress, parse_ip
from libs.realip.trust_set import ProxyTrustSet


def split_chain(header_value: str) -> list[str]:
    """Split a comma-joined header value into whitespace-trimmed tokens."""
    if not header_value or not header_value.strip():
        return []
    return [token.strip() for token in header_value.split(",")]


def walk_chain(header_value: str | None, trust_set: ProxyTrustSet) -> str | None:
    """Return the client IP claimed by a forwarding header chain.

    Must only be called once the immediate peer is known to be a trusted
    proxy; the rightmost token is then accepted unconditionally.

    Walking leftwards, a token is accepted only while the token to its right
    is itself trusted. The walk stops at the first malformed token (returning
    the best candidate so far) or right after the first untrusted hop
    (returning that hop). If every hop is trusted, the leftmost token wins.

    Args:
        header_value: Raw header value, e.g. ``"1.1.1.1, 2.2.2.2"``
        trust_set: Trusted proxy networks

    Returns:
        The chosen token, or None if the chain is empty or its rightmost
        token is not an IP address.

    Example:
        >>> trust = ProxyTrustSet.build(["10.0.0.0/8"])
        >>> walk_chain("1.1.1.1, 2.2.2.2, 10.0.0.5", trust)
        '2.2.2.2'
    """
    if header_value is None:
        return None

    candidate: str | None = None
    right_hop: IPAddress | None = None
    for token in reversed(split_chain(header_value)):
        addr = parse_ip(token)
        if addr is None:
            # A malformed entry means the chain was not written solely by
            # well-behaved proxies; nothing left of it can be believed.
            break
        if right_hop is not None and not trust_set.contains(right_hop):
            break
        candidate = token
        right_hop = addr
    return candidate


__all__ = ["split_chain", "walk_chain"]
