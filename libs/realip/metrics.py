"""Prometheus metrics for client IP resolution."""

from prometheus_client import Counter

realip_resolutions_total = Counter(
    "realip_resolutions_total",
    "Client IP resolutions by source (trusted_header, forwarded_header, peer)",
    ["source"],
)

realip_invalid_remote_addr_total = Counter(
    "realip_invalid_remote_addr_total",
    "Requests rejected because the peer address was not a valid host:port",
)

__all__ = ["realip_invalid_remote_addr_total", "realip_resolutions_total"]
