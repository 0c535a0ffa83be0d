"""
Exception hierarchy for client IP resolution.

Exception hierarchy:
    RealIPError (base)
    ├── ConfigurationError - Invalid trusted proxy spec or DNS failure (startup only)
    └── InvalidRemoteAddressError - Peer address is not a usable host:port

Configuration errors are raised while building the trust set and must abort
startup. Invalid remote addresses are raised per request and are mapped to a
400 response by the middleware. A header that yields no usable IP is never an
error; the resolver simply moves on to the next candidate.
"""

from __future__ import annotations

from typing import Any


class RealIPError(Exception):
    """Base exception for all client IP resolution errors."""

    pass


class ConfigurationError(RealIPError):
    """
    Raised when the trusted proxy configuration cannot be compiled.

    Covers malformed IP/CIDR literals, empty entries and hostnames that fail
    to resolve (lookup error, timeout or no addresses).

    Attributes:
        spec: The offending trusted proxy entry, if known

    Example:
        >>> try:
        ...     ProxyTrustSet.build(["10.0.0.0/33"])
        ... except ConfigurationError as e:
        ...     logger.critical(f"Refusing to start: {e}")
    """

    def __init__(self, message: str, spec: str | None = None) -> None:
        super().__init__(message)
        self.spec = spec
        self.message = message

    def __str__(self) -> str:
        if self.spec is not None:
            return f"{self.message} (spec: {self.spec!r})"
        return self.message


class InvalidRemoteAddressError(RealIPError):
    """
    Raised when the peer address cannot be split into host/port or the host
    is not an IP address.

    There is no fallback for this case: without a peer IP no client IP can be
    determined at all, so callers should reject the request.

    Attributes:
        remote_addr: The raw peer address as supplied by the transport
        code: Stable machine-readable error code
        status_code: HTTP status callers should respond with
    """

    code = "INVALID_REMOTE_ADDR"
    status_code = 400

    def __init__(self, remote_addr: str, reason: str | None = None) -> None:
        message = "invalid remote address"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.remote_addr = remote_addr
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        """Render the error as a JSON-serialisable response body."""
        return {
            "code": self.code,
            "message": "invalid remote address",
            "metadata": {"remote_addr": self.remote_addr},
        }
