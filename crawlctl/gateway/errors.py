"""Errors raised by crawler gateway implementations."""

from __future__ import annotations


class GatewayError(RuntimeError):
    """Base class for failures talking to the crawler service."""


class GatewayAPIError(GatewayError):
    """Raised when the crawler answers with an error status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, operation: str, status_code: int) -> GatewayAPIError:
        """Return an error for a non-2xx response to ``operation``."""
        return cls(
            f"crawler {operation} failed with HTTP {status_code}",
            status_code=status_code,
        )


class DeadletterNotFoundError(GatewayAPIError):
    """Raised when a requeue or delete targets an unknown dead-letter urn."""

    def __init__(self, urn: str) -> None:
        """Initialise with the missing urn."""
        self.urn = urn
        super().__init__(f"Dead letter not found: {urn}", status_code=404)


class GatewayTransportError(GatewayError):
    """Raised when the crawler cannot be reached at all."""

    @classmethod
    def wrap(cls, operation: str, exc: BaseException) -> GatewayTransportError:
        """Return an error describing a transport fault during ``operation``."""
        return cls(f"crawler {operation} transport failure: {exc}")


class GatewayResponseShapeError(GatewayError):
    """Raised when a crawler response body does not have the expected shape."""

    @classmethod
    def invalid(cls, operation: str, detail: str) -> GatewayResponseShapeError:
        """Return an error for an undecodable ``operation`` response."""
        return cls(f"crawler {operation} returned an unexpected body: {detail}")


class GatewayConfigError(RuntimeError):
    """Raised when gateway configuration is missing or malformed."""

    @classmethod
    def missing_url(cls) -> GatewayConfigError:
        """Return an error when no crawler URL is configured."""
        return cls("CRAWLCTL_CRAWLER_URL (or --url) is required")

    @classmethod
    def invalid_url(cls, url: str) -> GatewayConfigError:
        """Return an error for a URL that is not http(s)."""
        return cls(f"crawler URL must use http or https: {url!r}")

    @classmethod
    def invalid_timeout(cls, raw: str) -> GatewayConfigError:
        """Return an error for a non-positive or non-numeric timeout."""
        return cls(f"CRAWLCTL_TIMEOUT_S must be a positive number, got: {raw!r}")
