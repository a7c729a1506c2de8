"""Exception classes for pyblueshift library."""

from __future__ import annotations


class BluOSError(Exception):
    """Base exception for all BluOS protocol errors."""


class BluOSRequestError(BluOSError):
    """Raised when there is an error communicating with a receiver or provider.

    Carries the URL that failed and the underlying exception for debugging.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        last_error: Exception | None = None,
        operation_context: str | None = None,
    ) -> None:
        """Initialize request error with context.

        Args:
            message: The error message
            url: URL that failed
            last_error: The underlying exception that caused this error
            operation_context: Context about what operation was being performed
        """
        self.url = url
        self.last_error = last_error
        self.operation_context = operation_context or "http_get"
        super().__init__(message)

    def __str__(self) -> str:
        """String representation with context."""
        context_parts = []
        if self.url:
            context_parts.append(f"url={self.url}")
        if self.operation_context != "http_get":
            context_parts.append(f"context={self.operation_context}")
        if context_parts:
            return f"{super().__str__()} ({', '.join(context_parts)})"
        return super().__str__()


class BluOSTimeoutError(BluOSRequestError):
    """Raised when a request does not complete within its timeout."""


class BluOSConnectionError(BluOSRequestError):
    """Raised on network-level connectivity problems (refused, unreachable, DNS)."""


class BluOSResponseError(BluOSError):
    """Raised when the remote end answers with a non-success HTTP status."""

    def __init__(self, message: str, status: int, url: str | None = None) -> None:
        """Initialize response error.

        Args:
            message: The error message
            status: HTTP status code returned
            url: URL that failed
        """
        self.status = status
        self.url = url
        super().__init__(message)

    def __str__(self) -> str:
        """String representation with status and URL."""
        context_parts = [f"status={self.status}"]
        if self.url:
            context_parts.append(f"url={self.url}")
        return f"{super().__str__()} ({', '.join(context_parts)})"


class BluOSInvalidDataError(BluOSError):
    """The remote end responded with a body that does not have the expected shape."""
