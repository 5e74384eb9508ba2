"""Errors raised while fetching pages."""

from __future__ import annotations


class WebFetchError(Exception):
    """Base exception for page fetch failures."""

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.args == other.args

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class InvalidResponse(WebFetchError):
    """The request did not produce an HTTP response."""

    def __init__(self, message: str = "Invalid response") -> None:
        super().__init__(message)


class BadStatus(WebFetchError):
    """Non-2xx status that was not retryable or exhausted the attempt budget."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(status_code)

    def __str__(self) -> str:
        return f"Bad HTTP status {self.status_code}"


class EmptyPayload(WebFetchError):
    """The response body was empty."""

    def __init__(self, message: str = "Empty response body") -> None:
        super().__init__(message)


class RenderingUnavailable(WebFetchError):
    """No headless rendering engine can be used on this host."""

    def __init__(self, message: str = "JavaScript rendering unavailable") -> None:
        super().__init__(message)


class RenderingExecutionFailed(WebFetchError):
    """Page script evaluation produced no usable markup."""

    def __init__(self, message: str = "JavaScript execution failed") -> None:
        super().__init__(message)
