"""Custom exceptions for snaxel-query."""


class SnaxelQueryError(Exception):
    """Base exception for snaxel-query errors."""

    pass


class BrowserError(SnaxelQueryError):
    """Raised when page rendering in the browser fails."""

    pass


class TransientFetchError(SnaxelQueryError):
    """Raised when a single fetch attempt for a source fails."""

    def __init__(self, source: str, attempt: int, cause: BaseException):
        self.source = source
        self.attempt = attempt
        self.cause = cause
        super().__init__(f"{source} attempt {attempt} failed: {cause}")


class ExhaustedRetryError(SnaxelQueryError):
    """Raised when every attempt for a source failed.

    Chained from the error of the last attempt.
    """

    def __init__(self, source: str, attempts: int, last_error: BaseException):
        self.source = source
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{source} failed after {attempts} attempt(s): {last_error}")


class AggregateCallError(SnaxelQueryError, ValueError):
    """Raised for malformed input before any source is queried."""

    pass
