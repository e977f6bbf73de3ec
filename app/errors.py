"""Error taxonomy shared by the provider client, orchestrator and sweeper."""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds, each with a fixed caller-facing HTTP status."""

    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    RATE_LIMITED = "rate_limited"
    AUTH_ERROR = "auth_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    EMPTY_RESULT = "empty_result"
    STORAGE_ERROR = "storage_error"
    UNKNOWN = "unknown"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS.get(self, 500)

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_HTTP_STATUS = {
    ErrorKind.AUTH_ERROR: 401,
    ErrorKind.QUOTA_EXCEEDED: 402,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_INPUT: 422,
    ErrorKind.RATE_LIMITED: 429,
}

_RETRYABLE = {
    ErrorKind.PROVIDER_UNAVAILABLE,
    ErrorKind.RATE_LIMITED,
    ErrorKind.UNKNOWN,
}


class GenerationError(RuntimeError):
    """Raised for any classified failure in the generation pipeline."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        step: str | None = None,
        reason: str | None = None,
        provider_status: int | None = None,
        retry_after_seconds: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.step = step
        self.reason = reason
        self.provider_status = provider_status
        self.retry_after_seconds = retry_after_seconds

    @property
    def http_status(self) -> int:
        return self.kind.http_status

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __repr__(self) -> str:
        return f"GenerationError(kind={self.kind.value!r}, step={self.step!r}, message={self.message!r})"
