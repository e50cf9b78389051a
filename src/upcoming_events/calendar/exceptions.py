"""Calendar fetch and normalization exceptions."""


class FetchError(Exception):
    """Base exception for failures listing events from the provider."""

    pass


class UnauthenticatedError(FetchError):
    """Raised when the token is absent, expired, or rejected by the provider."""

    pass


class ServiceError(FetchError):
    """Raised for any other provider-side failure (network, quota, timeout)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class NormalizeError(ValueError):
    """Raised when an event start value cannot be parsed."""

    def __init__(self, value: str, reason: str):
        self.value = value
        super().__init__(f"Cannot parse event start {value!r}: {reason}")
