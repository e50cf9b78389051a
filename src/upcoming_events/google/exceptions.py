"""Google authentication exceptions."""


class GoogleAuthError(Exception):
    """Base exception for Google authentication errors."""

    pass


class ConfigError(GoogleAuthError):
    """Raised when the OAuth client configuration cannot be loaded.

    Fatal at startup: the server must not start without valid credentials.
    """

    pass


class CredentialsNotFoundError(ConfigError):
    """Raised when OAuth credentials file is not found."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Credentials file not found at {path}. "
            "Please download OAuth credentials from Google Cloud Console."
        )


class InvalidCredentialsError(ConfigError):
    """Raised when the credentials file exists but cannot be used."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid credentials file {path}: {reason}")


class ExchangeFailedError(GoogleAuthError):
    """Raised when the authorization code cannot be traded for a token.

    Authorization codes are single-use, so the user has to log in again.
    """

    pass


class StateMismatchError(ExchangeFailedError):
    """Raised when the callback state does not match the one issued."""

    def __init__(self):
        super().__init__("OAuth state mismatch; possible CSRF, restart the login")
