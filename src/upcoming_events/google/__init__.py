"""Google OAuth authentication for the Calendar API."""

from upcoming_events.google.exceptions import (
    ConfigError,
    CredentialsNotFoundError,
    ExchangeFailedError,
    GoogleAuthError,
    InvalidCredentialsError,
    StateMismatchError,
)
from upcoming_events.google.oauth import OAuthConfig, Token, new_state, verify_state

__all__ = [
    "OAuthConfig",
    "Token",
    "new_state",
    "verify_state",
    "GoogleAuthError",
    "ConfigError",
    "CredentialsNotFoundError",
    "InvalidCredentialsError",
    "ExchangeFailedError",
    "StateMismatchError",
]
