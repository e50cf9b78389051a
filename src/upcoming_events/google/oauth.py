"""Google OAuth client configuration using Authlib.

This module drives the authorization-code flow for the Calendar API:
- Loading client identity from a Google client-secrets file
- Building the consent URL (with CSRF state)
- Trading the one-time authorization code for an access token

Nothing here stores tokens. A successful exchange returns a ``Token`` that
the caller carries in its own session store.
"""

import hmac
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import requests
from authlib.common.errors import AuthlibBaseError
from authlib.common.security import generate_token
from authlib.integrations.requests_client import OAuth2Session

from upcoming_events.google.exceptions import (
    CredentialsNotFoundError,
    ExchangeFailedError,
    InvalidCredentialsError,
    StateMismatchError,
)

logger = logging.getLogger(__name__)


# Common Google OAuth scopes
SCOPES = {
    "calendar": "https://www.googleapis.com/auth/calendar",
    "calendar_readonly": "https://www.googleapis.com/auth/calendar.readonly",
    "calendar_events_readonly": "https://www.googleapis.com/auth/calendar.events.readonly",
}

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"

DEFAULT_TIMEOUT = 30.0


def resolve_scopes(scopes: list[str]) -> frozenset[str]:
    """Resolve scope names to full URLs."""
    resolved = set()
    for scope in scopes:
        if scope.startswith("https://"):
            resolved.add(scope)
        elif scope in SCOPES:
            resolved.add(SCOPES[scope])
        else:
            raise ValueError(
                f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}"
            )
    return frozenset(resolved)


def new_state() -> str:
    """Generate an unguessable state token for one authorization request."""
    return generate_token(32)


def verify_state(expected: str | None, received: str | None) -> None:
    """Check the callback state against the one issued with the consent URL.

    Raises:
        StateMismatchError: If either value is missing or they differ.
    """
    if not expected or not received:
        raise StateMismatchError()
    if not hmac.compare_digest(expected.encode(), received.encode()):
        raise StateMismatchError()


@dataclass(frozen=True)
class Token:
    """Bearer credential issued by a successful code exchange."""

    access_token: str = field(repr=False)
    expiry: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the token is past its expiry.

        Tokens without an expiry are treated as live; the provider has the
        final word when the token is used.
        """
        if self.expiry is None:
            return False
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now >= self.expiry

    @classmethod
    def from_response(cls, token: dict[str, Any]) -> "Token":
        """Build a Token from an Authlib token response."""
        access_token = token.get("access_token")
        if not access_token:
            raise ExchangeFailedError("Token response did not include an access token")

        expires_at = token.get("expires_at")
        expiry = datetime.fromtimestamp(expires_at, tz=timezone.utc) if expires_at else None
        return cls(access_token=access_token, expiry=expiry)


@dataclass(frozen=True)
class OAuthConfig:
    """Immutable OAuth client configuration for the Calendar API.

    Build one at process start and pass it to whatever needs it.

    Example:
        >>> config = OAuthConfig.from_credentials_file("calendar_credentials.json")
        >>> state = new_state()
        >>> url = config.build_authorization_url(state)
        >>> # ... user consents, provider redirects back with ?code=...&state=...
        >>> verify_state(state, returned_state)
        >>> token = config.exchange_code_for_token(code)
    """

    client_id: str
    client_secret: str = field(repr=False)
    redirect_uri: str
    scopes: frozenset[str] = field(default_factory=lambda: resolve_scopes(["calendar_readonly"]))
    auth_endpoint: str = AUTHORIZE_URL
    token_endpoint: str = TOKEN_URL

    @classmethod
    def from_credentials_file(
        cls,
        path: str | Path,
        scopes: list[str] | None = None,
        redirect_uri: str | None = None,
    ) -> "OAuthConfig":
        """Load OAuth client configuration from a client-secrets file.

        Args:
            path: Path to the credentials JSON downloaded from Google Cloud Console.
            scopes: List of scope names (e.g., ["calendar_readonly"]) or full URLs.
                   If None, defaults to ["calendar_readonly"].
            redirect_uri: Overrides the first redirect URI listed in the file.

        Raises:
            CredentialsNotFoundError: If the file does not exist.
            InvalidCredentialsError: If the file is not usable client-secrets JSON.
        """
        path = Path(path)
        if not path.exists():
            raise CredentialsNotFoundError(str(path))

        try:
            with open(path) as f:
                creds = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidCredentialsError(str(path), f"invalid JSON: {e}") from e

        if not isinstance(creds, dict):
            raise InvalidCredentialsError(str(path), "expected a JSON object")

        # Handle both web and installed app credential formats
        if "web" in creds:
            app_creds = creds["web"]
        elif "installed" in creds:
            app_creds = creds["installed"]
        else:
            raise InvalidCredentialsError(str(path), "expected 'installed' or 'web' key")

        client_id = app_creds.get("client_id")
        client_secret = app_creds.get("client_secret")
        if not client_id or not client_secret:
            raise InvalidCredentialsError(str(path), "missing client_id or client_secret")

        if not redirect_uri:
            redirect_uris = app_creds.get("redirect_uris") or []
            if not redirect_uris:
                raise InvalidCredentialsError(str(path), "no redirect_uris configured")
            redirect_uri = redirect_uris[0]

        logger.info(f"Loaded OAuth client configuration from {path}")
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            scopes=resolve_scopes(scopes or ["calendar_readonly"]),
            auth_endpoint=app_creds.get("auth_uri", AUTHORIZE_URL),
            token_endpoint=app_creds.get("token_uri", TOKEN_URL),
        )

    def _session(self) -> OAuth2Session:
        return OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=" ".join(sorted(self.scopes)),
            redirect_uri=self.redirect_uri,
            token_endpoint_auth_method="client_secret_post",
        )

    def build_authorization_url(self, state: str) -> str:
        """Build the consent URL the user is redirected to.

        Args:
            state: Opaque CSRF token; the callback must echo it back.

        Returns:
            Authorization URL for user to visit.
        """
        if not state:
            raise ValueError("state is required")

        authorization_url, _ = self._session().create_authorization_url(
            self.auth_endpoint,
            state=state,
            access_type="offline",
        )
        return authorization_url

    def exchange_code_for_token(
        self, code: str | None, timeout: float = DEFAULT_TIMEOUT
    ) -> Token:
        """Trade a one-time authorization code for an access token.

        Never retried: a code can only be redeemed once, so any failure has
        to go back to the user.

        Args:
            code: The ``code`` query parameter from the OAuth callback.
            timeout: Seconds to wait for the token endpoint.

        Returns:
            The issued Token.

        Raises:
            ExchangeFailedError: If the code is missing or the provider rejects it.
        """
        if not code:
            raise ExchangeFailedError("Authorization code is missing")

        try:
            token = self._session().fetch_token(
                self.token_endpoint,
                code=code,
                timeout=timeout,
            )
        except AuthlibBaseError as e:
            logger.warning(f"Token endpoint rejected authorization code: {e.error}")
            raise ExchangeFailedError(f"Token exchange failed: {e.error}") from e
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Token exchange request failed: {type(e).__name__}")
            raise ExchangeFailedError(f"Token exchange failed: {e}") from e

        logger.info("Authorization code exchanged for access token")
        return Token.from_response(token)
