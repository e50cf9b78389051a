"""Centralized configuration.

Files are looked up relative to the repo root:
    .env                                      - UPCOMING_EVENTS_* overrides
    .credentials/calendar_credentials.json    - Google OAuth client credentials

This module auto-loads the .env file on import. Variables already set in the
environment take precedence over the file.
"""

import logging
import os
import secrets
from dataclasses import dataclass
from pathlib import Path

from upcoming_events.google.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Repository root (where this package is installed from)
# __file__ is src/upcoming_events/config.py, so 3 levels up
REPO_ROOT = Path(__file__).parent.parent.parent
CREDENTIALS_DIR = REPO_ROOT / ".credentials"

ENV_FILE = REPO_ROOT / ".env"
CALENDAR_CREDENTIALS = CREDENTIALS_DIR / "calendar_credentials.json"


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            # Remove surrounding quotes
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, read once at startup."""

    credentials_path: Path = CALENDAR_CREDENTIALS
    redirect_uri: str | None = None
    secret_key: str = ""
    host: str = "127.0.0.1"
    port: int = 8080
    fetch_timeout: float = 30.0
    calendar_id: str = "primary"
    secure_cookies: bool = True


def _env_number(name: str, default: str, kind: type) -> int | float:
    raw = os.environ.get(name, default)
    try:
        return kind(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def load_settings() -> Settings:
    """Load settings from environment variables with sensible defaults.

    Environment variables:
        UPCOMING_EVENTS_CREDENTIALS: Path to the OAuth client credentials JSON
        UPCOMING_EVENTS_REDIRECT_URI: Override the credentials' redirect URI
        UPCOMING_EVENTS_SECRET_KEY: Session cookie signing key
        UPCOMING_EVENTS_HOST, UPCOMING_EVENTS_PORT: Server bind address
        UPCOMING_EVENTS_FETCH_TIMEOUT: Seconds to wait for Google
        UPCOMING_EVENTS_CALENDAR_ID: Calendar to list (default "primary")
        UPCOMING_EVENTS_INSECURE_COOKIES: Set to send cookies over plain HTTP

    Raises:
        ConfigError: If a numeric variable is malformed.
    """
    secret_key = os.environ.get("UPCOMING_EVENTS_SECRET_KEY", "")
    if not secret_key:
        logger.warning(
            "UPCOMING_EVENTS_SECRET_KEY not set; sessions will not survive a restart"
        )
        secret_key = secrets.token_hex(32)

    credentials = os.environ.get("UPCOMING_EVENTS_CREDENTIALS")

    return Settings(
        credentials_path=Path(credentials).expanduser() if credentials else CALENDAR_CREDENTIALS,
        redirect_uri=os.environ.get("UPCOMING_EVENTS_REDIRECT_URI") or None,
        secret_key=secret_key,
        host=os.environ.get("UPCOMING_EVENTS_HOST", "127.0.0.1"),
        port=int(_env_number("UPCOMING_EVENTS_PORT", "8080", int)),
        fetch_timeout=float(_env_number("UPCOMING_EVENTS_FETCH_TIMEOUT", "30", float)),
        calendar_id=os.environ.get("UPCOMING_EVENTS_CALENDAR_ID", "primary"),
        secure_cookies=not os.environ.get("UPCOMING_EVENTS_INSECURE_COOKIES"),
    )


def ensure_credentials_dir() -> Path:
    """Create credentials directory if it doesn't exist.

    Returns:
        Path to credentials directory.
    """
    CREDENTIALS_DIR.mkdir(parents=True, exist_ok=True)
    return CREDENTIALS_DIR


def get_credential_status(settings: Settings) -> dict:
    """Get status of the configured credentials.

    Returns:
        Dictionary with credential status.
    """
    return {
        "repo_root": str(REPO_ROOT),
        "env_file": ENV_FILE.exists(),
        "credentials_path": str(settings.credentials_path),
        "credentials": settings.credentials_path.exists(),
        "secret_key": bool(os.environ.get("UPCOMING_EVENTS_SECRET_KEY")),
        "redirect_uri_override": settings.redirect_uri,
    }


# Auto-load .env from repo root on import
_loaded = _load_env_file(ENV_FILE)
