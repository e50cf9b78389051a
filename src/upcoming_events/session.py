"""Session storage for the OAuth state and access token.

The fetcher never touches cookies directly. Web routes and the CLI hand it
a ``Token`` read from whichever ``SessionStore`` they use.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from datetime import datetime, timezone
from typing import Any

from upcoming_events.google.oauth import Token

logger = logging.getLogger(__name__)

TOKEN_KEY = "calendar_token"
STATE_KEY = "oauth_state"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore(ABC):
    """Opaque per-user storage with optional expiry."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if missing or expired."""

    @abstractmethod
    def set(self, key: str, value: str, expires: datetime | None = None) -> None:
        """Store a value, optionally until ``expires``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a value if present."""

    def pop(self, key: str) -> str | None:
        value = self.get(key)
        self.delete(key)
        return value


class MappingSessionStore(SessionStore):
    """SessionStore backed by any mutable mapping.

    Entries are kept as ``{"value": ..., "expires_at": <epoch seconds>}`` so
    the mapping can be JSON-serialized (Flask's cookie session).
    """

    def __init__(self, data: MutableMapping[str, Any] | None = None) -> None:
        self._data = data if data is not None else {}

    def get(self, key: str) -> str | None:
        entry = self._data.get(key)
        if not isinstance(entry, dict):
            return None

        expires_at = entry.get("expires_at")
        if expires_at is not None and expires_at <= _now().timestamp():
            self.delete(key)
            return None
        return entry.get("value")

    def set(self, key: str, value: str, expires: datetime | None = None) -> None:
        self._data[key] = {
            "value": value,
            "expires_at": expires.timestamp() if expires else None,
        }

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class MemorySessionStore(MappingSessionStore):
    """In-process session store for the CLI and tests."""

    def __init__(self) -> None:
        super().__init__({})


def save_token(store: SessionStore, token: Token) -> None:
    """Store a token with an expiry mirroring the token's own."""
    blob = json.dumps(
        {
            "access_token": token.access_token,
            "expiry": token.expiry.isoformat() if token.expiry else None,
        }
    )
    store.set(TOKEN_KEY, blob, expires=token.expiry)


def load_token(store: SessionStore) -> Token | None:
    """Read the session token, or None if there is no live one."""
    blob = store.get(TOKEN_KEY)
    if not blob:
        return None

    try:
        data = json.loads(blob)
        expiry = datetime.fromisoformat(data["expiry"]) if data.get("expiry") else None
        return Token(access_token=data["access_token"], expiry=expiry)
    except (ValueError, KeyError, TypeError, AttributeError):
        logger.warning("Discarding unreadable session token")
        clear_token(store)
        return None


def clear_token(store: SessionStore) -> None:
    store.delete(TOKEN_KEY)
