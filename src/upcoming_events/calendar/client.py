"""Google Calendar API client implementation."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.oauth2.credentials import Credentials as GoogleCredentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from upcoming_events.calendar.exceptions import ServiceError, UnauthenticatedError
from upcoming_events.calendar.normalize import RawEvent
from upcoming_events.google.oauth import DEFAULT_TIMEOUT, Token

logger = logging.getLogger(__name__)


def add_one_month(dt: datetime) -> datetime:
    """Add one calendar month to ``dt``.

    A day past the end of the next month rolls forward into the month after
    (January 31 becomes March 2 or 3), the way date normalization does it.
    """
    year, month = divmod(dt.month, 12)
    first = dt.replace(year=dt.year + year, month=month + 1, day=1)
    return first + timedelta(days=dt.day - 1)


def upcoming_window(now: datetime) -> tuple[datetime, datetime]:
    """Return the ``[now, now + 1 month)`` window listed as upcoming.

    Naive datetimes are taken as UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now, add_one_month(now)


class CalendarFetcher:
    """Lists upcoming events with a caller-supplied access token.

    One fetcher can be shared across requests; it keeps no per-user state.

    Usage:
        fetcher = CalendarFetcher(timeout=10)
        raw_events = fetcher.fetch_upcoming_events(token)
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        calendar_id: str = "primary",
    ) -> None:
        """Initialize Calendar fetcher.

        Args:
            timeout: Seconds to wait for the Calendar API before giving up.
            calendar_id: Calendar ID or "primary" for the main calendar.
        """
        self.timeout = timeout
        self.calendar_id = calendar_id

    def _build_service(self, token: Token) -> Any:
        """Create a Calendar API service authorized with ``token``."""
        expiry = token.expiry
        if expiry is not None:
            # google-auth compares expiry against naive UTC
            expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)
        creds = GoogleCredentials(token=token.access_token, expiry=expiry)
        http = AuthorizedHttp(creds, http=httplib2.Http(timeout=self.timeout))
        return build("calendar", "v3", http=http, cache_discovery=False)

    def fetch_upcoming_events(
        self, token: Token | None, now: datetime | None = None
    ) -> list[RawEvent]:
        """List events starting in the next month, ordered by start time.

        Recurring events are expanded into single instances. The provider's
        order is kept as is.

        Args:
            token: Access token from the user's session.
            now: Start of the window (defaults to the current time).

        Returns:
            List of RawEvent objects, possibly empty.

        Raises:
            UnauthenticatedError: If the token is missing, expired, or rejected.
            ServiceError: For any other provider failure.
        """
        if token is None or not token.access_token:
            raise UnauthenticatedError("No access token in session")
        if token.is_expired():
            raise UnauthenticatedError("Access token has expired")

        time_min, time_max = upcoming_window(now or datetime.now(timezone.utc))

        logger.info(
            f"Fetching events from calendar '{self.calendar_id}' "
            f"({time_min.isoformat()} to {time_max.isoformat()})"
        )

        try:
            service = self._build_service(token)
            results = (
                service.events()
                .list(
                    calendarId=self.calendar_id,
                    timeMin=time_min.isoformat(),
                    timeMax=time_max.isoformat(),
                    singleEvents=True,
                    orderBy="startTime",
                )
                .execute()
            )
        except HttpError as e:
            status = e.resp.status if e.resp is not None else None
            if status == 401:
                logger.warning("Calendar API rejected the access token")
                raise UnauthenticatedError("Calendar API rejected the access token") from e
            logger.error(f"Calendar API error {status}: {e.reason}")
            raise ServiceError(f"Calendar API error: {e.reason}", status_code=status) from e
        except RefreshError as e:
            logger.warning("Access token expired and cannot be refreshed")
            raise UnauthenticatedError("Access token has expired") from e
        except (TransportError, httplib2.HttpLib2Error, OSError) as e:
            # Timeouts surface here as TimeoutError/socket.timeout
            logger.error(f"Calendar API request failed: {type(e).__name__}: {e}")
            raise ServiceError(f"Calendar API request failed: {e}") from e

        items = results.get("items", []) if isinstance(results, dict) else None
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            logger.error("Calendar API returned a malformed event list")
            raise ServiceError("Calendar API returned a malformed event list")

        logger.info(f"Retrieved {len(items)} events from calendar '{self.calendar_id}'")
        return [RawEvent.from_api(item) for item in items]
