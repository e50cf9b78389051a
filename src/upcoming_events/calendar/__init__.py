"""Upcoming Google Calendar events for an OAuth-authorized user.

Usage:
    from upcoming_events.calendar import CalendarFetcher, normalize_events

    fetcher = CalendarFetcher()
    raw_events = fetcher.fetch_upcoming_events(token)

    for result in normalize_events(raw_events):
        print(result.event.date, result.event.summary)
"""

from __future__ import annotations

from upcoming_events.calendar.client import CalendarFetcher, add_one_month, upcoming_window
from upcoming_events.calendar.exceptions import (
    FetchError,
    NormalizeError,
    ServiceError,
    UnauthenticatedError,
)
from upcoming_events.calendar.normalize import (
    UNKNOWN_DATE,
    DisplayEvent,
    NormalizedEvent,
    RawEvent,
    normalize_event,
    normalize_events,
)

__all__ = [
    "CalendarFetcher",
    "add_one_month",
    "upcoming_window",
    "RawEvent",
    "DisplayEvent",
    "NormalizedEvent",
    "UNKNOWN_DATE",
    "normalize_event",
    "normalize_events",
    "FetchError",
    "UnauthenticatedError",
    "ServiceError",
    "NormalizeError",
]
