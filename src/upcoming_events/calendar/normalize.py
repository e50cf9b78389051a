"""Turn raw Calendar event starts into a single display format.

Google returns ``start.dateTime`` (RFC 3339) for timed events and
``start.date`` (``YYYY-MM-DD``) for all-day events. Both render as
``YYYY/MM/DD``; timed events add ``HH:MM`` in the offset the provider sent.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from upcoming_events.calendar.exceptions import NormalizeError

logger = logging.getLogger(__name__)

TIMED_FORMAT = "%Y/%m/%d %H:%M"
ALL_DAY_FORMAT = "%Y/%m/%d"

# Date shown for an event whose start could not be parsed
UNKNOWN_DATE = ""


def is_timed(start: str) -> bool:
    """Timed starts carry a date/time separator; all-day starts are bare dates."""
    return "T" in start


@dataclass(frozen=True)
class RawEvent:
    """Event start and title as returned by the provider."""

    start: str
    summary: str

    @property
    def is_timed(self) -> bool:
        """Check if the start carries a time component."""
        return is_timed(self.start)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RawEvent:
        """Parse event from API response.

        A start that is not an object holding a string is kept as ``""``,
        so the event still lists with ``UNKNOWN_DATE``.
        """
        start = ""
        start_data = data.get("start")
        if isinstance(start_data, dict):
            value = start_data.get("dateTime") or start_data.get("date")
            if isinstance(value, str):
                start = value

        summary = data.get("summary")
        return cls(start=start, summary=summary if isinstance(summary, str) else "")


@dataclass(frozen=True)
class DisplayEvent:
    """Event ready to render."""

    date: str
    summary: str


@dataclass(frozen=True)
class NormalizedEvent:
    """Outcome of normalizing one event.

    ``error`` is set when the start could not be parsed; ``event.date`` then
    holds ``UNKNOWN_DATE``.
    """

    event: DisplayEvent
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _parse_timed(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise NormalizeError(value, str(e)) from e
    if parsed.tzinfo is None:
        raise NormalizeError(value, "missing UTC offset")
    return parsed


def _parse_all_day(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError as e:
        raise NormalizeError(value, str(e)) from e


def format_start(start: str) -> str:
    """Format an event start for display.

    Raises:
        NormalizeError: If the value is not a valid date or RFC 3339 date-time.
    """
    if not isinstance(start, str):
        raise NormalizeError(start, "not a string")
    if is_timed(start):
        return _parse_timed(start).strftime(TIMED_FORMAT)
    return _parse_all_day(start).strftime(ALL_DAY_FORMAT)


def normalize_event(raw: RawEvent) -> DisplayEvent:
    """Map a RawEvent to its DisplayEvent.

    Raises:
        NormalizeError: If the start cannot be parsed.
    """
    return DisplayEvent(date=format_start(raw.start), summary=raw.summary)


def normalize_events(raws: Iterable[RawEvent]) -> list[NormalizedEvent]:
    """Normalize a batch of events, keeping input order.

    A bad start never drops the event or stops the batch: that event gets
    ``UNKNOWN_DATE`` and an error message.
    """
    results = []
    for raw in raws:
        try:
            results.append(NormalizedEvent(event=normalize_event(raw)))
        except NormalizeError as e:
            logger.debug(f"Using blank date for {raw.summary!r}: {e}")
            results.append(
                NormalizedEvent(
                    event=DisplayEvent(date=UNKNOWN_DATE, summary=raw.summary),
                    error=str(e),
                )
            )
    return results
