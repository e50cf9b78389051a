"""Tests for fetching upcoming Calendar events."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import httplib2
import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from upcoming_events.calendar import (
    CalendarFetcher,
    FetchError,
    RawEvent,
    ServiceError,
    UnauthenticatedError,
    add_one_month,
    upcoming_window,
)
from upcoming_events.google import Token

NOW = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _http_error(status, message="error"):
    resp = httplib2.Response({"status": status})
    content = f'{{"error": {{"code": {status}, "message": "{message}"}}}}'.encode()
    return HttpError(resp=resp, content=content)


@pytest.fixture
def token():
    return Token(access_token="ya29.test", expiry=datetime.now(timezone.utc) + timedelta(hours=1))


@pytest.fixture
def service():
    """Patch the Calendar API service builder."""
    with patch("upcoming_events.calendar.client.build") as mock_build:
        svc = MagicMock()
        mock_build.return_value = svc
        yield svc


def _set_items(service, result):
    service.events.return_value.list.return_value.execute.return_value = result


class TestWindow:
    """Test the one-month lookahead window."""

    def test_window_is_one_calendar_month(self):
        """Should span [2024-03-01, 2024-04-01) exactly."""
        start, end = upcoming_window(NOW)
        assert start == NOW
        assert end == datetime(2024, 4, 1, tzinfo=timezone.utc)

    def test_calendar_month_not_thirty_days(self):
        """Should follow month lengths, not a fixed 30 days."""
        assert add_one_month(datetime(2024, 1, 15)) == datetime(2024, 2, 15)
        assert add_one_month(datetime(2024, 2, 15)) == datetime(2024, 3, 15)

    def test_year_rollover(self):
        """Should roll December into January of the next year."""
        assert add_one_month(datetime(2024, 12, 10, 8, 30)) == datetime(2025, 1, 10, 8, 30)

    def test_day_overflow_rolls_forward(self):
        """Should normalize days past month end into the following month."""
        assert add_one_month(datetime(2024, 1, 31)) == datetime(2024, 3, 2)
        assert add_one_month(datetime(2023, 1, 31)) == datetime(2023, 3, 3)

    def test_naive_now_is_utc(self):
        """Should treat naive datetimes as UTC."""
        start, end = upcoming_window(datetime(2024, 3, 1))
        assert start.tzinfo == timezone.utc
        assert end == datetime(2024, 4, 1, tzinfo=timezone.utc)

    def test_offset_is_kept(self):
        """Should keep the caller's UTC offset."""
        tz = timezone(timedelta(hours=-8))
        start, end = upcoming_window(datetime(2024, 3, 1, 9, tzinfo=tz))
        assert end == datetime(2024, 4, 1, 9, tzinfo=tz)


class TestFetchUpcomingEvents:
    """Test CalendarFetcher.fetch_upcoming_events."""

    def test_request_parameters(self, service, token):
        """Should request single instances ordered by start time in the window."""
        _set_items(service, {"items": []})

        CalendarFetcher().fetch_upcoming_events(token, now=NOW)

        service.events.return_value.list.assert_called_once_with(
            calendarId="primary",
            timeMin="2024-03-01T00:00:00+00:00",
            timeMax="2024-04-01T00:00:00+00:00",
            singleEvents=True,
            orderBy="startTime",
        )

    def test_custom_calendar_id(self, service, token):
        """Should list the configured calendar."""
        _set_items(service, {"items": []})
        CalendarFetcher(calendar_id="team@example.com").fetch_upcoming_events(token, now=NOW)
        kwargs = service.events.return_value.list.call_args.kwargs
        assert kwargs["calendarId"] == "team@example.com"

    def test_preserves_provider_order(self, service, token):
        """Should return events in the order the provider sent them."""
        _set_items(
            service,
            {
                "items": [
                    {"start": {"dateTime": "2024-03-15T09:30:00Z"}, "summary": "Standup"},
                    {"start": {"date": "2024-03-20"}, "summary": "Company Holiday"},
                    {"start": {"dateTime": "2024-03-21T14:00:00-07:00"}, "summary": "Review"},
                ]
            },
        )

        events = CalendarFetcher().fetch_upcoming_events(token, now=NOW)

        assert events == [
            RawEvent(start="2024-03-15T09:30:00Z", summary="Standup"),
            RawEvent(start="2024-03-20", summary="Company Holiday"),
            RawEvent(start="2024-03-21T14:00:00-07:00", summary="Review"),
        ]

    def test_prefers_date_time_over_date(self, service, token):
        """Should use start.dateTime when present."""
        _set_items(
            service,
            {"items": [{"start": {"dateTime": "2024-03-15T09:30:00Z", "timeZone": "UTC"}}]},
        )
        events = CalendarFetcher().fetch_upcoming_events(token, now=NOW)
        assert events[0].start == "2024-03-15T09:30:00Z"
        assert events[0].summary == ""

    def test_empty_result_is_not_an_error(self, service, token):
        """Should return an empty list when no events are in the window."""
        _set_items(service, {"kind": "calendar#events"})
        assert CalendarFetcher().fetch_upcoming_events(token, now=NOW) == []

    def test_missing_token(self, service):
        """Should raise UnauthenticatedError without calling the API."""
        with pytest.raises(UnauthenticatedError):
            CalendarFetcher().fetch_upcoming_events(None, now=NOW)
        service.events.assert_not_called()

    def test_expired_token(self, service):
        """Should raise UnauthenticatedError for an expired token."""
        expired = Token(access_token="ya29.old", expiry=NOW - timedelta(minutes=1))
        with pytest.raises(UnauthenticatedError):
            CalendarFetcher().fetch_upcoming_events(expired, now=NOW)
        service.events.assert_not_called()

    def test_expiry_checked_against_current_time(self, service):
        """Should reject a token that has expired even when the window starts earlier."""
        expiry = datetime.now(timezone.utc) - timedelta(minutes=1)
        expired = Token(access_token="ya29.old", expiry=expiry)
        with pytest.raises(UnauthenticatedError):
            CalendarFetcher().fetch_upcoming_events(expired, now=expiry - timedelta(days=1))
        service.events.assert_not_called()

    def test_start_not_an_object(self, service, token):
        """Should keep an event whose start is not an object, with a blank start."""
        _set_items(
            service,
            {
                "items": [
                    {"start": "2024-03-02", "summary": "Flat start"},
                    {"start": {"date": "2024-03-20"}, "summary": "Company Holiday"},
                ]
            },
        )
        events = CalendarFetcher().fetch_upcoming_events(token, now=NOW)
        assert events == [
            RawEvent(start="", summary="Flat start"),
            RawEvent(start="2024-03-20", summary="Company Holiday"),
        ]

    def test_non_string_start_value(self, service, token):
        """Should blank a start whose dateTime is not a string."""
        _set_items(service, {"items": [{"start": {"dateTime": 20240302}, "summary": 7}]})
        events = CalendarFetcher().fetch_upcoming_events(token, now=NOW)
        assert events == [RawEvent(start="", summary="")]

    def test_401_is_unauthenticated(self, service, token):
        """Should map a 401 response to UnauthenticatedError."""
        service.events.return_value.list.return_value.execute.side_effect = _http_error(
            401, "Invalid Credentials"
        )
        with pytest.raises(UnauthenticatedError):
            CalendarFetcher().fetch_upcoming_events(token, now=NOW)

    def test_refresh_error_is_unauthenticated(self, service, token):
        """Should map a failed credential refresh to UnauthenticatedError."""
        service.events.return_value.list.return_value.execute.side_effect = RefreshError(
            "no refresh token"
        )
        with pytest.raises(UnauthenticatedError):
            CalendarFetcher().fetch_upcoming_events(token, now=NOW)

    @pytest.mark.parametrize("status", [403, 404, 429, 500, 503])
    def test_other_http_errors_are_service_errors(self, service, token, status):
        """Should map other provider failures to ServiceError."""
        service.events.return_value.list.return_value.execute.side_effect = _http_error(status)
        with pytest.raises(ServiceError) as exc_info:
            CalendarFetcher().fetch_upcoming_events(token, now=NOW)
        assert exc_info.value.status_code == status

    def test_timeout_is_service_error(self, service, token):
        """Should map a timed-out request to ServiceError."""
        service.events.return_value.list.return_value.execute.side_effect = TimeoutError(
            "timed out"
        )
        with pytest.raises(ServiceError):
            CalendarFetcher(timeout=1).fetch_upcoming_events(token, now=NOW)

    def test_network_error_is_service_error(self, service, token):
        """Should map connection failures to ServiceError."""
        service.events.return_value.list.return_value.execute.side_effect = (
            httplib2.ServerNotFoundError("no such host")
        )
        with pytest.raises(ServiceError):
            CalendarFetcher().fetch_upcoming_events(token, now=NOW)

    def test_malformed_response_is_service_error(self, service, token):
        """Should reject a response whose items are not a list of events."""
        _set_items(service, {"items": "nope"})
        with pytest.raises(ServiceError):
            CalendarFetcher().fetch_upcoming_events(token, now=NOW)

    def test_errors_share_a_base(self):
        """Should let callers catch every fetch failure at once."""
        assert issubclass(UnauthenticatedError, FetchError)
        assert issubclass(ServiceError, FetchError)

    def test_fetch_is_not_retried(self, service, token):
        """Should call the API once even when it fails."""
        execute = service.events.return_value.list.return_value.execute
        execute.side_effect = _http_error(503)
        with pytest.raises(ServiceError):
            CalendarFetcher().fetch_upcoming_events(token, now=NOW)
        assert execute.call_count == 1
