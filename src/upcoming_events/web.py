"""Flask web app for logging in with Google and listing upcoming events.

Routes:
- GET /          Home page with a login link
- GET /auth      Redirect to Google's consent page
- GET /callback  OAuth redirect target; exchanges the code for a token
- GET /events    Upcoming events for the next month
- GET /logout    Forget the session token
"""

import logging
from dataclasses import dataclass

from flask import (
    Blueprint,
    Flask,
    Response,
    current_app,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from upcoming_events.calendar import (
    CalendarFetcher,
    ServiceError,
    UnauthenticatedError,
    normalize_events,
)
from upcoming_events.config import Settings
from upcoming_events.google import (
    ExchangeFailedError,
    OAuthConfig,
    StateMismatchError,
    new_state,
    verify_state,
)
from upcoming_events.session import (
    STATE_KEY,
    MappingSessionStore,
    clear_token,
    load_token,
    save_token,
)

logger = logging.getLogger(__name__)

bp = Blueprint("events", __name__)

EXTENSION_KEY = "upcoming_events"


@dataclass(frozen=True)
class AppContext:
    """Read-only collaborators shared by every request."""

    oauth: OAuthConfig
    fetcher: CalendarFetcher
    timeout: float


def _ctx() -> AppContext:
    return current_app.extensions[EXTENSION_KEY]


def _store() -> MappingSessionStore:
    """Session store backed by Flask's signed cookie session."""
    return MappingSessionStore(session)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@bp.route("/", methods=["GET"])
def home() -> str:
    return render_template("home.html", error=None)


@bp.route("/auth", methods=["GET"])
def start_auth() -> Response:
    """Redirect the user to Google's consent page."""
    state = new_state()
    _store().set(STATE_KEY, state)
    return redirect(_ctx().oauth.build_authorization_url(state))


@bp.route("/callback", methods=["GET"])
def handle_callback() -> Response | tuple[str, int]:
    """Exchange the authorization code and remember the token."""
    code = request.args.get("code")
    if not code:
        if request.args.get("error"):
            logger.info(f"Authorization declined: {request.args.get('error')}")
        return redirect(url_for("events.home"))

    store = _store()
    expected_state = store.pop(STATE_KEY)
    ctx = _ctx()

    try:
        verify_state(expected_state, request.args.get("state"))
        token = ctx.oauth.exchange_code_for_token(code, timeout=ctx.timeout)
    except StateMismatchError as e:
        logger.warning(f"Rejected OAuth callback: {e}")
        return render_template("home.html", error="Login expired. Please try again."), 400
    except ExchangeFailedError as e:
        logger.error(f"Token exchange failed: {e}")
        return render_template("home.html", error="Login failed. Please try again."), 502

    save_token(store, token)
    return redirect(url_for("events.events"))


@bp.route("/events", methods=["GET"])
def events() -> Response | tuple[str, int]:
    """Show the user's events for the next month."""
    store = _store()
    token = load_token(store)
    if token is None:
        return redirect(url_for("events.home"))

    try:
        raw_events = _ctx().fetcher.fetch_upcoming_events(token)
    except UnauthenticatedError as e:
        logger.info(f"Session token unusable, sending user to login: {e}")
        clear_token(store)
        return redirect(url_for("events.home"))
    except ServiceError as e:
        logger.error(f"Could not fetch events: {e}")
        return render_template(
            "events.html",
            events=None,
            error="Could not load your calendar. Please try again.",
        ), 503

    results = normalize_events(raw_events)
    return render_template(
        "events.html",
        events=[result.event for result in results] or None,
        error=None,
    )


@bp.route("/logout", methods=["GET"])
def logout() -> Response:
    clear_token(_store())
    return redirect(url_for("events.home"))


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    oauth: OAuthConfig,
    settings: Settings,
    fetcher: CalendarFetcher | None = None,
) -> Flask:
    """Create the Flask app.

    Args:
        oauth: Loaded OAuth client configuration.
        settings: Process settings (secret key, timeouts, cookie flags).
        fetcher: Calendar fetcher; built from settings if not given.

    Returns:
        Configured Flask application.
    """
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=settings.secret_key,
        SESSION_COOKIE_NAME="upcoming_events_session",
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SECURE=settings.secure_cookies,
        # Lax, not Strict: the callback arrives as a cross-site redirect from
        # Google and must still see the state stored by /auth
        SESSION_COOKIE_SAMESITE="Lax",
    )

    app.extensions[EXTENSION_KEY] = AppContext(
        oauth=oauth,
        fetcher=fetcher
        or CalendarFetcher(timeout=settings.fetch_timeout, calendar_id=settings.calendar_id),
        timeout=settings.fetch_timeout,
    )
    app.register_blueprint(bp)
    return app
