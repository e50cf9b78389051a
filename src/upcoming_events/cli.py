"""CLI for upcoming-events.

Usage:
    upcoming-events init                 # Create directories, show setup instructions
    upcoming-events status               # Show configuration status
    upcoming-events import <path>        # Import OAuth client credentials
    upcoming-events serve                # Run the web app
    upcoming-events list                 # Log in from the terminal and print events
"""

from __future__ import annotations

import argparse
import logging
import shutil
import sys
import webbrowser
from pathlib import Path
from urllib.parse import parse_qs, urlparse


def cmd_init() -> int:
    """Initialize the credentials directory."""
    from upcoming_events.config import (
        CALENDAR_CREDENTIALS,
        CREDENTIALS_DIR,
        ENV_FILE,
        REPO_ROOT,
        ensure_credentials_dir,
    )

    print("=" * 60)
    print("UPCOMING-EVENTS SETUP")
    print("=" * 60)
    print()
    print(f"Repository: {REPO_ROOT}")
    print()

    ensure_credentials_dir()
    print(f"Created: {CREDENTIALS_DIR}/")
    print()

    print("Credential locations:")
    print()
    print(f"  {CALENDAR_CREDENTIALS}")
    print("    OAuth client credentials (web application) from Google Cloud Console")
    print("    Add http://127.0.0.1:8080/callback as an authorized redirect URI")
    print()
    print(f"  {ENV_FILE}")
    print("    Optional: UPCOMING_EVENTS_SECRET_KEY, UPCOMING_EVENTS_REDIRECT_URI, ...")
    print()

    if CALENDAR_CREDENTIALS.exists():
        print("calendar_credentials.json exists")
    else:
        print("Download credentials from:")
        print("  https://console.cloud.google.com/apis/credentials")
        print("  Then run: upcoming-events import ~/Downloads/client_secret_....json")
    print()
    return 0


def cmd_status() -> int:
    """Show status of the configured credentials."""
    from upcoming_events.config import get_credential_status, load_settings
    from upcoming_events.google import ConfigError, OAuthConfig

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    status = get_credential_status(settings)

    print("=" * 60)
    print("UPCOMING-EVENTS STATUS")
    print("=" * 60)
    print()
    print(f"Repository  : {status['repo_root']}")
    print(f".env        : {'[x]' if status['env_file'] else '[ ]'}")
    print(f"Secret key  : {'[x]' if status['secret_key'] else '[ ] (random per process)'}")
    print(f"Credentials : {'[x]' if status['credentials'] else '[ ]'} {status['credentials_path']}")

    if not status["credentials"]:
        print()
        print("Run 'upcoming-events init' for setup instructions")
        return 1

    try:
        config = OAuthConfig.from_credentials_file(
            settings.credentials_path, redirect_uri=settings.redirect_uri
        )
    except ConfigError as e:
        print(f"\nError: {e}")
        return 1

    print(f"Client ID   : {config.client_id[:40]}...")
    print(f"Redirect URI: {config.redirect_uri}")
    print(f"Scopes      : {', '.join(sorted(config.scopes))}")
    return 0


def cmd_import(source_path: str) -> int:
    """Copy a client-secrets file into place once it loads like `serve` loads it."""
    from upcoming_events.config import CALENDAR_CREDENTIALS, ensure_credentials_dir
    from upcoming_events.google import ConfigError, OAuthConfig

    source = Path(source_path).expanduser()

    try:
        oauth = OAuthConfig.from_credentials_file(source)
    except ConfigError as e:
        print(f"Error: {e}")
        print("Download a web application client from the Google Cloud Console")
        return 1

    ensure_credentials_dir()
    shutil.copy2(source, CALENDAR_CREDENTIALS)

    print(f"Imported {source.name} -> {CALENDAR_CREDENTIALS}")
    print(f"  Client ID   : {oauth.client_id[:40]}...")
    print(f"  Redirect URI: {oauth.redirect_uri}")
    print()
    print("Next: Run 'upcoming-events serve' and open the app in a browser")
    return 0


def cmd_serve(host: str | None = None, port: int | None = None) -> int:
    """Run the web app. Refuses to start without valid credentials."""
    from upcoming_events.config import load_settings
    from upcoming_events.google import ConfigError, OAuthConfig
    from upcoming_events.web import create_app

    try:
        settings = load_settings()
        oauth = OAuthConfig.from_credentials_file(
            settings.credentials_path, redirect_uri=settings.redirect_uri
        )
    except ConfigError as e:
        print(f"Error: {e}")
        print("Run 'upcoming-events init' for setup instructions")
        return 1

    app = create_app(oauth, settings)
    app.run(host=host or settings.host, port=port or settings.port, debug=False)
    return 0


def cmd_list(no_browser: bool = False) -> int:
    """Log in from the terminal and print the next month's events."""
    from upcoming_events.calendar import (
        UNKNOWN_DATE,
        CalendarFetcher,
        FetchError,
        normalize_events,
    )
    from upcoming_events.config import load_settings
    from upcoming_events.google import (
        ConfigError,
        ExchangeFailedError,
        OAuthConfig,
        new_state,
        verify_state,
    )
    from upcoming_events.session import (
        STATE_KEY,
        MemorySessionStore,
        load_token,
        save_token,
    )

    try:
        settings = load_settings()
        oauth = OAuthConfig.from_credentials_file(
            settings.credentials_path, redirect_uri=settings.redirect_uri
        )
    except ConfigError as e:
        print(f"Error: {e}")
        print("Run 'upcoming-events init' for setup instructions")
        return 1

    store = MemorySessionStore()
    state = new_state()
    store.set(STATE_KEY, state)

    url = oauth.build_authorization_url(state)
    print("After granting access, copy the redirect URL back here.\n")
    print(f"Authorization URL:\n{url}\n")

    if not no_browser:
        webbrowser.open(url)

    redirect_url = input("Paste redirect URL: ").strip()
    if not redirect_url:
        print("No URL provided; aborting.")
        return 1

    params = parse_qs(urlparse(redirect_url).query)
    code = params.get("code", [None])[0]
    returned_state = params.get("state", [None])[0]

    try:
        verify_state(store.pop(STATE_KEY), returned_state)
        save_token(store, oauth.exchange_code_for_token(code, timeout=settings.fetch_timeout))
    except ExchangeFailedError as e:
        print(f"\nError: {e}")
        print("Run 'upcoming-events list' again to log in")
        return 1

    fetcher = CalendarFetcher(timeout=settings.fetch_timeout, calendar_id=settings.calendar_id)
    try:
        raw_events = fetcher.fetch_upcoming_events(load_token(store))
    except FetchError as e:
        print(f"\nCould not fetch events: {e}")
        return 1

    results = normalize_events(raw_events)
    print()
    if not results:
        print("No upcoming events")
        return 0

    for result in results:
        date = result.event.date if result.event.date != UNKNOWN_DATE else "????/??/??"
        print(f"{date:<16}  {result.event.summary}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="upcoming-events",
        description="Log in with Google and list the next month of calendar events",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("init", help="Initialize credential directories")
    subparsers.add_parser("status", help="Show configuration status")

    import_parser = subparsers.add_parser("import", help="Import OAuth credentials")
    import_parser.add_argument("path", help="Path to client secrets JSON file")

    serve_parser = subparsers.add_parser("serve", help="Run the web app")
    serve_parser.add_argument("--host", type=str, default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")

    list_parser = subparsers.add_parser("list", help="Log in and print upcoming events")
    list_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically",
    )

    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "init":
        return cmd_init()

    if args.command == "status":
        return cmd_status()

    if args.command == "import":
        return cmd_import(args.path)

    if args.command == "serve":
        return cmd_serve(args.host, args.port)

    if args.command == "list":
        return cmd_list(args.no_browser)

    return 0


if __name__ == "__main__":
    sys.exit(main())
