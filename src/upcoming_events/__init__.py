"""Log in with Google and list the next month of calendar events."""

__version__ = "0.1.0"
