"""Exceptions raised by the calendar pipeline."""


class CalendarError(Exception):
    """Base class for calendar pipeline errors."""


class ValidationError(CalendarError):
    """A source URL was rejected (malformed or already configured)."""


class FetchError(CalendarError):
    """The event search call failed (network, HTTP status, or parsing)."""


class PersistenceError(CalendarError):
    """Source configuration could not be loaded from or saved to storage."""
