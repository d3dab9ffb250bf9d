"""Exceptions raised by the poll services."""

from typing import Optional


class PollError(Exception):
    """Base class for all poll errors shown to the user."""


class ValidationError(PollError, ValueError):
    """A form value the user has to fix before the action can run."""


class SettingsValidationError(ValidationError):
    """Malformed deadline date/time or a bad settings document."""


class ReadOnlySettingsError(PollError):
    """The event does not allow its settings to be changed."""


class TransportError(PollError):
    """The remote event API could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(PollError):
    """Session storage is unavailable or holds unreadable data."""


class DateKeyError(ValueError):
    """A date key that is not made of exactly three numeric parts."""
