"""Exceptions raised by the attribution pipeline."""


class CaptrackError(Exception):
    """Base class for captrack errors."""


class ModelUnavailableError(CaptrackError):
    """Raised when every completion strategy, including the fallback model, failed."""


class ModelResponseError(CaptrackError):
    """Raised when the final model response cannot be decoded into the expected shape."""


class DuplicateEntryError(CaptrackError):
    """Raised when daily entries for a developer/date/project already exist in storage."""


class PeriodLockedError(CaptrackError):
    """Raised when writing into an accounting period that has been locked."""

    def __init__(self, year: int, month: int):
        super().__init__(f"Period {year}-{month:02d} is locked and cannot be modified")
        self.year = year
        self.month = month
