from __future__ import annotations


class TrackerError(Exception):
    """Base class for errors reported to the user without ending the session."""


class ValidationError(TrackerError, ValueError):
    pass


class HabitIndexError(TrackerError, IndexError):
    pass


class PersistenceError(TrackerError):
    pass


class PersistenceCorruptError(PersistenceError):
    """The data file exists but could not be read or parsed."""


class PersistenceWriteError(PersistenceError):
    """The data file could not be written; prior contents are left as they were."""
