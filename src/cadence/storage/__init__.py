"""Storage classes for cadence."""

from .events import EventStore
from .notes import NoteStore
from .recurrence import RecurrenceStore, Scope, SeriesOccurrence
from .settings import Settings

__all__ = [
    "EventStore",
    "NoteStore",
    "RecurrenceStore",
    "Scope",
    "SeriesOccurrence",
    "Settings",
]
