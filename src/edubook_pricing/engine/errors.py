"""
Error taxonomy for the book pricing tool.

Format and selection problems abort one operation and are raised to the
caller. Parse problems are collected as ParseWarning values, never raised.
Persistence problems are raised by store collaborators and turned into
notices by the persistence worker.
"""
from dataclasses import dataclass
from typing import Any, Optional


class EduBookError(Exception):
    """Base class for every error raised by this package."""


class InvalidFileFormat(EduBookError):
    """The spreadsheet has neither a 'Textbooks' nor a 'Notebooks' sheet."""


class NoMatchingRecords(EduBookError):
    """A publisher discount or bulk edit matched zero records."""


class MissingSelection(EduBookError):
    """A bulk operation was invoked without names or without values."""


class PersistenceUnavailable(EduBookError):
    """No signed-in user, or the store cannot be reached."""


class PersistenceWriteFailure(EduBookError):
    """The store rejected a ledger or snapshot write."""


@dataclass
class ParseWarning:
    """A row field that could not be parsed and was replaced by its default."""
    sheet: str
    row: int
    field: str
    raw_value: Any
    substituted: Optional[Any]
    
    def __str__(self) -> str:
        return (
            f"{self.sheet} row {self.row}: could not parse {self.field} "
            f"'{self.raw_value}', using {self.substituted!r}"
        )


class NoActiveSession(EduBookError):
    """An edit, view or export was requested before any book list was loaded."""
