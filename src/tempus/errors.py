"""Engine exceptions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class RecordError:
    """A validation failure attributed to one corpus record."""
    collection: str  # posts, profiles, eras, relationships
    record_id: Optional[str]
    message: str

    def __str__(self) -> str:
        return f"{self.collection}[{self.record_id or '?'}]: {self.message}"


class TempusError(Exception):
    """Base class for engine errors."""
    pass


class CorpusLoadError(TempusError):
    """The corpus could not be read."""
    pass


class CorpusValidationError(CorpusLoadError):
    """Corpus records failed validation under the fail-closed policy."""

    def __init__(self, errors: Iterable[RecordError]):
        self.errors = tuple(errors)
        preview = "; ".join(str(e) for e in self.errors[:5])
        more = f" (+{len(self.errors) - 5} more)" if len(self.errors) > 5 else ""
        super().__init__(f"{len(self.errors)} invalid corpus record(s): {preview}{more}")


class InvalidFilterError(TempusError):
    """A filter or paging argument was malformed (strict mode only)."""
    pass


class StaleCursorError(TempusError):
    """A pagination cursor does not name a post in the corpus (strict mode only)."""

    def __init__(self, cursor: str):
        self.cursor = cursor
        super().__init__(f"Unknown feed cursor: {cursor}")
