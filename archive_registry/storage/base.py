from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TypeVar

from archive_registry.models import ArchiveNote, ArchiveRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class NotePage:
    items: list[ArchiveNote] = field(default_factory=list)
    total: int = 0
    page: int = 0
    per_page: int = 25

    @property
    def page_count(self) -> int:
        return (self.total + self.per_page - 1) // self.per_page if self.per_page else 0


class RecordStore(ABC):
    name: str

    @abstractmethod
    async def get(self, archive_id: int) -> ArchiveRecord | None:
        raise NotImplementedError

    @abstractmethod
    async def list_by_classification_date(self) -> list[ArchiveRecord]:
        """All records, newest archive classification date first."""
        raise NotImplementedError


class NoteStore(ABC):
    @abstractmethod
    async def add(self, note: ArchiveNote) -> ArchiveNote:
        raise NotImplementedError

    @abstractmethod
    async def list_for_archive(self, archive_id: int, page: int, per_page: int) -> NotePage:
        """Notes ordered by ``(created_at desc, id desc)``."""
        raise NotImplementedError


class IdentityLookup(ABC):
    @abstractmethod
    async def display_name(self, user_id: int | None) -> str | None:
        """Name of a user, or None when the user is unknown or deleted."""
        raise NotImplementedError


class UsageCounter(ABC):
    @abstractmethod
    async def usage_count(self, record: ArchiveRecord) -> int:
        raise NotImplementedError


class FileUrlResolver(ABC):
    @abstractmethod
    def resolve(self, path: str) -> str:
        """Absolute URL for a storage path; echoes the path when it cannot be resolved."""
        raise NotImplementedError


class ArchiveStore(RecordStore, NoteStore, IdentityLookup, UsageCounter, ABC):
    """A backend that serves every collaborator the registry needs."""


def note_sort_key(note: ArchiveNote) -> tuple:
    return (note.created_at, note.id or 0)


def parse_rows(rows: Iterable[dict], parse: Callable[[dict], T]) -> list[T]:
    """Parse storage rows, skipping any row that cannot be parsed."""
    parsed = []
    for row in rows:
        try:
            parsed.append(parse(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed row %r: %s", row.get("id") if isinstance(row, dict) else row, exc)
    return parsed
