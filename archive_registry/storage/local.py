"""
Local storage: archive records, notes, users and usage rows kept in memory,
optionally loaded from and saved to a JSON file under base_storage_dir.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path

from archive_registry.config import settings
from archive_registry.models import ArchiveNote, ArchiveRecord
from archive_registry.storage.base import ArchiveStore, FileUrlResolver, NotePage, note_sort_key, parse_rows
from archive_registry.utils import PathKind, classify_path, is_valid_url

logger = logging.getLogger(__name__)

DATA_FILE = "registry.json"


class LocalArchiveStore(ArchiveStore):
    name = "local"

    def __init__(self, path: Path | None = None):
        self.path = path
        self.records: dict[int, ArchiveRecord] = {}
        self.notes: list[ArchiveNote] = []
        self.users: dict[int, str] = {}
        self.usage: list[dict] = []
        if path and path.exists():
            self._load(json.loads(path.read_text(encoding="utf-8")))

    @classmethod
    def from_settings(cls) -> LocalArchiveStore:
        return cls(Path(settings.base_storage_dir) / DATA_FILE)

    def _load(self, data: dict) -> None:
        for record in parse_rows(data.get("records", []), ArchiveRecord.from_row):
            self.put_record(record)
        self.notes = parse_rows(data.get("notes", []), ArchiveNote.from_row)
        self.users = {int(k): v for k, v in data.get("users", {}).items()}
        self.usage = list(data.get("asset_usage", []))

    def _save(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "records": [r.to_row() for r in self.records.values()],
            "notes": [n.to_row() for n in self.notes],
            "users": {str(k): v for k, v in self.users.items()},
            "asset_usage": self.usage,
        }
        self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    def put_record(self, record: ArchiveRecord) -> None:
        self.records[record.id] = record

    # RecordStore

    async def get(self, archive_id: int) -> ArchiveRecord | None:
        return self.records.get(archive_id)

    async def list_by_classification_date(self) -> list[ArchiveRecord]:
        # Unclassified (queued) records sort last, as NULLs do in a DESC query.
        def key(r: ArchiveRecord):
            date = r.archive_classification_date
            return (date is not None, date.timestamp() if date else 0.0, r.id)

        return sorted(self.records.values(), key=key, reverse=True)

    # NoteStore

    async def add(self, note: ArchiveNote) -> ArchiveNote:
        note.id = max((n.id or 0 for n in self.notes), default=0) + 1
        self.notes.append(note)
        self._save()
        return note

    async def list_for_archive(self, archive_id: int, page: int, per_page: int) -> NotePage:
        matching = sorted(
            (n for n in self.notes if n.archive_id == archive_id),
            key=note_sort_key,
            reverse=True,
        )
        start = page * per_page
        return NotePage(
            items=matching[start:start + per_page],
            total=len(matching),
            page=page,
            per_page=per_page,
        )

    # IdentityLookup

    async def display_name(self, user_id: int | None) -> str | None:
        if user_id is None:
            return None
        return self.users.get(int(user_id))

    # UsageCounter

    async def usage_count(self, record: ArchiveRecord) -> int:
        if record.original_fid:
            return sum(1 for u in self.usage if u.get("fid") == record.original_fid)
        return sum(1 for u in self.usage if u.get("file_path") == record.original_path)


class SettingsFileUrlResolver(FileUrlResolver):
    """Maps public:// and private:// storage URIs onto the configured site URL."""

    def __init__(self, base_url: str | None = None, files_path: str | None = None):
        self.base_url = (base_url if base_url is not None else settings.public_base_url).rstrip("/")
        self.files_path = (files_path if files_path is not None else settings.public_files_path).strip("/")

    def resolve(self, path: str) -> str:
        if classify_path(path) is not PathKind.STREAM:
            return path
        if not is_valid_url(self.base_url):
            logger.warning("Cannot resolve %s: public_base_url is not a valid URL", path)
            return path
        scheme, _, target = path.partition("://")
        if scheme == "private":
            return f"{self.base_url}/system/files/{target}"
        return f"{self.base_url}/{self.files_path}/{target}"
