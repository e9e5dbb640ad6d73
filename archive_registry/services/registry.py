"""
Archive registry pages: the public detail page for an archived item and the
admin-only notes page with its append-only note log.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from urllib.parse import urlencode

from archive_registry import labels
from archive_registry.config import settings
from archive_registry.models import ArchiveNote, ArchiveRecord, Viewer
from archive_registry.services.visibility import AccessDenied, Disclosure, check_notes_access, resolve_for_viewer
from archive_registry.storage.base import ArchiveStore, FileUrlResolver
from archive_registry.utils import format_bytes, iso, short_datetime

logger = logging.getLogger(__name__)

NOTE_MAX_LENGTH = 500


class ArchiveNotFound(Exception):
    pass


class NoteValidationError(ValueError):
    pass


def detail_url(archive_id: int) -> str:
    return f"/archive-registry/{archive_id}"


def notes_url(archive_id: int) -> str:
    return f"/archive-registry/{archive_id}/notes"


def page_title(record: ArchiveRecord) -> str:
    return f"{record.file_name} – Archived Material"


def validate_note_text(text: str | None) -> str:
    text = (text or "").strip()
    if not text:
        raise NoteValidationError("Note cannot be empty.")
    if len(text) > NOTE_MAX_LENGTH:
        raise NoteValidationError(f"Note cannot exceed {NOTE_MAX_LENGTH} characters.")
    return text


@dataclass
class NoteView:
    text: str
    created: datetime
    created_formatted: str
    created_iso: str
    author: str


@dataclass
class NotesPage:
    title: str
    archive_id: int
    archive_info: list[tuple[str, str, str | None]]     # (label, value, link)
    initial_note: str
    notes: list[NoteView] = field(default_factory=list)
    page: int = 0
    page_count: int = 0
    can_add_note: bool = False


class ArchiveRegistry:
    def __init__(self, store: ArchiveStore, file_urls: FileUrlResolver):
        self.store = store
        self.file_urls = file_urls

    async def _load(self, archive_id: int) -> ArchiveRecord:
        record = await self.store.get(archive_id)
        if record is None:
            raise ArchiveNotFound(archive_id)
        return record

    async def detail(self, archive_id: int, viewer: Viewer) -> dict:
        """Template context for the detail page.

        Raises ArchiveNotFound for missing records and for records the
        viewer is not allowed to see, so the two are indistinguishable.
        """
        record = await self._load(archive_id)
        resolution = resolve_for_viewer(record, viewer)
        if not resolution.visible:
            raise ArchiveNotFound(archive_id)

        full = resolution.disclosure is Disclosure.FULL
        login_url = None
        if resolution.login_required:
            login_url = f"{settings.login_path}?{urlencode({'destination': detail_url(record.id)})}"
        link_text, tooltip = labels.source_link(record, resolution.login_required)

        return {
            "title": page_title(record),
            "file_name": record.file_name,
            "file_type": labels.file_type_label(record.asset_type),
            "file_size": format_bytes(record.filesize) or None,
            "archive_reason": labels.reason_description(record),
            "public_description": record.public_description,
            "archived_date": iso(record.archive_classification_date) or "Unknown",
            "archive_path": record.archive_path if full else None,
            "detail_url": detail_url(record.id),
            "is_private": record.is_private,
            "requires_login": resolution.login_required,
            "login_url": login_url,
            "compliance_deadline": settings.compliance_deadline_formatted,
            "is_manual_entry": record.is_manual_entry(),
            "asset_type": record.asset_type,
            "source_link_text": link_text,
            "source_tooltip": tooltip if full else None,
            "is_legacy_archive": record.is_legacy_archive(),
            "is_admin_only": record.is_archived_admin(),
            "can_view_full_details": full,
            "file_missing": resolution.missing_notice,
        }

    def _file_url(self, path: str) -> str:
        if not path or path.startswith("http"):
            return path
        try:
            return self.file_urls.resolve(path)
        except Exception as exc:
            logger.warning("File URL resolution failed for %s: %s", path, exc)
            return path

    def archive_info(self, record: ArchiveRecord) -> list[tuple[str, str, str | None]]:
        items: list[tuple[str, str, str | None]] = []
        path = record.source_path

        if record.is_manual_entry():
            items.append(("Title", record.file_name, None))
            if path:
                items.append(("URL", path, path))
            content_type = "Web Page" if record.asset_type == "page" else "External Resource"
            items.append(("Content type", content_type, None))
        else:
            file_url = self._file_url(path)
            items.append(("File name", record.file_name, None))
            if file_url:
                items.append(("File URL", file_url, file_url))
            items.append(("File type", (record.asset_type or "").upper(), None))
            if record.filesize:
                items.append(("File size", format_bytes(record.filesize), None))

        if record.archive_classification_date:
            items.append(("Archived", short_datetime(record.archive_classification_date), None))
        else:
            items.append(("Queued for archive", short_datetime(record.created_at), None))

        if record.is_archived():
            items.append(("Archive Type", labels.archive_type_label(record), None))
        items.append(("Archive Purpose", labels.purpose_label(record), None))
        items.append(("Status", labels.notes_status_label(record.status), None))

        warnings = labels.warning_labels(record)
        if warnings:
            items.append(("Warnings", ", ".join(warnings), None))
        return items

    async def notes_page(self, archive_id: int, viewer: Viewer, page: int = 0) -> NotesPage:
        check_notes_access(viewer)
        record = await self._load(archive_id)
        page = max(page, 0)

        result = await self.store.list_for_archive(record.id, page, settings.notes_per_page)
        notes = []
        for note in result.items:
            author = await self.store.display_name(note.author) if note.author is not None else None
            notes.append(
                NoteView(
                    text=note.text,
                    created=note.created_at,
                    created_formatted=short_datetime(note.created_at),
                    created_iso=iso(note.created_at),
                    author=author or "Unknown",
                )
            )

        return NotesPage(
            title="Internal Notes (Admin Only)",
            archive_id=record.id,
            archive_info=self.archive_info(record),
            initial_note=(record.internal_notes or "").strip(),
            notes=notes,
            page=result.page,
            page_count=result.page_count,
            can_add_note=viewer.can_manage_archives,
        )

    async def add_note(self, archive_id: int, viewer: Viewer, text: str | None) -> ArchiveNote:
        if not viewer.can_manage_archives:
            raise AccessDenied("Adding archive notes requires archive management permission")
        record = await self._load(archive_id)
        note = ArchiveNote(
            archive_id=record.id,
            text=validate_note_text(text),
            created_at=datetime.now(UTC),
            author=viewer.user_id,
        )
        note = await self.store.add(note)
        logger.info("Note added to archive %s by user %s", record.id, viewer.user_id)
        return note
