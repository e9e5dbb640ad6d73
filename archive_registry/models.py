from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

MANAGE_PERMISSION = "archive digital assets"
VIEW_PERMISSION = "view digital asset archives"

MANUAL_ASSET_TYPES = frozenset({"page", "external"})


class ArchiveStatus(str, Enum):
    QUEUED = "queued"
    ARCHIVED_PUBLIC = "archived_public"
    ARCHIVED_ADMIN = "archived_admin"
    ARCHIVED_DELETED = "archived_deleted"
    EXEMPTION_VOID = "exemption_void"


class ArchiveReason(str, Enum):
    REFERENCE = "reference"
    RESEARCH = "research"
    RECORDKEEPING = "recordkeeping"
    OTHER = "other"


def parse_timestamp(value: Any) -> datetime | None:
    """Accept ISO-8601 strings, Unix seconds or datetimes; empty means None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value, UTC)
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, OverflowError, OSError):
        logger.warning("Ignoring unparseable timestamp %r", value)
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class ArchiveFlags:
    missing: bool = False       # file absent from storage
    integrity: bool = False     # checksum mismatch
    usage: bool = False         # active content references it
    modified: bool = False      # manual entry changed after archive
    prior_void: bool = False    # forced to General Archive by a voided exemption
    late_archive: bool = False  # classified after the compliance deadline

    @classmethod
    def from_row(cls, row: dict) -> ArchiveFlags:
        return cls(
            missing=bool(row.get("flag_missing")),
            integrity=bool(row.get("flag_integrity")),
            usage=bool(row.get("flag_usage")),
            modified=bool(row.get("flag_modified")),
            prior_void=bool(row.get("flag_prior_void")),
            late_archive=bool(row.get("flag_late_archive")),
        )

    def to_row(self) -> dict[str, bool]:
        return {
            "flag_missing": self.missing,
            "flag_integrity": self.integrity,
            "flag_usage": self.usage,
            "flag_modified": self.modified,
            "flag_prior_void": self.prior_void,
            "flag_late_archive": self.late_archive,
        }


@dataclass
class ArchiveRecord:
    id: int
    status: str
    asset_type: str
    file_name: str = ""
    archive_uuid: str = ""
    flags: ArchiveFlags = field(default_factory=ArchiveFlags)
    is_private: bool = False
    archive_reason: str = ArchiveReason.REFERENCE.value
    archive_reason_other: str = ""
    public_description: str = ""
    internal_notes: str = ""
    created_at: datetime | None = None
    archive_classification_date: datetime | None = None
    deleted_date: datetime | None = None
    archived_by: int | None = None
    deleted_by: int | None = None
    filesize: int | None = None
    file_checksum: str | None = None
    usage_count_at_archive: int = 0
    original_path: str = ""
    archive_path: str = ""
    original_fid: int | None = None

    # Status predicates

    def is_queued(self) -> bool:
        return self.status == ArchiveStatus.QUEUED.value

    def is_archived_public(self) -> bool:
        return self.status == ArchiveStatus.ARCHIVED_PUBLIC.value

    def is_archived_admin(self) -> bool:
        return self.status == ArchiveStatus.ARCHIVED_ADMIN.value

    def is_archived_deleted(self) -> bool:
        return self.status == ArchiveStatus.ARCHIVED_DELETED.value

    def is_exemption_void(self) -> bool:
        return self.status == ArchiveStatus.EXEMPTION_VOID.value

    def is_archived_active(self) -> bool:
        return self.is_archived_public() or self.is_archived_admin()

    def is_archived(self) -> bool:
        return self.is_archived_active() or self.is_archived_deleted() or self.is_exemption_void()

    # Classification predicates

    def is_manual_entry(self) -> bool:
        """Pages and external links are entered by hand and have no stored file."""
        return self.asset_type in MANUAL_ASSET_TYPES

    def is_file_archive(self) -> bool:
        return not self.is_manual_entry()

    def is_legacy_archive(self) -> bool:
        """Legacy archives were classified before the compliance deadline.

        The late-archive flag is the only source of truth for archive type:
        ``late_archive=False`` is Legacy, ``late_archive=True`` is General.
        """
        return not self.flags.late_archive

    def was_archived_while_in_use(self) -> bool:
        # Historical snapshot, independent of the current usage flag.
        return (self.usage_count_at_archive or 0) > 0

    def file_is_missing(self) -> bool:
        return self.flags.missing or self.deleted_date is not None

    @property
    def source_path(self) -> str:
        return self.archive_path or self.original_path or ""

    @classmethod
    def from_row(cls, row: dict) -> ArchiveRecord:
        return cls(
            id=int(row["id"]),
            status=str(row.get("status") or ArchiveStatus.QUEUED.value),
            asset_type=str(row.get("asset_type") or ""),
            file_name=row.get("file_name") or "",
            archive_uuid=row.get("archive_uuid") or "",
            flags=ArchiveFlags.from_row(row),
            is_private=bool(row.get("is_private")),
            archive_reason=row.get("archive_reason") or ArchiveReason.REFERENCE.value,
            archive_reason_other=row.get("archive_reason_other") or "",
            public_description=row.get("public_description") or "",
            internal_notes=row.get("internal_notes") or "",
            created_at=parse_timestamp(row.get("created_at")),
            archive_classification_date=parse_timestamp(row.get("archive_classification_date")),
            deleted_date=parse_timestamp(row.get("deleted_date")),
            archived_by=row.get("archived_by"),
            deleted_by=row.get("deleted_by"),
            filesize=row.get("filesize"),
            file_checksum=row.get("file_checksum"),
            usage_count_at_archive=int(row.get("usage_count_at_archive") or 0),
            original_path=row.get("original_path") or "",
            archive_path=row.get("archive_path") or "",
            original_fid=row.get("original_fid"),
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "archive_uuid": self.archive_uuid,
            "file_name": self.file_name,
            "status": self.status,
            "asset_type": self.asset_type,
            **self.flags.to_row(),
            "is_private": self.is_private,
            "archive_reason": self.archive_reason,
            "archive_reason_other": self.archive_reason_other,
            "public_description": self.public_description,
            "internal_notes": self.internal_notes,
            "created_at": _iso(self.created_at),
            "archive_classification_date": _iso(self.archive_classification_date),
            "deleted_date": _iso(self.deleted_date),
            "archived_by": self.archived_by,
            "deleted_by": self.deleted_by,
            "filesize": self.filesize,
            "file_checksum": self.file_checksum,
            "usage_count_at_archive": self.usage_count_at_archive,
            "original_path": self.original_path,
            "archive_path": self.archive_path,
            "original_fid": self.original_fid,
        }


@dataclass
class ArchiveNote:
    archive_id: int
    text: str
    created_at: datetime
    author: int | None = None
    id: int | None = None       # assigned by the note store

    @classmethod
    def from_row(cls, row: dict) -> ArchiveNote:
        return cls(
            id=row.get("id"),
            archive_id=int(row["archive_id"]),
            text=row.get("note_text") or "",
            created_at=parse_timestamp(row.get("created_at")) or datetime.fromtimestamp(0, UTC),
            author=row.get("author"),
        )

    def to_row(self) -> dict:
        row = {
            "archive_id": self.archive_id,
            "note_text": self.text,
            "created_at": _iso(self.created_at),
            "author": self.author,
        }
        if self.id is not None:
            row["id"] = self.id
        return row


@dataclass(frozen=True)
class Viewer:
    user_id: int | None = None
    permissions: frozenset[str] = frozenset()

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None or bool(self.permissions)

    @property
    def can_manage_archives(self) -> bool:
        return MANAGE_PERMISSION in self.permissions

    @property
    def can_view_archives(self) -> bool:
        return self.can_manage_archives or VIEW_PERMISSION in self.permissions
