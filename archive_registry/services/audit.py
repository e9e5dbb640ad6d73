"""
Audit export: one CSV row of 24 fixed columns per archive record.

File-specific columns read "N/A (File-only)" for manual entries and
"N/A (Not yet archived)" for queued items, in that order of precedence.
Explanations are part of the cell value, e.g. "Yes (File was modified
after being archived)".
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime

from archive_registry import labels
from archive_registry.models import ArchiveRecord
from archive_registry.storage.base import FileUrlResolver, IdentityLookup, RecordStore, UsageCounter
from archive_registry.utils import PathKind, classify_path, iso, site_base

logger = logging.getLogger(__name__)

HEADERS = [
    "Archive ID",
    "Name",
    "Asset Type",
    "Archive Type",
    "Archive Classification Date (Critical Compliance Decision)",
    "Current Archive Status",
    "Archived By",
    "File Deletion Date (Post-Archive)",
    "File Deleted By",
    "Reason for Archive Classification",
    "Public Archive Description",
    "File Checksum (SHA-256)",
    "Integrity Issue Detected",
    "Active Usage Detected",
    "File Missing",
    "File Access",
    "Late Archive",
    "Prior Exemption Voided",
    "Exemption Voided / Modified",
    "Archived While In Use",
    "Usage Count at Archive",
    "Original URL",
    "Archive Reference Path",
    "Archive Record Created Date",
]

NA_FILE_ONLY = "N/A (File-only)"
NA_NOT_ARCHIVED = "N/A (Not yet archived)"

USAGE_YES = "Yes (Active content references this document)"
USAGE_NO = "No (No active content references detected)"

NOT_MODIFIED = "No (Archive has not been modified)"
EXEMPTION_VALID = "No (ADA exemption remains valid)"

# (is_legacy, is_manual_entry) -> (voided/modified wording, unchanged wording)
EXEMPTION_WORDING = {
    (True, True): (
        "Yes (ADA exemption voided: content was modified after the compliance deadline)",
        EXEMPTION_VALID,
    ),
    (True, False): (
        "Yes (ADA exemption voided: file was modified after the compliance deadline)",
        EXEMPTION_VALID,
    ),
    (False, True): ("Yes (Content was modified after being archived)", NOT_MODIFIED),
    (False, False): ("Yes (File was modified after being archived)", NOT_MODIFIED),
}

CSV_CONTENT_TYPE = "text/csv; charset=utf-8"
CACHE_CONTROL = "no-cache, no-store, must-revalidate"


@dataclass
class AuditFacts:
    """Values looked up from collaborators before a row is built."""

    archived_by_name: str = ""
    deleted_by_name: str = ""
    live_usage_count: int = 0
    original_url: str = ""


def original_url(record: ArchiveRecord, resolver: FileUrlResolver) -> str:
    path = record.source_path
    if not path:
        return ""
    if classify_path(path) is PathKind.STREAM:
        try:
            return resolver.resolve(path)
        except Exception as exc:
            logger.warning("File URL resolution failed for %s: %s", path, exc)
            return path
    return path


def reference_path(record: ArchiveRecord, resolved_url: str) -> str:
    return f"{site_base(resolved_url)}/archive-registry/{record.id}"


def _file_field(record: ArchiveRecord, value: str) -> str:
    if record.is_manual_entry():
        return NA_FILE_ONLY
    if record.is_queued():
        return NA_NOT_ARCHIVED
    return value


def checksum_value(record: ArchiveRecord) -> str:
    return _file_field(record, record.file_checksum or "")


def integrity_value(record: ArchiveRecord) -> str:
    if record.flags.integrity:
        value = "Yes (File checksum does not match the stored value)"
    else:
        value = "No (File checksum matches the stored value)"
    return _file_field(record, value)


def missing_value(record: ArchiveRecord) -> str:
    if record.file_is_missing():
        value = "Yes (Underlying file no longer exists in storage)"
    else:
        value = "No (File exists in storage)"
    return _file_field(record, value)


def access_value(record: ArchiveRecord) -> str:
    return _file_field(record, "Private (Login required)" if record.is_private else "Public")


def usage_value(record: ArchiveRecord, live_usage_count: int = 0) -> str:
    if record.flags.usage:
        return USAGE_YES
    # Flags may be stale on deleted items, so the live count counts too.
    if record.is_archived_deleted() and live_usage_count > 0:
        return USAGE_YES
    return USAGE_NO


def exemption_value(record: ArchiveRecord) -> str:
    is_legacy = record.is_legacy_archive()
    is_manual = record.is_manual_entry()
    if is_legacy:
        changed = record.is_exemption_void()
    elif is_manual:
        changed = record.flags.modified
    else:
        changed = record.flags.integrity
    yes, no = EXEMPTION_WORDING[(is_legacy, is_manual)]
    return yes if changed else no


def late_archive_value(record: ArchiveRecord) -> str:
    if record.flags.late_archive:
        return "Yes (Archive classification occurred after the ADA compliance deadline)"
    return "No (Archive classification occurred before the ADA compliance deadline)"


def prior_void_value(record: ArchiveRecord) -> str:
    if record.flags.prior_void:
        return "Yes (Forced to General Archive due to prior voided exemption)"
    return "No"


def build_row(record: ArchiveRecord, facts: AuditFacts | None = None) -> list[str]:
    facts = facts or AuditFacts()
    in_use = record.was_archived_while_in_use()
    return [
        record.archive_uuid or "",
        record.file_name or "",
        labels.asset_type_label(record.asset_type),
        labels.archive_type_label(record),
        iso(record.archive_classification_date),
        labels.status_label(record.status),
        facts.archived_by_name or "",
        iso(record.deleted_date),
        facts.deleted_by_name or "",
        labels.reason_label(record),
        record.public_description or "",
        checksum_value(record),
        integrity_value(record),
        usage_value(record, facts.live_usage_count),
        missing_value(record),
        access_value(record),
        late_archive_value(record),
        prior_void_value(record),
        exemption_value(record),
        "Yes (Archived with active content references)" if in_use else "No",
        str(record.usage_count_at_archive) if in_use else "",
        facts.original_url,
        reference_path(record, facts.original_url),
        iso(record.created_at),
    ]


def encode_csv_line(fields: list) -> str:
    encoded = []
    for value in fields:
        text = "" if value is None else str(value)
        escaped = text.replace('"', '""')
        if any(ch in text for ch in ',"\n\r'):
            escaped = f'"{escaped}"'
        encoded.append(escaped)
    return ",".join(encoded)


def export_filename(today: date | None = None) -> str:
    today = today or datetime.now(UTC).date()
    return f"archive-audit-export-{today:%Y-%m-%d}.csv"


def export_headers(today: date | None = None) -> dict[str, str]:
    return {
        "Content-Type": CSV_CONTENT_TYPE,
        "Content-Disposition": f'attachment; filename="{export_filename(today)}"',
        "Cache-Control": CACHE_CONTROL,
    }


class AuditExporter:
    def __init__(
        self,
        records: RecordStore,
        identities: IdentityLookup,
        usage: UsageCounter,
        file_urls: FileUrlResolver,
    ):
        self.records = records
        self.identities = identities
        self.usage = usage
        self.file_urls = file_urls

    async def _name(self, user_id: int | None) -> str:
        if user_id is None:
            return ""
        try:
            return await self.identities.display_name(user_id) or ""
        except Exception as exc:
            logger.warning("Identity lookup failed for user %s: %s", user_id, exc)
            return ""

    async def gather_facts(self, record: ArchiveRecord) -> AuditFacts:
        live_usage = 0
        if record.is_archived_deleted() and not record.flags.usage:
            live_usage = await self.usage.usage_count(record)
        return AuditFacts(
            archived_by_name=await self._name(record.archived_by),
            deleted_by_name=await self._name(record.deleted_by),
            live_usage_count=live_usage,
            original_url=original_url(record, self.file_urls),
        )

    async def rows(self) -> list[list[str]]:
        rows = [HEADERS]
        for record in await self.records.list_by_classification_date():
            try:
                rows.append(build_row(record, await self.gather_facts(record)))
            except Exception:
                logger.exception("Audit row failed for archive %s", record.id)
                rows.append([""] * len(HEADERS))
        return rows

    async def export(self) -> str:
        rows = await self.rows()
        logger.info("Audit export built with %d archive rows", len(rows) - 1)
        return "\n".join(encode_csv_line(row) for row in rows)
