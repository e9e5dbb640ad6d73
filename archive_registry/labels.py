"""Display strings for stored archive codes.

Unknown codes never raise: status and reason lookups fall back to the raw
code, asset types to the upper-cased code.
"""
from __future__ import annotations

from archive_registry.models import ArchiveReason, ArchiveRecord

STATUS_LABELS = {
    "queued": "Queued",
    "archived_public": "Archived (Public)",
    "archived_admin": "Archived (Admin-only)",
    "archived_deleted": "Archived (Deleted)",
    "exemption_void": "Exemption Void",
}

# The notes page uses a shorter wording for admin-only items.
NOTES_STATUS_LABELS = {**STATUS_LABELS, "archived_admin": "Archived (Admin)"}

ASSET_TYPE_LABELS = {
    "pdf": "PDF",
    "word": "Word Document",
    "excel": "Excel Spreadsheet",
    "powerpoint": "PowerPoint",
    "page": "Web Page",
    "external": "External Resource",
}

FILE_TYPE_LABELS = {
    "pdf": "PDF file",
    "word": "Word file",
    "excel": "Excel file",
    "powerpoint": "PowerPoint file",
    "page": "Web page",
    "external": "External link",
}

REASON_LABELS = {
    "reference": "Reference",
    "research": "Research",
    "recordkeeping": "Recordkeeping",
}

REASON_DESCRIPTIONS = {
    "reference": "Reference - Content retained for informational purposes",
    "research": "Research - Material retained for research or study",
    "recordkeeping": "Recordkeeping - Content retained for compliance or official records",
}

OTHER_LABEL = "Other"
GENERAL_ARCHIVE = "General Archive"
LEGACY_ARCHIVE = "Legacy Archive"


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def notes_status_label(status: str) -> str:
    return NOTES_STATUS_LABELS.get(status, status)


def asset_type_label(asset_type: str) -> str:
    return ASSET_TYPE_LABELS.get(asset_type, (asset_type or "").upper())


def file_type_label(asset_type: str) -> str:
    return FILE_TYPE_LABELS.get(asset_type, f"{(asset_type or '').upper()} file")


def archive_type_label(record: ArchiveRecord) -> str:
    return LEGACY_ARCHIVE if record.is_legacy_archive() else GENERAL_ARCHIVE


def _other_reason(record: ArchiveRecord) -> str:
    return (record.archive_reason_other or "").strip() or OTHER_LABEL


def reason_label(record: ArchiveRecord) -> str:
    """Short reason label, as shown in lists and the audit export."""
    if record.archive_reason == ArchiveReason.OTHER.value:
        return _other_reason(record)
    return REASON_LABELS.get(record.archive_reason, record.archive_reason)


def reason_description(record: ArchiveRecord) -> str:
    """Long reason label for the public detail page."""
    if record.archive_reason == ArchiveReason.OTHER.value:
        return _other_reason(record)
    return REASON_DESCRIPTIONS.get(record.archive_reason, OTHER_LABEL)


def purpose_label(record: ArchiveRecord) -> str:
    """Reason code label plus the public description, for the notes page."""
    if record.archive_reason == ArchiveReason.OTHER.value:
        label = OTHER_LABEL
    else:
        label = REASON_LABELS.get(record.archive_reason, record.archive_reason)
    description = (record.public_description or "").strip()
    return f"{label} - {description}" if description else label


def warning_labels(record: ArchiveRecord) -> list[str]:
    flags = record.flags
    warnings = []
    if flags.integrity:
        warnings.append("Integrity Issue")
    if flags.usage:
        warnings.append("Active Usage")
    if flags.missing:
        warnings.append("File Missing")
    if flags.modified:
        warnings.append("Modified")
    if flags.prior_void:
        warnings.append("Prior Exemption Voided")
    return warnings


def source_link(record: ArchiveRecord, login_required: bool) -> tuple[str, str]:
    """Return ``(label, tooltip)`` for the detail page's source link."""
    if record.asset_type == "external":
        return "Visit Link", record.archive_path
    if record.asset_type == "page":
        return "View Page", record.archive_path
    if login_required:
        return "Download (Login Required)", "You must log in to access this file."
    return "Download", record.archive_path
