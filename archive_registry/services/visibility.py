"""
Visibility rules for archive detail and notes pages.

Admin-only controls visibility and disclosure, not storage: the archived
object is never moved or re-permissioned, only what is rendered changes.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from archive_registry.models import ArchiveRecord, Viewer


class Outcome(str, Enum):
    VISIBLE = "visible"
    NOT_FOUND = "not_found"


class Disclosure(str, Enum):
    FULL = "full"
    LIMITED = "limited"     # metadata only, no file URL or download


@dataclass(frozen=True)
class Resolution:
    outcome: Outcome
    disclosure: Disclosure | None = None
    login_required: bool = False
    missing_notice: bool = False

    @property
    def visible(self) -> bool:
        return self.outcome is Outcome.VISIBLE


NOT_FOUND = Resolution(Outcome.NOT_FOUND)


class AccessDenied(Exception):
    """The viewer may not open this page; its existence is not hidden."""


def resolve(record: ArchiveRecord, viewer_is_authenticated: bool, viewer_has_permission: bool) -> Resolution:
    # Deleted and voided archives are only reachable through the audit export.
    if not record.is_archived_active():
        return NOT_FOUND

    # A public entry whose file is gone is indistinguishable from no entry.
    if record.is_archived_public() and record.flags.missing:
        return NOT_FOUND

    if record.is_archived_admin() and not viewer_has_permission:
        disclosure = Disclosure.LIMITED
    else:
        disclosure = Disclosure.FULL

    return Resolution(
        outcome=Outcome.VISIBLE,
        disclosure=disclosure,
        login_required=record.is_private and not viewer_is_authenticated,
        missing_notice=record.flags.missing,
    )


def resolve_for_viewer(record: ArchiveRecord, viewer: Viewer) -> Resolution:
    return resolve(record, viewer.is_authenticated, viewer.can_view_archives)


def check_notes_access(viewer: Viewer) -> None:
    if not viewer.can_view_archives:
        raise AccessDenied("Archive notes require archive view permission")
