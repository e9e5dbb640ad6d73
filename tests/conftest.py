from __future__ import annotations

from datetime import UTC, datetime

import pytest

from archive_registry.models import ArchiveFlags, ArchiveRecord
from archive_registry.storage.local import LocalArchiveStore, SettingsFileUrlResolver

CLASSIFIED = datetime(2026, 3, 1, 12, 30, tzinfo=UTC)
CREATED = datetime(2026, 2, 20, 9, 0, tzinfo=UTC)


@pytest.fixture
def make_record():
    def factory(flags: ArchiveFlags | None = None, **overrides) -> ArchiveRecord:
        values = dict(
            id=1,
            archive_uuid="0f8e1c2a-5b1d-4c3e-9a77-1d2b3c4d5e6f",
            file_name="annual-report-2019.pdf",
            status="archived_public",
            asset_type="pdf",
            archive_reason="reference",
            created_at=CREATED,
            archive_classification_date=CLASSIFIED,
            archived_by=7,
            filesize=2048,
            file_checksum="ab" * 32,
            original_path="public://reports/annual-report-2019.pdf",
            archive_path="public://archive/annual-report-2019.pdf",
        )
        values.update(overrides)
        if values["status"] == "queued" and "archive_classification_date" not in overrides:
            values["archive_classification_date"] = None
        return ArchiveRecord(flags=flags or ArchiveFlags(), **values)

    return factory


@pytest.fixture
def store() -> LocalArchiveStore:
    s = LocalArchiveStore()
    s.users = {7: "archivist", 9: "records-admin"}
    return s


@pytest.fixture
def file_urls() -> SettingsFileUrlResolver:
    return SettingsFileUrlResolver(base_url="https://www.example.edu", files_path="sites/default/files")
