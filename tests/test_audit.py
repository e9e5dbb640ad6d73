import asyncio
import csv
import io
from datetime import UTC, date, datetime

import pytest

from archive_registry.models import ArchiveFlags
from archive_registry.services.audit import (
    HEADERS,
    NA_FILE_ONLY,
    NA_NOT_ARCHIVED,
    AuditExporter,
    AuditFacts,
    build_row,
    encode_csv_line,
    exemption_value,
    export_headers,
    original_url,
)
from archive_registry.storage.base import FileUrlResolver


def column(row, name):
    return row[HEADERS.index(name)]


def test_headers_are_fixed():
    assert len(HEADERS) == 24
    assert HEADERS[0] == "Archive ID"
    assert HEADERS[-1] == "Archive Record Created Date"


def test_row_has_one_value_per_header(make_record):
    row = build_row(make_record())
    assert len(row) == len(HEADERS)
    assert all(isinstance(value, str) for value in row)


def test_basic_fields(make_record):
    record = make_record(public_description="Superseded by 2020 report")
    row = build_row(record, AuditFacts(archived_by_name="archivist"))
    assert column(row, "Archive ID") == record.archive_uuid
    assert column(row, "Asset Type") == "PDF"
    assert column(row, "Current Archive Status") == "Archived (Public)"
    assert column(row, "Archived By") == "archivist"
    assert column(row, "Reason for Archive Classification") == "Reference"
    assert column(row, "Public Archive Description") == "Superseded by 2020 report"
    assert column(row, "Archive Classification Date (Critical Compliance Decision)") == "2026-03-01T12:30:00+00:00"
    assert column(row, "File Deletion Date (Post-Archive)") == ""
    assert column(row, "Archive Record Created Date") == "2026-02-20T09:00:00+00:00"


@pytest.mark.parametrize(
    "late_archive, expected",
    [(False, "Legacy Archive"), (True, "General Archive")],
)
def test_archive_type_follows_late_archive_flag(make_record, late_archive, expected):
    for status in ["queued", "archived_public", "archived_admin", "archived_deleted", "exemption_void"]:
        record = make_record(status=status, flags=ArchiveFlags(late_archive=late_archive))
        assert column(build_row(record), "Archive Type") == expected


def test_file_fields_for_archived_file(make_record):
    record = make_record(is_private=True, flags=ArchiveFlags(integrity=True))
    row = build_row(record)
    assert column(row, "File Checksum (SHA-256)") == "ab" * 32
    assert column(row, "Integrity Issue Detected") == "Yes (File checksum does not match the stored value)"
    assert column(row, "File Missing") == "No (File exists in storage)"
    assert column(row, "File Access") == "Private (Login required)"


def test_file_fields_for_manual_entry(make_record):
    record = make_record(status="queued", asset_type="page", flags=ArchiveFlags(missing=True, integrity=True))
    row = build_row(record)
    for name in ["File Checksum (SHA-256)", "Integrity Issue Detected", "File Missing", "File Access"]:
        assert column(row, name) == NA_FILE_ONLY


def test_queued_file_fields_are_not_yet_archived(make_record):
    record = make_record(
        status="queued",
        is_private=True,
        flags=ArchiveFlags(missing=True, integrity=True),
        deleted_date=datetime(2026, 5, 1, tzinfo=UTC),
    )
    row = build_row(record)
    for name in ["File Checksum (SHA-256)", "Integrity Issue Detected", "File Missing", "File Access"]:
        assert column(row, name) == NA_NOT_ARCHIVED
    assert column(row, "Archive Classification Date (Critical Compliance Decision)") == ""


def test_file_missing_from_deletion_date(make_record):
    record = make_record(status="archived_deleted", deleted_date=datetime(2026, 5, 1, tzinfo=UTC), deleted_by=9)
    row = build_row(record, AuditFacts(deleted_by_name="records-admin"))
    assert column(row, "File Missing") == "Yes (Underlying file no longer exists in storage)"
    assert column(row, "File Deletion Date (Post-Archive)") == "2026-05-01T00:00:00+00:00"
    assert column(row, "File Deleted By") == "records-admin"


def test_usage_detected(make_record):
    assert column(build_row(make_record(flags=ArchiveFlags(usage=True))), "Active Usage Detected").startswith("Yes")
    assert column(build_row(make_record(), AuditFacts(live_usage_count=4)), "Active Usage Detected") == (
        "No (No active content references detected)"
    )
    deleted = make_record(status="archived_deleted")
    assert column(build_row(deleted, AuditFacts(live_usage_count=2)), "Active Usage Detected") == (
        "Yes (Active content references this document)"
    )
    assert column(build_row(deleted), "Active Usage Detected").startswith("No")


def test_exemption_voided_four_scenarios(make_record):
    legacy_page = make_record(asset_type="page", status="exemption_void")
    legacy_file = make_record(status="exemption_void")
    general_page = make_record(asset_type="page", flags=ArchiveFlags(late_archive=True, modified=True))
    general_file = make_record(flags=ArchiveFlags(late_archive=True, integrity=True))

    values = [exemption_value(r) for r in [legacy_page, legacy_file, general_page, general_file]]
    assert values == [
        "Yes (ADA exemption voided: content was modified after the compliance deadline)",
        "Yes (ADA exemption voided: file was modified after the compliance deadline)",
        "Yes (Content was modified after being archived)",
        "Yes (File was modified after being archived)",
    ]


def test_exemption_unchanged_wording(make_record):
    assert exemption_value(make_record(flags=ArchiveFlags(integrity=True))) == "No (ADA exemption remains valid)"
    general_page = make_record(asset_type="external", flags=ArchiveFlags(late_archive=True, integrity=True))
    assert exemption_value(general_page) == "No (Archive has not been modified)"
    general_file = make_record(flags=ArchiveFlags(late_archive=True, modified=True))
    assert exemption_value(general_file) == "No (Archive has not been modified)"


def test_late_and_prior_void_columns(make_record):
    row = build_row(make_record(flags=ArchiveFlags(late_archive=True, prior_void=True)))
    assert column(row, "Late Archive").startswith("Yes (Archive classification occurred after")
    assert column(row, "Prior Exemption Voided") == "Yes (Forced to General Archive due to prior voided exemption)"
    row = build_row(make_record())
    assert column(row, "Prior Exemption Voided") == "No"


def test_archived_while_in_use(make_record):
    row = build_row(make_record(usage_count_at_archive=3))
    assert column(row, "Archived While In Use") == "Yes (Archived with active content references)"
    assert column(row, "Usage Count at Archive") == "3"
    row = build_row(make_record())
    assert column(row, "Archived While In Use") == "No"
    assert column(row, "Usage Count at Archive") == ""


def test_reference_path_uses_site_of_original_url(make_record):
    record = make_record(id=42)
    row = build_row(record, AuditFacts(original_url="https://www.example.edu/sites/default/files/a.pdf"))
    assert column(row, "Archive Reference Path") == "https://www.example.edu/archive-registry/42"
    assert column(build_row(record), "Archive Reference Path") == "/archive-registry/42"


def test_original_url_resolution(make_record, file_urls):
    assert original_url(make_record(), file_urls) == (
        "https://www.example.edu/sites/default/files/archive/annual-report-2019.pdf"
    )
    external = make_record(asset_type="external", archive_path="https://other.org/doc", original_path="")
    assert original_url(external, file_urls) == "https://other.org/doc"
    relative = make_record(archive_path="/files/a.pdf")
    assert original_url(relative, file_urls) == "/files/a.pdf"
    assert original_url(make_record(archive_path="", original_path=""), file_urls) == ""


class BrokenResolver(FileUrlResolver):
    def resolve(self, path: str) -> str:
        raise RuntimeError("stream wrapper not registered")


def test_original_url_echoes_path_when_resolution_fails(make_record):
    assert original_url(make_record(), BrokenResolver()) == "public://archive/annual-report-2019.pdf"


def test_csv_encoding_round_trips():
    value = 'a,"b"\nc'
    line = encode_csv_line([value, "plain", None, 5])
    assert line == '"a,""b""\nc",plain,,5'
    assert next(csv.reader(io.StringIO(line))) == [value, "plain", "", "5"]


def test_csv_quotes_carriage_return():
    assert encode_csv_line(["x\ry"]) == '"x\ry"'


def test_export_headers():
    headers = export_headers(date(2026, 10, 18))
    assert headers["Content-Type"] == "text/csv; charset=utf-8"
    assert headers["Content-Disposition"] == 'attachment; filename="archive-audit-export-2026-10-18.csv"'
    assert headers["Cache-Control"] == "no-cache, no-store, must-revalidate"


def test_empty_export_is_header_only(store, file_urls):
    body = asyncio.run(AuditExporter(store, store, store, file_urls).export())
    assert body.split("\n") == [encode_csv_line(HEADERS)]


def test_export_orders_by_classification_date(make_record, store, file_urls):
    store.put_record(make_record(id=1, archive_classification_date=datetime(2026, 1, 5, tzinfo=UTC)))
    store.put_record(make_record(id=2, archive_classification_date=datetime(2026, 3, 5, tzinfo=UTC)))
    store.put_record(make_record(id=3, status="queued"))
    body = asyncio.run(AuditExporter(store, store, store, file_urls).export())

    rows = list(csv.reader(io.StringIO(body)))
    assert rows[0] == HEADERS
    assert [row[HEADERS.index("Archive Reference Path")] for row in rows[1:]] == [
        "https://www.example.edu/archive-registry/2",
        "https://www.example.edu/archive-registry/1",
        "https://www.example.edu/archive-registry/3",
    ]
    assert "\r" not in body


def test_export_looks_up_names_and_live_usage(make_record, store, file_urls):
    store.put_record(make_record(id=5, status="archived_deleted", deleted_by=9, original_fid=31))
    store.put_record(make_record(id=6, archived_by=404))
    store.usage = [{"fid": 31}, {"fid": 31}, {"fid": 8}]

    rows = asyncio.run(AuditExporter(store, store, store, file_urls).rows())
    deleted = next(r for r in rows[1:] if r[HEADERS.index("Archive Reference Path")].endswith("/5"))
    unknown_user = next(r for r in rows[1:] if r[HEADERS.index("Archive Reference Path")].endswith("/6"))

    assert column(deleted, "Archived By") == "archivist"
    assert column(deleted, "File Deleted By") == "records-admin"
    assert column(deleted, "Active Usage Detected").startswith("Yes")
    assert column(unknown_user, "Archived By") == ""


class FailingUsage:
    async def usage_count(self, record):
        raise RuntimeError("usage index unavailable")


def test_export_blanks_rows_that_fail(make_record, store, file_urls):
    store.put_record(make_record(id=1, archive_classification_date=datetime(2026, 3, 5, tzinfo=UTC)))
    store.put_record(make_record(id=2, status="archived_deleted", archive_classification_date=datetime(2026, 1, 5, tzinfo=UTC)))

    body = asyncio.run(AuditExporter(store, store, FailingUsage(), file_urls).export())
    rows = list(csv.reader(io.StringIO(body)))

    assert len(rows) == 3
    assert rows[1][HEADERS.index("Archive Reference Path")] == "https://www.example.edu/archive-registry/1"
    assert rows[2] == [""] * len(HEADERS)
