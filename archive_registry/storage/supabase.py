"""
Supabase storage: archive records, notes, users and usage rows read from
PostgREST tables.
"""
from __future__ import annotations

import logging

import httpx

from archive_registry.config import settings
from archive_registry.models import ArchiveNote, ArchiveRecord
from archive_registry.storage.base import ArchiveStore, NotePage, parse_rows

logger = logging.getLogger(__name__)

RECORDS_TABLE = "archive_records"
NOTES_TABLE = "archive_notes"
USERS_TABLE = "users"
USAGE_TABLE = "asset_usage"


def parse_content_range(value: str | None) -> int:
    """Total row count from a PostgREST ``Content-Range`` header (``0-24/57``)."""
    if not value or "/" not in value:
        return 0
    total = value.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class SupabaseClient:
    """Minimal async Supabase client (PostgREST)."""

    def __init__(self, base: str | None = None, key: str | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.base = (base or settings.supabase_url).rstrip("/")
        self.key = key or settings.supabase_key
        self.transport = transport
        self._headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
        }

    def _rest_url(self, table: str) -> str:
        return f"{self.base}/rest/v1/{table}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=settings.request_timeout, transport=self.transport)

    async def insert(self, table: str, row: dict) -> dict:
        async with self._client() as client:
            headers = {
                **self._headers,
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            }
            res = await client.post(self._rest_url(table), headers=headers, json=row)
            res.raise_for_status()
            return res.json()[0] if res.json() else {}

    async def select(
        self,
        table: str,
        filters: dict | None = None,
        order: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[list[dict], int]:
        """Return matching rows and the exact total count."""
        params = {}
        if filters:
            for k, v in filters.items():
                params[k] = f"eq.{v}"
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        if offset:
            params["offset"] = str(offset)
        async with self._client() as client:
            headers = {**self._headers, "Accept": "application/json", "Prefer": "count=exact"}
            res = await client.get(self._rest_url(table), headers=headers, params=params)
            res.raise_for_status()
            rows = res.json()
            total = parse_content_range(res.headers.get("content-range")) or len(rows)
            return rows, total


class SupabaseArchiveStore(ArchiveStore):
    name = "supabase"

    def __init__(self, client: SupabaseClient | None = None):
        self.client = client or SupabaseClient()

    async def get(self, archive_id: int) -> ArchiveRecord | None:
        rows, _ = await self.client.select(RECORDS_TABLE, {"id": archive_id})
        return ArchiveRecord.from_row(rows[0]) if rows else None

    async def list_by_classification_date(self) -> list[ArchiveRecord]:
        rows, _ = await self.client.select(
            RECORDS_TABLE, order="archive_classification_date.desc.nullslast,id.desc"
        )
        return parse_rows(rows, ArchiveRecord.from_row)

    async def add(self, note: ArchiveNote) -> ArchiveNote:
        row = note.to_row()
        row.pop("id", None)
        saved = await self.client.insert(NOTES_TABLE, row)
        return ArchiveNote.from_row({**row, **saved})

    async def list_for_archive(self, archive_id: int, page: int, per_page: int) -> NotePage:
        rows, total = await self.client.select(
            NOTES_TABLE,
            {"archive_id": archive_id},
            order="created_at.desc,id.desc",
            limit=per_page,
            offset=page * per_page,
        )
        return NotePage(
            items=parse_rows(rows, ArchiveNote.from_row),
            total=total,
            page=page,
            per_page=per_page,
        )

    async def display_name(self, user_id: int | None) -> str | None:
        if user_id is None:
            return None
        try:
            rows, _ = await self.client.select(USERS_TABLE, {"id": user_id})
        except httpx.HTTPError as exc:
            logger.warning("User lookup failed for %s: %s", user_id, exc)
            return None
        return rows[0].get("name") if rows else None

    async def usage_count(self, record: ArchiveRecord) -> int:
        if record.original_fid:
            filters = {"fid": record.original_fid}
        else:
            filters = {"file_path": record.original_path}
        _, total = await self.client.select(USAGE_TABLE, filters, limit=0)
        return total
