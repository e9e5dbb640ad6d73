from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from archive_registry.config import settings
from archive_registry.models import MANAGE_PERMISSION, VIEW_PERMISSION, Viewer
from archive_registry.services.audit import AuditExporter, export_headers
from archive_registry.services.registry import ArchiveNotFound, ArchiveRegistry, NoteValidationError, notes_url
from archive_registry.services.visibility import AccessDenied
from archive_registry.storage.base import ArchiveStore, FileUrlResolver
from archive_registry.storage.local import LocalArchiveStore, SettingsFileUrlResolver
from archive_registry.storage.supabase import SupabaseArchiveStore

logger = logging.getLogger(__name__)
app = FastAPI(title=settings.app_name)
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


@lru_cache
def get_store() -> ArchiveStore:
    if settings.supabase_url and settings.supabase_key:
        store: ArchiveStore = SupabaseArchiveStore()
    else:
        store = LocalArchiveStore.from_settings()
    logger.info("Using %s archive store", store.name)
    return store


def get_file_urls() -> FileUrlResolver:
    return SettingsFileUrlResolver()


def get_viewer(request: Request) -> Viewer:
    """Resolve the viewer's permissions from the bearer token."""
    auth = request.headers.get("authorization", "")
    token = auth[7:].strip() if auth.lower().startswith("bearer ") else ""
    if settings.manage_token and token == settings.manage_token:
        permissions = frozenset({MANAGE_PERMISSION, VIEW_PERMISSION})
    elif settings.view_token and token == settings.view_token:
        permissions = frozenset({VIEW_PERMISSION})
    else:
        return Viewer()

    user_id = request.headers.get("x-user-id", "")
    return Viewer(user_id=int(user_id) if user_id.isdigit() else None, permissions=permissions)


def get_registry(
    store: ArchiveStore = Depends(get_store),
    file_urls: FileUrlResolver = Depends(get_file_urls),
) -> ArchiveRegistry:
    return ArchiveRegistry(store, file_urls)


def _error_page(status_code: int, title: str) -> HTMLResponse:
    return HTMLResponse(
        f"""<html><head><meta charset="UTF-8"/><title>{title}</title></head>
        <body style="font-family:sans-serif;padding:60px;text-align:center;">
        <h2>{title}</h2></body></html>""",
        status_code=status_code,
    )


def not_found() -> HTMLResponse:
    return _error_page(404, "Page not found")


def access_denied() -> HTMLResponse:
    return _error_page(403, "Access denied")


@app.get("/archive-registry/{archive_id}", response_class=HTMLResponse)
async def archive_detail(
    request: Request,
    archive_id: int,
    viewer: Viewer = Depends(get_viewer),
    registry: ArchiveRegistry = Depends(get_registry),
):
    try:
        context = await registry.detail(archive_id, viewer)
    except ArchiveNotFound:
        return not_found()
    return templates.TemplateResponse(request, "archive_detail.html", context)


async def _render_notes(
    request: Request,
    registry: ArchiveRegistry,
    archive_id: int,
    viewer: Viewer,
    page: int = 0,
    error: str | None = None,
    note_text: str = "",
    status_code: int = 200,
) -> HTMLResponse:
    notes = await registry.notes_page(archive_id, viewer, page)
    return templates.TemplateResponse(
        request,
        "archive_notes.html",
        {"page": notes, "error": error, "note_text": note_text},
        status_code=status_code,
    )


@app.get("/archive-registry/{archive_id}/notes", response_class=HTMLResponse)
async def archive_notes(
    request: Request,
    archive_id: int,
    page: int = 0,
    viewer: Viewer = Depends(get_viewer),
    registry: ArchiveRegistry = Depends(get_registry),
):
    try:
        return await _render_notes(request, registry, archive_id, viewer, page)
    except AccessDenied:
        return access_denied()
    except ArchiveNotFound:
        return not_found()


@app.post("/archive-registry/{archive_id}/notes", response_class=HTMLResponse)
async def add_archive_note(
    request: Request,
    archive_id: int,
    note_text: str = Form(""),
    viewer: Viewer = Depends(get_viewer),
    registry: ArchiveRegistry = Depends(get_registry),
):
    try:
        await registry.add_note(archive_id, viewer, note_text)
    except AccessDenied:
        return access_denied()
    except ArchiveNotFound:
        return not_found()
    except NoteValidationError as exc:
        return await _render_notes(
            request, registry, archive_id, viewer, error=str(exc), note_text=note_text, status_code=422
        )
    return RedirectResponse(notes_url(archive_id), status_code=303)


@app.get("/admin/archive/export.csv")
async def export_csv(
    viewer: Viewer = Depends(get_viewer),
    store: ArchiveStore = Depends(get_store),
    file_urls: FileUrlResolver = Depends(get_file_urls),
):
    if not viewer.can_view_archives:
        return access_denied()
    body = await AuditExporter(store, store, store, file_urls).export()
    return Response(content=body.encode("utf-8"), headers=export_headers())
