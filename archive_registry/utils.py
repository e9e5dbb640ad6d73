from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from urllib.parse import urlparse

_SITE_BASE = re.compile(r"^(https?://[^/]+)")


class PathKind(str, Enum):
    URL = "url"
    STREAM = "stream"       # public:// or private:// storage URI
    RELATIVE = "relative"   # already a public path


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def classify_path(path: str) -> PathKind:
    if path.startswith(("http://", "https://")):
        return PathKind.URL
    if path.startswith(("public://", "private://")):
        return PathKind.STREAM
    return PathKind.RELATIVE


def site_base(url: str) -> str:
    """Scheme and host of an absolute URL, or "" when there is none."""
    m = _SITE_BASE.match(url or "")
    return m.group(1) if m else ""


def iso(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def short_datetime(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


def format_bytes(size: int | None) -> str:
    if not size:
        return ""
    if size < 1024:
        return f"{size} bytes"
    value = float(size)
    for unit in ("KB", "MB", "GB", "TB"):
        value /= 1024
        if value < 1024 or unit == "TB":
            return f"{value:.2f} {unit}"
    return f"{size} bytes"
