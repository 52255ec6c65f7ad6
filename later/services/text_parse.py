from __future__ import annotations

import re
from urllib.parse import urlsplit

FAVICON_TEMPLATE = "https://www.google.com/s2/favicons?domain={host}&sz=64"

_URL_RE = re.compile(r"\bhttps?://[^\s<>\"']+", re.IGNORECASE)
_TAG_RE = re.compile(r"(?<!\S)#([\w-]+)")


def _hostname(value: str) -> str | None:
    try:
        parts = urlsplit(value.strip())
        return parts.hostname
    except ValueError:
        return None


def is_likely_url(value: str | None) -> bool:
    trimmed = (value or "").strip()
    if not trimmed:
        return False
    try:
        parts = urlsplit(trimmed)
    except ValueError:
        return False
    return parts.scheme.lower() in {"http", "https"} and bool(parts.hostname)


def extract_urls(text: str | None) -> list[str]:
    return list(dict.fromkeys(_URL_RE.findall(text or "")))


def extract_tags(text: str | None) -> list[str]:
    tags = (m.lower() for m in _TAG_RE.findall(text or ""))
    return list(dict.fromkeys(tags))


def favicon_url(url: str | None) -> str | None:
    host = _hostname(url or "")
    if not host:
        return None
    return FAVICON_TEMPLATE.format(host=host)


def format_file_size(size: int | None) -> str:
    if size is None:
        return ""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"
