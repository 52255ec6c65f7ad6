from __future__ import annotations

import html
import ipaddress
import logging
import re
import time
from dataclasses import dataclass
from urllib.parse import urljoin, urlsplit

import httpx

from later.services.text_parse import favicon_url

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 3.0
DEFAULT_USER_AGENT = "LaterRemindersBot/0.1"
MAX_REDIRECTS = 5
MAX_TITLE_CHARS = 500
MAX_BODY_BYTES = 512 * 1024

_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)


@dataclass(frozen=True)
class LinkPreview:
    preview_title: str | None
    preview_icon_url: str | None
    metadata_status: str


def is_safe_http_url(raw: str) -> bool:
    """Reject anything that could make the server probe its own network."""
    try:
        parts = urlsplit(raw.strip())
        host = (parts.hostname or "").lower()
    except ValueError:
        return False
    if parts.scheme.lower() not in {"http", "https"} or not host:
        return False
    if host == "localhost" or host.endswith(".localhost") or host.endswith(".local"):
        return False
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return True
    return not (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_reserved
        or ip.is_unspecified
        or ip.is_multicast
    )


def _extract_title(body: str) -> str | None:
    match = _TITLE_RE.search(body)
    if not match:
        return None
    title = html.unescape(match.group(1)).strip()
    return title[:MAX_TITLE_CHARS] or None


def _read_capped(response: httpx.Response, deadline: float) -> str:
    chunks = []
    size = 0
    for chunk in response.iter_bytes():
        chunks.append(chunk)
        size += len(chunk)
        if size >= MAX_BODY_BYTES or time.monotonic() >= deadline:
            break
    body = b"".join(chunks)[:MAX_BODY_BYTES]
    try:
        return body.decode(response.charset_encoding or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def _fetch_title_following_safe_redirects(client: httpx.Client, url: str, deadline: float) -> str | None:
    current = url
    for _ in range(MAX_REDIRECTS + 1):
        remaining = deadline - time.monotonic()
        if remaining <= 0 or not is_safe_http_url(current):
            return None
        with client.stream("GET", current, follow_redirects=False, timeout=remaining) as response:
            if response.is_redirect:
                location = response.headers.get("location")
                if not location:
                    return None
                current = urljoin(current, location)
                continue
            if not response.is_success:
                return None
            return _extract_title(_read_capped(response, deadline))
    return None


def fetch_link_preview(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT_SEC,
    user_agent: str = DEFAULT_USER_AGENT,
    client: httpx.Client | None = None,
) -> LinkPreview:
    """
    Best-effort page title lookup. Never raises; failures yield the favicon fallback.

    `timeout` bounds the whole lookup (redirects and body included), and at most
    MAX_BODY_BYTES of the page are read.
    """
    icon = favicon_url(url)
    fallback = LinkPreview(preview_title=None, preview_icon_url=icon, metadata_status="failed")

    if not is_safe_http_url(url):
        return fallback

    deadline = time.monotonic() + timeout
    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=timeout, headers={"user-agent": user_agent})
    try:
        title = _fetch_title_following_safe_redirects(client, url, deadline)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.info("Link preview fetch failed for %s: %s", url, exc)
        return fallback
    finally:
        if owns_client:
            client.close()

    if not title:
        return fallback
    return LinkPreview(preview_title=title, preview_icon_url=icon, metadata_status="ready")
