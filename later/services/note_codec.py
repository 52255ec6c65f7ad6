"""Stored note format.

A note is kept in a single text column. Current notes are written as
``__later_note_v1__:`` followed by compact JSON ``{"title", "bodyHtml"}``;
older rows hold plain text whose first line is the title. The prefix and the
JSON field names must not change, or previously stored notes stop parsing.
"""
from __future__ import annotations

import html
import json
import re
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import Literal

NOTE_PREFIX = "__later_note_v1__:"

_ALLOWED_TAGS = frozenset({"b", "strong", "i", "em", "u", "s", "br", "p", "ul", "ol", "li"})
_DROP_CONTENT_TAGS = frozenset({"script", "style"})

_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_BLOCK_END_RE = re.compile(r"</(p|li)>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_MANY_NEWLINES_RE = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class ParsedNote:
    title: str
    body_html: str
    plain_text: str
    format: Literal["versioned", "legacy"]


class _NoteSanitizer(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._out: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in _DROP_CONTENT_TAGS:
            self._skip_depth += 1
            return
        if self._skip_depth:
            return
        if tag in _ALLOWED_TAGS:
            self._out.append(f"<{tag}>")

    def handle_startendtag(self, tag, attrs):
        if self._skip_depth:
            return
        if tag in _ALLOWED_TAGS:
            self._out.append(f"<{tag}>")

    def handle_endtag(self, tag):
        if tag in _DROP_CONTENT_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if self._skip_depth:
            return
        # </br> is not a closing tag worth keeping
        if tag in _ALLOWED_TAGS and tag != "br":
            self._out.append(f"</{tag}>")

    def handle_data(self, data):
        if self._skip_depth:
            return
        self._out.append(html.escape(data, quote=False))

    def result(self) -> str:
        return "".join(self._out).strip()


def sanitize_note_html(markup: str | None) -> str:
    """Keep only the inline/list tags, attribute-free; drop everything else."""
    parser = _NoteSanitizer()
    parser.feed(markup or "")
    parser.close()
    return parser.result()


def escape_html(text: str) -> str:
    return html.escape(text, quote=True).replace("&#x27;", "&#39;")


def text_to_html(text: str) -> str:
    if not text.strip():
        return ""
    return escape_html(text).replace("\n", "<br>")


def strip_html(markup: str) -> str:
    text = _BREAK_RE.sub("\n", markup)
    text = _BLOCK_END_RE.sub("\n", text)
    text = _TAG_RE.sub("", text)
    text = html.unescape(text).replace("\u00a0", " ")
    text = _MANY_NEWLINES_RE.sub("\n\n", text)
    return text.strip()


def _join_plain(title: str, body: str) -> str:
    return "\n".join(part for part in (title, body) if part).strip()


def serialize_note(title: str, body_html: str) -> str:
    payload = {"title": (title or "").strip(), "bodyHtml": sanitize_note_html(body_html)}
    return NOTE_PREFIX + json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def _decode_versioned(raw: str) -> ParsedNote | None:
    try:
        payload = json.loads(raw[len(NOTE_PREFIX):])
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    title = payload.get("title") or ""
    body = payload.get("bodyHtml") or ""
    if not isinstance(title, str) or not isinstance(body, str):
        return None
    title = title.strip()
    body_html = sanitize_note_html(body)
    return ParsedNote(
        title=title,
        body_html=body_html,
        plain_text=_join_plain(title, strip_html(body_html)),
        format="versioned",
    )


def _decode_legacy(raw: str) -> ParsedNote:
    first, _, rest = raw.partition("\n")
    title = first.strip()
    body = rest.strip()
    return ParsedNote(
        title=title,
        body_html=text_to_html(body),
        plain_text=_join_plain(title, body),
        format="legacy",
    )


def parse_note(note: str | None) -> ParsedNote:
    raw = (note or "").strip()
    if raw.startswith(NOTE_PREFIX):
        decoded = _decode_versioned(raw)
        if decoded is not None:
            return decoded
    return _decode_legacy(raw)


def normalize_note(note: str | None) -> str | None:
    """Write-path form of a client-supplied note: sanitized, trimmed, None if blank."""
    raw = (note or "").strip()
    if not raw:
        return None
    parsed = parse_note(raw)
    if parsed.format == "versioned":
        return serialize_note(parsed.title, parsed.body_html)
    return raw
