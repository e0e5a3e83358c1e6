"""Entry record codec — one markdown file with YAML frontmatter per entry.

Layout::

    ---
    title: Morning pages
    timestamp: '2026-10-19T09:30:15'
    format: 1
    ---
    <content, verbatim>

The identity is not stored in the record; it is the filename stem.
"""

from __future__ import annotations

import re
from datetime import date, datetime

import yaml

from diarist.core.exceptions import RecordParseError

from .models import Entry

RECORD_SUFFIX = ".md"
RECORD_FORMAT_VERSION = 1

_FRONTMATTER_RE = re.compile(r"\A---\n(.*?)\n---\n(.*)\Z", re.DOTALL)


def normalize_timestamp(value: datetime) -> datetime:
    """Whole seconds, naive local time."""
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.replace(microsecond=0)


def _format_timestamp(value: datetime) -> str:
    return normalize_timestamp(value).isoformat(timespec="seconds")


def _parse_timestamp(value: object, source: str) -> datetime:
    if isinstance(value, datetime):
        return normalize_timestamp(value)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    if isinstance(value, str) and value:
        try:
            return normalize_timestamp(datetime.fromisoformat(value))
        except ValueError as e:
            raise RecordParseError(source, f"invalid timestamp {value!r}") from e
    raise RecordParseError(source, "missing timestamp")


def encode_entry(entry: Entry) -> str:
    """Serialize a persisted Entry to record text."""
    if entry.timestamp is None:
        raise ValueError("Cannot encode an entry without a timestamp")
    front = {
        "title": entry.title,
        "timestamp": _format_timestamp(entry.timestamp),
        "format": RECORD_FORMAT_VERSION,
    }
    header = yaml.safe_dump(front, default_flow_style=False, sort_keys=False, allow_unicode=True)
    return f"---\n{header}---\n{entry.content}"


def decode_entry(text: str, identity: str) -> Entry:
    """Parse record text into an Entry with the given identity.

    Raises:
        RecordParseError: no frontmatter, invalid YAML, missing/empty title,
            bad timestamp, or a record format newer than this version reads.
    """
    source = f"{identity}{RECORD_SUFFIX}"
    m = _FRONTMATTER_RE.match(text)
    if not m:
        raise RecordParseError(source, "no YAML frontmatter")
    try:
        front = yaml.safe_load(m.group(1))
    except yaml.YAMLError as e:
        raise RecordParseError(source, f"invalid frontmatter: {e}") from e
    if not isinstance(front, dict):
        raise RecordParseError(source, "frontmatter is not a mapping")

    version = front.get("format", RECORD_FORMAT_VERSION)
    if not isinstance(version, int) or version > RECORD_FORMAT_VERSION:
        raise RecordParseError(source, f"unsupported record format {version!r}")

    title = front.get("title")
    if not isinstance(title, str) or not title.strip():
        raise RecordParseError(source, "missing title")

    return Entry(
        title=title,
        content=m.group(2),
        timestamp=_parse_timestamp(front.get("timestamp"), source),
        identity=identity,
    )
