"""YAML front-matter documents and reference helpers."""

import re
from datetime import date, datetime
from typing import Any

import yaml

from recollect.core.logging import get_logger

logger = get_logger("memory.frontmatter")

_FRONTMATTER = re.compile(r"^---\s*\n([\s\S]*?)\n---\s*(?:\n|$)")
_UNSAFE_NAME_CHARS = re.compile(r'[\\/:*?"<>|#^\[\]]')
_SECTION = r"^## {title}[ \t]*\n([\s\S]*?)(?=^## |\Z)"

# Reference date patterns, most specific first
_TIMESTAMP_12 = re.compile(r"(?:^|\D)(\d{4})(\d{2})(\d{2})(\d{2})(\d{2})(?:\d{2})?(?:\D|$)")
_DASHED_DATE = re.compile(r"(?:^|\D)(\d{4})[-_](\d{2})[-_](\d{2})(?:\D|$)")
_COMPACT_DATE = re.compile(r"(?:^|\D)(\d{4})(\d{2})(\d{2})(?:\D|$)")

UNKNOWN_DATE = "Unknown date"


class _Dumper(yaml.SafeDumper):
    """Safe dumper that keeps multi-line strings readable."""


def _str_representer(dumper: yaml.SafeDumper, value: str) -> yaml.Node:
    style = "|" if "\n" in value else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", value, style=style)


_Dumper.add_representer(str, _str_representer)


def split_frontmatter(text: str) -> tuple[dict[str, Any] | None, str]:
    """Split a document into its YAML header and body.

    Returns (None, text) when there is no header or it is not a mapping.
    """
    match = _FRONTMATTER.match(text)
    if not match:
        return None, text
    body = text[match.end():]
    try:
        header = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        logger.warning(f"Unreadable front-matter: {e}")
        return None, body
    if not isinstance(header, dict):
        return None, body
    return header, body


def compose_frontmatter(header: dict[str, Any], body: str) -> str:
    """Render header and body back into a single document."""
    dumped = yaml.dump(
        header, Dumper=_Dumper, allow_unicode=True, sort_keys=False, default_flow_style=False
    )
    return f"---\n{dumped}---\n\n{body.lstrip()}"


def extract_section(body: str, title: str) -> str:
    """Return the text of a `## title` section, or "" when absent."""
    pattern = re.compile(_SECTION.format(title=re.escape(title)), re.MULTILINE)
    match = pattern.search(body)
    return match.group(1).strip() if match else ""


def clean_reference(reference: str) -> str:
    """Normalize `[[name.md]]`, `name.md` and `name` to `name`."""
    cleaned = reference.strip().replace("[[", "").replace("]]", "")
    if cleaned.endswith(".md"):
        cleaned = cleaned[:-3]
    return cleaned


def link(reference: str) -> str:
    """Wrap a reference as a `[[name]]` link."""
    return f"[[{clean_reference(reference)}]]"


def sanitize_topic_name(name: str) -> str:
    """Make a topic name safe to use as a document name."""
    return _UNSAFE_NAME_CHARS.sub("_", name.strip())


def _valid(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime | None:
    if not 1900 <= year <= 2100:
        return None
    try:
        return datetime(year, month, day, hour, minute)
    except ValueError:
        return None


def extract_date_from_reference(reference: str) -> datetime | None:
    """Find a date embedded in a record reference.

    Recognizes `...YYYYMMDDHHMM[SS]...`, `YYYY-MM-DD` (or underscores) and
    `YYYYMMDD`, in that order.
    """
    name = clean_reference(reference)

    match = _TIMESTAMP_12.search(name)
    if match:
        found = _valid(*(int(g) for g in match.groups()))
        if found:
            return found

    for pattern in (_DASHED_DATE, _COMPACT_DATE):
        match = pattern.search(name)
        if match:
            found = _valid(*(int(g) for g in match.groups()))
            if found:
                return found

    return None


def display_date(reference: str) -> str:
    """Date of a reference as YYYY/MM/DD, or UNKNOWN_DATE."""
    found = extract_date_from_reference(reference)
    return found.strftime("%Y/%m/%d") if found else UNKNOWN_DATE


def format_timestamp(value: Any) -> str | None:
    """Render header dates uniformly (YAML may hand back date/datetime objects)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
