"""
Front matter parsing — split a post file into its YAML header and Markdown body,
and turn the header into a validated Post.
"""

from __future__ import annotations

import re
from datetime import date
from pathlib import Path
from typing import Any, Optional

import yaml

from ..config import POST_LAYOUT
from .models import Post, PostError

FENCE = "---"
CLOSING_FENCES = ("---", "...")

# Jekyll post filename: 2024-03-18-activate-pim-roles.md
_FILENAME_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})-(.+)$")

# Keys that become Post attributes; everything else is kept in Post.extra
_KNOWN_KEYS = {"layout", "title", "tags", "author"}


def split_front_matter(text: str, path=None) -> tuple[dict[str, Any], str]:
    """
    Return (front_matter, body). The text must open with a '---' line and
    the header ends at the next line that is exactly '---' or '...'.
    """
    text = text.lstrip("\ufeff")
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FENCE:
        raise PostError(path, "missing front matter (file must start with '---')")

    for idx in range(1, len(lines)):
        if lines[idx].rstrip() in CLOSING_FENCES:
            header = "".join(lines[1:idx])
            body = "".join(lines[idx + 1:])
            break
    else:
        raise PostError(path, "unterminated front matter (no closing '---')")

    try:
        data = yaml.safe_load(header)
    except yaml.YAMLError as e:
        raise PostError(path, f"invalid YAML in front matter: {e}")

    if data is None:
        raise PostError(path, "front matter is empty")
    if not isinstance(data, dict):
        raise PostError(path, "front matter must be a mapping")
    return data, body


def dump_front_matter(data: dict[str, Any]) -> str:
    """Serialize a mapping as a fenced YAML front matter block."""
    yaml_txt = yaml.safe_dump(
        data, allow_unicode=True, sort_keys=False, default_flow_style=False, width=1000
    )
    return f"{FENCE}\n{yaml_txt}{FENCE}\n"


def normalize_tags(value: Any, path=None) -> frozenset[str]:
    """Tags may be a YAML list or a whitespace-separated string."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset(value.split())
    if isinstance(value, (list, tuple, set)):
        tags = set()
        for tag in value:
            if not isinstance(tag, (str, int, float)) or isinstance(tag, bool):
                raise PostError(path, f"tag {tag!r} is not a string")
            tag = str(tag).strip()
            if tag:
                tags.add(tag)
        return frozenset(tags)
    raise PostError(path, "tags must be a list or a space-separated string")


def _required_string(data: dict, key: str, path) -> str:
    value = data.get(key)
    if value is None:
        raise PostError(path, f"missing required field '{key}'")
    if not isinstance(value, str) or not value.strip():
        raise PostError(path, f"field '{key}' must be a non-empty string")
    return value.strip()


def parse_filename(path: Optional[Path]) -> tuple[Optional[date], str]:
    """Extract (date, slug) from a Jekyll-style filename."""
    if path is None:
        return None, ""
    stem = Path(path).stem
    match = _FILENAME_RE.match(stem)
    if not match:
        return None, stem
    year, month, day, slug = match.groups()
    try:
        return date(int(year), int(month), int(day)), slug
    except ValueError:
        return None, stem


def parse_post(text: str, path: Optional[Path] = None) -> Post:
    """Parse and validate a complete post file."""
    data, body = split_front_matter(text, path)

    layout = _required_string(data, "layout", path)
    if layout != POST_LAYOUT:
        raise PostError(path, f"layout must be '{POST_LAYOUT}', got '{layout}'")

    title = _required_string(data, "title", path)
    author = _required_string(data, "author", path)
    tags = normalize_tags(data.get("tags"), path)

    if not body.strip():
        raise PostError(path, "post has no body content")

    post_date, slug = parse_filename(path)
    return Post(
        title=title,
        author=author,
        body=body,
        tags=tags,
        layout=layout,
        path=Path(path) if path else None,
        date=post_date,
        slug=slug,
        extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
    )
