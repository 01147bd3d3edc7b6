"""
Post data models — a post is front-matter metadata plus Markdown body.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Optional


class PostError(Exception):
    """Raised when a post file is malformed."""
    def __init__(self, path, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}" if path else message)


@dataclass(frozen=True)
class Post:
    """A single blog post."""
    title: str
    author: str
    body: str
    tags: frozenset[str] = frozenset()
    layout: str = "post"
    path: Optional[Path] = None
    date: Optional[date] = None          # From YYYY-MM-DD- filename prefix
    slug: str = ""                       # Filename without date prefix/extension
    extra: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def sorted_tags(self) -> list[str]:
        return sorted(self.tags, key=str.lower)

    def front_matter(self) -> dict[str, Any]:
        """Front matter as authored: layout, title, tags, author, then extras."""
        data: dict[str, Any] = {
            "layout": self.layout,
            "title": self.title,
            "tags": self.sorted_tags,
            "author": self.author,
        }
        data.update(self.extra)
        return data

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "layout": self.layout,
            "tags": self.sorted_tags,
            "author": self.author,
            "path": str(self.path) if self.path else None,
            "date": self.date.isoformat() if self.date else None,
            "slug": self.slug,
        }


@dataclass
class PostIssue:
    """One malformed post found by a directory check."""
    path: Path
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class Snippet:
    """A fenced code block embedded in a post body."""
    language: str
    code: str
    line: int        # 1-based line of the opening fence within the body
