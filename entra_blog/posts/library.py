"""
Post library — load a directory of posts, check them, index them by tag,
and pull out the script snippets they embed.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from ..config import POST_EXTENSIONS
from .frontmatter import parse_post
from .models import Post, PostError, PostIssue, Snippet

logger = logging.getLogger("entra_blog.posts")

# Opening fence: ``` or ~~~ (3+), optional info string
_FENCE_OPEN_RE = re.compile(r"^(?P<indent> {0,3})(?P<fence>`{3,}|~{3,})\s*(?P<info>[^`]*)$")

# Common aliases authors use in info strings
LANGUAGE_ALIASES = {
    "ps": "powershell",
    "ps1": "powershell",
    "pwsh": "powershell",
    "posh": "powershell",
    "py": "python",
    "sh": "bash",
    "shell": "bash",
    "az": "azurecli",
}


def load_post(path) -> Post:
    """Read and parse one post file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise PostError(path, f"not valid UTF-8: {e}")
    return parse_post(text, path)


def find_post_files(directory) -> list[Path]:
    """All post files under a directory, in filename order."""
    directory = Path(directory)
    if not directory.is_dir():
        raise PostError(directory, "posts directory does not exist")
    return sorted(
        p for p in directory.rglob("*")
        if p.is_file() and p.suffix.lower() in POST_EXTENSIONS
    )


def load_posts(directory) -> list[Post]:
    """
    Load every post under a directory, ordered by (date, filename).
    The first malformed file raises PostError.
    """
    posts = [load_post(p) for p in find_post_files(directory)]
    logger.info(f"Loaded {len(posts)} posts from {directory}")
    return sort_posts(posts)


def sort_posts(posts: Iterable[Post]) -> list[Post]:
    return sorted(
        posts,
        key=lambda p: (p.date is None, p.date.isoformat() if p.date else "", str(p.path or "")),
    )


def check_posts(directory) -> list[PostIssue]:
    """Validate every post file and collect one issue per malformed file."""
    issues = []
    for path in find_post_files(directory):
        try:
            load_post(path)
        except PostError as e:
            issues.append(PostIssue(path=path, message=e.message))
            logger.warning(f"Invalid post {path}: {e.message}")
    return issues


def tag_index(posts: Iterable[Post]) -> dict[str, list[Post]]:
    """Map each tag to its posts; tags sorted case-insensitively."""
    index: dict[str, list[Post]] = {}
    for post in posts:
        for tag in post.tags:
            index.setdefault(tag, []).append(post)
    return {tag: index[tag] for tag in sorted(index, key=lambda t: (t.lower(), t))}


def normalize_language(info: str) -> str:
    lang = info.split()[0].lower() if info.strip() else ""
    lang = lang.lstrip("{.").rstrip("}")
    return LANGUAGE_ALIASES.get(lang, lang)


def extract_snippets(post: Post, language: Optional[str] = None) -> list[Snippet]:
    """
    Return the fenced code blocks in a post body, optionally only those
    in one language (aliases such as 'ps1' count as 'powershell').
    An unclosed fence runs to the end of the body.
    """
    wanted = normalize_language(language) if language else None
    snippets = []
    lines = post.body.splitlines()
    idx = 0
    while idx < len(lines):
        match = _FENCE_OPEN_RE.match(lines[idx])
        if not match:
            idx += 1
            continue

        fence = match.group("fence")
        lang = normalize_language(match.group("info"))
        start = idx + 1
        code_lines = []
        idx += 1
        while idx < len(lines):
            stripped = lines[idx].strip()
            if stripped.startswith(fence[0] * len(fence)) and not stripped.strip(fence[0]):
                break
            code_lines.append(lines[idx])
            idx += 1
        idx += 1

        if wanted is None or lang == wanted:
            code = "\n".join(code_lines) + "\n" if code_lines else ""
            snippets.append(Snippet(language=lang, code=code, line=start))
    return snippets
