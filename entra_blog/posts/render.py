"""
Post rendering — new-post scaffolds and the tag index page, rendered via Jinja2.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from ..config import POST_LAYOUT
from .frontmatter import dump_front_matter, parse_post
from .library import sort_posts, tag_index
from .models import Post, PostError

TEMPLATE_DIR = Path(__file__).parent / "templates"


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape([]),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def slugify(title: str) -> str:
    """Lowercase ASCII slug, at most 80 characters."""
    s = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    s = s.lower()
    s = re.sub(r"[^a-z0-9\s-]", "", s)
    s = re.sub(r"[\s-]+", "-", s).strip("-")
    return s[:80].rstrip("-")


def render_new_post(
    title: str,
    author: str,
    tags: Iterable[str] = (),
    body: Optional[str] = None,
) -> str:
    """Render a new post: front matter with the fixed layout plus a starter body."""
    if not title.strip():
        raise PostError(None, "title must not be empty")
    if not author.strip():
        raise PostError(None, "author must not be empty")

    draft = Post(
        title=title.strip(),
        author=author.strip(),
        body=(body or "").strip(),
        tags=frozenset(t.strip() for t in tags if t.strip()),
        layout=POST_LAYOUT,
    )
    template = _environment().get_template("new_post.md.j2")
    return template.render(front_matter=dump_front_matter(draft.front_matter()), body=draft.body)


def write_new_post(
    directory,
    title: str,
    author: str,
    tags: Iterable[str] = (),
    body: Optional[str] = None,
    post_date: Optional[date] = None,
) -> Path:
    """
    Write a new post as YYYY-MM-DD-<slug>.md. Existing files are never
    overwritten. The rendered text is parsed back before writing so a
    scaffold always satisfies the post invariants.
    """
    slug = slugify(title)
    if not slug:
        raise PostError(None, f"cannot derive a filename from title {title!r}")

    directory = Path(directory)
    post_date = post_date or date.today()
    filepath = directory / f"{post_date.isoformat()}-{slug}.md"
    if filepath.exists():
        raise PostError(filepath, "post already exists")

    content = render_new_post(title, author, tags, body)
    parse_post(content, filepath)

    directory.mkdir(parents=True, exist_ok=True)
    with open(filepath, "x", encoding="utf-8") as fh:
        fh.write(content)
    return filepath


def post_link(post: Post, posts_dir=None) -> str:
    """
    Link target for a post: Jekyll's post_url tag when the filename allows
    it. Posts in subdirectories of posts_dir are addressed as /subdir/stem.
    """
    if post.path is not None and post.date is not None:
        target = post.path.stem
        if posts_dir is not None:
            try:
                subdir = post.path.parent.relative_to(posts_dir)
            except ValueError:
                subdir = Path()
            if subdir.parts:
                target = "/" + "/".join(subdir.parts) + "/" + target
        return "{% post_url " + target + " %}"
    return post.slug or slugify(post.title)


def render_tag_index(posts: Iterable[Post], title: str = "Tags", posts_dir=None) -> str:
    """Render a Markdown page listing posts under each tag."""
    index = {tag: sort_posts(tagged) for tag, tagged in tag_index(posts).items()}
    front_matter = dump_front_matter({"layout": "page", "title": title})
    root = Path(posts_dir) if posts_dir is not None else None
    template = _environment().get_template("tag_index.md.j2")
    return template.render(
        front_matter=front_matter,
        index=index,
        link=lambda post: post_link(post, root),
    )
