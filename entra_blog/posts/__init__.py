"""Posts package — front matter parsing, validation, indexing and scaffolding."""

from .models import Post, PostError, PostIssue, Snippet
from .frontmatter import dump_front_matter, parse_post, split_front_matter
from .library import check_posts, extract_snippets, load_post, load_posts, tag_index
from .render import render_new_post, render_tag_index, slugify, write_new_post

__all__ = [
    "Post",
    "PostError",
    "PostIssue",
    "Snippet",
    "dump_front_matter",
    "parse_post",
    "split_front_matter",
    "check_posts",
    "extract_snippets",
    "load_post",
    "load_posts",
    "tag_index",
    "render_new_post",
    "render_tag_index",
    "slugify",
    "write_new_post",
]
