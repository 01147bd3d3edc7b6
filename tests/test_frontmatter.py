from datetime import date
from pathlib import Path

import pytest

from entra_blog.posts import PostError, dump_front_matter, parse_post, split_front_matter
from entra_blog.posts.frontmatter import normalize_tags, parse_filename

from conftest import POST_TEXT


def test_parse_post_fields():
    post = parse_post(POST_TEXT, Path("_posts/2024-03-18-activate-pim.md"))
    assert post.title == "Activating PIM roles from PowerShell"
    assert post.layout == "post"
    assert post.author == "Jane Admin"
    assert post.tags == frozenset({"pim", "powershell", "entra"})
    assert post.body.lstrip().startswith("Time-bound elevation")
    assert post.date == date(2024, 3, 18)
    assert post.slug == "activate-pim"


def test_tags_as_space_separated_string():
    assert normalize_tags("pim  entra\tgraph") == frozenset({"pim", "entra", "graph"})


def test_duplicate_tags_collapse():
    text = "---\nlayout: post\ntitle: T\ntags: [a, a, b]\nauthor: X\n---\nbody\n"
    assert parse_post(text).tags == frozenset({"a", "b"})


def test_missing_tags_is_empty_set():
    text = "---\nlayout: post\ntitle: T\nauthor: X\n---\nbody\n"
    assert parse_post(text).tags == frozenset()


def test_extra_keys_are_kept():
    text = "---\nlayout: post\ntitle: T\nauthor: X\ncomments: true\n---\nbody\n"
    post = parse_post(text)
    assert post.extra == {"comments": True}
    assert list(post.front_matter())[:4] == ["layout", "title", "tags", "author"]


@pytest.mark.parametrize(
    "text, message",
    [
        ("no front matter here\n", "missing front matter"),
        ("---\nlayout: post\ntitle: T\n", "unterminated"),
        ("---\n---\nbody\n", "empty"),
        ("---\n- a\n- b\n---\nbody\n", "mapping"),
        ("---\ntitle: [unclosed\n---\nbody\n", "invalid YAML"),
        ("---\nlayout: page\ntitle: T\nauthor: X\n---\nbody\n", "layout must be 'post'"),
        ("---\nlayout: post\nauthor: X\n---\nbody\n", "missing required field 'title'"),
        ("---\nlayout: post\ntitle: T\n---\nbody\n", "missing required field 'author'"),
        ("---\nlayout: post\ntitle: 42\nauthor: X\n---\nbody\n", "'title' must be a non-empty string"),
        ("---\nlayout: post\ntitle: T\nauthor: X\ntags: {a: 1}\n---\nbody\n", "tags must be"),
        ("---\nlayout: post\ntitle: T\nauthor: X\n---\n\n   \n", "no body content"),
    ],
)
def test_malformed_posts_raise(text, message):
    with pytest.raises(PostError) as exc:
        parse_post(text, Path("bad.md"))
    assert message in exc.value.message
    assert exc.value.path == Path("bad.md")


def test_split_accepts_yaml_document_end_marker():
    data, body = split_front_matter("---\nlayout: post\n...\nbody\n")
    assert data == {"layout": "post"}
    assert body == "body\n"


def test_split_ignores_byte_order_mark():
    data, _ = split_front_matter("\ufeff---\ntitle: T\n---\nx\n")
    assert data["title"] == "T"


def test_dump_front_matter_keeps_key_order():
    text = dump_front_matter({"layout": "post", "title": "Zürich notes", "tags": ["b", "a"]})
    assert text.startswith("---\nlayout: post\ntitle: Zürich notes\n")
    assert text.endswith("---\n")


def test_parse_filename_without_date():
    assert parse_filename(Path("drafts/notes.md")) == (None, "notes")
    assert parse_filename(Path("2024-13-40-bad-date.md")) == (None, "2024-13-40-bad-date")
