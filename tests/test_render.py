from datetime import date

import pytest

from entra_blog.posts import (
    PostError,
    load_post,
    load_posts,
    parse_post,
    render_new_post,
    render_tag_index,
    slugify,
    write_new_post,
)


def test_slugify():
    assert slugify("Activating PIM Roles: A How-To!") == "activating-pim-roles-a-how-to"
    assert slugify("Zürich & Graph — notes") == "zurich-graph-notes"
    assert len(slugify("x" * 200)) == 80


def test_new_post_satisfies_post_invariants():
    text = render_new_post("Activating PIM", "Jane Admin", ["pim", "Entra", "pim", " "])
    post = parse_post(text)
    assert post.layout == "post"
    assert post.title == "Activating PIM"
    assert post.tags == frozenset({"pim", "Entra"})
    assert "## Steps" in post.body
    assert text.index("layout: post") < text.index("title:") < text.index("tags:") < text.index("author:")


def test_new_post_with_custom_body():
    post = parse_post(render_new_post("T", "A", [], body="Just this."))
    assert post.body.strip() == "Just this."


def test_new_post_requires_title_and_author():
    with pytest.raises(PostError):
        render_new_post("  ", "A")
    with pytest.raises(PostError):
        render_new_post("T", "")


def test_write_new_post(tmp_path):
    path = write_new_post(tmp_path / "_posts", "Activating PIM", "Jane", ["pim"],
                          post_date=date(2024, 1, 2))
    assert path.name == "2024-01-02-activating-pim.md"
    post = load_post(path)
    assert post.date == date(2024, 1, 2)
    assert post.slug == "activating-pim"


def test_write_new_post_never_overwrites(tmp_path):
    write_new_post(tmp_path, "Same", "Jane", post_date=date(2024, 1, 2))
    with pytest.raises(PostError, match="already exists"):
        write_new_post(tmp_path, "Same", "Someone else", post_date=date(2024, 1, 2))


def test_write_new_post_needs_sluggable_title(tmp_path):
    with pytest.raises(PostError, match="filename"):
        write_new_post(tmp_path, "!!!", "Jane")


def test_render_tag_index(posts_dir):
    page = render_tag_index(load_posts(posts_dir), title="Topics")
    assert page.startswith("---\nlayout: page\ntitle: Topics\n---\n")
    assert "## entra" in page
    assert (
        "- 2023-11-02 — [Group membership at scale]"
        "({% post_url 2023-11-02-group-membership %}) by Jane Admin"
    ) in page
    assert page.index("## entra") < page.index("## groups") < page.index("## pim")


def test_render_tag_index_empty():
    assert "No posts yet." in render_tag_index([])


def test_render_tag_index_links_nested_posts(posts_dir):
    nested = posts_dir / "azure" / "rbac"
    nested.mkdir(parents=True)
    (nested / "2024-04-02-reader-role.md").write_text(
        "---\nlayout: post\ntitle: Reader role\ntags: [rbac]\nauthor: Jane Admin\n---\n\nScope it.\n",
        encoding="utf-8",
    )

    page = render_tag_index(load_posts(posts_dir), posts_dir=posts_dir)

    assert "({% post_url /azure/rbac/2024-04-02-reader-role %})" in page
    assert "({% post_url 2024-03-18-activate-pim %})" in page
