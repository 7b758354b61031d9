import shutil
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from website.build import build_site
from website.config import STATIC_DIR, Config, SiteMetadata
from website.errors import BuildError
from website.routes import NotFound, Request


def create_site(tmp_path: Path) -> Path:
    static = tmp_path / "static"
    shutil.copytree(STATIC_DIR / "templates", static / "templates")
    (static / "public").mkdir(parents=True)
    (static / "public" / "hello.txt").write_text("hi", encoding="utf-8")
    posts = static / "posts"
    posts.mkdir()
    for name, title, published, body in [
        ("first.md", "First", "Jan 01 2024 UTC", "The first post."),
        ("second.md", "Second", "Feb 01 2024 UTC", "The second post."),
        ("third.md", "Third", "Mar 01 2024 UTC", "The third post."),
        (
            "fourth.md",
            "Fourth",
            "Apr 01 2024 UTC",
            "Safe text.\n\n<script>document.cookie</script>\n",
        ),
    ]:
        (posts / name).write_text(
            f"---\ntitle: {title}\npublished: {published}\n---\n\n{body}\n",
            encoding="utf-8",
        )
    return static


def make_config(static: Path) -> Config:
    return Config(
        production=False,
        static_dir=static,
        site=SiteMetadata(url="https://example.com"),
    )


def get(site, path):
    return site.router.dispatch(Request.from_target("GET", path))


def test_build_site_from_directory(tmp_path):
    site = build_site(make_config(create_site(tmp_path)))
    assert [p.slug for p in site.posts] == ["fourth", "third", "second", "first"]
    assert site.slug_index == {"fourth": 0, "third": 1, "second": 2, "first": 3}
    assert site.find_post("second").title == "Second"
    with pytest.raises(NotFound):
        site.find_post("nope")


def test_index_lists_three_most_recent(tmp_path):
    site = build_site(make_config(create_site(tmp_path)))
    response = get(site, "/")
    assert response.status == 200
    html = response.body.decode("utf-8")
    for title in ("Fourth", "Third", "Second"):
        assert f'href="/blog/{title.lower()}"' in html
    assert 'href="/blog/first"' not in html


def test_blog_lists_all_posts(tmp_path):
    site = build_site(make_config(create_site(tmp_path)))
    html = get(site, "/blog").body.decode("utf-8")
    for slug in ("first", "second", "third", "fourth"):
        assert f'href="/blog/{slug}"' in html
    assert "<title>Blog | " in html


def test_post_page(tmp_path):
    site = build_site(make_config(create_site(tmp_path)))
    response = get(site, "/blog/second")
    assert response.status == 200
    html = response.body.decode("utf-8")
    assert "The second post." in html
    assert "<title>Second | " in html


def test_post_page_is_sanitized(tmp_path):
    site = build_site(make_config(create_site(tmp_path)))
    html = get(site, "/blog/fourth").body.decode("utf-8")
    assert "Safe text." in html
    assert "document.cookie" not in html


def test_missing_post_is_404(tmp_path):
    site = build_site(make_config(create_site(tmp_path)))
    assert get(site, "/blog/missing").status == 404


def test_uses_and_public_files(tmp_path):
    site = build_site(make_config(create_site(tmp_path)))
    assert get(site, "/uses").status == 200
    hello = get(site, "/hello.txt")
    assert hello.status == 200
    assert hello.body == b"hi"


def test_feed_route(tmp_path):
    site = build_site(make_config(create_site(tmp_path)))
    response = get(site, "/feed.xml")
    assert response.status == 200
    assert response.headers["Content-Type"] == "application/rss+xml"
    assert response.body == site.feed.encode("utf-8")
    items = ET.fromstring(response.body).findall("./channel/item")
    assert len(items) == len(site.posts)
    assert [i.findtext("link") for i in items] == [
        f"https://example.com/blog/{p.slug}" for p in site.posts
    ]


def test_duplicate_slugs_fail(tmp_path):
    static = create_site(tmp_path)
    (static / "posts" / "First.md").write_text(
        "---\ntitle: Again\npublished: May 01 2024 UTC\n---\n", encoding="utf-8"
    )
    with pytest.raises(BuildError, match="loading posts: duplicate post first"):
        build_site(make_config(static))


def test_bad_post_fails(tmp_path):
    static = create_site(tmp_path)
    (static / "posts" / "bad.md").write_text("no frontmatter", encoding="utf-8")
    with pytest.raises(BuildError) as excinfo:
        build_site(make_config(static))
    assert excinfo.value.stage == "loading posts"


def test_missing_template_fails(tmp_path):
    static = create_site(tmp_path)
    (static / "templates" / "uses.tmpl.html").unlink()
    with pytest.raises(BuildError, match="registering uses handler: missing template uses"):
        build_site(make_config(static))


def test_missing_base_template_fails(tmp_path):
    static = create_site(tmp_path)
    (static / "templates" / "base.tmpl.html").unlink()
    with pytest.raises(BuildError, match="loading templates"):
        build_site(make_config(static))


def test_packaged_site_builds():
    site = build_site(Config(production=False))
    assert site.posts
    assert get(site, "/").status == 200
    for post in site.posts:
        assert get(site, post.url).status == 200
    assert get(site, "/style.css").status == 200
    assert get(site, "/robots.txt").status == 200
