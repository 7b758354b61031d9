import io
from pathlib import Path

import pytest

from website.config import SiteMetadata
from website.errors import MissingTemplateError, TemplateLoadError
from website.templates import TemplateSet, pygments_css, site_globals


def create_templates(root: Path) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "base.tmpl.html").write_text(
        "<title>{{ data.subtitle }}</title><main>{% block content %}{% endblock %}</main>",
        encoding="utf-8",
    )
    (root / "page.tmpl.html").write_text(
        '{% extends "base.tmpl.html" %}{% block content %}<p>{{ data.body }}</p>{% endblock %}',
        encoding="utf-8",
    )
    (root / "sub").mkdir()
    (root / "sub" / "nested.tmpl.html").write_text(
        '{% extends "base.tmpl.html" %}{% block content %}nested{% endblock %}',
        encoding="utf-8",
    )
    (root / "notes.txt").write_text("not a template", encoding="utf-8")
    return root


class Data:
    def __init__(self, subtitle="", body=""):
        self.subtitle = subtitle
        self.body = body


def test_load_discovers_templates_by_relative_id(tmp_path):
    templates = TemplateSet.load(create_templates(tmp_path / "templates"))
    assert templates.ids() == ["page", "sub/nested"]
    assert "page" in templates
    assert "base" not in templates
    assert "notes" not in templates


def test_render_wraps_in_base_layout(tmp_path):
    templates = TemplateSet.load(create_templates(tmp_path / "templates"))
    sink = io.StringIO()
    templates.render("page", Data(subtitle="Hi", body="hello"), sink)
    assert sink.getvalue() == "<title>Hi</title><main><p>hello</p></main>"


def test_render_autoescapes(tmp_path):
    templates = TemplateSet.load(create_templates(tmp_path / "templates"))
    sink = io.StringIO()
    templates.render("page", Data(body="<script>x</script>"), sink)
    assert "<script>" not in sink.getvalue()
    assert "&lt;script&gt;" in sink.getvalue()


def test_render_missing_template(tmp_path):
    templates = TemplateSet.load(create_templates(tmp_path / "templates"))
    with pytest.raises(MissingTemplateError, match="missing template nope"):
        templates.render("nope", None, io.StringIO())


def test_load_requires_base_layout(tmp_path):
    root = tmp_path / "templates"
    root.mkdir()
    (root / "page.tmpl.html").write_text("hi", encoding="utf-8")
    with pytest.raises(TemplateLoadError, match="missing base template"):
        TemplateSet.load(root)


def test_load_fails_on_syntax_error(tmp_path):
    root = create_templates(tmp_path / "templates")
    (root / "broken.tmpl.html").write_text("{% if %}", encoding="utf-8")
    with pytest.raises(TemplateLoadError, match="broken.tmpl.html"):
        TemplateSet.load(root)


def test_load_fails_on_broken_base(tmp_path):
    root = create_templates(tmp_path / "templates")
    (root / "base.tmpl.html").write_text("{% block %}", encoding="utf-8")
    with pytest.raises(TemplateLoadError, match="base.tmpl.html"):
        TemplateSet.load(root)


def test_site_globals(tmp_path):
    root = create_templates(tmp_path / "templates")
    (root / "links.tmpl.html").write_text(
        '{% extends "base.tmpl.html" %}{% block content %}'
        "{{ site.author }}|{{ url_for('/feed.xml') }}|{{ url_for('https://x.test/a') }}"
        "{% endblock %}",
        encoding="utf-8",
    )
    site = SiteMetadata(url="https://example.com/", author="Ada")
    templates = TemplateSet.load(root, extra_globals=site_globals(site))
    sink = io.StringIO()
    templates.render("links", Data(), sink)
    assert "Ada|https://example.com/feed.xml|https://x.test/a" in sink.getvalue()


def test_pygments_css():
    assert ".highlight" in pygments_css()
