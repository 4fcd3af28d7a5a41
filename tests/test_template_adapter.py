import io

import pytest
from markupsafe import escape

from gatekeep.template_adapter import JINJA_TEMPLATE, JinjaEngine
from gatekeep.template_engine import (
    TemplateError,
    TemplateEvent,
    TemplateView,
    create_template_engine,
)
from gatekeep.template_functions import slug


def make_view(name, data, path=None):
    return TemplateView(name, path or "/app/views/" + name, "/app/views", data)


def render(template, context):
    out = io.StringIO()
    template.render(out, context)
    return out.getvalue()


def test_parse_lookup_and_render():
    engine = JinjaEngine(None, None, True)
    engine.parse_and_add(make_view("Hello/Index.html", b"Hi {{ name }}"))
    template = engine.lookup("hello/index.html")
    assert render(template, {"name": "World"}) == "Hi World"


def test_case_sensitive_lookup():
    engine = JinjaEngine(None, None, False)
    engine.parse_and_add(make_view("Hello/Index.html", b"x"))
    assert engine.lookup("hello/index.html") is None
    assert engine.lookup("Hello/Index.html").name == "Hello/Index.html"


def test_output_is_escaped():
    engine = JinjaEngine()
    engine.parse_and_add(make_view("a.html", b"Hi {{ name }}"))
    assert render(engine.lookup("a.html"), {"name": "<b>"}) == "Hi " + str(escape("<b>"))


def test_render_without_context():
    engine = JinjaEngine()
    engine.parse_and_add(make_view("a.html", b"static"))
    assert render(engine.lookup("a.html"), None) == "static"


def test_syntax_error_raises_template_error():
    engine = JinjaEngine()
    with pytest.raises(TemplateError) as info:
        engine.parse_and_add(make_view("bad.html", b"{% if %}"))
    assert info.value.title == "Template Compilation Error"
    assert info.value.path == "bad.html"
    assert info.value.source_lines == ["{% if %}"]
    assert info.value.line == 1
    assert engine.lookup("bad.html") is None


def test_custom_delimiters():
    engine = JinjaEngine(None, "[[ ]]", True)
    engine.parse_and_add(make_view("a.html", b"Hi [[ name ]] {{ name }}"))
    assert render(engine.lookup("a.html"), {"name": "Bob"}) == "Hi Bob {{ name }}"


def test_bad_delimiters():
    with pytest.raises(ValueError):
        JinjaEngine(None, "[[", True)


def test_include_between_templates():
    engine = JinjaEngine()
    engine.parse_and_add(make_view("Parts/Greet.html", b"Hello {{ name }}"))
    engine.parse_and_add(make_view("page.html", b"[{% include 'parts/greet.html' %}]"))
    assert render(engine.lookup("page.html"), {"name": "Bob"}) == "[Hello Bob]"


def test_template_functions_are_available():
    engine = JinjaEngine()
    engine.parse_and_add(make_view("a.html", b"{{ slug(title) }}"))
    title = "Some Title Here"
    assert render(engine.lookup("a.html"), {"title": title}) == slug(title)


def test_handles_by_file_name_and_shebang():
    engine = JinjaEngine()
    assert engine.handles(make_view("x", b"body", "/app/views/x.jinja.html")) is True
    view = make_view("y.html", b"#! jinja\nbody")
    assert engine.handles(view) is True
    assert view.file_bytes == b"body"
    assert engine.handles(make_view("z.html", b"body")) is False


def test_refresh_event_clears_templates():
    engine = JinjaEngine()
    engine.parse_and_add(make_view("a.html", b"x"))
    engine.event(TemplateEvent.REFRESH_REQUESTED, None)
    assert engine.lookup("a.html") is None


def test_other_event_keeps_templates():
    engine = JinjaEngine()
    engine.parse_and_add(make_view("a.html", b"x"))
    engine.event(TemplateEvent.REFRESH_COMPLETED, None)
    assert render(engine.lookup("a.html"), {}) == "x"


def test_template_location_and_content():
    engine = JinjaEngine()
    view = make_view("a.html", b"a\nb")
    engine.parse_and_add(view)
    template = engine.lookup("a.html")
    assert template.location() == view.file_path
    assert template.content() == ["a", "b"]


def test_default_engine_is_registered():
    loader = object()
    engine = create_template_engine("", loader)
    assert isinstance(engine, JinjaEngine)
    assert engine.name() == JINJA_TEMPLATE
    assert engine.loader is loader