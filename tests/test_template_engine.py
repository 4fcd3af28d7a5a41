import pytest

from gatekeep.template_engine import (
    TemplateEngine,
    TemplateError,
    TemplateView,
    create_template_engine,
    engine_handles,
    parse_template_error,
    register_template_loader,
)


class FakeEngine(TemplateEngine):
    def __init__(self, loader=None, engine_name="fake"):
        self.loader = loader
        self.engine_name = engine_name
        self.templates = {}

    def parse_and_add(self, view):
        self.templates[view.template_name] = view

    def lookup(self, template_name):
        return self.templates.get(template_name)

    def event(self, event, arg):
        self.templates.clear()

    def handles(self, view):
        return engine_handles(self, view)

    def name(self):
        return self.engine_name


def test_location_is_file_path():
    view = TemplateView("a/b.html", "/srv/views/a/b.html", "/srv/views", b"x")
    assert view.location() == "/srv/views/a/b.html"


def test_content_splits_lines_and_drops_endings():
    view = TemplateView("t", "t", "", b"one\r\ntwo\n")
    assert view.content() == ["one", "two"]


def test_content_without_bytes_is_empty():
    assert TemplateView("t", "t", "", None).content() == []
    assert TemplateView("t", "t", "", b"").content() == []


def test_shebang_selects_engine_and_is_removed():
    view = TemplateView("t", "/v/t.html", "/v", b"#! fake\nhello")
    assert engine_handles(FakeEngine(), view) is True
    assert view.file_bytes == b"hello"
    assert view.engine_type == "fake"


def test_shebang_for_other_engine_leaves_bytes():
    data = b"#! other\nhello"
    view = TemplateView("t", "/v/t.html", "/v", data)
    assert engine_handles(FakeEngine(), view) is False
    assert view.file_bytes == data
    assert view.engine_type == ""


def test_file_name_selects_engine():
    view = TemplateView("t", "/v/index.fake.html", "/v", b"body")
    assert engine_handles(FakeEngine(), view) is True
    assert view.engine_type == "fake"
    assert view.file_bytes == b"body"


@pytest.mark.parametrize("path", ["/v/index.html", "/v/index.other.html", "/v/fake"])
def test_file_name_without_engine(path):
    assert engine_handles(FakeEngine(), TemplateView("t", path, "/v", b"body")) is False


def test_parse_template_error_message():
    err = ValueError('html/template:Application/Register.html:36: no such template "footer.html"')
    assert parse_template_error(err) == (
        "Application/Register.html",
        36,
        'no such template "footer.html"',
    )


def test_parse_template_error_from_template_error():
    err = TemplateError(title="T", description="broken", path="p", line=7)
    assert parse_template_error(err) == ("", 7, "broken")


def test_parse_template_error_without_line():
    assert parse_template_error(RuntimeError("plain failure")) == ("", 0, "plain failure")


def test_create_registered_engine_receives_loader():
    register_template_loader("fake-create", lambda loader: FakeEngine(loader, "fake-create"))
    loader = object()
    engine = create_template_engine("fake-create", loader)
    assert engine.loader is loader
    assert engine.name() == "fake-create"


def test_register_twice_raises_and_replaces():
    register_template_loader("fake-dup", lambda loader: FakeEngine(loader, "first"))
    with pytest.raises(ValueError, match="already exists"):
        register_template_loader("fake-dup", lambda loader: FakeEngine(loader, "second"))
    assert create_template_engine("fake-dup", None).name() == "second"


def test_create_unknown_engine():
    with pytest.raises(ValueError, match="Unknown template engine name - nope."):
        create_template_engine("nope", None)


def test_create_engine_factory_failure():
    def failing(loader):
        raise RuntimeError("boom")

    register_template_loader("fake-fail", failing)
    with pytest.raises(ValueError, match=r"Failed to init template engine \(fake-fail\), boom"):
        create_template_engine("fake-fail", None)


def test_engine_interface_is_abstract():
    with pytest.raises(TypeError):
        TemplateEngine()


def test_template_error_keeps_fields():
    err = TemplateError(
        title="Template Compilation Error",
        description="bad",
        path="x.html",
        line=3,
        source_lines=["a", "b"],
    )
    assert err.source_lines == ["a", "b"]
    assert "bad" in str(err)
    assert err.path == "x.html"