import io

import pytest

from gatekeep.template import TemplateLoader, template_output_args
from gatekeep.template_engine import TemplateError


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _render(tmpl, context):
    out = io.StringIO()
    tmpl.render(out, context)
    return out.getvalue()


def test_refresh_and_render(tmp_path):
    _write(tmp_path / "hello.html", "Hello {{ name }}")
    loader = TemplateLoader([str(tmp_path)])
    loader.refresh()
    assert _render(loader.template("hello.html"), {"name": "World"}) == "Hello World"


def test_render_escapes_values(tmp_path):
    _write(tmp_path / "hello.html", "{{ name }}")
    loader = TemplateLoader([str(tmp_path)])
    loader.refresh()
    assert _render(loader.template("hello.html"), {"name": "<b>"}) == "&lt;b&gt;"


def test_language_specific_template_preferred(tmp_path):
    _write(tmp_path / "index.html", "default")
    _write(tmp_path / "index.html.fr", "french")
    loader = TemplateLoader([str(tmp_path)])
    loader.refresh()
    assert _render(loader.template_lang("index.html", "fr"), {}) == "french"
    assert _render(loader.template_lang("index.html", "de"), {}) == "default"
    assert _render(loader.template_lang("index.html", ""), {}) == "default"


def test_earlier_path_wins(tmp_path):
    first = tmp_path / "first"
    second = tmp_path / "second"
    _write(first / "page.html", "from first")
    _write(second / "page.html", "from second")
    _write(second / "only.html", "only second")
    loader = TemplateLoader([str(first), str(second)])
    loader.refresh()
    assert _render(loader.template("page.html"), {}) == "from first"
    assert _render(loader.template("only.html"), {}) == "only second"


def test_subdirectory_names_use_slashes(tmp_path):
    _write(tmp_path / "App" / "Index.html", "app index")
    loader = TemplateLoader([str(tmp_path)])
    loader.refresh()
    assert _render(loader.template("App/Index.html"), {}) == "app index"


def test_lookup_is_case_insensitive(tmp_path):
    _write(tmp_path / "Index.html", "content")
    loader = TemplateLoader([str(tmp_path)])
    loader.refresh()
    first = loader.template("INDEX.HTML")
    assert _render(first, {}) == "content"
    assert loader.template("INDEX.HTML") is first


def test_dot_files_and_directories_ignored(tmp_path):
    _write(tmp_path / ".hidden.html", "hidden")
    _write(tmp_path / ".git" / "page.html", "hidden")
    _write(tmp_path / "shown.html", "shown")
    loader = TemplateLoader([str(tmp_path)])
    loader.refresh()
    assert _render(loader.template("shown.html"), {}) == "shown"
    with pytest.raises(TemplateError, match="not found"):
        loader.template(".hidden.html")
    with pytest.raises(TemplateError, match="not found"):
        loader.template(".git/page.html")


def test_missing_template_raises(tmp_path):
    loader = TemplateLoader([str(tmp_path)])
    loader.refresh()
    with pytest.raises(TemplateError) as info:
        loader.template("nope.html")
    assert str(info.value) == "Template nope.html not found."


def test_template_before_refresh_raises(tmp_path):
    _write(tmp_path / "a.html", "a")
    loader = TemplateLoader([str(tmp_path)])
    with pytest.raises(TemplateError, match="not found"):
        loader.template("a.html")


def test_missing_path_is_skipped(tmp_path):
    _write(tmp_path / "real" / "a.html", "a")
    loader = TemplateLoader([str(tmp_path / "absent"), str(tmp_path / "real")])
    loader.refresh()
    assert _render(loader.template("a.html"), {}) == "a"


def test_compile_error_raised_and_other_templates_usable(tmp_path):
    _write(tmp_path / "bad.html", "{% if %}")
    _write(tmp_path / "good.html", "fine")
    loader = TemplateLoader([str(tmp_path)])
    with pytest.raises(TemplateError) as info:
        loader.refresh()
    assert info.value.title == "Template Compilation Error"
    with pytest.raises(TemplateError) as again:
        loader.template("bad.html")
    assert again.value is info.value
    assert _render(loader.template("good.html"), {}) == "fine"


def test_unknown_engine_raises(tmp_path):
    loader = TemplateLoader([str(tmp_path)], "nosuchengine")
    with pytest.raises(TemplateError) as info:
        loader.refresh()
    assert info.value.title == "Panic (Template Loader)"
    assert "nosuchengine" in info.value.description


def test_refresh_picks_up_changes(tmp_path):
    target = tmp_path / "page.html"
    _write(target, "one")
    loader = TemplateLoader([str(tmp_path)])
    loader.refresh()
    assert _render(loader.template("page.html"), {}) == "one"
    _write(target, "two")
    loader.refresh()
    assert _render(loader.template("page.html"), {}) == "two"


def test_watch_dir_and_file():
    loader = TemplateLoader([])
    assert loader.watch_dir("views") is True
    assert loader.watch_dir(".svn") is False
    assert loader.watch_file("index.html") is True
    assert loader.watch_file(".index.html.swp") is False


def test_template_output_args_uses_locale(tmp_path):
    _write(tmp_path / "greet.html", "Hi {{ name }}")
    _write(tmp_path / "greet.html.nl", "Hallo {{ name }}")
    loader = TemplateLoader([str(tmp_path)])
    loader.refresh()
    assert template_output_args(loader, "greet.html", {"name": "Ann"}) == b"Hi Ann"
    result = template_output_args(
        loader, "greet.html", {"name": "Ann", "currentLocale": "nl"}
    )
    assert result == b"Hallo Ann"


def test_template_output_args_missing_raises(tmp_path):
    loader = TemplateLoader([str(tmp_path)])
    loader.refresh()
    with pytest.raises(TemplateError, match="not found"):
        template_output_args(loader, "missing.html", {})