import re

import pytest
from markupsafe import Markup, escape

from gatekeep.template_functions import (
    ERROR_CSS_CLASS,
    append_arg,
    error_class,
    even,
    firstof,
    nl2br,
    pad,
    pluralize,
    raw,
    set_arg,
    slug,
)
from gatekeep.validation import ValidationError


@pytest.mark.parametrize("text", ["Hello World!", "  --Foo   Bar--  ", "Äpfel & Birnen", "a_b-c 9"])
def test_slug_invariants(text):
    result = slug(text)
    assert re.fullmatch(r"[a-z0-9_-]*", result)
    assert not result.startswith("-") and not result.endswith("-")
    assert slug(result) == result


def test_slug_joins_words():
    assert slug("Hello World") == "hello-world"


def test_firstof():
    assert firstof(None, "", "x", "y") == "x"
    assert firstof(None, "") is None
    assert firstof(0, "x") == 0


def test_pad_adds_nbsp():
    assert pad("ab", 5) == "ab" + "&nbsp;" * 3
    assert isinstance(pad("ab", 5), Markup)


def test_pad_escapes_and_does_not_truncate():
    assert pad("<abc>", 2) == str(escape("<abc>"))


def test_nl2br():
    assert nl2br("a\nb") == "a<br>b"
    assert nl2br("<\n") == str(escape("<")) + "<br>"


def test_raw_is_not_escaped_again():
    assert str(escape(raw("<b>"))) == "<b>"


def test_even():
    assert even(4) is True
    assert even(3) is False
    assert even(-2) is True
    assert even(-3) is False


def test_pluralize_counts():
    assert pluralize(1) == ""
    assert pluralize(2) == "s"
    assert pluralize(0, "y") == "s"
    assert pluralize(1, "y", "ies") == "y"
    assert pluralize(3, "y", "ies") == "ies"


def test_pluralize_lists():
    assert pluralize([1]) == ""
    assert pluralize([], "y", "ies") == "ies"
    assert pluralize((1, 2)) == "s"


def test_pluralize_other_type_is_singular():
    assert pluralize("abc", "one", "many") == "one"


def test_set_arg():
    view_args = {}
    assert set_arg(view_args, "title", "Home") == ""
    assert view_args == {"title": "Home"}


def test_append_arg():
    view_args = {}
    append_arg(view_args, "scripts", "a.js")
    append_arg(view_args, "scripts", "b.js")
    assert view_args["scripts"] == ["a.js", "b.js"]


def test_append_arg_to_non_list():
    with pytest.raises(TypeError):
        append_arg({"scripts": "a.js"}, "scripts", "b.js")


def test_error_class():
    view_args = {"errors": {"name": ValidationError(message="Required\n", key="name"), "age": None}}
    assert error_class("name", view_args) == ERROR_CSS_CLASS
    assert error_class("age", view_args) == ""
    assert error_class("email", view_args) == ""


def test_error_class_without_errors():
    assert error_class("name", {}) == ""