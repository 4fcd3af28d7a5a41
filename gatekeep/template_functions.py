"""Helper functions made available inside templates."""

from __future__ import annotations

import logging
import re
from typing import Any, MutableMapping

from markupsafe import Markup, escape

ERROR_CSS_CLASS = "hasError"

_log = logging.getLogger(__name__)

_INVALID_SLUG = re.compile(r"[^a-z0-9 _-]")
_WHITESPACE = re.compile(r"[\t\n\f\r ]+")


def slug(text: str) -> str:
    """Lower-case, hyphen-separated form of the text with other characters removed."""
    text = _INVALID_SLUG.sub("", text.lower())
    text = _WHITESPACE.sub("-", text)
    return text.strip("-")


def firstof(*args: Any) -> Any:
    """The first argument that is neither None nor an empty string."""
    return next((value for value in args if value is not None and value != ""), None)


def pad(text: str, width: int) -> Markup:
    """The escaped text padded with ``&nbsp;`` up to ``width`` characters."""
    escaped = str(escape(text))
    if len(text) >= width:
        return Markup(escaped)
    return Markup(escaped + "&nbsp;" * (width - len(text)))


def nl2br(text: str) -> Markup:
    """The escaped text with newlines turned into ``<br>``."""
    return Markup(str(escape(text)).replace("\n", "<br>"))


def raw(text: str) -> Markup:
    """The text marked safe, without escaping. Not for dynamic data."""
    return Markup(text)


def even(a: int) -> bool:
    return a % 2 == 0


def pluralize(items: Any, *args: str) -> str:
    """Singular or plural suffix for a count or a list of items.

    Defaults are ``""`` and ``"s"``; one argument overrides the singular, two
    override both.
    """
    singular, plural = "", "s"
    if args:
        singular = args[0]
        if len(args) == 2:
            plural = args[1]
    if isinstance(items, int) and not isinstance(items, bool):
        return plural if items != 1 else singular
    if isinstance(items, (list, tuple)):
        return plural if len(items) != 1 else singular
    _log.error("pluralize: unexpected type %r", items)
    return singular


def set_arg(view_args: MutableMapping[str, Any], key: str, value: Any) -> str:
    """Set a view argument; renders as nothing."""
    view_args[key] = value
    return ""


def append_arg(view_args: MutableMapping[str, Any], key: str, value: Any) -> str:
    """Append to a list view argument, creating it if missing; renders as nothing."""
    existing = view_args.get(key)
    if existing is None:
        view_args[key] = [value]
    elif isinstance(existing, list):
        existing.append(value)
    else:
        raise TypeError(f"view argument {key!r} is not a list")
    return ""


def error_class(name: str, view_args: MutableMapping[str, Any]) -> Markup:
    """The error CSS class if the field has a validation error, else nothing."""
    errors = view_args.get("errors") if view_args is not None else None
    if not isinstance(errors, dict):
        _log.warning("errorClass called without 'errors' in the view args")
        return Markup("")
    if errors.get(name) is None:
        return Markup("")
    return Markup(ERROR_CSS_CLASS)


TEMPLATE_FUNCS = {
    "set": set_arg,
    "append": append_arg,
    "firstof": firstof,
    "pad": pad,
    "errorClass": error_class,
    "nl2br": nl2br,
    "raw": raw,
    "pluralize": pluralize,
    "slug": slug,
    "even": even,
}