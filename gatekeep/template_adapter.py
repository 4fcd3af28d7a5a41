"""Template engine backed by Jinja, with autoescaping and the template helper functions."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Union

from jinja2 import Environment, FunctionLoader, TemplateSyntaxError

from gatekeep.template_engine import (
    DEFAULT_TEMPLATE_ENGINE,
    TemplateEngine,
    TemplateError,
    TemplateEvent,
    TemplateView,
    engine_handles,
    register_template_loader,
)
from gatekeep.template_functions import TEMPLATE_FUNCS

JINJA_TEMPLATE = DEFAULT_TEMPLATE_ENGINE


class JinjaTemplate:
    """A compiled template together with the view it came from."""

    def __init__(self, template: Any, engine: "JinjaEngine", view: TemplateView) -> None:
        self.template = template
        self.engine = engine
        self.view = view

    @property
    def name(self) -> str:
        return self.view.template_name

    def location(self) -> str:
        return self.view.location()

    def content(self) -> list[str]:
        return self.view.content()

    def render(self, out: Any, context: Optional[Mapping[str, Any]]) -> None:
        """Render with the given view arguments and write the text to ``out``."""
        if context is None:
            values: dict[str, Any] = {}
        elif isinstance(context, Mapping):
            values = dict(context)
        else:
            raise TypeError("template context must be a mapping")
        out.write(self.template.render(values))


def _split_delimiters(
    delimiters: Union[None, str, Sequence[str]],
) -> Optional[tuple[str, str]]:
    if not delimiters:
        return None
    parts = delimiters.split(" ") if isinstance(delimiters, str) else list(delimiters)
    if len(parts) != 2:
        raise ValueError("Incorrect format for template delimiters")
    return parts[0], parts[1]


class JinjaEngine(TemplateEngine):
    """Compiles template views with Jinja; names are matched case-insensitively by default."""

    def __init__(
        self,
        loader: Any = None,
        delimiters: Union[None, str, Sequence[str]] = None,
        case_insensitive: bool = True,
    ) -> None:
        self.loader = loader
        self.case_insensitive = case_insensitive
        self._delimiters = _split_delimiters(delimiters)
        self._reset()

    def _reset(self) -> None:
        self._templates: dict[str, JinjaTemplate] = {}
        self._sources: dict[str, str] = {}
        self._environment = Environment(
            loader=FunctionLoader(self._load_source),
            autoescape=True,
            keep_trailing_newline=True,
        )
        self._environment.globals.update(TEMPLATE_FUNCS)
        self._custom: Optional[Environment] = None
        if self._delimiters is not None:
            self._custom = self._environment.overlay(
                variable_start_string=self._delimiters[0],
                variable_end_string=self._delimiters[1],
            )

    def _load_source(self, name: str) -> Optional[str]:
        return self._sources.get(self.convert_path(name))

    def convert_path(self, path: str) -> str:
        """The path as used for lookups: lower-cased when case-insensitive."""
        return path.lower() if self.case_insensitive else path

    def handles(self, view: TemplateView) -> bool:
        return engine_handles(self, view)

    def parse_and_add(self, view: TemplateView) -> None:
        environment = self._custom or self._environment
        source = (view.file_bytes or b"").decode("utf-8", errors="replace")
        try:
            compiled = environment.from_string(source)
        except TemplateSyntaxError as exc:
            raise TemplateError(
                title="Template Compilation Error",
                description=exc.message or str(exc),
                path=view.template_name,
                line=exc.lineno or 0,
                source_lines=source.split("\n"),
            ) from exc
        name = self.convert_path(view.template_name)
        self._sources[name] = source
        self._templates[name] = JinjaTemplate(compiled, self, view)

    def lookup(self, template_name: str) -> Optional[JinjaTemplate]:
        return self._templates.get(self.convert_path(template_name))

    def name(self) -> str:
        return JINJA_TEMPLATE

    def event(self, action: TemplateEvent, arg: Any) -> None:
        """A refresh request drops every compiled template."""
        if action == TemplateEvent.REFRESH_REQUESTED:
            self._reset()


register_template_loader(JINJA_TEMPLATE, lambda loader: JinjaEngine(loader, None, True))