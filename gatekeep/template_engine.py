"""Template engine interface, template views and the registry of engine factories."""

from __future__ import annotations

import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

DEFAULT_TEMPLATE_ENGINE = "jinja"

_log = logging.getLogger(__name__)

_LINE_NUMBER = re.compile(r":[0-9]+:")


class TemplateEvent(Enum):
    """Events a template loader sends to its engines."""

    REFRESH_REQUESTED = "template-refresh-requested"
    REFRESH_COMPLETED = "template-refresh-completed"


class TemplateError(Exception):
    """A template that could not be loaded or compiled."""

    def __init__(
        self,
        title: str = "",
        description: str = "",
        path: str = "",
        line: int = 0,
        source_lines: Optional[list[str]] = None,
    ) -> None:
        super().__init__(description)
        self.title = title
        self.description = description
        self.path = path
        self.line = line
        self.source_lines = list(source_lines) if source_lines is not None else []

    def __str__(self) -> str:
        if self.title:
            return f"{self.title}: {self.description}"
        return self.description


@dataclass
class TemplateView:
    """A template file as read from disk, before an engine compiles it."""

    template_name: str
    file_path: str
    base_path: str = ""
    file_bytes: Optional[bytes] = b""
    engine_type: str = ""

    def location(self) -> str:
        """Full path of the file on disk."""
        return self.file_path

    def content(self) -> list[str]:
        """The file's lines, without line endings."""
        if self.file_bytes is None:
            return []
        lines = self.file_bytes.decode("utf-8", errors="replace").split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        return [line[:-1] if line.endswith("\r") else line for line in lines]


class TemplateEngine(ABC):
    """An engine that compiles template views and looks templates up by name."""

    @abstractmethod
    def parse_and_add(self, view: TemplateView) -> None:
        """Compile the view and add it; raises TemplateError if it does not compile."""

    @abstractmethod
    def lookup(self, template_name: str) -> Any:
        """The compiled template with that name, or None."""

    @abstractmethod
    def event(self, event: TemplateEvent, arg: Any) -> None:
        """React to an event from the template loader."""

    @abstractmethod
    def handles(self, view: TemplateView) -> bool:
        """True if this engine is meant to compile the view."""

    @abstractmethod
    def name(self) -> str:
        """The engine's name."""


def engine_handles(engine: TemplateEngine, view: TemplateView) -> bool:
    """True if the view names the engine by a ``#! name`` first line or a ``x.name.ext`` file name.

    A matching first line is removed from the view's bytes.
    """
    data = view.file_bytes or b""
    if data:
        newline = data.find(b"\n")
        line = data if newline == -1 else data[:newline]
        if line.endswith(b"\r"):
            line = line[:-1]
        if line.startswith(b"#! "):
            template_type = line[2:].decode("utf-8", errors="replace").strip()
            if engine.name() == template_type:
                view.file_bytes = b"" if newline == -1 else data[newline + 1 :]
                view.engine_type = template_type
                return True
    bits = os.path.basename(view.file_path).split(".")
    if len(bits) > 2:
        template_type = bits[-2].strip()
        if engine.name() == template_type:
            view.engine_type = template_type
            return True
    return False


def parse_template_error(err: BaseException) -> tuple[str, int, str]:
    """Template name, line and description from an error such as ``set:name.html:36: text``."""
    if isinstance(err, TemplateError):
        return "", err.line, err.description
    description = str(err)
    match = _LINE_NUMBER.search(description)
    if match is None:
        return "", 0, description
    line = int(description[match.start() + 1 : match.end() - 1])
    template_name = description[: match.start()]
    colon = template_name.find(":")
    if colon != -1:
        template_name = template_name[colon + 1 :]
    return template_name.strip(), line, description[match.end() + 1 :]


EngineFactory = Callable[[Any], TemplateEngine]

_loaders: dict[str, EngineFactory] = {}


def register_template_loader(key: str, factory: EngineFactory) -> None:
    """Register an engine factory under ``key``.

    A factory already registered under the key is replaced, and ValueError is raised.
    """
    replaced = key in _loaders
    _loaders[key] = factory
    _log.debug("Registered template engine %s", key)
    if replaced:
        raise ValueError(f"Template loader {key} already exists")


def create_template_engine(name: Optional[str], loader: Any) -> TemplateEngine:
    """Make the named engine for the loader; an empty name means the default engine."""
    if not name:
        name = DEFAULT_TEMPLATE_ENGINE
    factory = _loaders.get(name)
    if factory is None:
        raise ValueError(f"Unknown template engine name - {name}.")
    try:
        engine = factory(loader)
    except Exception as exc:
        raise ValueError(f"Failed to init template engine ({name}), {exc}") from exc
    _log.debug("Created template engine %s", name)
    return engine