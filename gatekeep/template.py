"""Template loader: finds template files under a set of paths and compiles them with engines."""

from __future__ import annotations

import dataclasses
import io
import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

import gatekeep.template_adapter  # noqa: F401  registers the default engine
from gatekeep.template_engine import (
    DEFAULT_TEMPLATE_ENGINE,
    TemplateEngine,
    TemplateError,
    TemplateEvent,
    TemplateView,
    create_template_engine,
    parse_template_error,
)

CURRENT_LOCALE_VIEW_ARG = "currentLocale"

_log = logging.getLogger(__name__)


@dataclass
class _TemplateRuntime:
    """One generation of loaded templates, replaced whole on each refresh."""

    version: int = 0
    engines: list[TemplateEngine] = field(default_factory=list)
    compile_error: Optional[TemplateError] = None
    compile_error_names: list[str] = field(default_factory=list)
    template_paths: dict[str, str] = field(default_factory=dict)
    template_map: dict[str, Any] = field(default_factory=dict)


def _split_engine_names(engine_names: Union[None, str, Sequence[str]]) -> list[str]:
    if not engine_names:
        return [DEFAULT_TEMPLATE_ENGINE]
    names = engine_names.split(",") if isinstance(engine_names, str) else list(engine_names)
    return [name.strip().lower() for name in names]


class TemplateLoader:
    """Loads every template below its paths; earlier paths take priority."""

    def __init__(
        self,
        paths: Sequence[str],
        engine_names: Union[None, str, Sequence[str]] = None,
    ) -> None:
        self.paths = list(paths)
        self.engine_names = _split_engine_names(engine_names)
        self._version_seed = 0
        self._lock = threading.Lock()
        self._runtime = _TemplateRuntime()

    def watch_dir(self, name: str) -> bool:
        """True unless the directory name starts with a dot."""
        return not name.startswith(".")

    def watch_file(self, basename: str) -> bool:
        """True unless the file name starts with a dot."""
        return not basename.startswith(".")

    def template(self, name: str) -> Any:
        """The template with the given name, with no language preference."""
        return self.template_lang(name, "")

    def template_lang(self, name: str, lang: str) -> Any:
        """The template for ``name``, preferring ``name.lang`` when a language is given.

        Raises the compile error if that template failed to compile, or
        TemplateError if no template has the name.
        """
        runtime = self._runtime
        if runtime.compile_error is not None and name in runtime.compile_error_names:
            raise runtime.compile_error
        tmpl = self._template_load(runtime, name, lang)
        if tmpl is None:
            raise TemplateError(description=f"Template {name} not found.")
        return tmpl

    def refresh(self) -> None:
        """Reload every template from the paths.

        The new templates are in use even when one of them fails to compile;
        the first such error is then raised.
        """
        with self._lock:
            self._version_seed += 1
            runtime = _TemplateRuntime(version=self._version_seed)
            _log.debug("Refreshing templates from %s", self.paths)
            runtime.engines = self._initialize_engines()
            for engine in runtime.engines:
                engine.event(TemplateEvent.REFRESH_REQUESTED, None)
            try:
                for base_path in self.paths:
                    self._load_path(runtime, base_path)
            finally:
                for engine in runtime.engines:
                    engine.event(TemplateEvent.REFRESH_COMPLETED, None)
                self._runtime = runtime
        if runtime.compile_error is not None:
            raise runtime.compile_error

    def _initialize_engines(self) -> list[TemplateEngine]:
        engines = []
        for name in self.engine_names:
            try:
                engines.append(create_template_engine(name, self))
            except ValueError as exc:
                raise TemplateError(
                    title="Panic (Template Loader)", description=str(exc)
                ) from exc
        return engines

    def _load_path(self, runtime: _TemplateRuntime, base_path: str) -> None:
        full_src_dir = os.path.realpath(base_path) if os.path.islink(base_path) else base_path
        if not os.path.lexists(full_src_dir):
            return

        def on_error(exc: OSError) -> None:
            _log.error("Error walking templates: %s", exc)

        for dirpath, dirnames, filenames in os.walk(full_src_dir, onerror=on_error, followlinks=True):
            dirnames[:] = sorted(d for d in dirnames if self.watch_dir(d))
            for filename in sorted(filenames):
                if not self.watch_file(filename):
                    continue
                path = os.path.join(dirpath, filename)
                name = os.path.relpath(path, full_src_dir).replace(os.sep, "/")
                self._add_file(runtime, path, name, base_path)

    def _add_file(self, runtime: _TemplateRuntime, path: str, name: str, base_path: str) -> None:
        file_bytes, err = self._find_and_add_template(runtime, path, name, base_path)
        if err is None:
            return
        runtime.compile_error_names.append(name)
        if runtime.compile_error is None:
            if isinstance(err, TemplateError):
                runtime.compile_error = err
            else:
                _, line, description = parse_template_error(err)
                runtime.compile_error = TemplateError(
                    title="Template Compilation Error",
                    description=description,
                    path=path,
                    line=line,
                    source_lines=(file_bytes or b"").decode("utf-8", errors="replace").split("\n"),
                )
            _log.error(
                "Template compilation error (In %s around line %d): %s",
                path,
                runtime.compile_error.line,
                err,
            )
        else:
            _log.error("Template compilation error (In %s): %s", path, err)

    def _find_and_add_template(
        self, runtime: _TemplateRuntime, path: str, name: str, base_path: str
    ) -> tuple[Optional[bytes], Optional[BaseException]]:
        if name in runtime.template_paths:
            _log.debug(
                "Not loading %s from %s, already loaded from %s",
                name,
                path,
                runtime.template_paths[name],
            )
            return None, None
        try:
            with open(path, "rb") as handle:
                file_bytes = handle.read()
        except OSError as exc:
            _log.error("Failed reading file %s: %s", path, exc)
            return None, exc

        view = TemplateView(
            template_name=name, file_path=path, base_path=base_path, file_bytes=file_bytes
        )
        for engine in runtime.engines:
            if engine.handles(view):
                _, err = self._load_into_engine(runtime, engine, view)
                return file_bytes, err

        first_error: Optional[BaseException] = None
        for engine in runtime.engines:
            loaded, err = self._load_into_engine(runtime, engine, view)
            if loaded:
                return file_bytes, None
            if err is not None:
                _log.debug("Engine %r unable to compile %s: %s", engine.name(), path, err)
                if first_error is None:
                    first_error = err
        if first_error is None:
            first_error = TemplateError(
                description=f"Failed to parse template file using engines {path}"
            )
        return file_bytes, first_error

    @staticmethod
    def _load_into_engine(
        runtime: _TemplateRuntime, engine: TemplateEngine, view: TemplateView
    ) -> tuple[bool, Optional[BaseException]]:
        if view.template_name in runtime.template_map:
            return False, None
        if engine.lookup(view.template_name) is not None:
            return True, None
        try:
            engine.parse_and_add(view)
        except Exception as exc:
            _log.debug("Engine %r failed to compile %s: %s", engine.name(), view.file_path, exc)
            return False, exc
        tmpl = engine.lookup(view.template_name)
        if tmpl is not None:
            runtime.template_map[view.template_name] = tmpl
        runtime.template_paths[view.template_name] = view.file_path
        return True, None

    def _template_load(self, runtime: _TemplateRuntime, name: str, lang: str) -> Any:
        lang_name = f"{name}.{lang}" if lang else name
        if lang and lang_name in runtime.template_map:
            return runtime.template_map[lang_name]
        if name in runtime.template_map:
            return runtime.template_map[name]

        tmpl = None
        for engine in runtime.engines:
            tmpl = engine.lookup(lang_name) or engine.lookup(name)
            if tmpl is not None:
                break
        if tmpl is None:
            return None

        with self._lock:
            current = self._runtime
            if current.version == runtime.version:
                template_map = dict(current.template_map)
                template_map[lang_name] = tmpl
                template_map.setdefault(name, tmpl)
                self._runtime = dataclasses.replace(current, template_map=template_map)
        return tmpl


def template_output_args(
    loader: TemplateLoader, template_path: str, args: Mapping[str, Any]
) -> bytes:
    """The template rendered with the given view arguments, in the arguments' locale."""
    lang = args.get(CURRENT_LOCALE_VIEW_ARG)
    if not isinstance(lang, str):
        lang = ""
    tmpl = loader.template_lang(template_path, lang)
    out = io.StringIO()
    tmpl.render(out, args)
    return out.getvalue().encode("utf-8")