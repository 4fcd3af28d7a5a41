"""Small helpers: MIME lookup, value comparison, cookie encoding and file walking."""

from __future__ import annotations

import os
import re
from typing import Any, Iterable, Iterator, Mapping, Union
from urllib.parse import quote_plus, unquote_plus

DEFAULT_FILE_CONTENT_TYPE = "application/octet-stream"
HDR_FORWARDED_FOR = "X-Forwarded-For"
HDR_REAL_IP = "X-Real-Ip"

_COOKIE_KEY_VALUE = re.compile("\x00([^:]*):([^\x00]*)\x00")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class MimeTypes:
    """Maps file extensions to MIME content types."""

    def __init__(self, mapping: Mapping[str, str]) -> None:
        self._types = dict(mapping)

    @classmethod
    def load(cls, path: Union[str, os.PathLike]) -> "MimeTypes":
        """Read ``extension=type`` lines; ``#``/``;`` comments and ``[sections]`` are skipped."""
        mapping: dict[str, str] = {}
        with open(path, encoding="utf-8") as handle:
            for raw in handle:
                line = raw.strip()
                if not line or line[0] in "#;[":
                    continue
                positions = [p for p in (line.find("="), line.find(":")) if p != -1]
                if not positions:
                    continue
                sep = min(positions)
                key, value = line[:sep].strip(), line[sep + 1 :].strip()
                if key:
                    mapping[key] = value
        return cls(mapping)

    def content_type_by_filename(self, filename: str) -> str:
        """Content type for the file's extension, with a UTF-8 charset for text types."""
        dot = filename.rfind(".")
        if dot == -1 or dot + 1 >= len(filename):
            return DEFAULT_FILE_CONTENT_TYPE
        content_type = self._types.get(filename[dot + 1 :], "")
        if not content_type:
            return DEFAULT_FILE_CONTENT_TYPE
        if content_type.startswith("text/"):
            return content_type + "; charset=utf-8"
        return content_type


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def equal(a: Any, b: Any) -> bool:
    """Compare values: same types by equality, numbers within their kind, str against bytes."""
    if type(a) is type(b):
        return a == b
    if _is_int(a) and _is_int(b):
        return a == b
    if isinstance(a, float) and isinstance(b, float):
        return a == b
    bytes_like = (bytes, bytearray)
    if isinstance(a, bytes_like) and isinstance(b, bytes_like):
        return bytes(a) == bytes(b)
    if isinstance(a, str) and isinstance(b, bytes_like):
        return a.encode("utf-8") == bytes(b)
    if isinstance(a, bytes_like) and isinstance(b, str):
        return bytes(a) == b.encode("utf-8")
    return False


def parse_key_value_cookie(value: str) -> list[tuple[str, str]]:
    """Decode an escaped cookie value into its (key, value) pairs.

    A value with a malformed escape decodes to no pairs.
    """
    if _BAD_ESCAPE.search(value):
        return []
    decoded = unquote_plus(value)
    return [(m.group(1), m.group(2)) for m in _COOKIE_KEY_VALUE.finditer(decoded)]


def encode_key_value_cookie(
    pairs: Union[Mapping[str, str], Iterable[tuple[str, str]]],
) -> str:
    """Encode (key, value) pairs into an escaped cookie value."""
    items = pairs.items() if isinstance(pairs, Mapping) else pairs
    parts = []
    for key, val in items:
        if ":" in key or "\x00" in key:
            raise ValueError("cookie keys may not have colons or null bytes")
        if "\x00" in val:
            raise ValueError("cookie values may not have null bytes")
        parts.append(f"\x00{key}:{val}\x00")
    return quote_plus("".join(parts), safe="")


def read_lines(filename: Union[str, os.PathLike]) -> list[str]:
    """Read a file and split it on newlines."""
    with open(filename, encoding="utf-8", newline="") as handle:
        return handle.read().split("\n")


def first_non_empty(*args: str) -> str:
    """Return the first non-empty string, or an empty string."""
    return next((s for s in args if s), "")


def dir_exists(path: Union[str, os.PathLike]) -> bool:
    """True if the path exists and is a directory."""
    return os.path.isdir(path)


def _header(headers: Mapping[str, Any], name: str) -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            if isinstance(value, (list, tuple)):
                return value[0] if value else ""
            return value
    return ""


def _split_host(addr: str) -> Union[str, None]:
    if addr.startswith("["):
        end = addr.find("]")
        if end == -1:
            return None
        rest = addr[end + 1 :]
        if not rest.startswith(":"):
            return None
        host, port = addr[1:end], rest[1:]
    else:
        colon = addr.rfind(":")
        if colon == -1:
            return None
        host, port = addr[:colon], addr[colon + 1 :]
        if ":" in host:
            return None
    if ":" in port or any(c in "[]" for c in host + port):
        return None
    return host


def client_ip(remote_addr: str, headers: Mapping[str, Any], behind_proxy: bool) -> str:
    """Client address, from proxy headers when behind a proxy, else from ``host:port``."""
    if behind_proxy:
        forwarded = _header(headers, HDR_FORWARDED_FOR).strip()
        if forwarded:
            comma = forwarded.find(",")
            return forwarded if comma == -1 else forwarded[:comma]
        real_ip = _header(headers, HDR_REAL_IP).strip()
        if real_ip:
            return real_ip
    host = _split_host(remote_addr)
    return host if host is not None else ""


def walk(root: Union[str, os.PathLike]) -> Iterator[tuple[str, list[str], list[str]]]:
    """Walk a tree top-down, following symlinked directories.

    Yields ``(dirpath, dirnames, filenames)`` with names sorted; paths stay under
    the link names. Removing entries from ``dirnames`` prunes the walk.
    Directory cycles through symlinks are not re-entered.
    """
    yield from _walk(os.fspath(root), frozenset())


def _walk(path: str, ancestors: frozenset) -> Iterator[tuple[str, list[str], list[str]]]:
    real = os.path.realpath(path)
    if real in ancestors:
        return
    with os.scandir(path) as it:
        entries = sorted(it, key=lambda e: e.name)
    dirs = [e.name for e in entries if e.is_dir()]
    files = [e.name for e in entries if not e.is_dir()]
    yield path, dirs, files
    inner = ancestors | {real}
    for name in dirs:
        yield from _walk(os.path.join(path, name), inner)


def create_dir(path: Union[str, os.PathLike]) -> None:
    """Create the directory and its parents unless the path already exists."""
    if os.path.exists(path):
        return
    try:
        os.makedirs(path, mode=0o755, exist_ok=True)
    except OSError as exc:
        raise OSError(f"Failed to create directory '{os.fspath(path)}': {exc}") from exc