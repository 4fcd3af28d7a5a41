"""Session data: a dictionary with expiry handling and JSON-backed object storage."""

from __future__ import annotations

import dataclasses
import json
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional, Union

SESSION_ID_KEY = "_ID"
TIMESTAMP_KEY = "_TS"
SESSION_VALUE_NAME = "session"
SESSION_OBJECT_KEY_NAME = "_object_"
SESSION_MAP_KEY_NAME = "_map_"
SESSION_COOKIE_SUFFIX = "_SESSION"

_log = logging.getLogger(__name__)

_RESERVED_KEYS = (SESSION_OBJECT_KEY_NAME, SESSION_MAP_KEY_NAME)


class SessionValueNotFound(KeyError):
    """Raised when a key is neither in the session nor in its stored objects."""

    def __init__(self, key: str = "") -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return "Session value not found"


def _json_default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    if hasattr(obj, "__dict__"):
        return vars(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _dumps(value: Any, sort_keys: bool = False) -> str:
    return json.dumps(
        value,
        default=_json_default,
        separators=(",", ":"),
        ensure_ascii=False,
        sort_keys=sort_keys,
    )


def _is_string_map(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    )


def _atoi(text: Any) -> int:
    try:
        return int(str(text).strip()) if str(text).strip() == str(text) else 0
    except ValueError:
        return 0


def _title(key: str) -> str:
    return key[:1].upper() + key[1:]


def _build(target: Callable[..., Any], data: Any) -> Any:
    if isinstance(target, type) and dataclasses.is_dataclass(target) and isinstance(data, dict):
        return target(**data)
    return target(data)


class Session(dict):
    """Session values keyed by name.

    String values are stored as they are; any other value is kept as JSON
    under a reserved key when the session is serialized, and decoded again on
    demand. Dotted keys (``"user.address.city"``) reach into stored objects.
    """

    def id(self) -> str:
        """The session identifier, created on first use."""
        existing = self.get(SESSION_ID_KEY)
        if existing is not None:
            return existing
        self[SESSION_ID_KEY] = uuid.uuid4().hex
        return self[SESSION_ID_KEY]

    def get_expiration(self, expire_after: Union[timedelta, float, int]) -> Optional[datetime]:
        """When the session expires, or None if it ends with the browser session."""
        if not isinstance(expire_after, timedelta):
            expire_after = timedelta(seconds=expire_after)
        if expire_after == timedelta(0) or self.get(TIMESTAMP_KEY) == SESSION_VALUE_NAME:
            return None
        return datetime.now(timezone.utc) + expire_after

    def set_no_expiration(self) -> None:
        """Make the session end when the browser session ends."""
        self[TIMESTAMP_KEY] = SESSION_VALUE_NAME

    def set_default_expiration(self) -> None:
        """Make the session expire after the engine's default duration."""
        self.pop(TIMESTAMP_KEY, None)

    def timeout_expired_or_missing(self) -> bool:
        """True if the session has no timestamp or its timestamp has passed."""
        if TIMESTAMP_KEY not in self:
            return True
        stamp = self[TIMESTAMP_KEY]
        if stamp == SESSION_VALUE_NAME:
            return False
        return _atoi(stamp) < int(time.time())

    def get_value(self, key: str) -> Any:
        """Value for the key, decoding stored objects and following dotted keys."""
        if key in self:
            return self[key]
        return self.get_into(key, None, False)

    def get_into(self, key: str, target: Optional[Callable[..., Any]], force: bool) -> Any:
        """Value for the key, built with ``target`` from its stored JSON if needed.

        With no ``target`` the JSON is decoded into plain Python values and
        cached. With ``force`` the value is always rebuilt from the stored JSON.
        """
        if key in self and not force:
            return self[key]
        split_key = key.split(".")
        root_key = split_key[0]

        if force:
            if target is None:
                result = self._data_from_map(key)
            else:
                result = self._data_from_object(root_key, target)
            return self._nested_property(split_key, result)

        if root_key in self:
            value = self[root_key]
        elif target is None:
            value = self._data_from_map(root_key)
        else:
            value = self._data_from_object(root_key, target)
        return self._nested_property(split_key, value)

    def get_default(self, key: str, target: Optional[Callable[..., Any]], default: Any) -> Any:
        """Like :meth:`get_into`, returning ``default`` when the value cannot be found."""
        try:
            return self.get_into(key, target, False)
        except (SessionValueNotFound, ValueError, TypeError):
            return default

    def get_property(self, key: str, value: Any) -> Any:
        """Property ``key`` of ``value``: a mapping entry or an attribute.

        The key is tried as given and with its first letter capitalized. A
        missing mapping entry gives None; a missing attribute raises
        :class:`SessionValueNotFound`.
        """
        candidates = (key, _title(key)) if _title(key) != key else (key,)
        if isinstance(value, Mapping):
            for name in candidates:
                if name in value:
                    return value[name]
            return None
        for name in candidates:
            if hasattr(value, name):
                return getattr(value, name)
        raise SessionValueNotFound(key)

    def set_value(self, key: str, value: Any) -> None:
        """Store a value; None removes the key."""
        if value is None:
            self.delete(key)
            return
        self[key] = value

    def delete(self, key: str) -> None:
        """Remove the key from the session and its stored objects."""
        self._json_map().pop(key, None)
        self.pop(key, None)

    def serialize(self) -> dict[str, str]:
        """The session as a string map, with non-string values gathered as JSON."""
        object_map = dict(self._json_map())
        result: dict[str, str] = {}
        for key, value in self.items():
            if key in _RESERVED_KEYS:
                continue
            if isinstance(value, str):
                result[key] = value
                continue
            try:
                object_map[key] = _dumps(value)
            except (TypeError, ValueError) as exc:
                _log.error("Unable to marshal session key %s: %s", key, exc)
        if object_map:
            result[SESSION_OBJECT_KEY_NAME] = _dumps(object_map, sort_keys=True)
        return result

    def load(self, data: Mapping[str, str]) -> None:
        """Fill the session from a string map made by :meth:`serialize`."""
        for key, value in data.items():
            if key != SESSION_OBJECT_KEY_NAME:
                self[key] = value
                continue
            try:
                decoded = json.loads(value)
            except (TypeError, ValueError) as exc:
                _log.error("Unable to unmarshal session key %s: %s", key, exc)
                continue
            if not _is_string_map(decoded):
                _log.error("Unable to unmarshal session key %s: not a string map", key)
                continue
            self[key] = decoded

    def empty(self) -> bool:
        """True if the session holds no entries at all."""
        return len(self) == 0

    def _json_map(self) -> dict[str, str]:
        stored = self.get(SESSION_OBJECT_KEY_NAME)
        if stored is None:
            self[SESSION_OBJECT_KEY_NAME] = {}
        elif not _is_string_map(stored):
            _log.error("Session object key corrupted, reset (was %r)", stored)
            self[SESSION_OBJECT_KEY_NAME] = {}
        return self[SESSION_OBJECT_KEY_NAME]

    def _nested_property(self, keys: list[str], value: Any) -> Any:
        for key in keys[1:]:
            value = self.get_property(key, value)
            if value is None:
                return None
        return value

    def _data_from_map(self, key: str) -> Any:
        cache = self.get(SESSION_MAP_KEY_NAME)
        if not isinstance(cache, dict):
            if cache is not None:
                _log.error("Unexpected value in the session map: %r", cache)
            cache = {}
            self[SESSION_MAP_KEY_NAME] = cache
        if key in cache:
            return cache[key]
        result = self._convert(key, None)
        cache[key] = result
        return result

    def _data_from_object(self, key: str, target: Callable[..., Any]) -> Any:
        result = self._convert(key, target)
        self[key] = result
        return result

    def _convert(self, key: str, target: Optional[Callable[..., Any]]) -> Any:
        stored = self._json_map()
        if key not in stored:
            raise SessionValueNotFound(key)
        data = json.loads(stored[key])
        return data if target is None else _build(target, data)