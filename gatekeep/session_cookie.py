"""Session storage in a signed cookie, and a registry of session engines."""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, Union

from gatekeep.session import (
    SESSION_COOKIE_SUFFIX,
    SESSION_VALUE_NAME,
    TIMESTAMP_KEY,
    Session,
)
from gatekeep.util import encode_key_value_cookie, parse_key_value_cookie

_log = logging.getLogger(__name__)

DEFAULT_COOKIE_PREFIX = "GATEKEEP"
DEFAULT_SESSION_ENGINE = "cookie"
DEFAULT_SESSION_EXPIRES = timedelta(days=30)
_COOKIE_SIZE_LIMIT = 4 * 1024


@dataclass
class Cookie:
    """An outgoing cookie. ``expires`` is None for a browser-session cookie."""

    name: str
    value: str = ""
    domain: str = ""
    path: str = "/"
    http_only: bool = True
    secure: bool = False
    same_site: Optional[str] = None
    expires: Optional[datetime] = None
    max_age: int = 0


@dataclass
class CookieSigner:
    """Signs and verifies cookie data with HMAC-SHA1 under a secret key."""

    secret: Union[bytes, str] = field(default_factory=lambda: secrets.token_bytes(32), repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.secret, str):
            self.secret = self.secret.encode()

    def sign(self, message: str) -> str:
        """Hex signature of the message."""
        return hmac.new(self.secret, message.encode(), hashlib.sha1).hexdigest()

    def verify(self, message: str, signature: str) -> bool:
        """True if the signature belongs to the message."""
        return hmac.compare_digest(self.sign(message), signature)


@dataclass
class SessionCookieEngine:
    """Keeps the whole session in a signed cookie.

    A zero ``expire_after`` makes session cookies that end with the browser session.
    """

    expire_after: timedelta = timedelta(0)
    signer: CookieSigner = field(default_factory=CookieSigner)
    cookie_prefix: str = DEFAULT_COOKIE_PREFIX
    domain: str = ""
    secure: bool = False
    same_site: Optional[str] = None

    @property
    def cookie_name(self) -> str:
        return self.cookie_prefix + SESSION_COOKIE_SUFFIX

    def get_cookie(self, session: Session) -> Cookie:
        """The cookie holding the session; its expiry timestamp is stamped in.

        Raises ValueError if a key has a colon or null byte, or a value a null byte.
        """
        expires = session.get_expiration(self.expire_after)
        if expires is None:
            session[TIMESTAMP_KEY] = SESSION_VALUE_NAME
        else:
            session[TIMESTAMP_KEY] = str(int(expires.timestamp()))

        string_map = session.serialize()
        data = encode_key_value_cookie(string_map)
        raw_length = sum(len(k) + len(v) + 3 for k, v in string_map.items())
        if raw_length > _COOKIE_SIZE_LIMIT:
            _log.error(
                "Session data has exceeded the 4k limit (%d); cookie data will not be reliable",
                raw_length,
            )

        return Cookie(
            name=self.cookie_name,
            value=self.signer.sign(data) + "-" + data,
            domain=self.domain,
            path="/",
            http_only=True,
            secure=self.secure,
            same_site=self.same_site,
            expires=expires,
            max_age=int(self.expire_after.total_seconds()),
        )

    def decode_cookie(self, value: Union[str, Cookie], session: Session) -> None:
        """Load a signed cookie value into the session.

        A value that is malformed or badly signed is ignored. If the loaded
        session has expired or has no timestamp, the session is emptied.
        """
        text = value.value if isinstance(value, Cookie) else value
        hyphen = text.find("-")
        if hyphen == -1 or hyphen >= len(text) - 1:
            return
        signature, data = text[:hyphen], text[hyphen + 1 :]
        if not self.signer.verify(data, signature):
            _log.warning("Session cookie signature failed")
            return
        session.load(dict(parse_key_value_cookie(data)))
        if session.timeout_expired_or_missing():
            session.clear()


_UNITS = {
    "ns": Decimal("1e-9"),
    "us": Decimal("1e-6"),
    "\u00b5s": Decimal("1e-6"),
    "\u03bcs": Decimal("1e-6"),
    "ms": Decimal("1e-3"),
    "s": Decimal(1),
    "m": Decimal(60),
    "h": Decimal(3600),
}
_DURATION_PART = re.compile(r"([0-9]*(?:\.[0-9]*)?)([^0-9.]*)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"1h30m"``, ``"1.5s"`` or ``"-300ms"``."""
    rest = text
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {text!r}")
    total = Decimal(0)
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        number, unit = match.group(1), match.group(2)
        if number in ("", "."):
            raise ValueError(f"invalid duration {text!r}")
        if not unit:
            raise ValueError(f"missing unit in duration {text!r}")
        if unit not in _UNITS:
            raise ValueError(f"unknown unit {unit!r} in duration {text!r}")
        try:
            total += Decimal(number) * _UNITS[unit]
        except InvalidOperation as exc:
            raise ValueError(f"invalid duration {text!r}") from exc
        pos = match.end()
    seconds = float(-total if negative else total)
    return timedelta(seconds=seconds)


def parse_session_expires(value: Optional[str]) -> timedelta:
    """Session lifetime from a ``session.expires`` setting.

    None gives 30 days; ``"session"`` gives zero (browser session); anything
    else is parsed as a duration.
    """
    if value is None:
        return DEFAULT_SESSION_EXPIRES
    if value == SESSION_VALUE_NAME:
        return timedelta(0)
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise ValueError(f"session.expires invalid: {exc}") from exc


_engines: dict[str, Callable[[], Any]] = {}


def register_session_engine(name: str, factory: Callable[[], Any]) -> None:
    """Register a factory that makes the session engine called ``name``."""
    _engines[name] = factory


def create_session_engine(name: Optional[str]) -> Any:
    """Make the named session engine, falling back to the cookie engine."""
    if not name:
        name = DEFAULT_SESSION_ENGINE
    factory = _engines.get(name)
    if factory is None:
        _log.warning(
            "Session engine %r not found, using default session engine %r",
            name,
            DEFAULT_SESSION_ENGINE,
        )
        factory = _engines[DEFAULT_SESSION_ENGINE]
    return factory()


register_session_engine(DEFAULT_SESSION_ENGINE, SessionCookieEngine)