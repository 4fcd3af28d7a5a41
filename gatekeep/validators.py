"""Validators that check a single value and describe what they expect."""

from __future__ import annotations

import html
import ipaddress
import math
import re
from abc import ABC, abstractmethod
from collections.abc import Sized
from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum
from typing import Any, Pattern, Union
from urllib.parse import unquote_plus

import regex


class IPType(IntEnum):
    """Kinds of IP address text an :class:`IPAddr` validator accepts."""

    NONE = 0
    ANY = 1
    IPV4 = 32
    IPV6 = 39
    IPV4_MAPPED_IPV6 = 45
    IPV4_CIDR = 35
    IPV6_CIDR = 42
    IPV4_MAPPED_IPV6_CIDR = 48


class PureTextMode(IntEnum):
    """How strictly :class:`PureText` looks for markup and control characters."""

    NORMAL = 0
    STRICT = 4


class FilePathMode(IntEnum):
    """Whether :class:`FilePath` allows relative paths or only a file name."""

    ONLY_FILENAME = 0
    ALLOW_RELATIVE_PATH = 1


def _go_float(value: float) -> str:
    """Format a float the way the default value format prints it."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    sign, digit_tuple, exponent = Decimal(repr(float(value))).as_tuple()
    digits = list(digit_tuple)
    while len(digits) > 1 and digits[-1] == 0:
        digits.pop()
        exponent += 1
    text = "".join(str(d) for d in digits)
    nd = len(text)
    dp = nd + exponent
    x = dp - 1
    prefix = "-" if sign else ""
    if x < -4 or x >= 6:
        mantissa = text[0] + ("." + text[1:] if nd > 1 else "")
        exp_sign = "-" if x < 0 else "+"
        return f"{prefix}{mantissa}e{exp_sign}{abs(x):02d}"
    if dp <= 0:
        body = "0." + "0" * (-dp) + text
    elif dp >= nd:
        body = text + "0" * (dp - nd)
    else:
        body = text[:dp] + "." + text[dp:]
    return prefix + body


def _is_number(obj: Any) -> bool:
    return isinstance(obj, (int, float)) and not isinstance(obj, bool)


def _size(obj: Any) -> Union[int, None]:
    if isinstance(obj, (str, list, tuple, bytes, bytearray)):
        return len(obj)
    return None


class Validator(ABC):
    """A check applied to one value."""

    @abstractmethod
    def is_satisfied(self, obj: Any) -> bool:
        """True if the value passes the check."""

    @abstractmethod
    def default_message(self) -> str:
        """Message used when the check fails."""


@dataclass(frozen=True)
class Required(Validator):
    """Requires a value that is present and neither empty nor zero."""

    def is_satisfied(self, obj: Any) -> bool:
        if obj is None:
            return False
        if isinstance(obj, Sized):
            return len(obj) > 0
        return bool(obj)

    def default_message(self) -> str:
        return "Required\n"


@dataclass(frozen=True)
class Min(Validator):
    """Requires a number at least ``minimum``."""

    minimum: float

    def is_satisfied(self, obj: Any) -> bool:
        return _is_number(obj) and obj >= self.minimum

    def default_message(self) -> str:
        return f"Minimum is {_go_float(self.minimum)}\n"


@dataclass(frozen=True)
class Max(Validator):
    """Requires a number at most ``maximum``."""

    maximum: float

    def is_satisfied(self, obj: Any) -> bool:
        return _is_number(obj) and obj <= self.maximum

    def default_message(self) -> str:
        return f"Maximum is {_go_float(self.maximum)}\n"


@dataclass(frozen=True)
class Range(Validator):
    """Requires a number between ``minimum`` and ``maximum`` inclusive."""

    minimum: float
    maximum: float

    def is_satisfied(self, obj: Any) -> bool:
        return Min(self.minimum).is_satisfied(obj) and Max(self.maximum).is_satisfied(obj)

    def default_message(self) -> str:
        return f"Range is {_go_float(self.minimum)} to {_go_float(self.maximum)}\n"


@dataclass(frozen=True)
class MinSize(Validator):
    """Requires a string or sequence of at least ``minimum`` items."""

    minimum: int

    def is_satisfied(self, obj: Any) -> bool:
        size = _size(obj)
        return size is not None and size >= self.minimum

    def default_message(self) -> str:
        return f"Minimum size is {self.minimum}\n"


@dataclass(frozen=True)
class MaxSize(Validator):
    """Requires a string or sequence of at most ``maximum`` items."""

    maximum: int

    def is_satisfied(self, obj: Any) -> bool:
        size = _size(obj)
        return size is not None and size <= self.maximum

    def default_message(self) -> str:
        return f"Maximum size is {self.maximum}\n"


@dataclass(frozen=True)
class Length(Validator):
    """Requires a string or sequence of exactly ``n`` items."""

    n: int

    def is_satisfied(self, obj: Any) -> bool:
        size = _size(obj)
        return size is not None and size == self.n

    def default_message(self) -> str:
        return f"Required length is {self.n}\n"


@dataclass(frozen=True)
class Match(Validator):
    """Requires a string in which the pattern is found."""

    regexp: Any

    def __post_init__(self) -> None:
        if isinstance(self.regexp, str):
            object.__setattr__(self, "regexp", regex.compile(self.regexp))

    def is_satisfied(self, obj: Any) -> bool:
        if not isinstance(obj, str):
            raise TypeError(f"Match requires a string, got {type(obj).__name__}")
        return self.regexp.search(obj) is not None

    def default_message(self) -> str:
        return f"Must match {self.regexp.pattern}\n"


_EMAIL_PATTERN = re.compile(
    r"^[\w!#$%&'*+/=?^_`{|}~-]+(?:\.[\w!#$%&'*+/=?^_`{|}~-]+)*"
    r"@(?:[\w](?:[\w-]*[\w])?\.)+[a-zA-Z0-9](?:[\w-]*[\w])?\Z",
    re.ASCII,
)


@dataclass(frozen=True)
class Email(Match):
    """Requires a well-formed e-mail address."""

    regexp: Any = _EMAIL_PATTERN

    def default_message(self) -> str:
        return "Must be a valid email address\n"


_CHECKABLE_IP_TYPES = frozenset(
    {
        IPType.ANY,
        IPType.IPV4,
        IPType.IPV6,
        IPType.IPV4_MAPPED_IPV6,
        IPType.IPV4_CIDR,
        IPType.IPV6_CIDR,
        IPType.IPV4_MAPPED_IPV6_CIDR,
    }
)
_CIDR_BITS = re.compile(r"[+-]?[0-9]+")


def _with_cidr(text: str) -> bool:
    length = len(text)
    if text[length - 3] != "/" and text[length - 2] != "/":
        return False
    parts = text.split("/")
    if len(parts) != 2 or not _CIDR_BITS.fullmatch(parts[1]):
        return False
    return 0 <= int(parts[1]) <= 128


def _ip_type(text: str) -> IPType:
    length = len(text)
    if length < 3 or not text.isascii():
        return IPType.NONE
    rest = text[2:]
    has_dot = "." in rest
    has_colon = ":" in rest
    if has_dot and not has_colon and 7 <= length <= IPType.IPV4_CIDR:
        return IPType.IPV4_CIDR if _with_cidr(text) else IPType.IPV4
    if not has_dot and has_colon and 6 <= length <= IPType.IPV6_CIDR:
        return IPType.IPV6_CIDR if _with_cidr(text) else IPType.IPV6
    if has_dot and has_colon and 14 <= length <= IPType.IPV4_MAPPED_IPV6:
        return IPType.IPV4_MAPPED_IPV6_CIDR if _with_cidr(text) else IPType.IPV4_MAPPED_IPV6
    return IPType.NONE


def _parses_as_ip(text: str) -> bool:
    if "%" in text:
        return False
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


def _parses_as_cidr(text: str) -> bool:
    if "%" in text:
        return False
    _, _, bits = text.partition("/")
    if not (bits.isascii() and bits.isdigit()):
        return False
    try:
        ipaddress.ip_network(text, strict=False)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class IPAddr(Validator):
    """Requires an IP address of one of the given kinds."""

    valid_types: tuple = ()

    def is_satisfied(self, obj: Any) -> bool:
        if not isinstance(obj, str):
            return False
        found = _ip_type(obj)
        if found == IPType.NONE:
            return False
        for wanted in self.valid_types:
            if wanted != found and wanted != IPType.ANY:
                continue
            if found in (IPType.IPV4, IPType.IPV6, IPType.IPV4_MAPPED_IPV6):
                if _parses_as_ip(obj):
                    return True
            elif _parses_as_cidr(obj):
                return True
        return False

    def default_message(self) -> str:
        return "Must be a vaild IP address\n"


_MAC_OCTET_COUNTS = (6, 8, 20)
_HEX = frozenset("0123456789abcdefABCDEF")


def _is_hex(text: str) -> bool:
    return bool(text) and all(c in _HEX for c in text)


def _parses_as_mac(text: str) -> bool:
    if len(text) < 14:
        return False
    if text[2] in ":-":
        if (len(text) + 1) % 3 != 0 or (len(text) + 1) // 3 not in _MAC_OCTET_COUNTS:
            return False
        groups = text.split(text[2])
        return all(len(g) == 2 and _is_hex(g) for g in groups)
    if text[4] == ".":
        if (len(text) + 1) % 5 != 0 or 2 * (len(text) + 1) // 5 not in _MAC_OCTET_COUNTS:
            return False
        groups = text.split(".")
        return all(len(g) == 4 and _is_hex(g) for g in groups)
    return False


@dataclass(frozen=True)
class MacAddr(Validator):
    """Requires a hardware (MAC) address."""

    def is_satisfied(self, obj: Any) -> bool:
        return isinstance(obj, str) and _parses_as_mac(obj)

    def default_message(self) -> str:
        return "Must be a vaild MAC address\n"


_DOMAIN_PATTERN = regex.compile(
    r"^(([a-zA-Z0-9\p{L}-]{1,63}\.)?(xn--)?[a-zA-Z0-9\p{L}]+(-[a-zA-Z0-9\p{L}]+)*\.)+"
    r"[a-zA-Z\p{L}]{2,63}\Z"
)


@dataclass(frozen=True)
class Domain(Validator):
    """Requires a domain name."""

    def is_satisfied(self, obj: Any) -> bool:
        if not isinstance(obj, str) or not obj:
            return False
        if len(obj.encode("utf-8")) > 253:
            return False
        if obj[0] == "." or obj[-1] == ".":
            return False
        return _DOMAIN_PATTERN.search(obj) is not None

    def default_message(self) -> str:
        return "Must be a vaild domain address\n"


_URL_PATTERN = regex.compile(
    r"^((((https?|ftps?|gopher|telnet|nntp)://)|(mailto:|news:))"
    r"(%[0-9A-Fa-f]{2}|[-()_.!~*';/?:@#&=+$,A-Za-z0-9\p{L}])+)"
    r"([).!';/?:,][ \t])?\Z"
)


@dataclass(frozen=True)
class URL(Validator):
    """Requires a URL with a known scheme."""

    def is_satisfied(self, obj: Any) -> bool:
        return isinstance(obj, str) and _URL_PATTERN.search(obj) is not None

    def default_message(self) -> str:
        return "Must be a vaild URL address\n"


def _pure_text_strict(text: str) -> bool:
    data = text.encode("utf-8", "surrogatepass")
    length = len(data)
    for i, c in enumerate(data):
        if c <= 31 and c not in (9, 10, 13):
            return False
        if c == 127:
            return False
        if c == 60:
            if 62 in data[i + 2 :]:
                return False
            seen_open = False
            n = i
            while n < length:
                if data[n] == 60 and n + 1 < length and data[n + 1] in (47, 33, 63):
                    seen_open = True
                    n += 3
                if seen_open and n < length and data[n] == 62:
                    return False
                n += 1
        if c == 38 and 59 in data[i : min(i + 64, length)]:
            return False
    return True


_WS = r"[\t\n\f\r ]"
_ELEMENT_PATTERN = re.compile(
    r"<(?P<tag>(/*" + _WS + r"*|\?*|!*)"
    r"(figcaption|expression|blockquote|plaintext|textarea|progress|optgroup|noscript"
    r"|noframes|menuitem|frameset|fieldset|!DOCTYPE|datalist|colgroup|behavior|basefont"
    r"|summary|section|isindex|details|caption|bgsound|article|address|acronym|strong"
    r"|strike|source|select|script|output|option|object|legend|keygen|ilayer|iframe"
    r"|header|footer|figure|dialog|center|canvas|button|applet|video|track|title|thead"
    r"|tfoot|tbody|table|style|small|param|meter|layer|label|input|frame|embed|blink"
    r"|audio|aside|alert|time|span|samp|ruby|meta|menu|mark|main|link|html|head|form"
    r"|font|code|cite|body|base|area|abbr|xss|xml|wbr|var|svg|sup|sub|pre|nav|map|kbd"
    r"|ins|img|div|dir|dfn|del|col|big|bdo|bdi|!--|ul|tt|tr|th|td|rt|rp|ol|li|hr|em|dt"
    r"|dl|dd|br|u|s|q|p|i|b|a|(h[0-9]+)))([^><]*)([><]*)",
    re.IGNORECASE | re.MULTILINE,
)
_URLENCODED_PATTERN = re.compile(r"%[0-9a-fA-F]+")
_CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]+")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _pure_text_normal(text: str) -> bool:
    decoded = html.unescape(text)
    if _URLENCODED_PATTERN.search(decoded) and not _BAD_ESCAPE.search(decoded):
        decoded = unquote_plus(decoded)
    if _ELEMENT_PATTERN.search(decoded):
        return False
    return _CONTROL_CHAR_PATTERN.search(decoded) is None


@dataclass(frozen=True)
class PureText(Validator):
    """Requires text free of markup and invisible control characters."""

    mode: int = PureTextMode.STRICT

    def is_satisfied(self, obj: Any) -> bool:
        if not isinstance(obj, str):
            return False
        if self.mode == PureTextMode.STRICT:
            return _pure_text_strict(obj)
        if self.mode == PureTextMode.NORMAL:
            return _pure_text_normal(obj)
        return False

    def default_message(self) -> str:
        return "Must be a vaild Text\n"


_DENY_FILE_NAME_CHARS = r"[\x00-\x1f|\x21-\x2c|\x3b-\x40|\x5b-\x5e|\x60|\x7b-\x7f]+"
_CHECK_ALLOW_RELATIVE_PATH = re.compile("(" + _DENY_FILE_NAME_CHARS + ")", re.MULTILINE)
_CHECK_DENY_RELATIVE_PATH = re.compile(
    "(" + _DENY_FILE_NAME_CHARS + r"|\x2e\x2e\x2f+)", re.MULTILINE
)


@dataclass(frozen=True)
class FilePath(Validator):
    """Requires a sanitary file name, or relative path if allowed."""

    mode: int = FilePathMode.ONLY_FILENAME

    def is_satisfied(self, obj: Any) -> bool:
        if not isinstance(obj, str):
            return False
        if self.mode == FilePathMode.ALLOW_RELATIVE_PATH:
            return _CHECK_ALLOW_RELATIVE_PATH.search(obj) is None
        return _CHECK_DENY_RELATIVE_PATH.search(obj) is None

    def default_message(self) -> str:
        return "Must be a unsanitary string\n"


def valid_required() -> Required:
    return Required()


def valid_min(minimum: int) -> Min:
    return valid_min_float(float(minimum))


def valid_min_float(minimum: float) -> Min:
    return Min(float(minimum))


def valid_max(maximum: int) -> Max:
    return valid_max_float(float(maximum))


def valid_max_float(maximum: float) -> Max:
    return Max(float(maximum))


def valid_range(minimum: int, maximum: int) -> Range:
    return valid_range_float(float(minimum), float(maximum))


def valid_range_float(minimum: float, maximum: float) -> Range:
    return Range(float(minimum), float(maximum))


def valid_min_size(minimum: int) -> MinSize:
    return MinSize(minimum)


def valid_max_size(maximum: int) -> MaxSize:
    return MaxSize(maximum)


def valid_length(n: int) -> Length:
    return Length(n)


def valid_match(pattern: Union[str, Pattern]) -> Match:
    return Match(pattern)


def valid_email() -> Email:
    return Email()


def valid_ip_addr(*args: int) -> IPAddr:
    """IP validator for the given kinds; any unknown kind makes it accept nothing."""
    if any(kind not in _CHECKABLE_IP_TYPES for kind in args):
        return IPAddr((IPType.NONE,))
    return IPAddr(tuple(IPType(kind) for kind in args))


def valid_mac_addr() -> MacAddr:
    return MacAddr()


def valid_domain() -> Domain:
    return Domain()


def valid_url() -> URL:
    return URL()


def valid_pure_text(mode: int) -> PureText:
    """Pure-text validator; an unknown mode falls back to strict."""
    if mode not in (PureTextMode.NORMAL, PureTextMode.STRICT):
        mode = PureTextMode.STRICT
    return PureText(PureTextMode(mode))


def valid_file_path(mode: int) -> FilePath:
    """File-path validator; an unknown mode falls back to file names only."""
    if mode not in (FilePathMode.ONLY_FILENAME, FilePathMode.ALLOW_RELATIVE_PATH):
        mode = FilePathMode.ONLY_FILENAME
    return FilePath(FilePathMode(mode))