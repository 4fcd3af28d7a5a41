"""Validation context: collects validation errors and carries them between requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Pattern, Union
from urllib.parse import quote_plus

from gatekeep.util import parse_key_value_cookie
from gatekeep.validators import (
    URL,
    Domain,
    Email,
    FilePath,
    IPAddr,
    Length,
    MacAddr,
    Match,
    Max,
    MaxSize,
    Min,
    MinSize,
    PureText,
    Range,
    Required,
    Validator,
)

ERRORS_COOKIE_SUFFIX = "_ERRORS"

Translator = Callable[..., str]


def _format(message: str, args: tuple) -> str:
    return message % args if args else message


@dataclass
class ValidationError:
    """A failed validation: the message shown and the key it belongs to."""

    message: str = ""
    key: str = ""

    def __str__(self) -> str:
        return self.message


@dataclass
class ValidationResult:
    """Outcome of one validation, with the error it recorded if it failed."""

    error: Optional[ValidationError] = None
    ok: bool = False
    locale: str = ""
    translator: Optional[Translator] = None

    def key(self, key: str) -> "ValidationResult":
        """Set the error's key; returns itself for chaining."""
        if self.error is not None:
            self.error.key = key
        return self

    def message(self, message: str, *args: Any) -> "ValidationResult":
        """Set the error's message, %-formatted with any arguments."""
        if self.error is not None:
            self.error.message = _format(message, args)
        return self

    def message_key(self, message: str, *args: Any) -> "ValidationResult":
        """Set the error's message from a message key for the locale."""
        if self.error is None:
            return self
        if self.translator is not None:
            self.error.message = self.translator(self.locale, message, *args)
        else:
            self.message(message, *args)
        return self


@dataclass
class Validation:
    """Runs validators and collects the errors of those that fail."""

    errors: list[ValidationError] = field(default_factory=list)
    locale: str = ""
    translator: Optional[Translator] = None
    _kept: bool = field(default=False, repr=False)

    @property
    def kept(self) -> bool:
        """True if the errors are to be carried over to the next request."""
        return self._kept

    def keep(self) -> None:
        """Carry the errors over to the next request."""
        self._kept = True

    def clear(self) -> None:
        """Remove all errors."""
        self.errors = []

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def error_map(self) -> dict[str, ValidationError]:
        """Errors by key; the first error recorded for a key wins."""
        result: dict[str, ValidationError] = {}
        for err in self.errors:
            result.setdefault(err.key, err)
        return result

    def error(self, message: str, *args: Any) -> ValidationResult:
        """Record an error with the given message."""
        result = self.validation_result(False).message(message, *args)
        self.errors.append(result.error)
        return result

    def error_key(self, message: str, *args: Any) -> ValidationResult:
        """Record an error whose message is looked up from a message key."""
        result = self.validation_result(False).message_key(message, *args)
        self.errors.append(result.error)
        return result

    def validation_result(self, ok: bool) -> ValidationResult:
        """A fresh result; a failed one carries an empty error and the translator."""
        if ok:
            return ValidationResult(ok=True)
        return ValidationResult(
            error=ValidationError(),
            ok=False,
            locale=self.locale,
            translator=self.translator,
        )

    def apply(self, validator: Validator, obj: Any) -> ValidationResult:
        """Run a validator, recording its default message if it fails."""
        if validator.is_satisfied(obj):
            return self.validation_result(True)
        err = ValidationError(message=validator.default_message())
        self.errors.append(err)
        result = self.validation_result(False)
        result.error = err
        return result

    def check(self, obj: Any, *args: Validator) -> Optional[ValidationResult]:
        """Apply validators in order; the first failure, or the last success, is returned."""
        result = None
        for validator in args:
            result = self.apply(validator, obj)
            if not result.ok:
                return result
        return result

    def required(self, obj: Any) -> ValidationResult:
        return self.apply(Required(), obj)

    def min(self, n: int, minimum: int) -> ValidationResult:
        return self.min_float(float(n), float(minimum))

    def min_float(self, n: float, minimum: float) -> ValidationResult:
        return self.apply(Min(float(minimum)), n)

    def max(self, n: int, maximum: int) -> ValidationResult:
        return self.max_float(float(n), float(maximum))

    def max_float(self, n: float, maximum: float) -> ValidationResult:
        return self.apply(Max(float(maximum)), n)

    def range(self, n: int, minimum: int, maximum: int) -> ValidationResult:
        return self.range_float(float(n), float(minimum), float(maximum))

    def range_float(self, n: float, minimum: float, maximum: float) -> ValidationResult:
        return self.apply(Range(float(minimum), float(maximum)), n)

    def min_size(self, obj: Any, minimum: int) -> ValidationResult:
        return self.apply(MinSize(minimum), obj)

    def max_size(self, obj: Any, maximum: int) -> ValidationResult:
        return self.apply(MaxSize(maximum), obj)

    def length(self, obj: Any, n: int) -> ValidationResult:
        return self.apply(Length(n), obj)

    def match(self, value: str, pattern: Union[str, Pattern]) -> ValidationResult:
        return self.apply(Match(pattern), value)

    def email(self, value: str) -> ValidationResult:
        return self.apply(Email(), value)

    def ip_addr(self, value: str, *args: int) -> ValidationResult:
        return self.apply(IPAddr(tuple(args)), value)

    def mac_addr(self, value: str) -> ValidationResult:
        return self.apply(MacAddr(), value)

    def domain(self, value: str) -> ValidationResult:
        return self.apply(Domain(), value)

    def url(self, value: str) -> ValidationResult:
        return self.apply(URL(), value)

    def pure_text(self, value: str, mode: int) -> ValidationResult:
        return self.apply(PureText(mode), value)

    def file_path(self, value: str, mode: int) -> ValidationResult:
        return self.apply(FilePath(mode), value)


def encode_validation_errors(validation: Validation) -> str:
    """Escaped cookie value holding the kept errors, or "" if nothing is to be kept."""
    if not validation.kept:
        return ""
    raw = "".join(
        f"\x00{err.key}:{err.message}\x00" for err in validation.errors if err.message
    )
    return quote_plus(raw, safe="") if raw else ""


def restore_validation_errors(cookie_value: str) -> list[ValidationError]:
    """Errors stored in an escaped cookie value by :func:`encode_validation_errors`."""
    return [
        ValidationError(message=message, key=key)
        for key, message in parse_key_value_cookie(cookie_value)
    ]