"""Shape checks and coercions for decoded API responses, and API versions."""

from __future__ import annotations

import functools
import json
import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from .errors import UnsupportedVersionError

Checker = Callable[[Any, str], Any]
T = TypeVar("T")


class SchemaError(ValueError):
    """A value does not match the expected shape."""

    def __init__(self, expected: str, got: str, path: str = "") -> None:
        prefix = f"{path}: " if path else ""
        super().__init__(f"{prefix}expected {expected}, got {got}")
        self.expected = expected
        self.got = got
        self.path = path


class _Omit:
    def __repr__(self) -> str:
        return "OMIT"


OMIT = _Omit()
"""A default that leaves a missing field out of the result altogether."""


def _describe(value: Any) -> str:
    if value is None:
        return "nothing"
    if isinstance(value, bool):
        return f"bool({'true' if value else 'false'})"
    if isinstance(value, int):
        return f"int({value})"
    if isinstance(value, float):
        return f"float64({value!r})"
    if isinstance(value, str):
        return f"string({json.dumps(value, ensure_ascii=False)})"
    if isinstance(value, Mapping):
        return f"map({value!r})"
    if isinstance(value, (list, tuple)):
        return f"list({value!r})"
    return f"{type(value).__name__}({value!r})"


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def string() -> Checker:
    """Accept strings only."""

    def check(value: Any, path: str = "") -> str:
        if isinstance(value, str):
            return value
        raise SchemaError("string", _describe(value), path)

    return check


def _to_int(value: Any, path: str, expected: str) -> int:
    if isinstance(value, bool):
        raise SchemaError(expected, _describe(value), path)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value):
            return int(value)
        raise SchemaError(expected, _describe(value), path)
    if isinstance(value, str):
        try:
            return int(value.strip(), 0)
        except ValueError:
            pass
        try:
            number = float(value)
        except ValueError:
            raise SchemaError(expected, _describe(value), path) from None
        if math.isfinite(number):
            return int(number)
    raise SchemaError(expected, _describe(value), path)


def force_int() -> Checker:
    """Accept numbers, or strings holding numbers, truncated to ``int``."""

    def check(value: Any, path: str = "") -> int:
        return _to_int(value, path, "number")

    return check


def force_uint() -> Checker:
    """Like :func:`force_int`, but refuse negative values."""

    def check(value: Any, path: str = "") -> int:
        number = _to_int(value, path, "number")
        if number < 0:
            raise SchemaError("uint", _describe(value), path)
        return number

    return check


def boolean() -> Checker:
    """Accept booleans only."""

    def check(value: Any, path: str = "") -> bool:
        if isinstance(value, bool):
            return value
        raise SchemaError("bool", _describe(value), path)

    return check


def any_value() -> Checker:
    """Accept anything; mappings and lists come back as shallow copies."""

    def check(value: Any, path: str = "") -> Any:
        if isinstance(value, Mapping):
            return dict(value)
        if isinstance(value, (list, tuple)):
            return list(value)
        return value

    return check


def nullable(checker: Checker) -> Checker:
    """Accept ``None`` as well as whatever ``checker`` accepts."""

    def check(value: Any, path: str = "") -> Any:
        if value is None:
            return None
        return checker(value, path)

    return check


def list_of(checker: Checker) -> Checker:
    """Accept a list whose every element ``checker`` accepts."""

    def check(value: Any, path: str = "") -> list[Any]:
        if not isinstance(value, (list, tuple)):
            raise SchemaError("list", _describe(value), path)
        return [checker(item, f"{path}[{index}]") for index, item in enumerate(value)]

    return check


def string_map(checker: Checker) -> Checker:
    """Accept a mapping with string keys whose values ``checker`` accepts."""

    def check(value: Any, path: str = "") -> dict[str, Any]:
        if not isinstance(value, Mapping):
            raise SchemaError("map", _describe(value), path)
        result = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise SchemaError("string", _describe(key), path)
            result[key] = checker(item, _join(path, key))
        return result

    return check


def check_fields(
    source: Any,
    fields: Mapping[str, Checker],
    defaults: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Check the named fields of a mapping and return them coerced.

    A missing field takes its default, if one is given (and is dropped if
    the default is :data:`OMIT`); otherwise it is checked as ``None``.
    Fields not named are left out of the result.
    """
    if not isinstance(source, Mapping):
        raise SchemaError("map", _describe(source), "")
    defaults = defaults or {}
    result: dict[str, Any] = {}
    for name, checker in fields.items():
        if name in source:
            value = source[name]
        elif name in defaults:
            value = defaults[name]
            if value is OMIT:
                continue
        else:
            value = None
        result[name] = checker(value, name)
    return result


def check_list_of_maps(source: Any) -> list[dict[str, Any]]:
    """Check that ``source`` is a list of string-keyed mappings."""
    return list_of(string_map(any_value()))(source, "")


def check_map(source: Any) -> dict[str, Any]:
    """Check that ``source`` is a string-keyed mapping."""
    return string_map(any_value())(source, "")


_VERSION = re.compile(r"^(\d{1,9})\.(\d{1,9})(?:\.|-([a-z]+))(\d{1,9})(?:\.(\d{1,9}))?$")


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """A controller API version such as ``2.1.9`` or ``2.0-beta3``."""

    major: int
    minor: int
    patch: int = 0
    tag: str = ""
    build: int = 0

    def _key(self) -> tuple[Any, ...]:
        return (self.major, self.minor, self.tag == "", self.tag, self.patch, self.build)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        if self.tag:
            text = f"{self.major}.{self.minor}-{self.tag}{self.patch}"
        else:
            text = f"{self.major}.{self.minor}.{self.patch}"
        if self.build:
            text += f".{self.build}"
        return text


ZERO = Version(0, 0, 0)
TWO_DOT_OH = Version(2, 0, 0)


def parse_version(text: str) -> Version:
    """Parse ``major.minor.patch[.build]`` or ``major.minor-tagpatch[.build]``."""
    match = _VERSION.match(text)
    if match is None:
        raise ValueError(f"invalid version {text!r}")
    major, minor, tag, patch, build = match.groups()
    return Version(int(major), int(minor), int(patch), tag or "", int(build or 0))


def select_reader(readers: Mapping[Version, T], version: Version, kind: str) -> T:
    """Pick the reader for the newest format not newer than ``version``."""
    candidates = [known for known in readers if ZERO < known <= version]
    if not candidates:
        raise UnsupportedVersionError(f"no {kind} read func for version {version}")
    return readers[max(candidates)]