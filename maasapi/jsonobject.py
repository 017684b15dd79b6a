"""Typed access to decoded JSON values returned by the MAAS API."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .maasobject import MAASObject

RESOURCE_URI = "resource_uri"

_TYPE_NAMES = {
    str: "string",
    float: "float64",
    bool: "bool",
    dict: "map",
    list: "array",
    type(None): "nil",
}


class ConversionError(ValueError):
    """Raised when a JSON value is read as a type it does not hold."""


def _describe(value: Any) -> str:
    return _TYPE_NAMES.get(type(value), type(value).__name__)


@dataclass(frozen=True)
class JSONObject:
    """A decoded JSON value, optionally carrying the raw bytes it came from.

    ``value`` is one of ``str``, ``float``, ``bool``, ``dict`` of
    :class:`JSONObject`, ``list`` of :class:`JSONObject`, or ``None``.
    ``raw`` holds the original bytes for objects parsed straight from a
    response; ``null`` records that the parsed JSON was ``null``.
    """

    value: Any = None
    raw: bytes | None = None
    client: Any = None
    null: bool = False

    def _fail(self, wanted: str) -> ConversionError:
        return ConversionError(f"Requested {wanted}, got {_describe(self.value)}.")

    def is_nil(self) -> bool:
        """Tell whether this is a JSON null.

        Raw data that was not JSON is not nil, while a parsed ``null`` is,
        even though its bytes remain available.
        """
        if self.value is not None:
            return False
        if self.raw is None:
            return True
        return self.null

    def get_string(self) -> str:
        if not isinstance(self.value, str):
            raise self._fail("string")
        return self.value

    def get_float64(self) -> float:
        if not isinstance(self.value, float):
            raise self._fail("float64")
        return self.value

    def get_map(self) -> dict[str, JSONObject]:
        if not isinstance(self.value, dict):
            raise self._fail("map")
        return dict(self.value)

    def get_array(self) -> list[JSONObject]:
        if not isinstance(self.value, list):
            raise self._fail("array")
        return list(self.value)

    def get_bool(self) -> bool:
        if not isinstance(self.value, bool):
            raise self._fail("bool")
        return self.value

    def get_bytes(self) -> bytes:
        """Return the raw bytes this object was parsed from."""
        if self.raw is None:
            raise self._fail("bytes")
        return self.raw

    def get_maas_object(self) -> MAASObject:
        """Read this value as a MAAS object: a map holding a resource URI."""
        from .maasobject import MAASObject, _extract_uri

        attrs = self.get_map()
        uri = _extract_uri(attrs)
        return MAASObject(attrs, self.client, uri)

    def to_plain(self) -> Any:
        """Return the value as plain Python data (dicts, lists, scalars)."""
        if isinstance(self.value, dict):
            return {key: item.to_plain() for key, item in self.value.items()}
        if isinstance(self.value, list):
            return [item.to_plain() for item in self.value]
        return self.value

    def to_json(self) -> str:
        """Serialise the value back to indented JSON text."""
        if self.is_nil():
            return "null"
        return json.dumps(self.to_plain(), indent=2, ensure_ascii=False)


def maasify(client: Any, value: Any) -> JSONObject:
    """Wrap a decoded JSON structure, recursively, in :class:`JSONObject`."""
    if value is None:
        return JSONObject(null=True)
    if isinstance(value, (str, bool, float)):
        return JSONObject(value=value)
    if isinstance(value, int):
        return JSONObject(value=float(value))
    if isinstance(value, dict):
        converted = {key: maasify(client, item) for key, item in value.items()}
        return JSONObject(value=converted, client=client)
    if isinstance(value, list):
        return JSONObject(value=[maasify(client, item) for item in value])
    raise TypeError(f"Unknown JSON type, can't be converted to JSONObject: {value!r}")


def _number(text: str) -> float:
    number = float(text)
    if math.isinf(number):
        raise OverflowError(f"number {text} out of range")
    return number


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def parse(client: Any, data: bytes) -> JSONObject:
    """Parse a response body.

    Bodies that are not JSON are kept as raw bytes only.
    """
    if data is None:
        raise TypeError("parse() called with nil input")
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    text = raw.decode("utf-8", errors="replace")
    try:
        decoded = json.loads(
            text,
            parse_float=_number,
            parse_int=_number,
            parse_constant=_reject_constant,
        )
    except ValueError:
        return JSONObject(value=None, raw=raw, client=client)
    obj = maasify(client, decoded)
    return JSONObject(value=obj.value, raw=raw, client=client, null=obj.null)


def from_value(client: Any, value: Any) -> JSONObject:
    """Serialise plain Python data to JSON and parse it back."""
    encoded = json.dumps(value, indent=2, ensure_ascii=False).encode("utf-8")
    return parse(client, encoded)