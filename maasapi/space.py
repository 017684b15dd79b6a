"""Spaces: named collections of subnets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import DeserializationError, MaasError
from .model import Subnet, read_subnet
from .schema import (
    TWO_DOT_OH,
    SchemaError,
    Version,
    any_value,
    check_fields,
    check_list_of_maps,
    force_int,
    list_of,
    select_reader,
    string,
    string_map,
)


@dataclass(frozen=True)
class Space:
    """A named collection of subnets."""

    id: int
    name: str
    subnets: tuple[Subnet, ...] = ()
    resource_uri: str = ""


def _read_subnets(items: list[Any]) -> list[Subnet]:
    subnets = []
    for index, item in enumerate(items):
        try:
            subnets.append(read_subnet(item))
        except MaasError as error:
            raise DeserializationError(f"subnet {index}: {error}") from error
    return subnets


def read_space(source: Any) -> Space:
    """Build a :class:`Space`, with its subnets, from a decoded response map."""
    fields = {
        "resource_uri": string(),
        "id": force_int(),
        "name": string(),
        "subnets": list_of(string_map(any_value())),
    }
    try:
        valid = check_fields(source, fields, None)
    except SchemaError as error:
        raise DeserializationError(f"space 2.0 schema check failed: {error}") from error
    return Space(
        id=valid["id"],
        name=valid["name"],
        subnets=tuple(_read_subnets(valid["subnets"])),
        resource_uri=valid["resource_uri"],
    )


_READERS = {TWO_DOT_OH: read_space}


def read_spaces(version: Version, source: Any) -> list[Space]:
    """Read a list of spaces in the format of API ``version``."""
    try:
        items = check_list_of_maps(source)
    except SchemaError as error:
        raise DeserializationError(f"space base schema check failed: {error}") from error
    reader = select_reader(_READERS, version, "space")
    spaces = []
    for index, item in enumerate(items):
        try:
            spaces.append(reader(item))
        except MaasError as error:
            raise DeserializationError(f"space {index}: {error}") from error
    return spaces