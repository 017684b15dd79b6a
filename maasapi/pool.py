"""Resource pools: logical groupings of machines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import DeserializationError, MaasError
from .schema import (
    TWO_DOT_OH,
    SchemaError,
    Version,
    check_fields,
    check_list_of_maps,
    select_reader,
    string,
)


@dataclass(frozen=True)
class Pool:
    """A named resource pool."""

    name: str
    description: str
    resource_uri: str = ""


def read_pool(source: Any) -> Pool:
    """Build a :class:`Pool` from a decoded response map."""
    fields = {"name": string(), "description": string(), "resource_uri": string()}
    try:
        valid = check_fields(source, fields, None)
    except SchemaError as error:
        raise DeserializationError(f"pool 2.0 schema check failed: {error}") from error
    return Pool(valid["name"], valid["description"], valid["resource_uri"])


_READERS = {TWO_DOT_OH: read_pool}


def read_pools(version: Version, source: Any) -> list[Pool]:
    """Read a list of pools in the format of API ``version``."""
    try:
        items = check_list_of_maps(source)
    except SchemaError as error:
        raise DeserializationError(f"pool base schema check failed: {error}") from error
    reader = select_reader(_READERS, version, "pool")
    pools = []
    for index, item in enumerate(items):
        try:
            pools.append(reader(item))
        except MaasError as error:
            raise DeserializationError(f"pool {index}: {error}") from error
    return pools