"""Block devices and the partitions on them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import DeserializationError, MaasError
from .model import FileSystem, read_filesystem
from .schema import (
    TWO_DOT_OH,
    SchemaError,
    Version,
    any_value,
    check_fields,
    check_list_of_maps,
    force_int,
    force_uint,
    list_of,
    nullable,
    select_reader,
    string,
    string_map,
)


@dataclass(frozen=True)
class Partition:
    """A partition of a block device, possibly holding a filesystem."""

    id: int = 0
    path: str = ""
    uuid: str = ""
    used_for: str = ""
    size: int = 0
    tags: tuple[str, ...] = ()
    filesystem: FileSystem | None = None
    resource_uri: str = ""

    @property
    def type(self) -> str:
        return "partition"


@dataclass(frozen=True)
class BlockDevice:
    """An entire block device on a machine, with its partitions."""

    id: int = 0
    name: str = ""
    model: str = ""
    id_path: str = ""
    path: str = ""
    used_for: str = ""
    uuid: str = ""
    tags: tuple[str, ...] = ()
    block_size: int = 0
    used_size: int = 0
    size: int = 0
    partitions: tuple[Partition, ...] = ()
    filesystem: FileSystem | None = None
    resource_uri: str = ""

    @property
    def type(self) -> str:
        return "blockdevice"


def _filesystem(value: Any) -> FileSystem | None:
    return read_filesystem(value) if isinstance(value, dict) else None


def read_partition(source: Any) -> Partition:
    """Build a :class:`Partition` from a decoded response map."""
    fields = {
        "resource_uri": string(),
        "id": force_int(),
        "path": string(),
        "uuid": nullable(string()),
        "used_for": string(),
        "size": force_uint(),
        "tags": list_of(string()),
        "filesystem": nullable(string_map(any_value())),
    }
    try:
        valid = check_fields(source, fields, {"tags": []})
    except SchemaError as error:
        raise DeserializationError(f"partition 2.0 schema check failed: {error}") from error
    return Partition(
        id=valid["id"],
        path=valid["path"],
        uuid=valid["uuid"] or "",
        used_for=valid["used_for"],
        size=valid["size"],
        tags=tuple(valid["tags"]),
        filesystem=_filesystem(valid["filesystem"]),
        resource_uri=valid["resource_uri"],
    )


_READERS = {TWO_DOT_OH: read_partition}


def _read_partition_list(items: list[Any], reader: Any = read_partition) -> list[Partition]:
    partitions = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise DeserializationError(
                f"unexpected value for partition {index}, {type(item).__name__}"
            )
        try:
            partitions.append(reader(item))
        except MaasError as error:
            raise DeserializationError(f"partition {index}: {error}") from error
    return partitions


def read_partitions(version: Version, source: Any) -> list[Partition]:
    """Read a list of partitions in the format of API ``version``."""
    try:
        items = check_list_of_maps(source)
    except SchemaError as error:
        raise DeserializationError(
            f"partition base schema check failed: {error}"
        ) from error
    reader = select_reader(_READERS, version, "partition")
    return _read_partition_list(items, reader)


def read_block_device(source: Any) -> BlockDevice:
    """Build a :class:`BlockDevice`, with its partitions, from a decoded map."""
    fields = {
        "resource_uri": string(),
        "id": force_int(),
        "name": string(),
        "model": nullable(string()),
        "id_path": nullable(string()),
        "path": string(),
        "used_for": string(),
        "uuid": nullable(string()),
        "tags": list_of(string()),
        "block_size": force_uint(),
        "used_size": force_uint(),
        "size": force_uint(),
        "filesystem": nullable(string_map(any_value())),
        "partitions": list_of(string_map(any_value())),
    }
    defaults = {
        "model": "",
        "id_path": "",
        "uuid": "",
        "tags": [],
        "filesystem": None,
        "partitions": [],
    }
    try:
        valid = check_fields(source, fields, defaults)
    except SchemaError as error:
        raise DeserializationError(
            f"blockdevice 2.0 schema check failed: {error}"
        ) from error
    return BlockDevice(
        id=valid["id"],
        name=valid["name"],
        model=valid["model"] or "",
        id_path=valid["id_path"] or "",
        path=valid["path"],
        used_for=valid["used_for"],
        uuid=valid["uuid"] or "",
        tags=tuple(valid["tags"]),
        block_size=valid["block_size"],
        used_size=valid["used_size"],
        size=valid["size"],
        partitions=tuple(_read_partition_list(valid["partitions"])),
        filesystem=_filesystem(valid["filesystem"]),
        resource_uri=valid["resource_uri"],
    )