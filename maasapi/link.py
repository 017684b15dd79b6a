"""Links between network interfaces and subnets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import DeserializationError, MaasError
from .model import Subnet, read_subnet
from .schema import (
    OMIT,
    TWO_DOT_OH,
    SchemaError,
    Version,
    any_value,
    check_fields,
    check_list_of_maps,
    force_int,
    select_reader,
    string,
    string_map,
)


@dataclass(frozen=True)
class Link:
    """A network link between an interface and a subnet.

    ``ip_address`` is empty when no address has been assigned, and
    ``subnet`` is ``None`` when the link names no subnet.
    """

    id: int = 0
    mode: str = ""
    subnet: Subnet | None = None
    ip_address: str = ""


def read_link(source: Any) -> Link:
    """Build a :class:`Link` from a decoded response map."""
    fields = {
        "id": force_int(),
        "mode": string(),
        "subnet": string_map(any_value()),
        "ip_address": string(),
    }
    defaults = {"ip_address": "", "subnet": OMIT}
    try:
        valid = check_fields(source, fields, defaults)
    except SchemaError as error:
        raise DeserializationError(f"link 2.0 schema check failed: {error}") from error
    subnet = read_subnet(valid["subnet"]) if "subnet" in valid else None
    return Link(
        id=valid["id"],
        mode=valid["mode"],
        subnet=subnet,
        ip_address=valid["ip_address"],
    )


_READERS = {TWO_DOT_OH: read_link}


def read_link_list(items: list[Any], reader: Any = read_link) -> list[Link]:
    """Read each map in ``items`` as a link, naming the failing index."""
    links = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise DeserializationError(
                f"unexpected value for link {index}, {type(item).__name__}"
            )
        try:
            links.append(reader(item))
        except MaasError as error:
            raise DeserializationError(f"link {index}: {error}") from error
    return links


def read_links(version: Version, source: Any) -> list[Link]:
    """Read a list of links in the format of API ``version``."""
    try:
        items = check_list_of_maps(source)
    except SchemaError as error:
        raise DeserializationError(f"link base schema check failed: {error}") from error
    reader = select_reader(_READERS, version, "link")
    return read_link_list(items, reader)