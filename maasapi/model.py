"""Network and storage values shared by machines, interfaces and spaces."""

from __future__ import annotations

import json
import urllib.error
from dataclasses import dataclass
from typing import Any

from .errors import DeserializationError, ServerError
from .schema import (
    TWO_DOT_OH,
    SchemaError,
    Version,
    any_value,
    boolean,
    check_fields,
    force_int,
    list_of,
    nullable,
    string,
    string_map,
)


def _checked(kind: str, source: Any, fields: dict, defaults: dict | None = None) -> dict:
    try:
        return check_fields(source, fields, defaults)
    except SchemaError as error:
        raise DeserializationError(f"{kind} 2.0 schema check failed: {error}") from error


def _decode(body: bytes | None) -> Any:
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError as error:
        raise DeserializationError(f"invalid JSON response: {error}") from error


def _error_body(error: urllib.error.HTTPError) -> str:
    try:
        data = error.read()
    except (OSError, AttributeError, ValueError):
        data = b""
    return (data or b"").decode("utf-8", errors="replace")


@dataclass
class Transport:
    """Sends requests for resource URIs and decodes the JSON replies.

    ``client`` is a :class:`maasapi.maasobject.Client` or anything with the
    same ``get``, ``post``, ``put`` and ``delete`` methods. A non-success
    HTTP status is raised as :class:`ServerError`.
    """

    client: Any
    api_version: Version = TWO_DOT_OH

    def _send(self, call: Any, *args: Any) -> Any:
        try:
            body = call(*args)
        except urllib.error.HTTPError as error:
            raise ServerError(error.code, _error_body(error)) from error
        return _decode(body)

    def get(self, uri: str, operation: str = "", params: Any = None) -> Any:
        return self._send(self.client.get, uri, operation, params)

    def post(self, uri: str, operation: str, params: Any = None) -> Any:
        return self._send(self.client.post, uri, operation, params, None)

    def put(self, uri: str, params: Any = None) -> Any:
        return self._send(self.client.put, uri, params)

    def delete(self, uri: str) -> None:
        self._send(self.client.delete, uri)


@dataclass(frozen=True)
class Vlan:
    """A virtual LAN within a fabric."""

    id: int
    name: str
    fabric: str
    vid: int
    mtu: int
    dhcp: bool
    primary_rack: str = ""
    secondary_rack: str = ""
    resource_uri: str = ""


@dataclass(frozen=True)
class Subnet:
    """An IP range on a VLAN."""

    id: int
    name: str
    space: str
    vlan: Vlan
    gateway: str
    cidr: str
    dns_servers: tuple[str, ...] = ()
    resource_uri: str = ""


@dataclass(frozen=True)
class Zone:
    """A physical zone machines are placed in."""

    name: str
    description: str
    resource_uri: str = ""


@dataclass(frozen=True)
class FileSystem:
    """A formatted filesystem and where it is mounted."""

    type: str
    mount_point: str
    label: str
    uuid: str


def read_vlan(source: Any) -> Vlan:
    """Build a :class:`Vlan` from a decoded response map."""
    valid = _checked(
        "vlan",
        source,
        {
            "id": force_int(),
            "resource_uri": string(),
            "name": nullable(string()),
            "fabric": string(),
            "vid": force_int(),
            "mtu": force_int(),
            "dhcp_on": boolean(),
            "primary_rack": nullable(string()),
            "secondary_rack": nullable(string()),
        },
        {"name": "", "primary_rack": "", "secondary_rack": ""},
    )
    return Vlan(
        id=valid["id"],
        name=valid["name"] or "",
        fabric=valid["fabric"],
        vid=valid["vid"],
        mtu=valid["mtu"],
        dhcp=valid["dhcp_on"],
        primary_rack=valid["primary_rack"] or "",
        secondary_rack=valid["secondary_rack"] or "",
        resource_uri=valid["resource_uri"],
    )


def read_subnet(source: Any) -> Subnet:
    """Build a :class:`Subnet`, with its VLAN, from a decoded response map."""
    valid = _checked(
        "subnet",
        source,
        {
            "resource_uri": string(),
            "id": force_int(),
            "name": string(),
            "space": string(),
            "gateway_ip": nullable(string()),
            "cidr": string(),
            "vlan": string_map(any_value()),
            "dns_servers": nullable(list_of(string())),
        },
    )
    return Subnet(
        id=valid["id"],
        name=valid["name"],
        space=valid["space"],
        vlan=read_vlan(valid["vlan"]),
        gateway=valid["gateway_ip"] or "",
        cidr=valid["cidr"],
        dns_servers=tuple(valid["dns_servers"] or ()),
        resource_uri=valid["resource_uri"],
    )


def read_zone(source: Any) -> Zone:
    """Build a :class:`Zone` from a decoded response map."""
    valid = _checked(
        "zone",
        source,
        {"name": string(), "description": string(), "resource_uri": string()},
    )
    return Zone(valid["name"], valid["description"], valid["resource_uri"])


def read_filesystem(source: Any) -> FileSystem:
    """Build a :class:`FileSystem` from a decoded response map."""
    valid = _checked(
        "filesystem",
        source,
        {
            "fstype": string(),
            "mount_point": nullable(string()),
            "label": nullable(string()),
            "uuid": string(),
        },
        {"mount_point": "", "label": ""},
    )
    return FileSystem(
        type=valid["fstype"],
        mount_point=valid["mount_point"] or "",
        label=valid["label"] or "",
        uuid=valid["uuid"],
    )