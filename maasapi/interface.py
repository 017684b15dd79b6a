"""Network interfaces on machines and devices, and their subnet links."""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Any

from .errors import (
    BadRequestError,
    CannotCompleteError,
    DeserializationError,
    MaasError,
    NoMatchError,
    NotValidError,
    PermissionDeniedError,
    translate_server_error,
)
from .link import Link, read_link, read_link_list
from .model import Vlan, read_vlan
from .schema import (
    TWO_DOT_OH,
    SchemaError,
    Version,
    any_value,
    boolean,
    check_fields,
    check_list_of_maps,
    check_map,
    force_int,
    list_of,
    nullable,
    select_reader,
    string,
    string_map,
)


class InterfaceLinkMode(str, Enum):
    """How an interface gets its address on a linked subnet."""

    DHCP = "DHCP"
    """Bring the interface up with DHCP; only one subnet may use DHCP."""
    STATIC = "STATIC"
    """Bring the interface up with a static address on the subnet."""
    LINK_UP = "LINK_UP"
    """Bring the interface up on the subnet without assigning an address."""


@dataclass
class UpdateInterfaceArgs:
    """Values to change on an interface; empty values are left as they are."""

    name: str = ""
    mac_address: str = ""
    vlan: Vlan | None = None

    @property
    def vlan_id(self) -> int:
        return 0 if self.vlan is None else self.vlan.id


@dataclass
class LinkSubnetArgs:
    """Parameters for :meth:`NetworkInterface.link_subnet`.

    ``mode`` and ``subnet`` are required. ``ip_address`` and
    ``default_gateway`` may only be given with the static mode.
    """

    mode: InterfaceLinkMode | str | None = None
    subnet: Any = None
    ip_address: str = ""
    default_gateway: bool = False

    def validate(self) -> None:
        """Raise :class:`NotValidError` if the arguments are inconsistent."""
        mode = self._checked_mode()
        if self.subnet is None:
            raise NotValidError("missing Subnet not valid")
        if self.ip_address and mode is not InterfaceLinkMode.STATIC:
            raise NotValidError(
                "setting IP Address when Mode is not LinkModeStatic not valid"
            )
        if self.default_gateway and mode is not InterfaceLinkMode.STATIC:
            raise NotValidError(
                f"specifying DefaultGateway for Mode {json.dumps(mode.value)} not valid"
            )

    def _checked_mode(self) -> InterfaceLinkMode:
        if self.mode is None or self.mode == "":
            raise NotValidError("missing Mode not valid")
        try:
            return InterfaceLinkMode(self.mode)
        except ValueError:
            raise NotValidError(
                f"unknown Mode value ({json.dumps(str(self.mode))}) not valid"
            ) from None


_UPDATE_ERRORS = {
    HTTPStatus.NOT_FOUND: NoMatchError,
    HTTPStatus.FORBIDDEN: PermissionDeniedError,
}
_DELETE_ERRORS = _UPDATE_ERRORS
_LINK_ERRORS = {
    HTTPStatus.NOT_FOUND: BadRequestError,
    HTTPStatus.BAD_REQUEST: BadRequestError,
    HTTPStatus.FORBIDDEN: PermissionDeniedError,
    HTTPStatus.SERVICE_UNAVAILABLE: CannotCompleteError,
}
_UNLINK_ERRORS = {
    HTTPStatus.NOT_FOUND: BadRequestError,
    HTTPStatus.BAD_REQUEST: BadRequestError,
    HTTPStatus.FORBIDDEN: PermissionDeniedError,
}


@dataclass
class NetworkInterface:
    """A physical or virtual network interface.

    ``transport`` is the :class:`maasapi.model.Transport` used by the
    methods that change the interface on the controller.
    """

    id: int = 0
    name: str = ""
    type: str = ""
    enabled: bool = False
    tags: tuple[str, ...] = ()
    vlan: Vlan | None = None
    links: tuple[Link, ...] = ()
    mac_address: str = ""
    effective_mtu: int = 0
    parents: tuple[str, ...] = ()
    children: tuple[str, ...] = ()
    resource_uri: str = ""
    transport: Any = field(default=None, repr=False, compare=False)

    def _update_from(self, other: NetworkInterface) -> None:
        for item in dataclasses.fields(self):
            if item.name != "transport":
                setattr(self, item.name, getattr(other, item.name))

    def _send(
        self, errors: Mapping[int, type[MaasError]], send: Callable[..., Any], *args: Any
    ) -> Any:
        try:
            return send(*args)
        except (MaasError, OSError) as error:
            raise translate_server_error(error, errors) from error

    def _connected(self) -> Any:
        if self.transport is None:
            raise RuntimeError("interface is not attached to a controller")
        return self.transport

    def _refresh(self, source: Any) -> None:
        self._update_from(read_interface(self._connected().api_version, source))

    def update(self, args: UpdateInterfaceArgs) -> None:
        """Change the name, MAC address or VLAN; does nothing for empty args."""
        if args == UpdateInterfaceArgs():
            return
        params: dict[str, str] = {}
        if args.name:
            params["name"] = args.name
        if args.mac_address:
            params["mac_address"] = args.mac_address
        if args.vlan_id:
            params["vlan"] = str(args.vlan_id)
        transport = self._connected()
        source = self._send(_UPDATE_ERRORS, transport.put, self.resource_uri, params)
        self._refresh(source)

    def delete(self) -> None:
        """Remove this interface from the controller."""
        transport = self._connected()
        self._send(_DELETE_ERRORS, transport.delete, self.resource_uri)

    def link_subnet(self, args: LinkSubnetArgs) -> None:
        """Make this interface available on a subnet."""
        args.validate()
        mode = InterfaceLinkMode(args.mode)
        params = {"mode": mode.value, "subnet": str(args.subnet.id)}
        if args.ip_address:
            params["ip_address"] = args.ip_address
        if args.default_gateway:
            params["default_gateway"] = "true"
        transport = self._connected()
        source = self._send(
            _LINK_ERRORS, transport.post, self.resource_uri, "link_subnet", params
        )
        self._refresh(source)

    def unlink_subnet(self, subnet: Any) -> None:
        """Remove the link to ``subnet``, releasing any address it held."""
        if subnet is None:
            raise NotValidError("missing Subnet not valid")
        link = self._link_for_subnet(subnet)
        if link is None:
            raise NotValidError("unlinked Subnet not valid")
        transport = self._connected()
        source = self._send(
            _UNLINK_ERRORS,
            transport.post,
            self.resource_uri,
            "unlink_subnet",
            {"id": str(link.id)},
        )
        self._refresh(source)

    def _link_for_subnet(self, subnet: Any) -> Link | None:
        return next(
            (
                link
                for link in self.links
                if link.subnet is not None and link.subnet.id == subnet.id
            ),
            None,
        )


def parse_interface(source: Any) -> NetworkInterface:
    """Build a :class:`NetworkInterface` from a decoded response map."""
    fields = {
        "resource_uri": string(),
        "id": force_int(),
        "name": string(),
        "type": string(),
        "enabled": boolean(),
        "tags": nullable(list_of(string())),
        "vlan": nullable(string_map(any_value())),
        "links": list_of(string_map(any_value())),
        "mac_address": nullable(string()),
        "effective_mtu": force_int(),
        "parents": list_of(string()),
        "children": list_of(string()),
    }
    try:
        valid = check_fields(source, fields, {"mac_address": ""})
    except SchemaError as error:
        raise DeserializationError(
            f"interface 2.0 schema check failed: {error}"
        ) from error
    vlan = read_vlan(valid["vlan"]) if valid["vlan"] is not None else None
    return NetworkInterface(
        id=valid["id"],
        name=valid["name"],
        type=valid["type"],
        enabled=valid["enabled"],
        tags=tuple(valid["tags"] or ()),
        vlan=vlan,
        links=tuple(read_link_list(valid["links"], read_link)),
        mac_address=valid["mac_address"] or "",
        effective_mtu=valid["effective_mtu"],
        parents=tuple(valid["parents"]),
        children=tuple(valid["children"]),
        resource_uri=valid["resource_uri"],
    )


_READERS = {TWO_DOT_OH: parse_interface}


def read_interface_list(
    items: list[Any], reader: Callable[[Any], NetworkInterface] = parse_interface
) -> list[NetworkInterface]:
    """Read each map in ``items`` as an interface, naming the failing index."""
    interfaces = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise DeserializationError(
                f"unexpected value for interface {index}, {type(item).__name__}"
            )
        try:
            interfaces.append(reader(item))
        except MaasError as error:
            raise DeserializationError(f"interface {index}: {error}") from error
    return interfaces


def read_interface(version: Version, source: Any) -> NetworkInterface:
    """Read one interface in the format of API ``version``."""
    reader = select_reader(_READERS, version, "interface")
    try:
        valid = check_map(source)
    except SchemaError as error:
        raise DeserializationError(
            f"interface base schema check failed: {error}"
        ) from error
    return reader(valid)


def read_interfaces(version: Version, source: Any) -> list[NetworkInterface]:
    """Read a list of interfaces in the format of API ``version``."""
    reader = select_reader(_READERS, version, "interface")
    try:
        items = check_list_of_maps(source)
    except SchemaError as error:
        raise DeserializationError(
            f"interface base schema check failed: {error}"
        ) from error
    return read_interface_list(items, reader)