"""Machines managed by a MAAS controller."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

from .errors import (
    BadRequestError,
    CannotCompleteError,
    DeserializationError,
    MaasError,
    NotValidError,
    PermissionDeniedError,
    translate_server_error,
)
from .interface import NetworkInterface, parse_interface, read_interface_list
from .model import Subnet, Vlan, Zone, read_zone
from .partition import BlockDevice, Partition, read_block_device
from .pool import Pool, read_pool
from .schema import (
    TWO_DOT_OH,
    SchemaError,
    Version,
    any_value,
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

_START_ERRORS = {
    HTTPStatus.NOT_FOUND: BadRequestError,
    HTTPStatus.CONFLICT: BadRequestError,
    HTTPStatus.FORBIDDEN: PermissionDeniedError,
    HTTPStatus.SERVICE_UNAVAILABLE: CannotCompleteError,
}


@dataclass
class StartArgs:
    """Parameters for :meth:`Machine.start`; empty values are not sent.

    ``user_data`` must already be base64 encoded cloud-init data.
    """

    user_data: str = ""
    distro_series: str = ""
    kernel: str = ""
    comment: str = ""


@dataclass
class CreateMachineDeviceArgs:
    """Parameters for creating a device whose parent is a machine.

    ``interface_name`` and ``mac_address`` are required. If both ``subnet``
    and ``vlan`` are given, the subnet must be on that VLAN.
    """

    hostname: str = ""
    interface_name: str = ""
    mac_address: str = ""
    subnet: Subnet | None = None
    vlan: Vlan | None = None

    def validate(self) -> None:
        """Raise :class:`NotValidError` if required values are missing."""
        if not self.interface_name:
            raise NotValidError("missing InterfaceName not valid")
        if not self.mac_address:
            raise NotValidError("missing MACAddress not valid")
        if (
            self.subnet is not None
            and self.vlan is not None
            and self.subnet.vlan != self.vlan
        ):
            raise NotValidError(
                f"given subnet {json.dumps(self.subnet.cidr)} on VLAN "
                f"{self.subnet.vlan.id} does not match given VLAN {self.vlan.id}"
            )


_UPDATED_FIELDS = (
    "resource_uri",
    "system_id",
    "hostname",
    "fqdn",
    "operating_system",
    "distro_series",
    "architecture",
    "memory",
    "cpu_count",
    "ip_addresses",
    "power_state",
    "status_name",
    "status_message",
    "zone",
    "pool",
    "tags",
    "_owner_data",
)


@dataclass
class Machine:
    """A physical machine.

    ``transport`` is the :class:`maasapi.model.Transport` used by the
    methods that act on the controller; interfaces returned by
    :meth:`interface` share it.
    """

    system_id: str = ""
    hostname: str = ""
    fqdn: str = ""
    tags: tuple[str, ...] = ()
    operating_system: str = ""
    distro_series: str = ""
    architecture: str = ""
    memory: int = 0
    cpu_count: int = 0
    ip_addresses: tuple[str, ...] = ()
    power_state: str = ""
    status_name: str = ""
    status_message: str = ""
    boot_interface: NetworkInterface | None = None
    interface_set: tuple[NetworkInterface, ...] = ()
    zone: Zone | None = None
    pool: Pool | None = None
    physical_block_devices: tuple[BlockDevice, ...] = ()
    block_devices: tuple[BlockDevice, ...] = ()
    resource_uri: str = ""
    _owner_data: dict[str, str] = field(default_factory=dict, repr=False)
    transport: Any = field(default=None, repr=False, compare=False)

    def _update_from(self, other: Machine) -> None:
        for name in _UPDATED_FIELDS:
            setattr(self, name, getattr(other, name))

    def _connected(self) -> Any:
        if self.transport is None:
            raise RuntimeError("machine is not attached to a controller")
        return self.transport

    def owner_data(self) -> dict[str, str]:
        """Return a copy of the key/value data stored for this machine."""
        return dict(self._owner_data)

    def set_owner_data(self, owner_data: Mapping[str, str]) -> None:
        """Store key/value data; keys not given are left, ``""`` clears one."""
        transport = self._connected()
        result = transport.post(self.resource_uri, "set_owner_data", dict(owner_data))
        self._update_from(read_machine(transport.api_version, result))

    def start(self, args: StartArgs) -> None:
        """Deploy the machine with the operating system given in ``args``."""
        params = {
            key: value
            for key, value in (
                ("user_data", args.user_data),
                ("distro_series", args.distro_series),
                ("hwe_kernel", args.kernel),
                ("comment", args.comment),
            )
            if value
        }
        transport = self._connected()
        try:
            result = transport.post(self.resource_uri, "deploy", params)
        except (MaasError, OSError) as error:
            raise translate_server_error(error, _START_ERRORS) from error
        self._update_from(read_machine(transport.api_version, result))

    def interface(self, interface_id: int) -> NetworkInterface | None:
        """Return the interface with ``interface_id``, or ``None``."""
        for iface in self.interface_set:
            if iface.id == interface_id:
                iface.transport = self.transport
                return iface
        return None

    def physical_block_device(self, device_id: int) -> BlockDevice | None:
        """Return the physical block device with ``device_id``, or ``None``."""
        return _by_id(device_id, self.physical_block_devices)

    def block_device(self, device_id: int) -> BlockDevice | None:
        """Return the block device with ``device_id``, or ``None``."""
        return _by_id(device_id, self.block_devices)

    def partition(self, partition_id: int) -> Partition | None:
        """Return the partition with ``partition_id`` on any block device."""
        return next(
            (
                part
                for device in self.block_devices
                for part in device.partitions
                if part.id == partition_id
            ),
            None,
        )


def _by_id(device_id: int, devices: tuple[BlockDevice, ...]) -> BlockDevice | None:
    return next((device for device in devices if device.id == device_id), None)


def _read_block_devices(items: list[Any]) -> tuple[BlockDevice, ...]:
    devices = []
    for index, item in enumerate(items):
        try:
            devices.append(read_block_device(item))
        except MaasError as error:
            raise DeserializationError(f"blockdevice {index}: {error}") from error
    return tuple(devices)


def parse_machine(source: Any) -> Machine:
    """Build a :class:`Machine` from a decoded response map."""
    fields = {
        "resource_uri": string(),
        "system_id": string(),
        "hostname": string(),
        "fqdn": string(),
        "tag_names": list_of(string()),
        "owner_data": string_map(string()),
        "osystem": string(),
        "distro_series": string(),
        "architecture": nullable(string()),
        "memory": force_int(),
        "cpu_count": force_int(),
        "ip_addresses": list_of(string()),
        "power_state": string(),
        "status_name": string(),
        "status_message": nullable(string()),
        "boot_interface": nullable(string_map(any_value())),
        "interface_set": list_of(string_map(any_value())),
        "zone": string_map(any_value()),
        "pool": string_map(any_value()),
        "physicalblockdevice_set": list_of(string_map(any_value())),
        "blockdevice_set": list_of(string_map(any_value())),
    }
    try:
        valid = check_fields(source, fields, {"architecture": ""})
    except SchemaError as error:
        raise DeserializationError(f"machine 2.0 schema check failed: {error}") from error

    boot = valid["boot_interface"]
    return Machine(
        system_id=valid["system_id"],
        hostname=valid["hostname"],
        fqdn=valid["fqdn"],
        tags=tuple(valid["tag_names"]),
        operating_system=valid["osystem"],
        distro_series=valid["distro_series"],
        architecture=valid["architecture"] or "",
        memory=valid["memory"],
        cpu_count=valid["cpu_count"],
        ip_addresses=tuple(valid["ip_addresses"]),
        power_state=valid["power_state"],
        status_name=valid["status_name"],
        status_message=valid["status_message"] or "",
        boot_interface=parse_interface(boot) if boot is not None else None,
        interface_set=tuple(read_interface_list(valid["interface_set"], parse_interface)),
        zone=read_zone(valid["zone"]),
        pool=read_pool(valid["pool"]),
        physical_block_devices=_read_block_devices(valid["physicalblockdevice_set"]),
        block_devices=_read_block_devices(valid["blockdevice_set"]),
        resource_uri=valid["resource_uri"],
        _owner_data=dict(valid["owner_data"]),
    )


_READERS: dict[Version, Callable[[Any], Machine]] = {TWO_DOT_OH: parse_machine}


def read_machine(version: Version, source: Any) -> Machine:
    """Read one machine in the format of API ``version``."""
    reader = select_reader(_READERS, version, "machine")
    try:
        valid = check_map(source)
    except SchemaError as error:
        raise DeserializationError(f"machine base schema check failed: {error}") from error
    return reader(valid)


def read_machines(version: Version, source: Any) -> list[Machine]:
    """Read a list of machines in the format of API ``version``."""
    reader = select_reader(_READERS, version, "machine")
    try:
        items = check_list_of_maps(source)
    except SchemaError as error:
        raise DeserializationError(f"machine base schema check failed: {error}") from error
    machines = []
    for index, item in enumerate(items):
        try:
            machines.append(reader(item))
        except MaasError as error:
            raise DeserializationError(f"machine {index}: {error}") from error
    return machines