import copy
import io
import json
import urllib.error
from dataclasses import dataclass

import pytest

from maasapi.errors import (
    BadRequestError,
    CannotCompleteError,
    DeserializationError,
    NotValidError,
    PermissionDeniedError,
    UnexpectedError,
    UnsupportedVersionError,
)
from maasapi.machine import (
    CreateMachineDeviceArgs,
    Machine,
    StartArgs,
    parse_machine,
    read_machine,
    read_machines,
)
from maasapi.model import Subnet, Transport, Vlan
from maasapi.schema import TWO_DOT_OH, parse_version

VLAN = {
    "resource_uri": "/MAAS/api/2.0/vlans/1/",
    "id": 1,
    "secondary_rack": None,
    "mtu": 1500,
    "primary_rack": "4y3h7n",
    "name": "untagged",
    "fabric": "fabric-0",
    "dhcp_on": True,
    "vid": 0,
}

SUBNET = {
    "resource_uri": "/MAAS/api/2.0/subnets/1/",
    "id": 1,
    "rdns_mode": 2,
    "vlan": VLAN,
    "dns_servers": [],
    "space": "space-0",
    "name": "192.168.100.0/24",
    "gateway_ip": "192.168.100.1",
    "cidr": "192.168.100.0/24",
}


def _interface(node, iface_id, mac, link_id, ip=None):
    link = {"id": link_id, "mode": "auto", "subnet": SUBNET}
    if ip is not None:
        link["ip_address"] = ip
    return copy.deepcopy(
        {
            "effective_mtu": 1500,
            "mac_address": mac,
            "children": [],
            "discovered": [],
            "params": "",
            "vlan": VLAN,
            "name": "eth0",
            "enabled": True,
            "parents": [],
            "id": iface_id,
            "type": "physical",
            "resource_uri": f"/MAAS/api/2.0/nodes/{node}/interfaces/{iface_id}/",
            "tags": [],
            "links": [link],
        }
    )


def _disk(node, device_id, name, part_id, mount, label, number):
    return {
        "path": f"/dev/disk/by-dname/{name}",
        "name": name,
        "used_for": "MBR partitioned with 1 partition",
        "partitions": [
            {
                "bootable": False,
                "id": part_id,
                "path": f"/dev/disk/by-dname/{name}-part1",
                "filesystem": {
                    "fstype": "ext4",
                    "mount_point": mount,
                    "label": label,
                    "mount_options": None,
                    "uuid": f"00000000-0000-0000-0000-00000000000{number}",
                },
                "type": "partition",
                "resource_uri": f"/MAAS/api/2.0/nodes/{node}/blockdevices/{device_id}/partition/{part_id}",
                "uuid": f"00000000-0000-0000-0000-00000000010{number}",
                "used_for": f"ext4 formatted filesystem mounted at {mount}",
                "size": 8581545984,
            }
        ],
        "filesystem": None,
        "id_path": f"/dev/disk/by-id/ata-EXAMPLE_DISK_{number}",
        "resource_uri": f"/MAAS/api/2.0/nodes/{node}/blockdevices/{device_id}/",
        "id": device_id,
        "type": "physical",
        "block_size": 4096,
        "used_size": 8586788864,
        "available_size": 0,
        "partition_table_type": "MBR",
        "uuid": None,
        "size": 8589934592,
        "model": "EXAMPLE HARDDISK",
        "tags": ["rotary"],
    }


MD0 = {
    "tags": ["raid0"],
    "used_size": 0,
    "path": "/dev/disk/by-dname/md0",
    "serial": None,
    "available_size": 256599130112,
    "system_id": "xc3e6q",
    "uuid": "00000000-0000-0000-0000-000000000200",
    "block_size": 512,
    "size": 256599130112,
    "type": "virtual",
    "filesystem": None,
    "used_for": "Unused",
    "partitions": [],
    "id": 23,
    "name": "md0",
    "partition_table_type": None,
    "model": None,
    "id_path": None,
    "resource_uri": "/MAAS/api/2.0/nodes/xc3e6q/blockdevices/23/",
}


def _machine(system_id, hostname, *, interfaces, physical, block, owner_data,
             power="off", status_name="Ready",
             status_message="From 'Commissioning' to 'Ready'",
             tags=("virtual",), osystem="", distro="", ip_addresses=()):
    return copy.deepcopy(
        {
            "netboot": True,
            "system_id": system_id,
            "ip_addresses": list(ip_addresses),
            "memory": 1024,
            "cpu_count": 1,
            "osystem": osystem,
            "physicalblockdevice_set": physical,
            "interface_set": interfaces,
            "resource_uri": f"/MAAS/api/2.0/machines/{system_id}/",
            "hostname": hostname,
            "status_name": status_name,
            "boot_interface": interfaces[0],
            "power_state": power,
            "architecture": "amd64/generic",
            "distro_series": distro,
            "tag_names": list(tags),
            "status_message": status_message,
            "blockdevice_set": block,
            "zone": {
                "description": "",
                "resource_uri": "/MAAS/api/2.0/zones/default/",
                "name": "default",
            },
            "pool": {
                "description": "",
                "resource_uri": "/MAAS/api/2.0/pools/default/",
                "name": "default",
            },
            "fqdn": f"{hostname}.maas",
            "owner_data": owner_data,
        }
    )


def machine_with_owner_data(owner_data):
    sda = _disk("4y3ha3", 34, "sda", 1, "/", "root", 1)
    sdb = _disk("4y3ha3", 98, "sdb", 101, "/home", "home", 2)
    return _machine(
        "4y3ha3",
        "untasted-markita",
        interfaces=[
            _interface("4y3ha3", 35, "00:00:5e:00:53:01", 82, "192.168.100.4"),
            _interface("4y3ha3", 99, "00:00:5e:00:53:02", 83, "192.168.100.5"),
        ],
        physical=[sda, sdb],
        block=[sda, sdb, MD0],
        owner_data=owner_data,
        power="on",
        status_name="Deployed",
        status_message="From 'Deploying' to 'Deployed'",
        tags=("virtual", "magic"),
        osystem="ubuntu",
        distro="trusty",
        ip_addresses=("192.168.100.4",),
    )


def machine_response():
    return machine_with_owner_data(
        {"fez": "phil fish", "frog-fractions": "jim crawford"}
    )


def machines_response():
    second = _disk("4y3ha4", 35, "sda", 2, "/", "root", 3)
    third = _disk("4y3ha6", 36, "sda", 3, "/", "root", 4)
    return [
        machine_response(),
        _machine(
            "4y3ha4",
            "lowlier-glady",
            interfaces=[_interface("4y3ha4", 39, "00:00:5e:00:53:03", 67)],
            physical=[second],
            block=[second],
            owner_data={"braid": "jonathan blow", "frog-fractions": "jim crawford"},
        ),
        _machine(
            "4y3ha6",
            "icier-nina",
            interfaces=[_interface("4y3ha6", 40, "00:00:5e:00:53:04", 69)],
            physical=[third],
            block=[third],
            owner_data={"braid": "jonathan blow", "fez": "phil fish"},
        ),
    ]


@dataclass
class Request:
    method: str
    uri: str
    operation: str
    params: dict


class FakeClient:
    def __init__(self):
        self.responses = {}
        self.requests = []

    def add(self, method, uri, status, body, operation=""):
        self.responses[(method, uri, operation)] = (status, body)

    def _reply(self, method, uri, operation, params):
        self.requests.append(Request(method, uri, operation, dict(params or {})))
        status, body = self.responses.get((method, uri, operation), (404, ""))
        if status >= 300:
            raise urllib.error.HTTPError(
                uri, status, "error", None, io.BytesIO(body.encode())
            )
        return body.encode()

    def get(self, uri, operation="", params=None):
        return self._reply("GET", uri, operation, params)

    def post(self, uri, operation="", params=None, files=None):
        return self._reply("POST", uri, operation, params)

    def put(self, uri, params=None):
        return self._reply("PUT", uri, "", params)

    def delete(self, uri):
        return self._reply("DELETE", uri, "", None)


@pytest.fixture
def server_and_machine():
    client = FakeClient()
    machine = parse_machine(machine_response())
    machine.transport = Transport(client)
    return client, machine


def _vlan(vlan_id):
    return Vlan(id=vlan_id, name="", fabric="", vid=0, mtu=0, dhcp=False)


def _subnet(cidr="", vlan=None):
    return Subnet(id=0, name="", space="", vlan=vlan, gateway="", cidr=cidr)


def test_nil_getters():
    empty = Machine()
    assert empty.zone is None
    assert empty.physical_block_device(0) is None
    assert empty.interface(0) is None
    assert empty.boot_interface is None


def test_read_machines_bad_schema():
    with pytest.raises(DeserializationError) as info:
        read_machines(TWO_DOT_OH, "wat?")
    assert str(info.value) == 'machine base schema check failed: expected list, got string("wat?")'

    with pytest.raises(DeserializationError) as info:
        read_machines(TWO_DOT_OH, [{"wat": "?"}])
    assert str(info.value).startswith("machine 0: machine 2.0 schema check failed: ")


def test_read_machines():
    machines = read_machines(TWO_DOT_OH, machines_response())
    assert len(machines) == 3
    machine = machines[0]

    assert machine.system_id == "4y3ha3"
    assert machine.hostname == "untasted-markita"
    assert machine.fqdn == "untasted-markita.maas"
    assert machine.tags == ("virtual", "magic")
    assert machine.owner_data() == {
        "fez": "phil fish",
        "frog-fractions": "jim crawford",
    }
    assert machine.ip_addresses == ("192.168.100.4",)
    assert machine.memory == 1024
    assert machine.cpu_count == 1
    assert machine.power_state == "on"
    assert machine.zone.name == "default"
    assert machine.pool.name == "default"
    assert machine.operating_system == "ubuntu"
    assert machine.distro_series == "trusty"
    assert machine.architecture == "amd64/generic"
    assert machine.status_name == "Deployed"
    assert machine.status_message == "From 'Deploying' to 'Deployed'"

    assert machine.boot_interface.name == "eth0"

    interfaces = machine.interface_set
    assert len(interfaces) == 2
    iface_id = interfaces[0].id
    assert machine.interface(iface_id) == interfaces[0]
    assert machine.interface(iface_id + 5) is None

    assert [d.name for d in machine.block_devices] == ["sda", "sdb", "md0"]
    physical = machine.physical_block_devices
    assert [d.name for d in physical] == ["sda", "sdb"]
    device_id = physical[0].id
    assert machine.physical_block_device(device_id) == physical[0]
    assert machine.physical_block_device(device_id + 5) is None


def test_block_device_and_partition_lookup():
    machine = parse_machine(machine_response())
    assert machine.block_device(23).name == "md0"
    assert machine.block_device(1000) is None
    assert machine.partition(101).path == "/dev/disk/by-dname/sdb-part1"
    assert machine.partition(999) is None


def test_read_machines_nil_values():
    data = machines_response()
    data[0]["architecture"] = None
    data[0]["status_message"] = None
    data[0]["boot_interface"] = None
    machines = read_machines(TWO_DOT_OH, data)
    assert len(machines) == 3
    machine = machines[0]
    assert machine.architecture == ""
    assert machine.status_message == ""
    assert machine.boot_interface is None


def test_low_version():
    with pytest.raises(UnsupportedVersionError) as info:
        read_machines(parse_version("1.9.0"), machines_response())
    assert str(info.value) == "no machine read func for version 1.9.0"


def test_high_version():
    machines = read_machines(parse_version("2.1.9"), machines_response())
    assert len(machines) == 3


def test_read_machine_single():
    machine = read_machine(TWO_DOT_OH, machine_response())
    assert machine.system_id == "4y3ha3"


def test_read_machine_bad_schema():
    with pytest.raises(DeserializationError) as info:
        read_machine(TWO_DOT_OH, "wat?")
    assert str(info.value).startswith("machine base schema check failed: ")


def test_interface_shares_transport(server_and_machine):
    _, machine = server_and_machine
    assert machine.interface(35).transport is machine.transport


def test_start(server_and_machine):
    client, machine = server_and_machine
    response = machine_response()
    response["status_name"] = "Deploying"
    response["status_message"] = "for testing"
    client.add("POST", machine.resource_uri, 200, json.dumps(response), "deploy")

    machine.start(
        StartArgs(
            user_data="userdata",
            distro_series="trusty",
            kernel="kernel",
            comment="a comment",
        )
    )
    assert machine.status_name == "Deploying"
    assert machine.status_message == "for testing"

    form = client.requests[-1].params
    assert form == {
        "user_data": "userdata",
        "distro_series": "trusty",
        "hwe_kernel": "kernel",
        "comment": "a comment",
    }


@pytest.mark.parametrize(
    "status, body, kind",
    [
        (404, "can't find machine", BadRequestError),
        (409, "machine not allocated", BadRequestError),
        (403, "machine not yours", PermissionDeniedError),
        (503, "no ip addresses available", CannotCompleteError),
    ],
)
def test_start_errors(server_and_machine, status, body, kind):
    client, machine = server_and_machine
    client.add("POST", machine.resource_uri, status, body, "deploy")
    with pytest.raises(kind) as info:
        machine.start(StartArgs())
    assert str(info.value) == body


def test_start_unknown(server_and_machine):
    client, machine = server_and_machine
    client.add("POST", machine.resource_uri, 405, "wat?", "deploy")
    with pytest.raises(UnexpectedError) as info:
        machine.start(StartArgs())
    assert str(info.value) == "unexpected: ServerError: 405 Method Not Allowed (wat?)"


def test_start_without_transport():
    with pytest.raises(RuntimeError):
        Machine().start(StartArgs())


@pytest.mark.parametrize(
    "args, err_text",
    [
        (CreateMachineDeviceArgs(), "missing InterfaceName not valid"),
        (CreateMachineDeviceArgs(interface_name="eth1"), "missing MACAddress not valid"),
        (
            CreateMachineDeviceArgs(
                interface_name="eth1",
                mac_address="something",
                subnet=_subnet("1.2.3.4/5", _vlan(42)),
                vlan=_vlan(10),
            ),
            'given subnet "1.2.3.4/5" on VLAN 42 does not match given VLAN 10',
        ),
    ],
)
def test_create_machine_device_args_invalid(args, err_text):
    with pytest.raises(NotValidError) as info:
        args.validate()
    assert str(info.value) == err_text


@pytest.mark.parametrize(
    "args",
    [
        CreateMachineDeviceArgs(
            hostname="is-optional",
            interface_name="eth1",
            mac_address="something",
            vlan=_vlan(0),
        ),
        CreateMachineDeviceArgs(
            interface_name="eth1", mac_address="something", subnet=_subnet()
        ),
        CreateMachineDeviceArgs(interface_name="eth1", mac_address="something"),
    ],
)
def test_create_machine_device_args_valid(args):
    assert args.validate() is None
    assert args.interface_name == "eth1"


def test_create_machine_device_args_matching_vlan():
    vlan = _vlan(7)
    args = CreateMachineDeviceArgs(
        interface_name="eth1",
        mac_address="something",
        subnet=_subnet("10.0.0.0/24", vlan),
        vlan=vlan,
    )
    assert args.validate() is None
    assert args.subnet.vlan == args.vlan


def test_owner_data_copies():
    machine = Machine()
    owner_data = machine.owner_data()
    owner_data["sad"] = "children"
    assert machine.owner_data() == {}


def test_set_owner_data(server_and_machine):
    client, machine = server_and_machine
    client.add(
        "POST",
        machine.resource_uri,
        200,
        json.dumps(machine_with_owner_data({"returned": "data"})),
        "set_owner_data",
    )
    machine.set_owner_data({"draco": "malfoy", "empty": ""})
    assert machine.owner_data() == {"returned": "data"}
    form = client.requests[-1].params
    assert form["draco"] == "malfoy"
    assert form["empty"] == ""
    assert client.requests[-1].operation == "set_owner_data"