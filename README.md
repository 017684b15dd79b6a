# maasapi

A small Python library for working with the MAAS REST API. It reads API
responses into typed objects (machines, network interfaces, links, subnets,
VLANs, zones, spaces, pools, partitions and block devices). It wraps raw
JSON documents so that values are read with explicit type checks. It can
also send the requests that change interfaces and machines.

It uses only the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Reading JSON responses

`maasapi.jsonobject.parse(client, data)` turns a response body into a
`JSONObject`. Numbers become floats. A body that is not valid JSON keeps
only its raw bytes.

```python
from maasapi.jsonobject import parse

obj = parse(None, b"[12]")
items = obj.get_array()
print(items[0].get_float64())   # 12.0
print(obj.get_bytes())          # b'[12]'
```

The readers are `get_string`, `get_float64`, `get_map`, `get_array`,
`get_bool`, `get_bytes` and `get_maas_object`. Reading a value as a type it
does not hold raises `ConversionError`. Call `is_nil()` before reading a
value that may be JSON `null`.

`to_json()` serialises a value back to indented JSON. `maasify(client, value)`
wraps data that is already decoded. `from_value(client, value)` encodes plain
Python data and parses it again.

## MAAS objects

A JSON map with a `resource_uri` key can be read as a `MAASObject`. A
`MAASObject` knows where it lives on the API and sends further requests
through a `maasapi.maasobject.Client`.

```python
from maasapi.maasobject import Client, new_maas

client = Client(api_url="https://maas.example.com/MAAS/api/2.0/")
maas = new_maas(client)
machines = maas.get_sub_object("machines")
print(machines.url())   # https://maas.example.com/MAAS/api/2.0/machines/
```

`MAASObject` offers the following methods:

- `get_field`, `get_map`, `uri`, `url` and `to_json`
- `get_sub_object`
- `get`, `post`, `update` and `delete`
- `call_get`, `call_post` and `call_post_files`

`Client` sends plain HTTP requests with `urllib`. It adds any `headers` you
give it. A response with a non-success status raises
`urllib.error.HTTPError`.

## Typed models

Each reader takes the controller's API version and the decoded JSON value:

```python
import json
from maasapi.schema import parse_version
from maasapi.machine import read_machines

machines = read_machines(parse_version("2.0.0"), json.loads(body))
for machine in machines:
    print(machine.hostname, machine.status_name, machine.ip_addresses)
```

The readers for lists are:

- `read_machines` in `maasapi.machine`
- `read_interfaces` in `maasapi.interface`
- `read_links` in `maasapi.link`
- `read_partitions` in `maasapi.partition`
- `read_spaces` in `maasapi.space`
- `read_pools` in `maasapi.pool`

`read_machine` and `read_interface` read a single object. The errors are:

- A version older than 2.0 raises `UnsupportedVersionError`.
- A document of the wrong shape raises `DeserializationError`.

`Machine` has lookup methods: `interface`, `block_device`,
`physical_block_device` and `partition`. Each returns `None` when no item
has the given id. `owner_data()` returns a copy of the machine's key/value
data.

## Acting on machines and interfaces

Methods that change objects on the controller need a
`maasapi.model.Transport` in the object's `transport` attribute. A
`Transport` wraps a `Client` and decodes JSON replies. It raises a
non-success status as `ServerError`.

```python
from maasapi.model import Transport

machine.transport = Transport(client)
machine.start(StartArgs(distro_series="jammy"))
```

The methods are:

- `Machine.start` and `Machine.set_owner_data`
- `NetworkInterface.update`, `delete`, `link_subnet` and `unlink_subnet`

`Machine.interface(id)` passes the machine's transport on to the interface
it returns.

The argument objects `LinkSubnetArgs` and `CreateMachineDeviceArgs` have a
`validate()` method. It raises `NotValidError` for inconsistent input. Server
failures are raised as one of these errors, all in `maasapi.errors`:

- `NoMatchError`
- `BadRequestError`
- `PermissionDeniedError`
- `CannotCompleteError`
- `UnexpectedError`

## What this package does not do

- There is no controller object. Nothing lists machines, devices, fabrics, zones, boot resources or files for you. Fetch those documents yourself and pass them to the readers.
- It does not allocate or release machines.
- It does not create devices. `CreateMachineDeviceArgs` only validates its fields.
- `Client` does not sign requests. Any authentication must be supplied through its `headers`.