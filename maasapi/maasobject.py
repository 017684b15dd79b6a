"""MAAS API objects: JSON maps addressed by a resource URI."""

from __future__ import annotations

import json
import re
import urllib.request
import uuid
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Union
from urllib.parse import quote, urlencode, urljoin, urlsplit, urlunsplit

from .jsonobject import RESOURCE_URI, ConversionError, JSONObject, maasify, parse

Params = Union[Mapping[str, Union[str, Iterable[str]]], None]

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_CONTROL = re.compile(r"[\x00-\x1f\x7f]")
_PATH_SAFE = "/!$&'()*+,;=:@"


def _pairs(params: Params) -> Iterator[tuple[str, str]]:
    if not params:
        return
    for key, value in params.items():
        if isinstance(value, str):
            yield key, value
        else:
            for item in value:
                yield key, item


def _with_query(url: str, query: str) -> str:
    return urlunsplit(urlsplit(url)._replace(query=query))


def _multipart(params: Params, files: Mapping[str, bytes]) -> tuple[bytes, str]:
    boundary = uuid.uuid4().hex
    chunks: list[bytes] = []
    for key, value in _pairs(params):
        chunks.append(
            f'--{boundary}\r\nContent-Disposition: form-data; name="{key}"\r\n\r\n'.encode()
        )
        chunks.append(value.encode("utf-8"))
        chunks.append(b"\r\n")
    for name, content in files.items():
        chunks.append(
            (
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="{name}"; filename="{name}"\r\n'
                "Content-Type: application/octet-stream\r\n\r\n"
            ).encode()
        )
        chunks.append(bytes(content))
        chunks.append(b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode())
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


@dataclass
class Client:
    """HTTP access to a MAAS API rooted at ``api_url``.

    Responses with a non-success status raise :class:`urllib.error.HTTPError`.
    """

    api_url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 30.0

    def get_url(self, uri: str) -> str:
        """Resolve ``uri`` against the API URL."""
        if not self.api_url:
            return uri
        return urljoin(self.api_url, uri)

    def _request(
        self, method: str, url: str, body: bytes | None = None, content_type: str | None = None
    ) -> bytes:
        headers = dict(self.headers)
        if content_type:
            headers["Content-Type"] = content_type
        request = urllib.request.Request(url, data=body, method=method, headers=headers)
        with urllib.request.urlopen(request, timeout=self.timeout) as response:
            return response.read()

    def get(self, uri: str, operation: str = "", params: Params = None) -> bytes:
        pairs = list(_pairs(params))
        if operation:
            pairs.append(("op", operation))
        return self._request("GET", _with_query(self.get_url(uri), urlencode(pairs)))

    def post(
        self,
        uri: str,
        operation: str = "",
        params: Params = None,
        files: Mapping[str, bytes] | None = None,
    ) -> bytes:
        url = _with_query(self.get_url(uri), urlencode([("op", operation)]))
        if files:
            body, content_type = _multipart(params, files)
        else:
            body = urlencode(list(_pairs(params))).encode("ascii")
            content_type = "application/x-www-form-urlencoded"
        return self._request("POST", url, body, content_type)

    def put(self, uri: str, params: Params = None) -> bytes:
        body = urlencode(list(_pairs(params))).encode("ascii")
        return self._request(
            "PUT", self.get_url(uri), body, "application/x-www-form-urlencoded"
        )

    def delete(self, uri: str) -> None:
        self._request("DELETE", self.get_url(uri))


def _validate_url(text: str) -> None:
    if _CONTROL.search(text):
        raise ValueError("invalid control character in URL")
    if _BAD_ESCAPE.search(text):
        raise ValueError("invalid URL escape")
    if text.startswith(":"):
        raise ValueError("missing protocol scheme")
    parts = urlsplit(text)
    _ = parts.port


def _extract_uri(attrs: Mapping[str, JSONObject]) -> str:
    if RESOURCE_URI not in attrs:
        raise ConversionError("not a MAAS object: no 'resource_uri' key")
    entry = attrs[RESOURCE_URI]
    try:
        uri = entry.get_string()
    except ConversionError:
        raise ConversionError(f"invalid resource_uri: {entry.to_plain()!r}") from None
    try:
        _validate_url(uri)
    except ValueError:
        raise ConversionError(f"resource_uri does not contain a valid URL: {uri}") from None
    return uri


class MAASObject:
    """A MAAS resource, such as a node or a tag, and the client it came from."""

    __slots__ = ("_values", "client", "_uri")

    def __init__(self, values: Mapping[str, JSONObject], client: Any, uri: str) -> None:
        self._values = dict(values)
        self.client = client
        self._uri = uri

    def __repr__(self) -> str:
        return f"MAASObject({self._uri!r})"

    def get_field(self, name: str) -> str:
        """Read a string attribute."""
        return self._values.get(name, JSONObject()).get_string()

    def uri(self) -> str:
        """The resource URI of this object."""
        return self._uri

    def url(self) -> str:
        """The full URL of this object on the API."""
        return self.client.get_url(self._uri)

    def get_map(self) -> dict[str, JSONObject]:
        return dict(self._values)

    def get_sub_object(self, name: str) -> MAASObject:
        """Return the resource at path ``name`` relative to this object's URI."""
        reference = quote(name, safe=_PATH_SAFE)
        first = reference.split("/", 1)[0]
        if not reference.startswith("/") and ":" in first:
            reference = "./" + reference
        parts = urlsplit(urljoin(self._uri, reference))
        path = parts.path if parts.path.endswith("/") else parts.path + "/"
        resolved = urlunsplit(parts._replace(path=path))
        return new_maas_object({RESOURCE_URI: resolved}, self.client)

    def get(self) -> MAASObject:
        """Fetch a fresh copy of this object from the API."""
        result = self.client.get(self._uri, "", {})
        return parse(self.client, result).get_maas_object()

    def post(self, params: Params) -> JSONObject:
        result = self.client.post(self._uri, "", params, None)
        return parse(self.client, result)

    def update(self, params: Params) -> MAASObject:
        """Modify this object on the API and return its new value."""
        result = self.client.put(self._uri, params)
        return parse(self.client, result).get_maas_object()

    def delete(self) -> None:
        self.client.delete(self._uri)

    def call_get(self, operation: str, params: Params) -> JSONObject:
        """Invoke an idempotent API operation on this object."""
        result = self.client.get(self._uri, operation, params)
        return parse(self.client, result)

    def call_post(self, operation: str, params: Params) -> JSONObject:
        """Invoke a non-idempotent API operation on this object."""
        return self.call_post_files(operation, params, None)

    def call_post_files(
        self, operation: str, params: Params, files: Mapping[str, bytes] | None
    ) -> JSONObject:
        """Invoke a non-idempotent API operation, uploading ``files``."""
        result = self.client.post(self._uri, operation, params, files)
        return parse(self.client, result)

    def to_json(self) -> str:
        plain = {key: value.to_plain() for key, value in self._values.items()}
        return json.dumps(plain, indent=2, ensure_ascii=False)


def new_maas_object(attrs: Mapping[str, Any], client: Any) -> MAASObject:
    """Build a MAAS object from plain data; it must hold a valid resource URI."""
    return maasify(client, dict(attrs)).get_maas_object()


def new_maas(client: Client) -> MAASObject:
    """Return the root object of the MAAS API reached through ``client``."""
    return new_maas_object({RESOURCE_URI: client.api_url}, client)