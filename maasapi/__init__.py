"""Typed models, JSON helpers and request helpers for the MAAS REST API."""

__version__ = "0.1.0"

__all__ = [
    "errors",
    "interface",
    "jsonobject",
    "link",
    "maasobject",
    "machine",
    "model",
    "partition",
    "pool",
    "schema",
    "space",
]