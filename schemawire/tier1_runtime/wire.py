"""
schemawire.tier1_runtime.wire
───────────────────────────────
The registry wire envelope shared by every producer and consumer:

    [0x00][schema id: u32 big-endian][payload ...]

This module owns the 5-byte header only. The payload bytes belong to the
schema's own binary codec (see ``schemawire.tier1_runtime.avro``).
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Protocol

from schemawire.tier0_core.errors import MalformedWireMessage, UnsupportedMagicByte

MAGIC_BYTE = 0
HEADER_SIZE = 5
MAX_SCHEMA_ID = 0xFFFFFFFF

_HEADER = struct.Struct(">BI")


class PayloadCodec(Protocol):
    """The part of a schema the wire codec needs for encoding."""

    def encode(self, value: Any) -> bytes: ...


@dataclass(frozen=True)
class WireHeader:
    """Result of parsing a framed message. ``payload`` is a zero-copy view."""

    schema_id: int
    offset: int
    payload: memoryview


class WireCodec:
    """Frame and unframe registry wire messages."""

    def encode(self, value: Any, schema_id: int, schema: PayloadCodec) -> bytes:
        return frame(schema_id, schema.encode(value))

    def decode(self, data: bytes | bytearray | memoryview) -> WireHeader:
        schema_id = peek_schema_id(data)
        view = memoryview(data)
        return WireHeader(schema_id=schema_id, offset=HEADER_SIZE, payload=view[HEADER_SIZE:])


def frame(schema_id: int, payload: bytes) -> bytes:
    """Prefix an already encoded payload with the magic byte and schema id."""
    if (
        not isinstance(schema_id, int)
        or isinstance(schema_id, bool)
        or not 0 <= schema_id <= MAX_SCHEMA_ID
    ):
        raise MalformedWireMessage(
            f"Schema id must be an unsigned 32-bit integer, got {schema_id!r}",
            schema_id=repr(schema_id),
        )
    return _HEADER.pack(MAGIC_BYTE, schema_id) + payload


def peek_schema_id(data: bytes | bytearray | memoryview) -> int:
    """Validate the header of ``data`` and return its schema id."""
    if len(data) < HEADER_SIZE:
        raise MalformedWireMessage(
            f"Wire message must be at least {HEADER_SIZE} bytes, got {len(data)}",
            length=len(data),
        )
    magic = data[0]
    if magic != MAGIC_BYTE:
        raise UnsupportedMagicByte(magic)
    return int.from_bytes(data[1:HEADER_SIZE], byteorder="big", signed=False)


__all__ = [
    "MAGIC_BYTE",
    "HEADER_SIZE",
    "MAX_SCHEMA_ID",
    "PayloadCodec",
    "WireHeader",
    "WireCodec",
    "frame",
    "peek_schema_id",
]
