"""
schemawire.tier1_runtime.avro
───────────────────────────────
Avro schema objects: parse registry schema text once, then encode and decode
schemaless binary payloads with fastavro. Also infers a schema from a value's
runtime shape for auto-registration.

Values may be mappings, dataclasses, Pydantic models or plain objects; they
are converted to the dict form fastavro expects before validation.

Minimal stack: fastavro
"""
from __future__ import annotations

import dataclasses
import io
import json
import re
from collections.abc import Mapping
from typing import Any

from fastavro import parse_schema, schemaless_reader, schemaless_writer
from fastavro.read import SchemaResolutionError
from fastavro.validation import ValidationError as FastavroValidationError
from fastavro.validation import validate
from pydantic import BaseModel

from schemawire.tier0_core.errors import (
    InvalidSchemaError,
    MalformedWireMessage,
    RecordValidationError,
)
from schemawire.tier1_runtime.subject import record_name

_PRIMITIVES = frozenset({
    "null", "boolean", "int", "long", "float", "double", "bytes", "string",
})
_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.]")
_INVALID_FIELD_CHARS = re.compile(r"[^A-Za-z0-9_]")


class AvroSchema:
    """A parsed Avro schema with its compiled binary codec."""

    def __init__(self, schema: str | dict | list) -> None:
        if isinstance(schema, str):
            schema = _load_schema_text(schema)
        self.definition = schema
        self.schema_str = json.dumps(schema, separators=(",", ":"))
        try:
            self._parsed = parse_schema(schema)
        except Exception as exc:
            raise InvalidSchemaError(f"Cannot parse Avro schema: {exc}") from exc

    @property
    def name(self) -> str | None:
        """Fully-qualified name of a named schema, None for primitives and unions."""
        if isinstance(self._parsed, dict):
            return self._parsed.get("name")
        return None

    def encode(self, value: Any) -> bytes:
        datum = to_datum(value)
        try:
            validate(datum, self._parsed, raise_errors=True)
        except FastavroValidationError as exc:
            raise RecordValidationError(
                f"Value does not match schema {self.name or self.schema_str}: {exc}",
                schema=self.name,
            ) from exc
        buf = io.BytesIO()
        schemaless_writer(buf, self._parsed, datum)
        return buf.getvalue()

    def decode(
        self,
        data: bytes | bytearray | memoryview,
        offset: int = 0,
        reader_schema: AvroSchema | None = None,
    ) -> Any:
        """Decode the payload starting at ``offset``, optionally projecting onto a reader schema."""
        payload = memoryview(data)[offset:]
        buf = io.BytesIO(payload)
        reader = reader_schema._parsed if reader_schema is not None else None
        try:
            value = schemaless_reader(buf, self._parsed, reader)
        except SchemaResolutionError as exc:
            raise InvalidSchemaError(
                f"Reader schema {reader_schema!r} cannot read {self!r}: {exc}",
                schema=self.name,
            ) from exc
        except Exception as exc:
            raise MalformedWireMessage(
                f"Payload does not decode with schema {self.name or self.schema_str}: {exc!r}",
                schema=self.name,
                length=len(payload),
            ) from exc
        if buf.tell() != len(payload):
            raise MalformedWireMessage(
                f"{len(payload) - buf.tell()} trailing bytes after the encoded record",
                schema=self.name,
                length=len(payload),
            )
        return value

    @classmethod
    def infer(cls, value: Any, name: str | None = None) -> AvroSchema:
        """
        Build a schema from the runtime shape of ``value``.

        The record name defaults to the value's record name, then to "Record".
        """
        return cls(_infer_type(to_datum(value), _avro_name(name or record_name(value) or "Record")))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AvroSchema):
            return NotImplemented
        return self.schema_str == other.schema_str

    def __hash__(self) -> int:
        return hash(self.schema_str)

    def __repr__(self) -> str:
        return f"AvroSchema({self.name or self.schema_str!r})"


def to_datum(value: Any) -> Any:
    """Convert a record-like value into plain dicts, lists and scalars."""
    if isinstance(value, BaseModel):
        return value.model_dump()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Mapping):
        return {k: to_datum(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_datum(v) for v in value]
    if isinstance(value, (str, bytes, bytearray, int, float, bool)) or value is None:
        return value
    if hasattr(value, "__dict__"):
        return {k: to_datum(v) for k, v in vars(value).items() if not k.startswith("_")}
    return value


def _load_schema_text(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        # registries accept bare primitive names
        if text.strip() in _PRIMITIVES:
            return text.strip()
        raise InvalidSchemaError(f"Schema is neither JSON nor a primitive type name: {text[:80]!r}")


def _avro_name(name: str) -> str:
    name = _INVALID_NAME_CHARS.sub("_", name).strip(".")
    parts = [p if p and not p[0].isdigit() else f"_{p}" for p in name.split(".")]
    return ".".join(parts)


def _field_name(key: Any) -> str:
    name = str(key)
    if not name or name[0].isdigit() or _INVALID_FIELD_CHARS.search(name):
        raise InvalidSchemaError(f"{name!r} is not a valid Avro field name")
    return name


def _infer_type(datum: Any, name: str) -> Any:
    if datum is None:
        return "null"
    if isinstance(datum, bool):
        return "boolean"
    if isinstance(datum, int):
        return "long"
    if isinstance(datum, float):
        return "double"
    if isinstance(datum, str):
        return "string"
    if isinstance(datum, (bytes, bytearray)):
        return "bytes"
    if isinstance(datum, list):
        items = _infer_type(datum[0], f"{name}_item") if datum else "null"
        return {"type": "array", "items": items}
    if isinstance(datum, dict):
        return {
            "type": "record",
            "name": name,
            "fields": [
                {"name": _field_name(key), "type": _infer_type(val, f"{name}_{_field_name(key)}")}
                for key, val in datum.items()
            ],
        }
    raise InvalidSchemaError(f"Cannot infer an Avro type for {type(datum).__name__}")


__all__ = ["AvroSchema", "to_datum"]
