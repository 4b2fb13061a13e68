"""
schemawire.tier3_platform.serde
─────────────────────────────────
End-to-end serializer and deserializer for message keys and values, plus a
factory that wires config → registry client → cache → resolver.

Usage:
    serializer, deserializer = build_serde()
    raw = await serializer.serialize("orders", order)
    decoded = await deserializer.deserialize(raw)
    decoded.schema_id, decoded.value
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from schemawire.tier0_core.config import SchemaWireConfig, get_config
from schemawire.tier1_runtime.avro import AvroSchema
from schemawire.tier1_runtime.registry import RegistryClient
from schemawire.tier1_runtime.wire import WireCodec
from schemawire.tier2_reliability.cache import SchemaCache
from schemawire.tier3_platform.registry_client import HttpRegistryClient
from schemawire.tier3_platform.resolver import SchemaResolver


@dataclass(frozen=True)
class DecodedMessage:
    schema_id: int
    value: Any


class AvroSerializer:
    def __init__(self, resolver: SchemaResolver, wire_codec: WireCodec | None = None) -> None:
        self.resolver = resolver
        self.wire_codec = wire_codec or WireCodec()

    async def serialize(self, topic: str, value: Any, is_key: bool = False) -> bytes:
        resolved = await self.resolver.resolve_for_publish(topic, value, is_key)
        return self.wire_codec.encode(value, resolved.schema_id, resolved.schema)


class AvroDeserializer:
    """Decode framed messages, looking the writer schema up by id."""

    def __init__(
        self,
        cache: SchemaCache,
        wire_codec: WireCodec | None = None,
        reader_schema: AvroSchema | None = None,
        *,
        owns_client: bool = False,
    ) -> None:
        self.cache = cache
        self.wire_codec = wire_codec or WireCodec()
        self.reader_schema = reader_schema
        self._owns_client = owns_client

    async def deserialize(self, data: bytes) -> DecodedMessage:
        header = self.wire_codec.decode(data)
        schema = await self.cache.get_by_id(header.schema_id)
        value = schema.decode(data, header.offset, reader_schema=self.reader_schema)
        return DecodedMessage(schema_id=header.schema_id, value=value)

    async def aclose(self) -> None:
        """Close the registry client if this deserializer owns it."""
        close = getattr(self.cache.client, "aclose", None)
        if self._owns_client and close is not None:
            await close()


def build_serde(
    config: SchemaWireConfig | None = None,
    client: RegistryClient | None = None,
) -> tuple[AvroSerializer, AvroDeserializer]:
    """
    Wire a serializer and deserializer sharing one schema cache.

    When no ``client`` is given an HttpRegistryClient is created from config;
    the deserializer owns it and ``await deserializer.aclose()`` releases it.
    """
    config = config or get_config()
    owns_client = client is None
    if client is None:
        client = HttpRegistryClient.from_config(config)
    cache = SchemaCache(client, lookup_timeout=config.lookup_timeout)
    resolver = SchemaResolver.from_config(config, cache)
    return AvroSerializer(resolver), AvroDeserializer(cache, owns_client=owns_client)


__all__ = ["DecodedMessage", "AvroSerializer", "AvroDeserializer", "build_serde"]
