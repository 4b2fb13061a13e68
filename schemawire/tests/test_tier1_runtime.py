"""Tests for tier1_runtime modules."""
from __future__ import annotations

import json
from dataclasses import dataclass

import pytest

from schemawire.tier0_core.errors import (
    InvalidSchemaError,
    InvalidStrategyName,
    MalformedWireMessage,
    RecordValidationError,
    RegistryRejectedError,
    RegistryUnavailableError,
    SchemaNotFound,
    UnsupportedMagicByte,
)
from schemawire.tier1_runtime.avro import AvroSchema, to_datum
from schemawire.tier1_runtime.registry import InMemoryRegistryClient, RegistryClient
from schemawire.tier1_runtime.retry import retry_policy
from schemawire.tier1_runtime.subject import (
    SubjectNameStrategy,
    has_record_name,
    record_name,
    resolve_subject,
)
from schemawire.tier1_runtime.wire import HEADER_SIZE, WireCodec, frame, peek_schema_id


@dataclass
class Order:
    name: str
    long: int

    __schema_name__ = "org.test.Order"


class Untagged:
    def __init__(self, name: str) -> None:
        self.name = name


# ── subject ────────────────────────────────────────────────────────────────

class TestSubjectNameStrategy:
    @pytest.mark.parametrize("value", [{"name": "x"}, Order("x", 1), "plain-string-key"])
    def test_topic_name_strategy(self, value):
        strategy = SubjectNameStrategy.TOPIC_NAME
        assert strategy.subject_for("orders", value, True) == "orders-key"
        assert strategy.subject_for("orders", value, False) == "orders-value"

    def test_topic_record_name_with_tag(self):
        strategy = SubjectNameStrategy.TOPIC_RECORD_NAME
        assert strategy.subject_for("orders", Order("x", 1), False) == "orders-org.test.Order"
        assert strategy.subject_for("orders", Order("x", 1), True) == "orders-org.test.Order"

    def test_topic_record_name_from_type(self):
        strategy = SubjectNameStrategy.TOPIC_RECORD_NAME
        assert strategy.subject_for("orders", Untagged("x"), False) == "orders-Untagged"

    def test_topic_record_name_falls_back_to_topic_for_mapping(self):
        strategy = SubjectNameStrategy.TOPIC_RECORD_NAME
        assert strategy.subject_for("orders", {"name": "x"}, False) == "orders"

    def test_record_name_ignores_topic(self):
        strategy = SubjectNameStrategy.RECORD_NAME
        first = strategy.subject_for("orders", Order("x", 1), False)
        second = strategy.subject_for("audit", Order("y", 2), True)
        assert first == second == "org.test.Order"

    def test_record_name_falls_back_to_topic(self):
        assert SubjectNameStrategy.RECORD_NAME.subject_for("orders", {}, False) == "orders"

    def test_parse_is_case_insensitive(self):
        parsed = SubjectNameStrategy.parse("topicrecordnamestrategy")
        assert parsed is SubjectNameStrategy.TOPIC_RECORD_NAME
        assert parsed.subject_for("t", Order("x", 1), False) == "t-org.test.Order"

    @pytest.mark.parametrize("name", [None, ""])
    def test_parse_defaults_to_topic_name(self, name):
        assert SubjectNameStrategy.parse(name) is SubjectNameStrategy.TOPIC_NAME

    def test_parse_accepts_member(self):
        assert SubjectNameStrategy.parse(SubjectNameStrategy.RECORD_NAME) is SubjectNameStrategy.RECORD_NAME

    def test_parse_invalid_name_fails(self):
        with pytest.raises(InvalidStrategyName, match="Allowed strategies"):
            SubjectNameStrategy.parse("bogus")

    def test_resolve_subject_defaults_for_unknown_strategy(self):
        assert resolve_subject("orders", Order("x", 1), False, strategy="bogus") == "orders-value"
        assert resolve_subject("orders", Order("x", 1), True) == "orders-key"

    @pytest.mark.parametrize("name", ["RecordNameStrategy", "recordnamestrategy", SubjectNameStrategy.RECORD_NAME])
    def test_resolve_subject_accepts_strategy_names(self, name):
        assert resolve_subject("orders", Order("x", 1), False, strategy=name) == "org.test.Order"

    @pytest.mark.parametrize("strategy", ["", None, 3])
    def test_resolve_subject_never_raises(self, strategy):
        assert resolve_subject("orders", {}, True, strategy=strategy) == "orders-key"

    def test_record_name_derivation(self):
        assert record_name(Order("x", 1)) == "org.test.Order"
        assert record_name(Untagged("x")) == "Untagged"
        assert record_name("key") == "str"
        assert record_name({"__schema_name__": "nope"}) is None
        assert has_record_name({}) is False
        assert has_record_name(None) is False

    def test_explicit_tag_on_instance(self):
        value = Untagged("x")
        value.__schema_name__ = "com.acme.Custom"
        assert record_name(value) == "com.acme.Custom"


# ── wire ───────────────────────────────────────────────────────────────────

class _RawCodec:
    def encode(self, value):
        return value


class TestWireCodec:
    def test_envelope_layout(self):
        data = WireCodec().encode(b"payload", 42, _RawCodec())
        assert data[:HEADER_SIZE] == b"\x00\x00\x00\x00\x2a"
        assert data[HEADER_SIZE:] == b"payload"

    def test_round_trip_with_avro_schema(self, order_schema):
        codec = WireCodec()
        value = {"name": "Thanasis", "long": 540}
        header = codec.decode(codec.encode(value, 42, order_schema))
        assert header.schema_id == 42
        assert header.offset == 5
        assert order_schema.decode(bytes(header.payload)) == value

    def test_decode_at_offset(self, order_schema):
        data = WireCodec().encode({"name": "a", "long": -1}, 7, order_schema)
        header = WireCodec().decode(data)
        assert order_schema.decode(data, header.offset) == {"name": "a", "long": -1}

    def test_large_schema_id(self):
        data = frame(0xFFFFFFFF, b"")
        assert peek_schema_id(data) == 0xFFFFFFFF

    def test_header_only_message(self):
        header = WireCodec().decode(b"\x00\x00\x00\x01\x00")
        assert header.schema_id == 256
        assert len(header.payload) == 0

    def test_short_buffer_is_malformed(self):
        with pytest.raises(MalformedWireMessage) as exc_info:
            WireCodec().decode(b"\x00\x00\x00")
        assert not isinstance(exc_info.value, UnsupportedMagicByte)

    def test_unknown_magic_byte(self):
        with pytest.raises(UnsupportedMagicByte) as exc_info:
            WireCodec().decode(b"\x01\x00\x00\x00\x2a\x00")
        assert exc_info.value.magic == 1

    @pytest.mark.parametrize("schema_id", [-1, 2**32, "42", True, False])
    def test_invalid_schema_id(self, schema_id):
        with pytest.raises(MalformedWireMessage):
            frame(schema_id, b"")


# ── avro ───────────────────────────────────────────────────────────────────

class TestAvroSchema:
    def test_name_is_fully_qualified(self, order_schema):
        assert order_schema.name == "org.test.Order"

    def test_encodes_dataclass(self, order_schema):
        payload = order_schema.encode(Order("Thanasis", 540))
        assert order_schema.decode(payload) == {"name": "Thanasis", "long": 540}

    def test_rejects_wrong_type(self, order_schema):
        with pytest.raises(RecordValidationError):
            order_schema.encode({"name": "Thanasis", "long": "540"})

    def test_rejects_missing_field(self, order_schema):
        with pytest.raises(RecordValidationError):
            order_schema.encode({"name": "Thanasis"})

    def test_primitive_schema_text(self):
        schema = AvroSchema("string")
        assert schema.name is None
        assert schema.decode(schema.encode("key")) == "key"
        assert AvroSchema('"string"') == schema

    def test_invalid_schema_text(self):
        with pytest.raises(InvalidSchemaError):
            AvroSchema("{not json")
        with pytest.raises(InvalidSchemaError):
            AvroSchema({"type": "record", "name": "Broken", "fields": [{"name": "a", "type": "nope"}]})

    @pytest.mark.parametrize("cut", [1, 3, 6])
    def test_truncated_payload_is_malformed(self, order_schema, cut):
        payload = order_schema.encode({"name": "Thanasis", "long": 2**40})
        with pytest.raises(MalformedWireMessage):
            order_schema.decode(payload[:-cut])

    def test_trailing_bytes_are_malformed(self, order_schema):
        payload = order_schema.encode({"name": "a", "long": 1})
        with pytest.raises(MalformedWireMessage, match="trailing"):
            order_schema.decode(payload + b"garbage")

    def test_incompatible_reader_schema(self, order_schema):
        reader = AvroSchema({"type": "record", "name": "Other", "fields": []})
        with pytest.raises(InvalidSchemaError):
            order_schema.decode(order_schema.encode({"name": "a", "long": 1}), reader_schema=reader)

    def test_reader_schema_projection(self, order_schema):
        reader = AvroSchema({
            "type": "record",
            "name": "Order",
            "namespace": "org.test",
            "fields": [{"name": "name", "type": "string"}],
        })
        payload = order_schema.encode({"name": "a", "long": 1})
        assert order_schema.decode(payload, reader_schema=reader) == {"name": "a"}

    def test_infer_from_mapping(self):
        value = {
            "name": "a",
            "count": 3,
            "ok": True,
            "score": 1.5,
            "tags": ["x", "y"],
            "blob": b"\x01",
            "nested": {"inner": "z"},
        }
        schema = AvroSchema.infer(value)
        assert schema.name == "Record"
        fields = {f["name"]: f["type"] for f in schema.definition["fields"]}
        assert fields["count"] == "long"
        assert fields["ok"] == "boolean"
        assert fields["score"] == "double"
        assert fields["tags"] == {"type": "array", "items": "string"}
        assert fields["nested"]["type"] == "record"
        assert schema.decode(schema.encode(value)) == value

    def test_infer_uses_record_name(self):
        schema = AvroSchema.infer(Order("a", 1))
        assert schema.name == "org.test.Order"
        assert json.loads(schema.schema_str)["fields"][1] == {"name": "long", "type": "long"}

    def test_infer_rejects_invalid_field_names(self):
        with pytest.raises(InvalidSchemaError):
            AvroSchema.infer({"first-name": "a"})

    def test_to_datum_skips_private_attributes(self):
        value = Untagged("x")
        value._cache = object()
        assert to_datum(value) == {"name": "x"}


# ── registry ───────────────────────────────────────────────────────────────

class TestInMemoryRegistry:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryRegistryClient(), RegistryClient)

    @pytest.mark.asyncio
    async def test_ids_are_content_addressed(self):
        client = InMemoryRegistryClient()
        first = await client.register_schema("a-value", '"string"')
        second = await client.register_schema("b-value", '"string"')
        third = await client.register_schema("a-value", '"long"')
        assert first == second
        assert third != first
        latest = await client.get_latest_version("a-value")
        assert (latest.version, latest.schema_id) == (2, third)

    @pytest.mark.asyncio
    async def test_unknown_lookups_raise_not_found(self):
        client = InMemoryRegistryClient()
        with pytest.raises(SchemaNotFound):
            await client.get_schema(99)
        with pytest.raises(SchemaNotFound):
            await client.get_latest_version("missing")
        client.add("s", '"string"')
        with pytest.raises(SchemaNotFound):
            await client.get_version("s", 2)

    @pytest.mark.asyncio
    async def test_read_only_rejects_registration(self):
        client = InMemoryRegistryClient(read_only=True)
        assert client.supports_registration is False
        with pytest.raises(RegistryRejectedError):
            await client.register_schema("s", '"string"')

    @pytest.mark.asyncio
    async def test_counts_calls(self):
        client = InMemoryRegistryClient()
        client.add("s", '"string"')
        await client.list_subjects()
        await client.get_version("s", 1)
        assert client.calls["list_subjects"] == 1
        assert client.calls["get_version"] == 1


# ── retry ──────────────────────────────────────────────────────────────────

class TestRetry:
    @pytest.mark.asyncio
    async def test_retries_retryable_errors(self):
        attempts = []

        @retry_policy(max_attempts=3, min_wait=0, max_wait=0, jitter=0)
        async def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise RegistryUnavailableError("down")
            return "ok"

        assert await flaky() == "ok"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_does_not_retry_definitive_errors(self):
        attempts = []

        @retry_policy(max_attempts=3, min_wait=0, max_wait=0, jitter=0)
        async def missing():
            attempts.append(1)
            raise SchemaNotFound("gone")

        with pytest.raises(SchemaNotFound):
            await missing()
        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        attempts = []

        @retry_policy(max_attempts=2, min_wait=0, max_wait=0, jitter=0)
        async def down():
            attempts.append(1)
            raise RegistryUnavailableError("down")

        with pytest.raises(RegistryUnavailableError):
            await down()
        assert len(attempts) == 2
