"""
schemawire
──────────
Schema-registry wire codec and subject resolution. Import from here, not from
sub-modules directly. Every name exported here is part of the public API.
"""
from schemawire.tier0_core.config import SchemaWireConfig, get_config
from schemawire.tier0_core.errors import (
    ConfigurationError,
    InvalidSchemaError,
    InvalidStrategyName,
    MalformedWireMessage,
    RecordValidationError,
    RegistryError,
    RegistryRejectedError,
    RegistryTimeoutError,
    RegistryUnavailableError,
    SchemaNotFound,
    SchemaRequiredButMissing,
    SchemaWireError,
    UnsupportedMagicByte,
)
from schemawire.tier0_core.logging import get_logger

from schemawire.tier1_runtime.avro import AvroSchema
from schemawire.tier1_runtime.registry import (
    InMemoryRegistryClient,
    RegisteredSchema,
    RegistryClient,
)
from schemawire.tier1_runtime.subject import (
    SubjectNameStrategy,
    has_record_name,
    record_name,
    resolve_subject,
)
from schemawire.tier1_runtime.wire import HEADER_SIZE, MAGIC_BYTE, WireCodec, WireHeader

from schemawire.tier2_reliability.cache import SchemaCache, SchemaEntry

from schemawire.tier3_platform.registry_client import HttpRegistryClient
from schemawire.tier3_platform.resolver import ResolvedSchema, SchemaResolver
from schemawire.tier3_platform.serde import (
    AvroDeserializer,
    AvroSerializer,
    DecodedMessage,
    build_serde,
)

__version__ = "0.1.0"
__all__ = [
    # config
    "SchemaWireConfig", "get_config",
    # errors
    "SchemaWireError", "ConfigurationError", "InvalidStrategyName",
    "MalformedWireMessage", "UnsupportedMagicByte", "RecordValidationError",
    "InvalidSchemaError", "SchemaNotFound", "SchemaRequiredButMissing",
    "RegistryError", "RegistryRejectedError", "RegistryUnavailableError",
    "RegistryTimeoutError",
    # logging
    "get_logger",
    # subject
    "SubjectNameStrategy", "resolve_subject", "record_name", "has_record_name",
    # wire
    "WireCodec", "WireHeader", "MAGIC_BYTE", "HEADER_SIZE",
    # avro
    "AvroSchema",
    # registry
    "RegistryClient", "RegisteredSchema", "InMemoryRegistryClient", "HttpRegistryClient",
    # cache
    "SchemaCache", "SchemaEntry",
    # resolver
    "SchemaResolver", "ResolvedSchema",
    # serde
    "AvroSerializer", "AvroDeserializer", "DecodedMessage", "build_serde",
]
