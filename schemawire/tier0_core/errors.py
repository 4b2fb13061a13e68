"""
schemawire.tier0_core.errors
─────────────────────────────
Standard error taxonomy for the wire codec, subject resolution and registry
access. Every error carries a stable machine-readable code and a
``retryable`` flag so callers can decide on their own backoff policy.

Pure computation errors (strategy names, malformed frames) are raised
synchronously. Registry errors surface from the awaited coroutine.
"""
from __future__ import annotations

from typing import Any, Iterable


# ── Base error ────────────────────────────────────────────────────────────────

class SchemaWireError(Exception):
    """
    Base class for all schemawire errors. Every error has:
    - code: stable machine-readable string (snake_case)
    - detail: human-readable context
    - metadata: structured fields for logs
    - retryable: whether repeating the same call may succeed
    """

    code: str = "schemawire_error"
    retryable: bool = False

    def __init__(
        self,
        detail: str | None = None,
        *,
        code: str | None = None,
        **metadata: Any,
    ) -> None:
        self.code = code or self.__class__.code
        self.detail = detail or self.code.replace("_", " ")
        self.metadata = metadata
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.detail,
                "retryable": self.retryable,
                **self.metadata,
            }
        }


# ── Configuration ─────────────────────────────────────────────────────────────

class ConfigurationError(SchemaWireError):
    """Misconfiguration detected at construction time."""
    code = "configuration_error"


class InvalidStrategyName(ConfigurationError):
    """A subject name strategy name matched none of the known strategies."""
    code = "invalid_strategy_name"

    def __init__(self, name: str, allowed: Iterable[str]) -> None:
        self.name = name
        self.allowed = tuple(allowed)
        super().__init__(
            f"Invalid subject name strategy {name!r}. "
            f"Allowed strategies are {', '.join(self.allowed)}",
            strategy=name,
        )


# ── Wire format ───────────────────────────────────────────────────────────────

class MalformedWireMessage(SchemaWireError):
    """A buffer cannot be interpreted as a framed message."""
    code = "malformed_wire_message"


class UnsupportedMagicByte(MalformedWireMessage):
    """The leading byte names a wire-format version this codec does not handle."""
    code = "unsupported_magic_byte"

    def __init__(self, magic: int) -> None:
        self.magic = magic
        super().__init__(f"Unsupported magic byte 0x{magic:02x}", magic=magic)


class RecordValidationError(SchemaWireError):
    """A value does not conform to the schema it is being encoded with."""
    code = "record_validation_error"


class InvalidSchemaError(SchemaWireError):
    """Schema text that cannot be parsed, or a value no schema can be inferred for."""
    code = "invalid_schema"


# ── Schema lookup ─────────────────────────────────────────────────────────────

class SchemaNotFound(SchemaWireError):
    """The registry definitively has no schema for the id or subject."""
    code = "schema_not_found"


class SchemaRequiredButMissing(SchemaWireError):
    """Strict-mode publish for a subject that has no registered schema."""
    code = "schema_required_but_missing"


# ── Registry access ───────────────────────────────────────────────────────────

class RegistryError(SchemaWireError):
    """Base class for failures talking to the schema registry."""
    code = "registry_error"


class RegistryRejectedError(RegistryError):
    """The registry refused the request (incompatible or invalid schema, bad request)."""
    code = "registry_rejected"

    def __init__(
        self,
        detail: str | None = None,
        *,
        status_code: int | None = None,
        error_code: int | None = None,
        **metadata: Any,
    ) -> None:
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(detail, status_code=status_code, error_code=error_code, **metadata)


class RegistryUnavailableError(RegistryError):
    """Transient registry or network failure."""
    code = "registry_unavailable"
    retryable = True


class RegistryTimeoutError(RegistryUnavailableError):
    """A caller gave up waiting for a registry fetch."""
    code = "registry_timeout"


__all__ = [
    "SchemaWireError",
    "ConfigurationError",
    "InvalidStrategyName",
    "MalformedWireMessage",
    "UnsupportedMagicByte",
    "RecordValidationError",
    "InvalidSchemaError",
    "SchemaNotFound",
    "SchemaRequiredButMissing",
    "RegistryError",
    "RegistryRejectedError",
    "RegistryUnavailableError",
    "RegistryTimeoutError",
]
