"""
schemawire.tier3_platform.resolver
────────────────────────────────────
Publish-side schema resolution: topic + value + role → subject → schema id.

Strict mode (``fail_when_schema_missing``) raises SchemaRequiredButMissing
when the subject has no schema. Otherwise a schema is inferred from the
value's runtime shape and registered under the subject.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from schemawire.tier0_core.config import SchemaWireConfig
from schemawire.tier0_core.errors import SchemaNotFound, SchemaRequiredButMissing
from schemawire.tier0_core.logging import get_logger
from schemawire.tier1_runtime.avro import AvroSchema
from schemawire.tier1_runtime.subject import SubjectNameStrategy
from schemawire.tier2_reliability.cache import SchemaCache

log = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedSchema:
    schema_id: int
    schema: AvroSchema
    subject: str


class SchemaResolver:
    def __init__(
        self,
        cache: SchemaCache,
        *,
        key_strategy: str | SubjectNameStrategy | None = None,
        value_strategy: str | SubjectNameStrategy | None = None,
        fail_when_schema_missing: bool = False,
    ) -> None:
        self.cache = cache
        self.key_strategy = SubjectNameStrategy.parse(key_strategy)
        self.value_strategy = SubjectNameStrategy.parse(value_strategy)
        self.fail_when_schema_missing = fail_when_schema_missing

    @classmethod
    def from_config(cls, config: SchemaWireConfig, cache: SchemaCache) -> SchemaResolver:
        return cls(
            cache,
            key_strategy=config.key_subject_strategy,
            value_strategy=config.value_subject_strategy,
            fail_when_schema_missing=config.fail_when_schema_missing,
        )

    def subject_for(self, topic: str, value: Any, is_key: bool) -> str:
        strategy = self.key_strategy if is_key else self.value_strategy
        return strategy.subject_for(topic, value, is_key)

    async def resolve_for_publish(self, topic: str, value: Any, is_key: bool) -> ResolvedSchema:
        subject = self.subject_for(topic, value, is_key)
        try:
            entry = await self.cache.get_or_fetch_by_subject(subject)
        except SchemaNotFound as exc:
            if self.fail_when_schema_missing or not self.cache.client.supports_registration:
                raise SchemaRequiredButMissing(
                    f"No schema registered for subject {subject!r}",
                    subject=subject,
                    topic=topic,
                ) from exc
            schema = AvroSchema.infer(value)
            log.info("schema_resolver.auto_register", subject=subject, record=schema.name)
            entry = await self.cache.get_or_register(subject, schema)
        return ResolvedSchema(schema_id=entry.schema_id, schema=entry.schema, subject=subject)


__all__ = ["ResolvedSchema", "SchemaResolver"]
