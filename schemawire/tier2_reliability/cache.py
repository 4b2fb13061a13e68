"""
schemawire.tier2_reliability.cache
────────────────────────────────────
Schema cache keyed by schema id, by subject (latest version) and by
(subject, version). Entries are write-once and never evicted: the registry
guarantees that the content behind an id never changes.

Stampede protection: concurrent misses for one key share a single in-flight
fetch task. Waiters are shielded from it, so a caller that times out or is
cancelled never cancels the fetch; it still completes and populates the
cache. Failed fetches are not cached and the next lookup tries again.
"""
from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Hashable

from schemawire.tier0_core.errors import RegistryTimeoutError
from schemawire.tier0_core.logging import get_logger
from schemawire.tier0_core.metrics import counter
from schemawire.tier1_runtime.avro import AvroSchema
from schemawire.tier1_runtime.registry import RegistryClient

log = get_logger(__name__)

_lookups = counter(
    "schemawire_cache_lookups_total", "Schema cache lookups", ["kind", "result"]
)
_fetches = counter(
    "schemawire_registry_fetches_total",
    "Registry fetches issued by the schema cache",
    ["kind", "outcome"],
)


@dataclass(frozen=True)
class SchemaEntry:
    schema_id: int
    schema: AvroSchema
    subject: str | None = None
    version: int | None = None


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    coalesced: int = 0
    fetch_failures: int = 0


class SchemaCache:
    """
    Registry-backed schema cache.

    Usage:
        cache = SchemaCache(HttpRegistryClient("http://registry:8081"))
        entry = await cache.get_or_fetch_by_subject("orders-value")
        schema = await cache.get_by_id(entry.schema_id)
    """

    def __init__(self, client: RegistryClient, *, lookup_timeout: float | None = None) -> None:
        self.client = client
        self.stats = CacheStats()
        self._lookup_timeout = lookup_timeout
        self._entries: dict[Hashable, SchemaEntry] = {}
        self._inflight: dict[Hashable, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._entries)

    # ── Lookups ──────────────────────────────────────────────────────────────

    async def get_by_id(self, schema_id: int, *, timeout: float | None = None) -> AvroSchema:
        async def fetch() -> SchemaEntry:
            schema_str = await self.client.get_schema(schema_id)
            return SchemaEntry(schema_id=schema_id, schema=AvroSchema(schema_str))

        entry = await self._lookup(("id", schema_id), "id", fetch, timeout)
        return entry.schema

    async def get_or_fetch_by_subject(
        self, subject: str, *, timeout: float | None = None
    ) -> SchemaEntry:
        """Latest schema registered under ``subject``."""
        async def fetch() -> SchemaEntry:
            registered = await self.client.get_latest_version(subject)
            return SchemaEntry(
                schema_id=registered.schema_id,
                schema=self._schema_for(registered.schema_id, registered.schema_str),
                subject=subject,
                version=registered.version,
            )

        return await self._lookup(("subject", subject), "subject", fetch, timeout)

    async def get_by_subject_version(
        self, subject: str, version: int, *, timeout: float | None = None
    ) -> SchemaEntry:
        async def fetch() -> SchemaEntry:
            registered = await self.client.get_version(subject, version)
            return SchemaEntry(
                schema_id=registered.schema_id,
                schema=self._schema_for(registered.schema_id, registered.schema_str),
                subject=subject,
                version=registered.version,
            )

        return await self._lookup(("version", subject, version), "version", fetch, timeout)

    async def get_or_register(
        self, subject: str, schema: AvroSchema, *, timeout: float | None = None
    ) -> SchemaEntry:
        """
        Register ``schema`` under ``subject`` unless the subject is already cached.

        Concurrent registrations for one subject coalesce into a single POST.
        """
        cached = self._entries.get(("subject", subject))
        if cached is not None:
            self._record("register", "hit")
            return cached

        async def fetch() -> SchemaEntry:
            schema_id = await self.client.register_schema(subject, schema.schema_str)
            log.info("schema_cache.registered", subject=subject, schema_id=schema_id)
            return SchemaEntry(
                schema_id=schema_id,
                schema=self._schema_for(schema_id, schema),
                subject=subject,
            )

        entry = await self._lookup(("register", subject), "register", fetch, timeout)
        return self._entries.setdefault(("subject", subject), entry)

    def peek_by_id(self, schema_id: int) -> AvroSchema | None:
        """Cached schema for ``schema_id`` without any registry I/O."""
        entry = self._entries.get(("id", schema_id))
        return entry.schema if entry is not None else None

    async def prefetch(self, subjects: list[str] | None = None) -> list[SchemaEntry]:
        """Warm the cache with the latest schema of each subject (all subjects by default)."""
        if subjects is None:
            subjects = await self.client.list_subjects()
        entries = await asyncio.gather(*(self.get_or_fetch_by_subject(s) for s in subjects))
        log.info("schema_cache.prefetched", subjects=len(entries), entries=len(self))
        return list(entries)

    # ── Internals ────────────────────────────────────────────────────────────

    def _schema_for(self, schema_id: int, schema: str | AvroSchema) -> AvroSchema:
        existing = self._entries.get(("id", schema_id))
        if existing is not None:
            return existing.schema
        return schema if isinstance(schema, AvroSchema) else AvroSchema(schema)

    def _record(self, kind: str, result: str) -> None:
        if result == "hit":
            self.stats.hits += 1
        elif result == "miss":
            self.stats.misses += 1
        else:
            self.stats.coalesced += 1
        _lookups(kind=kind, result=result).inc()

    async def _lookup(
        self,
        key: Hashable,
        kind: str,
        fetch: Callable[[], Awaitable[SchemaEntry]],
        timeout: float | None,
    ) -> SchemaEntry:
        entry = self._entries.get(key)
        if entry is not None:
            self._record(kind, "hit")
            return entry

        task = self._inflight.get(key)
        if task is None:
            self._record(kind, "miss")
            task = asyncio.get_running_loop().create_task(self._populate(key, kind, fetch))
            task.add_done_callback(_consume_result)
            self._inflight[key] = task
        else:
            self._record(kind, "coalesced")

        wait = self._lookup_timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(asyncio.shield(task), wait)
        except asyncio.TimeoutError as exc:
            raise RegistryTimeoutError(
                f"Timed out after {wait}s waiting for schema {_describe(key)}",
                key=_describe(key),
            ) from exc

    async def _populate(
        self, key: Hashable, kind: str, fetch: Callable[[], Awaitable[SchemaEntry]]
    ) -> SchemaEntry:
        try:
            log.debug("schema_cache.fetch", key=_describe(key))
            entry = self._insert(key, await fetch())
        except Exception as exc:
            self.stats.fetch_failures += 1
            _fetches(kind=kind, outcome="error").inc()
            log.warning(
                "schema_cache.fetch_failed",
                key=_describe(key),
                error=getattr(exc, "code", type(exc).__name__),
                retryable=getattr(exc, "retryable", False),
            )
            raise
        finally:
            self._inflight.pop(key, None)
        _fetches(kind=kind, outcome="ok").inc()
        return entry

    def _insert(self, key: Hashable, entry: SchemaEntry) -> SchemaEntry:
        by_id = self._entries.setdefault(("id", entry.schema_id), entry)
        if by_id.schema is not entry.schema:
            entry = dataclasses.replace(entry, schema=by_id.schema)
        return self._entries.setdefault(key, entry)


def _describe(key: Any) -> str:
    return ":".join(str(part) for part in key) if isinstance(key, tuple) else str(key)


def _consume_result(task: asyncio.Task) -> None:
    # Abandoned fetches must not leave "exception was never retrieved" behind.
    if not task.cancelled():
        task.exception()


__all__ = ["SchemaEntry", "CacheStats", "SchemaCache"]
