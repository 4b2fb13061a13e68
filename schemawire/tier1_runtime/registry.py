"""
schemawire.tier1_runtime.registry
───────────────────────────────────
The registry collaborator contract, plus an in-memory registry for tests and
local development.

The in-memory registry mirrors the server's observable behaviour: ids are
assigned per distinct schema content (registering identical text under
another subject returns the same id), versions count up per subject, and
lookups for unknown ids or subjects raise SchemaNotFound.
"""
from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from schemawire.tier0_core.errors import RegistryRejectedError, SchemaNotFound


@dataclass(frozen=True)
class RegisteredSchema:
    subject: str
    schema_id: int
    version: int
    schema_str: str


@runtime_checkable
class RegistryClient(Protocol):
    supports_registration: bool

    async def get_schema(self, schema_id: int) -> str: ...
    async def get_latest_version(self, subject: str) -> RegisteredSchema: ...
    async def get_version(self, subject: str, version: int) -> RegisteredSchema: ...
    async def register_schema(self, subject: str, schema_str: str) -> int: ...
    async def list_subjects(self) -> list[str]: ...


class InMemoryRegistryClient:
    """In-process schema registry for tests and local dev. NOT shared across processes."""

    def __init__(self, *, read_only: bool = False, latency: float = 0.0) -> None:
        self.supports_registration = not read_only
        self.calls: Counter[str] = Counter()
        self._latency = latency
        self._ids_by_content: dict[str, int] = {}
        self._content_by_id: dict[int, str] = {}
        self._versions: dict[str, list[int]] = {}
        self._next_id = 1

    def add(self, subject: str, schema_str: str) -> RegisteredSchema:
        """Synchronously seed a schema, bypassing ``read_only``."""
        schema_id = self._ids_by_content.get(schema_str)
        if schema_id is None:
            schema_id = self._next_id
            self._next_id += 1
            self._ids_by_content[schema_str] = schema_id
            self._content_by_id[schema_id] = schema_str
        versions = self._versions.setdefault(subject, [])
        if schema_id not in versions:
            versions.append(schema_id)
        return RegisteredSchema(subject, schema_id, versions.index(schema_id) + 1, schema_str)

    async def _tick(self, call: str) -> None:
        self.calls[call] += 1
        if self._latency:
            await asyncio.sleep(self._latency)

    async def get_schema(self, schema_id: int) -> str:
        await self._tick("get_schema")
        try:
            return self._content_by_id[schema_id]
        except KeyError:
            raise SchemaNotFound(f"Schema {schema_id} not found", schema_id=schema_id) from None

    async def get_latest_version(self, subject: str) -> RegisteredSchema:
        await self._tick("get_latest_version")
        versions = self._versions.get(subject)
        if not versions:
            raise SchemaNotFound(f"Subject {subject!r} not found", subject=subject)
        return self._registered(subject, len(versions))

    async def get_version(self, subject: str, version: int) -> RegisteredSchema:
        await self._tick("get_version")
        versions = self._versions.get(subject)
        if not versions or not 1 <= version <= len(versions):
            raise SchemaNotFound(
                f"Version {version} of subject {subject!r} not found",
                subject=subject,
                version=version,
            )
        return self._registered(subject, version)

    async def register_schema(self, subject: str, schema_str: str) -> int:
        await self._tick("register_schema")
        if not self.supports_registration:
            raise RegistryRejectedError(
                "Registry is read-only", status_code=403, subject=subject
            )
        return self.add(subject, schema_str).schema_id

    async def list_subjects(self) -> list[str]:
        await self._tick("list_subjects")
        return sorted(self._versions)

    def _registered(self, subject: str, version: int) -> RegisteredSchema:
        schema_id = self._versions[subject][version - 1]
        return RegisteredSchema(subject, schema_id, version, self._content_by_id[schema_id])


__all__ = ["RegisteredSchema", "RegistryClient", "InMemoryRegistryClient"]
