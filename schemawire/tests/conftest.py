"""
schemawire test configuration.

All tests run against the in-memory registry or an httpx mock transport;
no schema registry or broker required.
"""
from __future__ import annotations

import os

import pytest

# ── Force test settings ────────────────────────────────────────────────────
# These must be set before any schemawire modules are imported.

os.environ.setdefault("SCHEMAWIRE_LOG_LEVEL", "WARNING")
os.environ.setdefault("SCHEMAWIRE_LOG_FORMAT", "console")
os.environ.setdefault("SCHEMAWIRE_SERVICE_NAME", "test-service")


ORDER_SCHEMA = {
    "type": "record",
    "name": "Order",
    "namespace": "org.test",
    "fields": [
        {"name": "name", "type": "string"},
        {"name": "long", "type": "long"},
    ],
}


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_config():
    """Each test sees a fresh config built from the current environment."""
    from schemawire.tier0_core.config import _reset_config

    _reset_config()
    yield
    _reset_config()


@pytest.fixture
def order_schema():
    from schemawire.tier1_runtime.avro import AvroSchema
    return AvroSchema(ORDER_SCHEMA)


@pytest.fixture
def registry():
    """A fresh InMemoryRegistryClient seeded with the orders value schema."""
    import json

    from schemawire.tier1_runtime.registry import InMemoryRegistryClient

    client = InMemoryRegistryClient()
    client.add("orders-value", json.dumps(ORDER_SCHEMA, separators=(",", ":")))
    return client


@pytest.fixture
def cache(registry):
    from schemawire.tier2_reliability.cache import SchemaCache
    return SchemaCache(registry)
