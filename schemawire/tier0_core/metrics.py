"""
schemawire.tier0_core.metrics
──────────────────────────────
Counters with standard naming and labels for cache and registry activity.
Scraped from the host process's Prometheus registry.

Minimal stack: prometheus-client
Configure via: SCHEMAWIRE_SERVICE_NAME (the ``service`` label)
"""
from __future__ import annotations

from typing import Callable

from prometheus_client import Counter

from schemawire.tier0_core.config import get_config

# Standard labels applied to every metric
_DEFAULT_LABELS = ["service"]


def counter(name: str, description: str, labels: list[str] | None = None) -> Callable:
    """
    Create a counter with standard labels. Call once per metric name.

    Usage:
        lookups = counter("schemawire_cache_lookups_total", "Cache lookups", ["kind", "result"])
        lookups(kind="id", result="hit").inc()
    """
    all_labels = _DEFAULT_LABELS + (labels or [])
    c = Counter(name, description, all_labels)

    def _counter(**extra_labels: str) -> Counter:
        return c.labels(service=get_config().service_name, **extra_labels)

    return _counter


__all__ = ["counter"]
