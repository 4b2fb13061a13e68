"""
schemawire.tier1_runtime.subject
──────────────────────────────────
Subject name strategies: decide under which registry subject the schema of an
outbound key or value is looked up or registered.

    TopicNameStrategy        orders-key / orders-value          (default)
    TopicRecordNameStrategy  orders-com.acme.Order               one lineage per (topic, record)
    RecordNameStrategy       com.acme.Order                      one lineage per record, all topics

The record-name strategies fall back to the bare topic when no record name
can be derived from the value. Plain mappings never carry a record name
unless they are wrapped in a type that declares ``__schema_name__``.

Usage:
    strategy = SubjectNameStrategy.parse("topicrecordnamestrategy")
    strategy.subject_for("orders", order, is_key=False)
"""
from __future__ import annotations

import enum
import types
from collections.abc import Mapping
from typing import Any

from schemawire.tier0_core.errors import InvalidStrategyName

SCHEMA_NAME_ATTR = "__schema_name__"

# Types that never carry an identifiable record name
_GENERIC_CONTAINERS: tuple[type, ...] = (Mapping, types.SimpleNamespace)



def record_name(value: Any) -> str | None:
    """Return the record name of ``value``, or None when it has none."""
    explicit = getattr(value, SCHEMA_NAME_ATTR, None)
    if isinstance(explicit, str) and explicit:
        return explicit
    if value is None or isinstance(value, _GENERIC_CONTAINERS):
        return None
    return type(value).__name__


def has_record_name(value: Any) -> bool:
    return record_name(value) is not None


class SubjectNameStrategy(str, enum.Enum):
    TOPIC_NAME = "TopicNameStrategy"
    TOPIC_RECORD_NAME = "TopicRecordNameStrategy"
    RECORD_NAME = "RecordNameStrategy"

    @classmethod
    def parse(cls, name: str | SubjectNameStrategy | None) -> SubjectNameStrategy:
        """
        Select a strategy by case-insensitive name.

        ``None`` or an empty string selects the default TopicNameStrategy.
        Any other unknown name raises InvalidStrategyName.
        """
        if isinstance(name, cls):
            return name
        if not name:
            return cls.TOPIC_NAME
        normalized = name.strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise InvalidStrategyName(name, [m.value for m in cls])

    def subject_for(self, topic: str, value: Any, is_key: bool) -> str:
        if self is SubjectNameStrategy.TOPIC_RECORD_NAME:
            name = record_name(value)
            return f"{topic}-{name}" if name else topic
        if self is SubjectNameStrategy.RECORD_NAME:
            return record_name(value) or topic
        return f"{topic}-{'key' if is_key else 'value'}"


def resolve_subject(
    topic: str,
    value: Any,
    is_key: bool,
    strategy: Any = None,
) -> str:
    """
    Compute the subject for ``value`` published to ``topic``.

    ``strategy`` may be a member or its case-insensitive name. Anything else
    selects the default TopicNameStrategy; this function never raises.
    """
    if isinstance(strategy, str):
        try:
            strategy = SubjectNameStrategy.parse(strategy)
        except InvalidStrategyName:
            strategy = SubjectNameStrategy.TOPIC_NAME
    else:
        strategy = SubjectNameStrategy.TOPIC_NAME
    return strategy.subject_for(topic, value, is_key)


__all__ = [
    "SCHEMA_NAME_ATTR",
    "SubjectNameStrategy",
    "has_record_name",
    "record_name",
    "resolve_subject",
]
