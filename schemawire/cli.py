"""
schemawire.cli
───────────────
Command-line helpers for operators debugging topics:

    schemawire subject orders --strategy TopicRecordNameStrategy --record-name com.acme.Order
    schemawire inspect 000000002a0a466f6f
    schemawire fetch 42 --registry-url http://schema-registry:8081
"""
from __future__ import annotations

import asyncio
import json

import click

from schemawire.tier0_core.config import get_config
from schemawire.tier0_core.errors import InvalidStrategyName, SchemaWireError
from schemawire.tier1_runtime.subject import SCHEMA_NAME_ATTR, SubjectNameStrategy
from schemawire.tier1_runtime.wire import HEADER_SIZE, MAGIC_BYTE, peek_schema_id
from schemawire.tier2_reliability.cache import SchemaCache
from schemawire.tier3_platform.registry_client import HttpRegistryClient


class _NamedRecord:
    def __init__(self, name: str) -> None:
        setattr(self, SCHEMA_NAME_ATTR, name)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def cli() -> None:
    """Schema registry wire-format tools."""


@cli.command("subject")
@click.argument("topic")
@click.option("--strategy", default=None, help="Subject name strategy (case-insensitive).")
@click.option("--key", "is_key", is_flag=True, help="Resolve the key subject instead of the value subject.")
@click.option("--record-name", default=None, help="Record name carried by the value.")
def subject_command(topic: str, strategy: str | None, is_key: bool, record_name: str | None) -> None:
    """Print the subject a value published to TOPIC resolves to."""
    try:
        parsed = SubjectNameStrategy.parse(strategy)
    except InvalidStrategyName as exc:
        raise click.BadParameter(exc.detail, param_hint="--strategy") from exc
    value = _NamedRecord(record_name) if record_name else {}
    click.echo(parsed.subject_for(topic, value, is_key))


@cli.command("inspect")
@click.argument("hex_bytes")
def inspect_command(hex_bytes: str) -> None:
    """Print the wire header of a hex-encoded message."""
    try:
        data = bytes.fromhex(hex_bytes)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="HEX_BYTES") from exc
    try:
        schema_id = peek_schema_id(data)
    except SchemaWireError as exc:
        click.echo(json.dumps(exc.to_dict(), default=str), err=True)
        raise SystemExit(2) from exc
    click.echo(json.dumps({
        "magic": MAGIC_BYTE,
        "schema_id": schema_id,
        "payload_bytes": len(data) - HEADER_SIZE,
    }))


@cli.command("fetch")
@click.argument("schema_id", type=int)
@click.option("--registry-url", default=None, help="Overrides SCHEMAWIRE_REGISTRY_URL.")
def fetch_command(schema_id: int, registry_url: str | None) -> None:
    """Print the schema registered under SCHEMA_ID."""
    config = get_config()
    if registry_url:
        config = config.model_copy(update={"registry_url": registry_url.rstrip("/")})

    async def _fetch() -> str:
        async with HttpRegistryClient.from_config(config) as client:
            schema = await SchemaCache(client).get_by_id(schema_id)
            return schema.schema_str

    try:
        click.echo(asyncio.run(_fetch()))
    except SchemaWireError as exc:
        click.echo(json.dumps(exc.to_dict(), default=str), err=True)
        raise SystemExit(2) from exc


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
