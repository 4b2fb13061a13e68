"""
schemawire.tier3_platform.registry_client
───────────────────────────────────────────
Async HTTP client for a Confluent-compatible schema registry. Adds basic
auth, retry of transient failures and structured error mapping to every
request.

    GET  /schemas/ids/{id}
    GET  /subjects
    GET  /subjects/{subject}/versions/{version|latest}
    POST /subjects/{subject}/versions        {"schema": "<json>"}

Backed by: httpx (async HTTP), tenacity (retry).
"""
from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from schemawire.tier0_core.config import SchemaWireConfig
from schemawire.tier0_core.errors import (
    RegistryRejectedError,
    RegistryUnavailableError,
    SchemaNotFound,
)
from schemawire.tier0_core.http import (
    HTTP,
    REGISTRY_CONTENT_TYPE,
    RegistryErrorCode,
    is_retryable_status,
)
from schemawire.tier0_core.logging import get_logger
from schemawire.tier1_runtime.registry import RegisteredSchema
from schemawire.tier1_runtime.retry import retry_policy

log = get_logger(__name__)


class HttpRegistryClient:
    """
    Registry client over HTTP.

    Usage::

        client = HttpRegistryClient("http://schema-registry:8081")
        schema_str = await client.get_schema(42)
        await client.aclose()

    Pass ``transport`` (e.g. ``httpx.MockTransport``) to stub the network in tests.
    """

    supports_registration = True

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        basic_auth: tuple[str, str] | None = None,
        max_attempts: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            auth=basic_auth,
            transport=transport,
            headers={"Accept": REGISTRY_CONTENT_TYPE, "Content-Type": REGISTRY_CONTENT_TYPE},
        )
        self._request = retry_policy(max_attempts=max_attempts)(self._request_once)

    @classmethod
    def from_config(cls, config: SchemaWireConfig, **kwargs: Any) -> HttpRegistryClient:
        return cls(
            config.registry_url,
            timeout=config.registry_timeout,
            basic_auth=config.basic_auth,
            max_attempts=config.registry_max_attempts,
            **kwargs,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpRegistryClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ── Registry operations ─────────────────────────────────────────────────

    async def get_schema(self, schema_id: int) -> str:
        body = await self._request("GET", f"/schemas/ids/{int(schema_id)}")
        return body["schema"]

    async def get_latest_version(self, subject: str) -> RegisteredSchema:
        return await self.get_version(subject, "latest")

    async def get_version(self, subject: str, version: int | str) -> RegisteredSchema:
        body = await self._request("GET", f"/subjects/{_quote(subject)}/versions/{version}")
        return RegisteredSchema(
            subject=body.get("subject", subject),
            schema_id=body["id"],
            version=body["version"],
            schema_str=body["schema"],
        )

    async def register_schema(self, subject: str, schema_str: str) -> int:
        body = await self._request(
            "POST", f"/subjects/{_quote(subject)}/versions", json={"schema": schema_str}
        )
        return body["id"]

    async def list_subjects(self) -> list[str]:
        return await self._request("GET", "/subjects")

    # ── Transport ───────────────────────────────────────────────────────────

    async def _request_once(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            log.warning("registry.request_failed", method=method, path=path, error=str(exc))
            raise RegistryUnavailableError(
                f"Request to schema registry failed: {exc}",
                method=method,
                path=path,
            ) from exc

        if response.status_code == HTTP.OK:
            return response.json()
        raise _map_error(response, method, path)


def _quote(subject: str) -> str:
    return quote(subject, safe="")


def _map_error(response: httpx.Response, method: str, path: str) -> Exception:
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    error_code = body.get("error_code")
    message = body.get("message") or response.text or f"HTTP {status}"

    log.warning(
        "registry.error_response",
        method=method,
        path=path,
        status=status,
        error_code=error_code,
    )

    if error_code in RegistryErrorCode.NOT_FOUND or status == HTTP.NOT_FOUND:
        return SchemaNotFound(message, path=path, error_code=error_code)
    if is_retryable_status(status):
        return RegistryUnavailableError(message, path=path, status_code=status, error_code=error_code)
    return RegistryRejectedError(message, status_code=status, error_code=error_code, path=path)


__all__ = ["HttpRegistryClient"]
