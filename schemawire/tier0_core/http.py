"""
schemawire.tier0_core.http
───────────────────────────
HTTP primitives shared by the registry clients: status codes, the registry's
own error codes, and the content type it speaks.
"""
from __future__ import annotations


# ── Status code constants ──────────────────────────────────────────────────

class HTTP:
    """HTTP status codes the registry clients care about."""

    # 2xx
    OK = 200

    # 4xx
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    UNPROCESSABLE_ENTITY = 422
    TOO_MANY_REQUESTS = 429

    # 5xx
    INTERNAL_SERVER_ERROR = 500


# ── Registry error codes ───────────────────────────────────────────────────

class RegistryErrorCode:
    """``error_code`` values found in registry error bodies."""

    SUBJECT_NOT_FOUND = 40401
    VERSION_NOT_FOUND = 40402
    SCHEMA_NOT_FOUND = 40403
    INCOMPATIBLE_SCHEMA = 409
    INVALID_SCHEMA = 42201
    INVALID_VERSION = 42202
    BACKEND_STORE_ERROR = 50001
    OPERATION_TIMEOUT = 50002
    FORWARDING_ERROR = 50003

    NOT_FOUND = frozenset({SUBJECT_NOT_FOUND, VERSION_NOT_FOUND, SCHEMA_NOT_FOUND})


REGISTRY_CONTENT_TYPE = "application/vnd.schemaregistry.v1+json"


def is_retryable_status(status_code: int) -> bool:
    """5xx and 429 are transient; every other 4xx is a definitive answer."""
    return status_code >= HTTP.INTERNAL_SERVER_ERROR or status_code == HTTP.TOO_MANY_REQUESTS


__all__ = ["HTTP", "RegistryErrorCode", "REGISTRY_CONTENT_TYPE", "is_retryable_status"]
