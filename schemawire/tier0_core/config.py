"""
schemawire.tier0_core.config
──────────────────────────────
Typed configuration with env layering. Reads from .env → environment
variables. All fields are typed via Pydantic.

Strategy names are kept as strings here and validated by the resolver when
it is constructed, so a bad name fails at startup and never at publish time.

Minimal stack: pydantic-settings + python-dotenv
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaWireConfig(BaseSettings):
    """
    Typed schemawire configuration.
    All env vars are prefixed with SCHEMAWIRE_.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCHEMAWIRE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Registry ──────────────────────────────────────────────────────────────
    registry_url: str = Field(default="http://localhost:8081")
    registry_username: str | None = Field(default=None)
    registry_password: SecretStr | None = Field(default=None)
    registry_timeout: float = Field(default=10.0, gt=0)
    registry_max_attempts: int = Field(default=3, ge=1)

    # ── Subject resolution ────────────────────────────────────────────────────
    key_subject_strategy: str = Field(default="TopicNameStrategy")
    value_subject_strategy: str = Field(default="TopicNameStrategy")
    fail_when_schema_missing: bool = Field(default=False)

    # ── Cache ─────────────────────────────────────────────────────────────────
    lookup_timeout: float | None = Field(default=None, gt=0)

    # ── Observability ─────────────────────────────────────────────────────────
    service_name: str = Field(default="schemawire")
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    @field_validator("registry_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        allowed = {"json", "console"}
        if v.lower() not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got {v!r}")
        return v.lower()

    @property
    def basic_auth(self) -> tuple[str, str] | None:
        if not self.registry_username:
            return None
        password = self.registry_password.get_secret_value() if self.registry_password else ""
        return (self.registry_username, password)


@lru_cache(maxsize=1)
def get_config() -> SchemaWireConfig:
    """
    Return the singleton config. Cached after first call.
    Call _reset_config() in tests to pick up new env vars.
    """
    return SchemaWireConfig()


def _reset_config() -> None:
    """For tests: clear the config cache."""
    get_config.cache_clear()


__all__ = ["SchemaWireConfig", "get_config"]
