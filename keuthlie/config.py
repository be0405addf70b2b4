from __future__ import annotations

import os
from typing import Any, List

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator

from keuthlie.logging import get_logger

logger = get_logger(__name__)

# Reserved separator between token fields; no configured value may contain it.
TOKEN_DELIMITER = "$"


def env_field(default: Any, env: str, **kwargs):
    extra = kwargs.pop("json_schema_extra", {}) or {}
    extra = {**extra, "env": env}
    return Field(default, json_schema_extra=extra, **kwargs)


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class Settings(BaseModel):
    """Runtime settings for the auth service."""

    database_url: str = env_field(
        "postgresql://localhost:5432/keuthlie", "DATABASE_URL"
    )
    use_memory_store: bool = env_field(False, "USE_MEMORY_STORE")
    db_pool_min_size: int = env_field(2, "DB_POOL_MIN_SIZE", ge=0)
    db_pool_max_size: int = env_field(10, "DB_POOL_MAX_SIZE", ge=1)
    db_pool_timeout_seconds: float = env_field(
        5.0,
        "DB_POOL_TIMEOUT_SECONDS",
        gt=0,
        description="Maximum wait for a pooled connection before the request fails",
    )
    private_key_path: str | None = env_field(
        "./certs/key.pem",
        "PRIVATE_KEY_PATH",
        description="PKCS8 PEM private key; unset on verify-only deployments",
    )
    public_key_path: str = env_field("./certs/cert.pem", "PUBLIC_KEY_PATH")
    issuer_id: str = env_field("keuthlie", "ISSUER_ID", min_length=1)
    allowed_services: List[str] = env_field(
        [],
        "ALLOWED_SERVICES",
        description="Comma separated service names permitted to receive tokens",
    )
    min_password_length: int = env_field(
        8,
        "MIN_PASSWORD_LENGTH",
        ge=0,
        description="Passwords must be strictly longer than this",
    )
    cors_allow_origins: List[str] = env_field([], "CORS_ALLOW_ORIGINS")

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_env(cls) -> "Settings":
        env_file_values = dotenv_values(".env")
        merged: dict[str, str] = {}
        for name, field in cls.model_fields.items():
            extra = field.json_schema_extra or {}
            env_key = extra.get("env") if isinstance(extra, dict) else None
            env_name = env_key or name.upper()
            if env_name in os.environ:
                merged[name] = os.environ[env_name]
            elif env_name in env_file_values:
                merged[name] = env_file_values[env_name]
        if env_file_values:
            logger.debug("settings_env_file_loaded", keys=len(env_file_values))
        return cls(**merged)

    @field_validator("allowed_services", "cors_allow_origins", mode="before")
    @classmethod
    def _parse_csv(cls, value: Any) -> Any:
        return _split_csv(value)

    @field_validator("issuer_id")
    @classmethod
    def _validate_issuer_id(cls, value: str) -> str:
        if TOKEN_DELIMITER in value:
            raise ValueError(f"issuer_id must not contain {TOKEN_DELIMITER!r}")
        return value

    @field_validator("private_key_path", mode="before")
    @classmethod
    def _blank_private_key_path(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("db_pool_max_size")
    @classmethod
    def _validate_pool_bounds(cls, value: int, info) -> int:
        min_size = info.data.get("db_pool_min_size", 0)
        if value < min_size:
            raise ValueError("db_pool_max_size must be >= db_pool_min_size")
        return value
