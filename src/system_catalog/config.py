"""Configuration management for the System Catalog API."""

from __future__ import annotations

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

_config_logger = logging.getLogger(__name__)

DEFAULT_REQUIRED_TABLES = ("systems", "documents", "requirements")


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class ServerSettings(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)
    http_enable_cors: bool = Field(default=False)
    http_allowed_origins: tuple[str, ...] = Field(default=())
    http_trust_forwarded_headers: bool = Field(default=False)


class AuthSettings(BaseModel):
    """ID-token verification settings.

    ``client_id`` is the OAuth client the tokens must be issued for. When
    ``allowed_users`` is empty every verified email is accepted.
    """

    client_id: str = Field(default="")
    tokeninfo_url: str = Field(default="https://oauth2.googleapis.com/tokeninfo")
    allowed_users: tuple[str, ...] = Field(default=())
    request_timeout_seconds: float = Field(default=10.0, ge=0.1, le=120.0)
    log_auth_events: bool = Field(default=True)

    @field_validator("allowed_users")
    @classmethod
    def _normalize_users(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(user.strip().lower() for user in value if user.strip())


class RateLimitSettings(BaseModel):
    enabled: bool = Field(default=True)
    max_requests: int = Field(default=30, ge=1)
    window_ms: int = Field(default=60_000, ge=1)
    fail_open: bool = Field(
        default=True,
        description="Allow requests when the counter cache is unavailable.",
    )
    backend: Literal["memory", "redis"] = Field(default="memory")
    redis_url: str | None = Field(default=None)


class StoreSettings(BaseModel):
    workbook_path: str | None = Field(
        default=None,
        description="Path of the .xlsx workbook. None keeps the workbook in memory.",
    )
    required_tables: tuple[str, ...] = Field(default=DEFAULT_REQUIRED_TABLES)
    allowed_tables: tuple[str, ...] = Field(
        default=(),
        description="Tables reachable through the API. Empty means required_tables.",
    )

    def resolved_allowed_tables(self) -> tuple[str, ...]:
        return self.allowed_tables or self.required_tables


class ApiSettings(BaseModel):
    version: str = Field(default="1.0")
    max_payload_bytes: int = Field(default=1024 * 1024, ge=1)
    log_requests: bool = Field(default=True)
    log_errors: bool = Field(default=True)
    documentation_url: str | None = Field(default=None)


class Settings(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)


ENV_KEYS = {
    "config_path": "CATALOG_CONFIG_PATH",
    "host": "CATALOG_HOST",
    "port": "CATALOG_PORT",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "client_id": "GOOGLE_CLIENT_ID",
    "tokeninfo_url": "AUTH_TOKENINFO_URL",
    "allowed_users": "AUTH_ALLOWED_USERS",
    "workbook_path": "CATALOG_WORKBOOK_PATH",
    "redis_url": "REDIS_URL",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _split_csv_preserve_case(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    if candidate.is_absolute():
        return str(candidate.resolve())
    return str((_project_root() / candidate).resolve())


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def _env_csv(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(key)
    if value is None:
        return tuple(default)
    return tuple(_split_csv_preserve_case(value))


def _substitute_env_vars(value: str) -> str:
    """Substitute ${VAR} and $VAR patterns with environment variables."""

    def replace(match: re.Match[str]) -> str:
        var_name = match.group(1) or match.group(2)
        return os.environ.get(var_name, match.group(0))

    pattern = r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)"
    return re.sub(pattern, replace, value)


def _process_env_vars(obj: Any) -> Any:
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_env_vars(item) for item in obj]
    return obj


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load the optional YAML configuration file.

    The file mirrors the ``Settings`` sections (``auth``, ``rate_limit``,
    ``store``...). ``${VAR}`` references are expanded from the environment.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise RuntimeError(f"Invalid configuration: config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw_data = yaml.safe_load(f) or {}

    if not isinstance(raw_data, dict):
        raise RuntimeError("Invalid configuration: config file must contain a mapping")
    return _process_env_vars(raw_data)


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")

    config_path = os.getenv(ENV_KEYS["config_path"])
    file_data = load_config_file(_resolve_path(config_path)) if config_path else {}

    try:
        base = Settings.model_validate(file_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    log_file_env = os.getenv(ENV_KEYS["log_file"], base.logging.file or "")
    workbook_env = os.getenv(ENV_KEYS["workbook_path"], base.store.workbook_path or "")

    settings_data: dict[str, object] = {
        "server": {
            "host": os.getenv(ENV_KEYS["host"], base.server.host),
            "port": _env_int(ENV_KEYS["port"], base.server.port),
            "http_enable_cors": _env_bool("HTTP_ENABLE_CORS", base.server.http_enable_cors),
            "http_allowed_origins": _env_csv(
                "HTTP_ALLOWED_ORIGINS", base.server.http_allowed_origins
            ),
            "http_trust_forwarded_headers": _env_bool(
                "HTTP_TRUST_FORWARDED_HEADERS",
                base.server.http_trust_forwarded_headers,
            ),
        },
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], base.logging.level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "auth": {
            "client_id": os.getenv(ENV_KEYS["client_id"], base.auth.client_id),
            "tokeninfo_url": os.getenv(ENV_KEYS["tokeninfo_url"], base.auth.tokeninfo_url),
            "allowed_users": _env_csv(ENV_KEYS["allowed_users"], base.auth.allowed_users),
            "request_timeout_seconds": _env_float(
                "AUTH_REQUEST_TIMEOUT_SECONDS",
                base.auth.request_timeout_seconds,
            ),
            "log_auth_events": _env_bool("AUTH_LOG_EVENTS", base.auth.log_auth_events),
        },
        "rate_limit": {
            "enabled": _env_bool("RATE_LIMIT_ENABLED", base.rate_limit.enabled),
            "max_requests": _env_int("RATE_LIMIT_MAX_REQUESTS", base.rate_limit.max_requests),
            "window_ms": _env_int("RATE_LIMIT_WINDOW_MS", base.rate_limit.window_ms),
            "fail_open": _env_bool("RATE_LIMIT_FAIL_OPEN", base.rate_limit.fail_open),
            "backend": os.getenv("RATE_LIMIT_BACKEND", base.rate_limit.backend),
            "redis_url": os.getenv(ENV_KEYS["redis_url"], base.rate_limit.redis_url),
        },
        "store": {
            "workbook_path": _resolve_path(workbook_env) if workbook_env else None,
            "required_tables": _env_csv("CATALOG_REQUIRED_TABLES", base.store.required_tables),
            "allowed_tables": _env_csv("CATALOG_ALLOWED_TABLES", base.store.allowed_tables),
        },
        "api": {
            "version": base.api.version,
            "max_payload_bytes": _env_int("API_MAX_PAYLOAD_BYTES", base.api.max_payload_bytes),
            "log_requests": _env_bool("API_LOG_REQUESTS", base.api.log_requests),
            "log_errors": _env_bool("API_LOG_ERRORS", base.api.log_errors),
            "documentation_url": os.getenv(
                "API_DOCUMENTATION_URL", base.api.documentation_url or ""
            )
            or None,
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    if settings.rate_limit.backend == "redis" and not settings.rate_limit.redis_url:
        raise RuntimeError(
            "Invalid configuration: REDIS_URL is required for RATE_LIMIT_BACKEND=redis"
        )

    if settings.store.workbook_path:
        Path(settings.store.workbook_path).parent.mkdir(parents=True, exist_ok=True)

    return settings
