"""
config.py
---------
Centralised configuration management for the ETL migration platform.

Loads settings from environment variables (with .env file support via
python-dotenv). Provides typed settings as frozen dataclasses so
configuration is immutable at runtime.

Design Decision:
    Using a dataclass with class-level defaults means the platform works
    "out of the box" without any .env file, while still allowing
    environment-based overrides for production deployments.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path)


def _csv_env(name: str, default: str) -> tuple[str, ...]:
    """Read a comma-separated env variable as an upper-cased tuple."""
    raw = os.getenv(name, default)
    return tuple(part.strip().upper() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class AdapterConfig:
    """Repository adapter settings (both protocols)."""
    timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("ADAPTER_TIMEOUT_SECONDS", "10"))
    )
    rest_scheme: str = field(default_factory=lambda: os.getenv("REST_SCHEME", "http"))
    rest_api_prefix: str = field(
        default_factory=lambda: os.getenv("REST_API_PREFIX", "/api/v1")
    )
    rest_max_workers: int = field(
        default_factory=lambda: int(os.getenv("REST_MAX_WORKERS", "6"))
    )
    pmrep_executable: str = field(
        default_factory=lambda: os.getenv("PMREP_EXECUTABLE", "pmrep")
    )
    # Credentials are NOT stored here; each connection names the env
    # variable that holds its password (``credentials_ref``).


@dataclass(frozen=True)
class SyncConfig:
    """Background sync monitor settings."""
    interval_seconds: float = field(
        default_factory=lambda: float(os.getenv("SYNC_INTERVAL_SECONDS", "30"))
    )
    lifetime_seconds: float = field(
        default_factory=lambda: float(os.getenv("SYNC_LIFETIME_SECONDS", str(24 * 60 * 60)))
    )


@dataclass(frozen=True)
class ClassificationConfig:
    """Lookup tables consumed by the classifier and the aggregator."""
    unsupported_transformation_types: tuple[str, ...] = field(
        default_factory=lambda: _csv_env(
            "UNSUPPORTED_TRANSFORMATION_TYPES", "XML_PARSER,MQSERIES"
        )
    )
    legacy_expression_functions: tuple[str, ...] = field(
        default_factory=lambda: _csv_env("LEGACY_EXPRESSION_FUNCTIONS", "DECODE")
    )
    baseline_confidence: int = field(
        default_factory=lambda: int(os.getenv("ASSESSMENT_BASELINE_CONFIDENCE", "85"))
    )
    hours_per_object: float = field(
        default_factory=lambda: float(os.getenv("ASSESSMENT_HOURS_PER_OBJECT", "2"))
    )


@dataclass(frozen=True)
class StorageConfig:
    """Storage facade selection and metadata DB settings."""
    backend: str = field(
        default_factory=lambda: os.getenv("STORAGE_BACKEND", "memory").lower()
    )
    db_host: str = field(default_factory=lambda: os.getenv("METADATA_DB_HOST", "localhost"))
    db_port: int = field(default_factory=lambda: int(os.getenv("METADATA_DB_PORT", "5432")))
    db_name: str = field(
        default_factory=lambda: os.getenv("METADATA_DB_NAME", "etl_migration_metadata")
    )
    db_user: str = field(default_factory=lambda: os.getenv("METADATA_DB_USER", "postgres"))
    db_password: str = field(
        default_factory=lambda: os.getenv("METADATA_DB_PASSWORD", "postgres")
    )
    schema_file: Path = field(
        default_factory=lambda: Path(os.getenv("SCHEMA_FILE", "schema.sql"))
    )


@dataclass(frozen=True)
class ApiConfig:
    """HTTP API settings."""
    host: str = field(default_factory=lambda: os.getenv("API_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("API_PORT", "8000")))
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    log_file: str | None = field(
        default_factory=lambda: os.getenv("LOG_FILE")  # None → log to stderr only
    )


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration."""
    adapter: AdapterConfig = field(default_factory=AdapterConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    classification: ClassificationConfig = field(default_factory=ClassificationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    app_name: str = "ETL Migration Platform"
    app_version: str = "1.0.0"


def load_config() -> AppConfig:
    """
    Build and return the application configuration.

    Returns:
        AppConfig: Fully populated (and frozen) configuration object.

    Example::

        cfg = load_config()
        print(cfg.adapter.timeout_seconds)   # 10.0
        print(cfg.sync.interval_seconds)     # 30.0
    """
    return AppConfig()


# Module-level singleton used throughout the application
CONFIG: AppConfig = load_config()


def get_log_level() -> int:
    """Convert string log level from config to logging module constant."""
    level = getattr(logging, CONFIG.api.log_level, None)
    if not isinstance(level, int):
        return logging.INFO
    return level
