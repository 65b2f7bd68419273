"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_list
from .errors import ConfigurationError
from .logging import configure_logging
from .schema import SchemaConfig, get_schema_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "SchemaConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_schema_config",
    "get_storage_config",
    "optional_env_list",
]
