"""How entity types map onto the backing tables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Final

from .env import optional_env_list
from .errors import ConfigurationError

DEFAULT_IDENTIFIER_COLUMN: Final[str] = "id"


@dataclass(frozen=True, slots=True)
class SchemaConfig:
    """Identifier column shared by all tables and types that must not be created."""

    identifier_column: str = DEFAULT_IDENTIFIER_COLUMN
    read_only_types: frozenset[str] = field(default_factory=frozenset[str])


def get_schema_config() -> SchemaConfig:
    identifier_column = os.getenv("UNITWORK_IDENTIFIER_COLUMN", DEFAULT_IDENTIFIER_COLUMN)
    if not identifier_column.strip():
        raise ConfigurationError("UNITWORK_IDENTIFIER_COLUMN must not be blank")
    return SchemaConfig(
        identifier_column=identifier_column.strip(),
        read_only_types=frozenset(optional_env_list("UNITWORK_READ_ONLY_TYPES")),
    )
