"""Environment variable loaders for configuration."""

from __future__ import annotations

import os


def optional_env_list(name: str) -> tuple[str, ...]:
    """Return a comma-separated environment variable as a tuple of stripped items."""

    raw = os.getenv(name) or ""
    return tuple(item.strip() for item in raw.split(",") if item.strip())
