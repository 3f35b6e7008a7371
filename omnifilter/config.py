"""
Configuration helpers for omnifilter.
Supports environment variables for easy deployment configuration.
"""

import os
from typing import Any, Dict, Optional

from .filters.base import DEFAULT_MAX_DEPTH

DEFAULT_DB_PATH = "~/.omnifilter/data.db"


class Config:
    """
    Configuration helper that reads from environment variables.

    Environment variables:
        OMNIFILTER_DB_PATH: SQLite database path
        OMNIFILTER_MAX_DEPTH: Maximum filter nesting depth (default: 10)
        OMNIFILTER_DEFAULT_LIMIT: Page size when a query gives no limit
            (default: unlimited)
    """

    @staticmethod
    def from_env() -> Dict[str, Any]:
        """
        Create configuration from environment variables.

        Returns:
            Dict with keyword arguments for FilteredTableStore, minus the table

        Example:
            from omnifilter.config import Config
            from omnifilter.db import FilteredTableStore

            store = FilteredTableStore(table="users", **Config.from_env())
        """
        return {
            "db_path": os.path.expanduser(
                os.getenv("OMNIFILTER_DB_PATH", DEFAULT_DB_PATH)
            ),
            "max_depth": _int_from_env("OMNIFILTER_MAX_DEPTH", DEFAULT_MAX_DEPTH),
            "default_limit": _int_from_env("OMNIFILTER_DEFAULT_LIMIT", None),
        }

    @staticmethod
    def for_local(db_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Configuration for a local database file with default limits.

        Args:
            db_path: Path to the SQLite file (default: ~/.omnifilter/data.db)
        """
        return {
            "db_path": os.path.expanduser(db_path or DEFAULT_DB_PATH),
            "max_depth": DEFAULT_MAX_DEPTH,
            "default_limit": None,
        }


def _int_from_env(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
