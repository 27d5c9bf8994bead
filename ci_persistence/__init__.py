"""
CI Persistence module.

This module contains the storage layers of the CI system: build logs on
disk and build history in SQLite (extendable to PostgreSQL, MySQL, etc.).

The persistence layer depends on ci_common for domain models and interfaces,
and can be used by ci_server, ci_controller and ci_admin.
"""

from .log_store import LogStore
from .sqlite_repository import SQLiteBuildRepository

__all__ = ["LogStore", "SQLiteBuildRepository"]
