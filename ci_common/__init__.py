"""
CI Common module.

This module contains shared domain models, configuration and interfaces
used across the CI system components (server, controller, persistence).

The common module has no dependencies on other ci_* modules, making it
a pure domain layer that can be imported by any component.
"""

from .config import Config
from .models import (
    AttrPath,
    BuildRecord,
    BuildResult,
    CommitEvent,
    ItemState,
    Job,
    Repository,
)
from .repository import BuildRepository

__all__ = [
    "AttrPath",
    "BuildRecord",
    "BuildRepository",
    "BuildResult",
    "CommitEvent",
    "Config",
    "ItemState",
    "Job",
    "Repository",
]
