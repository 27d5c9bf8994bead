"""
CI Controller module.

This module contains the build pipeline: the work queue and scheduler, the
commit dispatcher that discovers jobs, the Nix build executor, the GitHub
status reporter, and the repository cache and command runner they share.

The scheduler runs inside the CI server process, next to the webhook
handlers that feed it.
"""

from .builder import BuildExecutor
from .dispatcher import CommitDispatcher
from .repo_cache import RepositoryCache
from .runner import CommandResult, CommandRunner
from .scheduler import Scheduler
from .status import StatusReporter
from .work_queue import QueuedItem, WorkQueue

__all__ = [
    "BuildExecutor",
    "CommandResult",
    "CommandRunner",
    "CommitDispatcher",
    "QueuedItem",
    "RepositoryCache",
    "Scheduler",
    "StatusReporter",
    "WorkQueue",
]
