"""
Data models for the CI pipeline.

These models represent the domain objects that flow from webhook intake
through commit expansion, job execution and status publication,
independent of the tools used to build or the storage used to record them.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Any


@dataclass(frozen=True)
class Repository:
    """
    A remote repository hosted on GitHub.

    The (owner, name) pair maps deterministically to the local working copy
    under the repository cache root.
    """

    owner: str  # Owner login (user or organisation)
    name: str  # Repository name
    clone_url: str | None = None  # Missing for some webhook payloads

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class AttrPath:
    """
    An attribute path naming one buildable target in ci.nix.

    Always holds at least one segment. Rendered with dots for display and
    for `nix-instantiate -A`.
    """

    parts: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.parts:
            raise ValueError("attribute path must have at least one segment")
        for part in self.parts:
            if not isinstance(part, str):
                raise ValueError(f"attribute path segment is not a string: {part!r}")

    def dotted(self) -> str:
        """Join the segments with '.'."""
        return ".".join(self.parts)

    @classmethod
    def from_json(cls, value: Any) -> "AttrPath":
        """
        Build an attribute path from one decoded JSON element.

        Args:
            value: Expected to be a non-empty list of strings

        Raises:
            ValueError: If the element has any other shape
        """
        if not isinstance(value, list):
            raise ValueError(f"expected a list of strings, got {value!r}")
        return cls(tuple(value))

    def __str__(self) -> str:
        return self.dotted()


@dataclass(frozen=True)
class CommitEvent:
    """A commit worth building. The commit reference is opaque."""

    repository: Repository
    commit: str


@dataclass(frozen=True)
class Job:
    """
    One target to build at one commit.

    Identity is the whole triple. Identical jobs enqueued twice are built
    twice.
    """

    repository: Repository
    commit: str
    attr_path: AttrPath


@dataclass(frozen=True)
class BuildResult:
    """Outcome of realising one plan (a .drv store path)."""

    success: bool
    plan_id: str

    @property
    def plan_name(self) -> str:
        """File name of the plan id, used for log files and detail URLs."""
        return PurePosixPath(self.plan_id).name


class ItemState(str, Enum):
    """Lifecycle of a scheduled commit event or job. There is no retry state."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class BuildRecord:
    """
    History entry for one scheduled item.

    Records are written by the scheduler as items move through
    queued -> processing -> completed/failed.
    """

    id: str
    kind: str  # "commit" or "job"
    repository: str  # owner/name
    commit: str
    attr_path: str | None = None  # Dotted attribute path, jobs only
    state: ItemState = ItemState.QUEUED
    success: bool | None = None  # Build outcome, jobs only
    plan_id: str | None = None
    error: str | None = None  # Failure message for failed items
    queued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert record to dictionary format (for API responses)."""
        return {
            "id": self.id,
            "kind": self.kind,
            "repository": self.repository,
            "commit": self.commit,
            "attr_path": self.attr_path,
            "state": self.state.value,
            "success": self.success,
            "plan_id": self.plan_id,
            "error": self.error,
            "queued_at": self.queued_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat()
            if self.finished_at
            else None,
        }
