"""
Two-level work queue shared by webhook intake and the scheduler.

Commit events and jobs live in one asyncio.PriorityQueue. Commit events
always sort before jobs, and a global sequence number keeps each kind in
FIFO order, so a single `get()` atomically picks the oldest commit event if
there is one, else the oldest job, else waits.

All methods must be called from the event loop's thread.
"""

import asyncio
import itertools
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ci_common.models import CommitEvent, Job, Repository

COMMIT_PRIORITY = 0
JOB_PRIORITY = 1


@dataclass(order=True)
class QueuedItem:
    """A commit event or job waiting in the queue, ordered by priority then age."""

    priority: int
    sequence: int
    item: CommitEvent | Job = field(compare=False)
    id: str = field(compare=False, default_factory=lambda: str(uuid.uuid4()))
    queued_at: datetime = field(
        compare=False, default_factory=lambda: datetime.now(UTC)
    )

    @property
    def kind(self) -> str:
        return "commit" if isinstance(self.item, CommitEvent) else "job"


class WorkQueue:
    """Unbounded priority queue of commit events and jobs."""

    def __init__(self) -> None:
        self._queue: asyncio.PriorityQueue[QueuedItem] = asyncio.PriorityQueue()
        self._sequence = itertools.count()

    def _put(self, priority: int, item: CommitEvent | Job) -> QueuedItem:
        entry = QueuedItem(priority=priority, sequence=next(self._sequence), item=item)
        self._queue.put_nowait(entry)
        return entry

    def put_commit(self, repo: Repository, commit: str) -> QueuedItem:
        """Enqueue a commit event. Never blocks."""
        return self._put(COMMIT_PRIORITY, CommitEvent(repository=repo, commit=commit))

    def put_job(self, job: Job) -> QueuedItem:
        """Enqueue a job. Never blocks."""
        return self._put(JOB_PRIORITY, job)

    async def get(self) -> QueuedItem:
        """Remove and return the highest-priority item, waiting if empty."""
        return await self._queue.get()

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()
