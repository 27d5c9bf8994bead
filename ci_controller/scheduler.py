"""
Single-worker scheduler for the CI pipeline.

One asyncio task drains the work queue, processing exactly one commit event
or job at a time:

- commit event -> CommitDispatcher expands it into jobs on the same queue
- job -> BuildExecutor builds it, StatusReporter publishes the outcome

Items move queued -> processing -> completed/failed. A failure only affects
the item being processed; the worker carries on with the next one.
"""

import asyncio
import logging
from datetime import UTC, datetime

from ci_common.models import (
    BuildRecord,
    BuildResult,
    CommitEvent,
    ItemState,
    Job,
    Repository,
)
from ci_common.repository import BuildRepository

from .builder import BuildExecutor
from .dispatcher import CommitDispatcher
from .status import StatusReporter
from .work_queue import QueuedItem, WorkQueue

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Worker loop that processes commit events before jobs.

    Producers (webhook handlers, the dispatcher) await enqueue_commit() or
    enqueue_job(), which only wait for the history write; the worker is the
    only consumer.
    """

    def __init__(
        self,
        queue: WorkQueue,
        dispatcher: CommitDispatcher,
        executor: BuildExecutor,
        reporter: StatusReporter,
        build_repository: BuildRepository | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            queue: Work queue shared with the dispatcher
            dispatcher: Expands commit events into jobs
            executor: Builds jobs
            reporter: Publishes job outcomes
            build_repository: Optional store for build history
        """
        self.queue = queue
        self.dispatcher = dispatcher
        self.executor = executor
        self.reporter = reporter
        self.build_repository = build_repository

        self._running = False
        self._task: asyncio.Task | None = None

    async def enqueue_commit(self, repo: Repository, commit: str) -> QueuedItem:
        """Queue a commit for job discovery and record it as queued."""
        entry = self.queue.put_commit(repo, commit)
        logger.info(f"Queued commit {commit} of {repo.full_name}")
        # The history INSERT is submitted before this coroutine first yields,
        # so it reaches the database ahead of the worker's processing UPDATE.
        await self._record_queued(entry)
        return entry

    async def enqueue_job(self, job: Job) -> QueuedItem:
        """Queue a job for building and record it as queued."""
        entry = self.queue.put_job(job)
        await self._record_queued(entry)
        return entry

    def pending(self) -> int:
        """Number of items waiting to be processed."""
        return self.queue.qsize()

    async def start(self) -> None:
        """Start the worker loop."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Scheduler started")

    async def stop(self) -> None:
        """Stop the worker loop, abandoning the item in flight if any."""
        if not self._running:
            return

        logger.info("Stopping scheduler...")
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Scheduler stopped")

    async def _run_loop(self) -> None:
        """Main worker loop."""
        while self._running:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}", exc_info=True)

    async def run_once(self) -> ItemState:
        """
        Wait for the next item and process it.

        Returns:
            The terminal state of the processed item
        """
        entry = await self.queue.get()
        await self._record_processing(entry)

        result: BuildResult | None = None
        try:
            if isinstance(entry.item, CommitEvent):
                await self.dispatcher.process_commit(entry.item)
            else:
                job = entry.item
                result = await self.executor.run_job(job)
                await self.reporter.publish_status(
                    job.repository, job.commit, job.attr_path, result
                )
        except asyncio.CancelledError:
            logger.warning(f"Abandoned {self._describe(entry)}, scheduler stopped")
            await self._record_finish(
                entry, ItemState.FAILED, result, error="Cancelled at shutdown"
            )
            raise
        except Exception as e:
            logger.error(
                f"Failed to process {self._describe(entry)}: {e}", exc_info=True
            )
            await self._record_finish(entry, ItemState.FAILED, result, error=str(e))
            return ItemState.FAILED

        logger.info(f"Completed {self._describe(entry)}")
        await self._record_finish(entry, ItemState.COMPLETED, result)
        return ItemState.COMPLETED

    @staticmethod
    def _describe(entry: QueuedItem) -> str:
        item = entry.item
        if isinstance(item, CommitEvent):
            return f"commit {item.commit} of {item.repository.full_name}"
        return f"job {item.attr_path} at {item.commit} of {item.repository.full_name}"

    async def _record_queued(self, entry: QueuedItem) -> None:
        """Write the history record of an item that was just queued."""
        if self.build_repository is None:
            return

        item = entry.item
        record = BuildRecord(
            id=entry.id,
            kind=entry.kind,
            repository=item.repository.full_name,
            commit=item.commit,
            attr_path=item.attr_path.dotted() if isinstance(item, Job) else None,
            queued_at=entry.queued_at,
        )
        try:
            await self.build_repository.create_record(record)
        except Exception as e:
            logger.error(f"Could not record {entry.id} as queued: {e}", exc_info=True)

    async def _record_processing(self, entry: QueuedItem) -> None:
        if self.build_repository is None:
            return

        try:
            await self.build_repository.mark_processing(entry.id, datetime.now(UTC))
        except Exception as e:
            logger.error(f"Could not record start of {entry.id}: {e}", exc_info=True)

    async def _record_finish(
        self,
        entry: QueuedItem,
        state: ItemState,
        result: BuildResult | None,
        error: str | None = None,
    ) -> None:
        if self.build_repository is None:
            return

        try:
            await self.build_repository.complete_record(
                entry.id,
                state,
                finished_at=datetime.now(UTC),
                success=result.success if result else None,
                plan_id=result.plan_id if result else None,
                error=error,
            )
        except Exception as e:
            logger.error(f"Could not record end of {entry.id}: {e}", exc_info=True)
