"""
HTTP front end of the CI service.

Serves the GitHub webhook that feeds the scheduler, the build log pages
that commit statuses link to, and a few read-only operational endpoints.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.responses import PlainTextResponse

from ci_common.config import Config
from ci_common.exceptions import LogNotFoundError
from ci_common.repository import BuildRepository
from ci_controller.scheduler import Scheduler
from ci_persistence.log_store import LogStore

from .auth import create_verify_signature_dependency
from .webhooks import OBSERVED_EVENTS, PING_EVENT, PULL_REQUEST_EVENT, parse_pull_request

logger = logging.getLogger(__name__)


def create_app(
    config: Config,
    scheduler: Scheduler,
    log_store: LogStore,
    build_repository: BuildRepository | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Process configuration (webhook secret)
        scheduler: Scheduler receiving commit events
        log_store: Build log storage read by the details endpoint
        build_repository: Optional build history store

    Returns:
        The application. Its lifespan starts and stops the scheduler.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for FastAPI app.

        - Startup: initialize the history store and start the worker loop
        - Shutdown: stop the worker loop and close the history store
        """
        if build_repository is not None:
            await build_repository.initialize()
        await scheduler.start()

        yield

        await scheduler.stop()
        if build_repository is not None:
            await build_repository.close()

    app = FastAPI(lifespan=lifespan)

    verify_signature = create_verify_signature_dependency(config.webhook_secret)

    def get_scheduler() -> Scheduler:
        return scheduler

    def get_log_store() -> LogStore:
        return log_store

    def get_build_repository() -> BuildRepository:
        """
        Get the build history store.

        Raises:
            HTTPException: 503 if history is not configured
        """
        if build_repository is None:
            raise HTTPException(status_code=503, detail="Build history not available")
        return build_repository

    @app.post("/github/web-hook")
    async def github_web_hook(
        body: bytes = Depends(verify_signature),
        x_github_event: str | None = Header(default=None),
        sched: Scheduler = Depends(get_scheduler),
    ) -> dict[str, Any]:
        """
        Receive a signed GitHub webhook delivery.

        Pull request deliveries queue their head commit for building. Push
        and create deliveries are logged but not built.
        """
        event = x_github_event or ""

        if event == PING_EVENT:
            return {"status": "pong"}

        if event == PULL_REQUEST_EVENT:
            try:
                payload = json.loads(body)
                repo, sha = parse_pull_request(payload)
            except ValueError as e:
                # json.JSONDecodeError is a ValueError too
                logger.warning(f"Ignoring unusable pull_request delivery: {e}")
                return {"status": "ignored"}

            entry = await sched.enqueue_commit(repo, sha)
            return {
                "status": "queued",
                "id": entry.id,
                "repository": repo.full_name,
                "commit": sha,
            }

        if event in OBSERVED_EVENTS:
            logger.info(f"Received {event} delivery, not building it")
            logger.debug(body.decode(errors="replace"))
            return {"status": "ignored"}

        logger.debug(f"Ignoring {event or 'unnamed'} delivery")
        return {"status": "ignored"}

    @app.get("/health")
    async def health_check(
        sched: Scheduler = Depends(get_scheduler),
    ) -> dict[str, Any]:
        """Health check endpoint, with the number of queued items."""
        return {"status": "ok", "pending": sched.pending()}

    @app.get("/builds")
    async def list_builds(
        limit: int = 50,
        repo: BuildRepository = Depends(get_build_repository),
    ) -> list[dict[str, Any]]:
        """List the most recently queued commit events and jobs."""
        records = await repo.list_records(limit=limit)
        return [record.to_dict() for record in records]

    @app.get("/builds/{record_id}")
    async def get_build(
        record_id: str,
        repo: BuildRepository = Depends(get_build_repository),
    ) -> dict[str, Any]:
        """
        Get one history record.

        Raises:
            HTTPException: 404 if record_id not found
        """
        record = await repo.get_record(record_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Build not found")
        return record.to_dict()

    # Declared last: it matches any single path segment
    @app.get("/{plan_name}", response_class=PlainTextResponse)
    async def build_details(
        plan_name: str,
        store: LogStore = Depends(get_log_store),
    ) -> str:
        """
        Return the logs of a realised plan as stdout, a blank line, then stderr.

        Raises:
            HTTPException: 404 if no logs exist for plan_name
        """
        try:
            return store.read(plan_name)
        except LogNotFoundError:
            raise HTTPException(status_code=404, detail="Build logs not found")

    return app
