"""
Commit expansion: turns one commit event into the jobs ci.nix declares.

Discovery evaluates the bundled jobs.nix against the repository's ci.nix at
the exact commit being built and expects a JSON list of attribute paths.
Either every discovered job is enqueued or, on any failure, none are.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from importlib import resources
from pathlib import Path

from ci_common.exceptions import DiscoveryError
from ci_common.models import AttrPath, CommitEvent, Job, Repository

from .repo_cache import RepositoryCache
from .runner import CommandRunner

logger = logging.getLogger(__name__)


def jobs_nix_path() -> Path:
    """Location of the bundled jobs.nix expression."""
    return Path(str(resources.files("ci_controller") / "data" / "jobs.nix"))


def parse_attr_paths(output: str) -> list[AttrPath]:
    """
    Parse discovery output into attribute paths.

    Args:
        output: JSON text, expected to be a list of non-empty string lists

    Returns:
        Attribute paths in the order they were listed

    Raises:
        DiscoveryError: If the output is not valid JSON of that shape
    """
    try:
        decoded = json.loads(output)
        if not isinstance(decoded, list):
            raise ValueError(f"expected a list of attribute paths, got {decoded!r}")
        return [AttrPath.from_json(item) for item in decoded]
    except ValueError as e:
        # json.JSONDecodeError is a ValueError too
        raise DiscoveryError(
            "\n".join(
                [
                    "Could not parse jobs JSON",
                    "",
                    f"Parser reported: {e}",
                    "",
                    "Output was:",
                    "",
                    output,
                ]
            )
        ) from e


class CommitDispatcher:
    """Expands commit events into jobs."""

    def __init__(
        self,
        repo_cache: RepositoryCache,
        runner: CommandRunner,
        enqueue_job: Callable[[Job], Awaitable[object]],
        build_file: str = "ci.nix",
    ):
        """
        Initialize the dispatcher.

        Args:
            repo_cache: Working copies to check commits out in
            runner: Runner used for the discovery evaluation
            enqueue_job: Awaited once per discovered job
            build_file: Nix file in the repository declaring the jobs
        """
        self.repo_cache = repo_cache
        self.runner = runner
        self.enqueue_job = enqueue_job
        self.build_file = build_file

    async def find_attr_paths(self, repo: Repository) -> list[AttrPath]:
        """
        Evaluate ci.nix in the current checkout and list its jobs.

        Raises:
            DiscoveryError: If evaluation fails or its output can't be parsed
        """
        expression = f"import {jobs_nix_path()} (import ./{self.build_file})"
        result = await self.runner.run(
            ["nix-instantiate", "--eval", "--strict", "--json", "-E", expression],
            cwd=self.repo_cache.repo_dir(repo),
        )

        if not result.ok:
            raise DiscoveryError(
                f"Could not identify jobs in {self.build_file}:\n\n{result.stderr}"
            )

        return parse_attr_paths(result.stdout)

    async def process_commit(self, event: CommitEvent) -> list[Job]:
        """
        Check out a commit, discover its jobs and enqueue them.

        Args:
            event: Repository and commit to expand

        Returns:
            The jobs that were enqueued, in discovery order

        Raises:
            RepositoryError: If the commit could not be checked out
            DiscoveryError: If the jobs could not be determined
        """
        repo = event.repository

        async with self.repo_cache.lock(repo):
            await self.repo_cache.ensure_repository(repo)
            await self.repo_cache.checkout_ref(repo, event.commit)
            paths = await self.find_attr_paths(repo)

        jobs = [Job(repository=repo, commit=event.commit, attr_path=p) for p in paths]
        for job in jobs:
            await self.enqueue_job(job)

        logger.info(
            f"Commit {event.commit} of {repo.full_name} expanded into "
            f"{len(jobs)} job(s): {', '.join(str(p) for p in paths) or '(none)'}"
        )
        return jobs
