"""
Local working copies of the repositories being built.

Every repository is cloned once into `repo_root/owner/name` and fetched on
later use. Discovery and builds check out the commit they need in that same
working copy, so callers hold the repository's lock for the whole
checkout-and-use sequence.
"""

import asyncio
import logging
from pathlib import Path

from ci_common.exceptions import RepositoryError
from ci_common.models import Repository

from .runner import CommandRunner

logger = logging.getLogger(__name__)


class RepositoryCache:
    """Clones, fetches and checks out repositories under a root directory."""

    def __init__(self, repo_root: Path, runner: CommandRunner):
        """
        Initialize the cache.

        Args:
            repo_root: Directory holding one working copy per repository
            runner: Runner used for git commands
        """
        self.repo_root = Path(repo_root)
        self.runner = runner
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}

    def repo_dir(self, repo: Repository) -> Path:
        """Local working copy path for a repository."""
        return self.repo_root / repo.owner / repo.name

    def lock(self, repo: Repository) -> asyncio.Lock:
        """
        Lock guarding a repository's working copy.

        Only one checkout-and-use sequence may run per working copy at a time.
        """
        return self._locks.setdefault((repo.owner, repo.name), asyncio.Lock())

    async def ensure_repository(self, repo: Repository) -> None:
        """
        Make sure an up-to-date working copy of the repository exists.

        Fetches if the working copy is already present, otherwise clones it.

        Raises:
            RepositoryError: If there is no clone URL or git fails
        """
        path = self.repo_dir(repo)

        if path.is_dir():
            logger.info(f"Fetching {repo.full_name}")
            result = await self.runner.run(["git", "fetch"], cwd=path)
            if not result.ok:
                raise RepositoryError(
                    f"git fetch failed for {repo.full_name}:\n{result.stderr}"
                )
            return

        if not repo.clone_url:
            raise RepositoryError(f"{repo.name} does not have a clone URL.")

        logger.info(f"Cloning {repo.clone_url} into {path}")
        path.parent.mkdir(parents=True, exist_ok=True)
        result = await self.runner.run(["git", "clone", repo.clone_url, str(path)])
        if not result.ok:
            raise RepositoryError(
                f"git clone failed for {repo.full_name}:\n{result.stderr}"
            )

    async def checkout_ref(self, repo: Repository, ref: str) -> None:
        """
        Check out a ref in an existing working copy.

        ensure_repository() must have run first.

        Raises:
            RepositoryError: If git checkout fails
        """
        result = await self.runner.run(
            ["git", "checkout", ref], cwd=self.repo_dir(repo)
        )
        if not result.ok:
            raise RepositoryError(
                f"git checkout {ref} failed for {repo.full_name}:\n{result.stderr}"
            )
