"""
Two-phase Nix build of a single attribute path.

The plan phase (`nix-instantiate`) must print exactly one .drv path. The
realise phase (`nix-store --realise`) builds it; its exit code decides
success, and its stdout/stderr are always written to the log store.
"""

import logging

from ci_common.exceptions import PlanError
from ci_common.models import AttrPath, BuildResult, Job, Repository
from ci_persistence.log_store import LogStore

from .repo_cache import RepositoryCache
from .runner import CommandRunner

logger = logging.getLogger(__name__)


def parse_plan_id(stdout: str, stderr: str) -> str:
    """
    Extract the plan id (.drv path) from nix-instantiate output.

    Args:
        stdout: Captured standard output of the plan phase
        stderr: Captured standard error of the plan phase

    Returns:
        The single line printed on stdout

    Raises:
        PlanError: If stdout holds zero lines, several lines or an empty line
    """
    lines = stdout.splitlines()
    if len(lines) == 1 and lines[0]:
        return lines[0]

    raise PlanError(
        "\n".join(
            [
                "Could not find .drv from nix-instantiate:",
                "",
                stdout,
                stderr,
            ]
        ),
        stdout=stdout,
        stderr=stderr,
    )


class BuildExecutor:
    """Builds attribute paths of checked-out repositories."""

    def __init__(
        self,
        repo_cache: RepositoryCache,
        runner: CommandRunner,
        log_store: LogStore,
        build_file: str = "ci.nix",
    ):
        """
        Initialize the executor.

        Args:
            repo_cache: Working copies the builds run in
            runner: Runner used for nix commands
            log_store: Where realise-phase output is persisted
            build_file: Nix file in the repository declaring the jobs
        """
        self.repo_cache = repo_cache
        self.runner = runner
        self.log_store = log_store
        self.build_file = build_file

    async def build_attribute(
        self, repo: Repository, attr_path: AttrPath
    ) -> BuildResult:
        """
        Plan and realise one attribute path in the current checkout.

        Args:
            repo: Repository whose working copy to build in
            attr_path: Target to build

        Returns:
            BuildResult with the realise outcome and the plan id

        Raises:
            PlanError: If the plan phase did not yield exactly one .drv path
        """
        cwd = self.repo_cache.repo_dir(repo)

        plan = await self.runner.run(
            ["nix-instantiate", self.build_file, "-A", attr_path.dotted()], cwd=cwd
        )
        plan_id = parse_plan_id(plan.stdout, plan.stderr)
        logger.info(f"Planned {attr_path} of {repo.full_name} as {plan_id}")

        realise = await self.runner.run(["nix-store", "--realise", plan_id], cwd=cwd)

        result = BuildResult(success=realise.ok, plan_id=plan_id)
        self.log_store.write(result.plan_name, realise.stdout, realise.stderr)

        logger.info(
            f"Realised {plan_id}: exit code {realise.exit_code}, "
            f"success={result.success}"
        )
        return result

    async def run_job(self, job: Job) -> BuildResult:
        """
        Check out the job's commit and build its attribute path.

        The repository lock is held from checkout until the build finishes.
        """
        repo = job.repository

        async with self.repo_cache.lock(repo):
            await self.repo_cache.ensure_repository(repo)
            await self.repo_cache.checkout_ref(repo, job.commit)
            return await self.build_attribute(repo, job.attr_path)
