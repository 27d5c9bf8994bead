"""
Unit tests for ci_controller.repo_cache.

git is replaced by FakeNix (see conftest) or an AsyncMock runner.
"""

import subprocess
import sys
from unittest.mock import AsyncMock

import pytest

from ci_common.exceptions import RepositoryError
from ci_common.models import Repository
from ci_controller.repo_cache import RepositoryCache
from ci_controller.runner import CommandResult, CommandRunner

from .conftest import FakeNix


class TestRepositoryCache:
    """Test suite for RepositoryCache."""

    def test_repo_dir_layout(self, tmp_path, repo):
        cache = RepositoryCache(tmp_path, FakeNix())
        assert cache.repo_dir(repo) == tmp_path / "acme" / "widgets"

    @pytest.mark.asyncio
    async def test_clones_on_first_use(self, tmp_path, repo):
        runner = FakeNix()
        cache = RepositoryCache(tmp_path, runner)

        await cache.ensure_repository(repo)

        assert runner.calls == [
            (
                (
                    "git",
                    "clone",
                    "https://github.com/acme/widgets.git",
                    str(tmp_path / "acme" / "widgets"),
                ),
                None,
            )
        ]

    @pytest.mark.asyncio
    async def test_fetches_existing_working_copy(self, tmp_path, repo):
        runner = FakeNix()
        cache = RepositoryCache(tmp_path, runner)
        (tmp_path / "acme" / "widgets").mkdir(parents=True)

        await cache.ensure_repository(repo)

        assert runner.calls == [(("git", "fetch"), str(tmp_path / "acme" / "widgets"))]

    @pytest.mark.asyncio
    async def test_ensure_twice_clones_then_fetches(self, tmp_path, repo):
        runner = FakeNix()
        cache = RepositoryCache(tmp_path, runner)

        await cache.ensure_repository(repo)
        await cache.ensure_repository(repo)

        assert [args[1] for args in runner.commands("git")] == ["clone", "fetch"]

    @pytest.mark.asyncio
    async def test_missing_clone_url(self, tmp_path):
        cache = RepositoryCache(tmp_path, FakeNix())

        with pytest.raises(RepositoryError, match="widgets does not have a clone URL."):
            await cache.ensure_repository(Repository("acme", "widgets"))

    @pytest.mark.asyncio
    async def test_clone_failure(self, tmp_path, repo):
        runner = AsyncMock()
        runner.run = AsyncMock(return_value=CommandResult(128, "", "fatal: repository not found"))
        cache = RepositoryCache(tmp_path, runner)

        with pytest.raises(RepositoryError, match="repository not found"):
            await cache.ensure_repository(repo)

    @pytest.mark.asyncio
    async def test_checkout_ref(self, tmp_path, repo):
        runner = FakeNix()
        cache = RepositoryCache(tmp_path, runner)

        await cache.checkout_ref(repo, "abc123")

        assert runner.calls == [
            (("git", "checkout", "abc123"), str(tmp_path / "acme" / "widgets"))
        ]

    @pytest.mark.asyncio
    async def test_checkout_failure(self, tmp_path, repo):
        runner = AsyncMock()
        runner.run = AsyncMock(
            return_value=CommandResult(1, "", "error: pathspec 'nope' did not match")
        )
        cache = RepositoryCache(tmp_path, runner)

        with pytest.raises(RepositoryError, match="pathspec"):
            await cache.checkout_ref(repo, "nope")

    def test_lock_is_per_repository(self, tmp_path, repo):
        cache = RepositoryCache(tmp_path, FakeNix())
        other = Repository("acme", "gadgets")

        assert cache.lock(repo) is cache.lock(Repository("acme", "widgets"))
        assert cache.lock(repo) is not cache.lock(other)


def _git(*args, cwd):
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


@pytest.fixture
def upstream(tmp_path):
    """A local git repository with one commit, usable as a clone URL."""
    path = tmp_path / "upstream"
    path.mkdir()
    _git("init", "-q", cwd=path)
    _git("config", "user.email", "ci@example.com", cwd=path)
    _git("config", "user.name", "CI", cwd=path)
    (path / "ci.nix").write_text("{ }\n")
    _git("add", "ci.nix", cwd=path)
    _git("commit", "-q", "-m", "initial", cwd=path)
    return path


def _head(path) -> str:
    return subprocess.run(
        ["git", "rev-parse", "HEAD"], cwd=path, check=True, capture_output=True, text=True
    ).stdout.strip()


@pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX git setup")
class TestRepositoryCacheWithGit:
    """Tests against a real git binary and a local upstream repository."""

    @pytest.fixture(autouse=True)
    def _require_git(self):
        try:
            subprocess.run(["git", "--version"], check=True, capture_output=True)
        except (OSError, subprocess.CalledProcessError):
            pytest.skip("git is not installed")

    @pytest.mark.asyncio
    async def test_ensure_repository_is_idempotent(self, tmp_path, upstream):
        repo = Repository("acme", "widgets", clone_url=str(upstream))
        cache = RepositoryCache(tmp_path / "repos", CommandRunner(timeout=60))

        await cache.ensure_repository(repo)
        first = _head(cache.repo_dir(repo))
        await cache.ensure_repository(repo)

        assert _head(cache.repo_dir(repo)) == first == _head(upstream)

    @pytest.mark.asyncio
    async def test_checkout_ref_moves_head(self, tmp_path, upstream):
        repo = Repository("acme", "widgets", clone_url=str(upstream))
        cache = RepositoryCache(tmp_path / "repos", CommandRunner(timeout=60))
        first = _head(upstream)

        (upstream / "ci.nix").write_text("{ build = null; }\n")
        _git("commit", "-q", "-am", "second", cwd=upstream)

        await cache.ensure_repository(repo)
        await cache.checkout_ref(repo, first)

        assert _head(cache.repo_dir(repo)) == first
