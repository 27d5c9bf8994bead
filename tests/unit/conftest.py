"""
Shared fixtures for unit tests.

FakeNix stands in for CommandRunner and answers git and nix invocations the
way the real tools would for a small ci.nix, without touching the network
or a Nix store.
"""

import json
from pathlib import Path

import pytest

from ci_common.config import Config
from ci_common.models import Repository
from ci_controller.runner import CommandResult


class FakeNix:
    """
    Scripted replacement for CommandRunner.

    Records every call as (args, cwd). `git clone` creates the target
    directory so later fetches see an existing working copy.
    """

    def __init__(
        self,
        attr_paths: list[list[str]] | None = None,
        discovery_exit: int = 0,
        discovery_output: str | None = None,
        plan_output: dict[str, str] | None = None,
        realise_exit: dict[str, int] | None = None,
    ):
        self.attr_paths = attr_paths if attr_paths is not None else [["build"]]
        self.discovery_exit = discovery_exit
        self.discovery_output = discovery_output
        self.plan_output = plan_output or {}
        self.realise_exit = realise_exit or {}
        self.calls: list[tuple[tuple[str, ...], str | None]] = []

    @staticmethod
    def drv_for(attr: str) -> str:
        return f"/nix/store/0123456789abcdef-{attr}.drv"

    async def run(self, args, cwd=None) -> CommandResult:
        args = tuple(args)
        self.calls.append((args, str(cwd) if cwd is not None else None))

        if args[0] == "git":
            if args[1] == "clone":
                Path(args[3]).mkdir(parents=True)
            return CommandResult(0, "", "")

        if args[:2] == ("nix-instantiate", "--eval"):
            if self.discovery_exit != 0:
                return CommandResult(self.discovery_exit, "", "error: undefined variable 'pkgs'")
            output = self.discovery_output
            if output is None:
                output = json.dumps(self.attr_paths)
            return CommandResult(0, output, "")

        if args[0] == "nix-instantiate":
            attr = args[3]
            stdout = self.plan_output.get(attr, self.drv_for(attr) + "\n")
            return CommandResult(0, stdout, "warning: dirty tree\n")

        if args[0] == "nix-store":
            drv = args[2]
            exit_code = 0
            for attr, code in self.realise_exit.items():
                if drv == self.drv_for(attr):
                    exit_code = code
            return CommandResult(exit_code, f"{drv[:-4]}\n", f"building '{drv}'...\n")

        raise AssertionError(f"unexpected command: {args}")

    def commands(self, program: str) -> list[tuple[str, ...]]:
        """All recorded invocations of one program."""
        return [args for args, _ in self.calls if args[0] == program]


@pytest.fixture
def repo():
    """The repository used throughout the tests."""
    return Repository(
        owner="acme",
        name="widgets",
        clone_url="https://github.com/acme/widgets.git",
    )


@pytest.fixture
def config(tmp_path):
    """A configuration rooted in a temporary directory."""
    return Config(
        repo_root=tmp_path / "repos",
        log_root=tmp_path / "logs",
        http_root="https://ci.example.com",
        oauth_token="gh-token",
        webhook_secret="hook-secret",
        db_path=str(tmp_path / "ci_builds.db"),
    )
