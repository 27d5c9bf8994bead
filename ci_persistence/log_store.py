"""
File-based storage for build logs.

Each realised plan leaves two files under the log root,
`<plan_name>.stdout` and `<plan_name>.stderr`. They are written once per
build and never pruned.
"""

import logging
from pathlib import Path

from ci_common.exceptions import LogNotFoundError

logger = logging.getLogger(__name__)


class LogStore:
    """Reads and writes build logs under a single directory."""

    def __init__(self, log_root: Path):
        self.log_root = Path(log_root)

    def _paths(self, plan_name: str) -> tuple[Path, Path]:
        if (
            not plan_name
            or plan_name in (".", "..")
            or "/" in plan_name
            or "\\" in plan_name
        ):
            raise LogNotFoundError(f"Invalid plan name: {plan_name!r}")
        return (
            self.log_root / f"{plan_name}.stdout",
            self.log_root / f"{plan_name}.stderr",
        )

    def write(self, plan_name: str, stdout: str, stderr: str) -> None:
        """
        Persist the output of one build verbatim.

        Args:
            plan_name: File name of the realised plan
            stdout: Captured standard output, surrogate escapes allowed
            stderr: Captured standard error, surrogate escapes allowed
        """
        stdout_path, stderr_path = self._paths(plan_name)
        self.log_root.mkdir(parents=True, exist_ok=True)

        stdout_path.write_bytes(stdout.encode("utf-8", errors="surrogateescape"))
        stderr_path.write_bytes(stderr.encode("utf-8", errors="surrogateescape"))
        logger.debug(f"Wrote logs for {plan_name} to {self.log_root}")

    def read(self, plan_name: str) -> str:
        """
        Return the logs of one build as `stdout + "\\n\\n" + stderr`.

        Raises:
            LogNotFoundError: If either log file is missing
        """
        stdout_path, stderr_path = self._paths(plan_name)
        try:
            stdout = stdout_path.read_bytes().decode("utf-8", errors="replace")
            stderr = stderr_path.read_bytes().decode("utf-8", errors="replace")
        except FileNotFoundError:
            raise LogNotFoundError(f"No logs for {plan_name}")
        return stdout + "\n\n" + stderr
