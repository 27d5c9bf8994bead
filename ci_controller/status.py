"""
Commit status publication to GitHub.

One status is published per (commit, attribute path). The context string
keeps statuses of different attribute paths apart on the same commit.
"""

import asyncio
import logging
from typing import Any

import requests

from ci_common.exceptions import StatusPublishError
from ci_common.models import AttrPath, BuildResult, Repository

logger = logging.getLogger(__name__)

CONTEXT_PREFIX = "ci.nix: "


def build_status_payload(
    http_root: str, attr_path: AttrPath, result: BuildResult
) -> dict[str, Any]:
    """
    Build the JSON body of a GitHub commit status.

    Args:
        http_root: Public URL of this server
        attr_path: Attribute path the status is about
        result: Outcome of the build

    Returns:
        Dictionary with state, target_url, description and context
    """
    return {
        "state": "success" if result.success else "failure",
        "target_url": f"{http_root}/{result.plan_name}",
        "description": "nix-build successful"
        if result.success
        else "nix-build failed",
        "context": CONTEXT_PREFIX + attr_path.dotted(),
    }


class StatusReporter:
    """Publishes commit statuses through the GitHub REST API."""

    def __init__(
        self,
        oauth_token: str,
        http_root: str,
        api_url: str = "https://api.github.com",
        timeout: float = 30,
    ):
        """
        Initialize the reporter.

        Args:
            oauth_token: GitHub token allowed to write commit statuses
            http_root: Public URL of this server, used in target URLs
            api_url: GitHub API base URL
            timeout: Seconds to wait for GitHub to answer
        """
        self.http_root = http_root.rstrip("/")
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._headers = {
            "Authorization": f"token {oauth_token}",
            "Accept": "application/vnd.github+json",
        }

    def _post_status(self, url: str, payload: dict[str, Any]) -> None:
        try:
            response = requests.post(
                url, json=payload, headers=self._headers, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise StatusPublishError(f"Failed to publish status to {url}: {e}")

    async def publish_status(
        self,
        repo: Repository,
        commit: str,
        attr_path: AttrPath,
        result: BuildResult,
    ) -> None:
        """
        Publish the outcome of one job as a commit status.

        Raises:
            StatusPublishError: If GitHub could not be reached or refused it
        """
        url = f"{self.api_url}/repos/{repo.owner}/{repo.name}/statuses/{commit}"
        payload = build_status_payload(self.http_root, attr_path, result)

        # requests is blocking; keep the event loop free for webhook intake
        await asyncio.to_thread(self._post_status, url, payload)

        logger.info(
            f"Published {payload['state']} for {payload['context']} "
            f"on {repo.full_name}@{commit}"
        )
