"""
Unit tests for ci_controller.status.

GitHub is replaced by a patched requests.post.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from ci_common.exceptions import StatusPublishError
from ci_common.models import AttrPath, BuildResult
from ci_controller.status import StatusReporter, build_status_payload

PLAN_ID = "/nix/store/0123456789abcdef-build.drv"


class TestBuildStatusPayload:
    """Test suite for build_status_payload."""

    def test_success(self):
        payload = build_status_payload(
            "https://ci.example.com", AttrPath(("build",)), BuildResult(True, PLAN_ID)
        )

        assert payload == {
            "state": "success",
            "target_url": "https://ci.example.com/0123456789abcdef-build.drv",
            "description": "nix-build successful",
            "context": "ci.nix: build",
        }

    def test_failure(self):
        payload = build_status_payload(
            "https://ci.example.com", AttrPath(("build",)), BuildResult(False, PLAN_ID)
        )

        assert payload["state"] == "failure"
        assert payload["description"] == "nix-build failed"

    def test_context_uses_dotted_path(self):
        payload = build_status_payload(
            "https://ci.example.com",
            AttrPath(("tests", "unit")),
            BuildResult(True, PLAN_ID),
        )

        assert payload["context"] == "ci.nix: tests.unit"


class TestStatusReporter:
    """Test suite for StatusReporter."""

    @pytest.mark.asyncio
    async def test_posts_to_commit_statuses(self, repo):
        reporter = StatusReporter("gh-token", "https://ci.example.com/")
        response = MagicMock()
        response.raise_for_status = MagicMock()

        with patch("ci_controller.status.requests.post", return_value=response) as mock_post:
            await reporter.publish_status(
                repo, "abc123", AttrPath(("build",)), BuildResult(True, PLAN_ID)
            )

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == "https://api.github.com/repos/acme/widgets/statuses/abc123"
        assert kwargs["headers"]["Authorization"] == "token gh-token"
        assert kwargs["json"]["target_url"] == "https://ci.example.com/0123456789abcdef-build.drv"
        assert kwargs["json"]["context"] == "ci.nix: build"
        assert kwargs["timeout"] == 30

    @pytest.mark.asyncio
    async def test_custom_api_url(self, repo):
        reporter = StatusReporter("gh-token", "https://ci.example.com", api_url="https://ghe.example.com/api/v3/")

        with patch("ci_controller.status.requests.post") as mock_post:
            await reporter.publish_status(
                repo, "abc123", AttrPath(("build",)), BuildResult(True, PLAN_ID)
            )

        assert mock_post.call_args[0][0] == (
            "https://ghe.example.com/api/v3/repos/acme/widgets/statuses/abc123"
        )

    @pytest.mark.asyncio
    async def test_http_error_raises(self, repo):
        reporter = StatusReporter("gh-token", "https://ci.example.com")
        response = MagicMock()
        response.raise_for_status = MagicMock(side_effect=requests.exceptions.HTTPError("401 Unauthorized"))

        with patch("ci_controller.status.requests.post", return_value=response):
            with pytest.raises(StatusPublishError, match="401"):
                await reporter.publish_status(
                    repo, "abc123", AttrPath(("build",)), BuildResult(False, PLAN_ID)
                )

    @pytest.mark.asyncio
    async def test_connection_error_raises(self, repo):
        reporter = StatusReporter("gh-token", "https://ci.example.com")

        with patch(
            "ci_controller.status.requests.post",
            side_effect=requests.exceptions.ConnectionError("unreachable"),
        ):
            with pytest.raises(StatusPublishError, match="unreachable"):
                await reporter.publish_status(
                    repo, "abc123", AttrPath(("build",)), BuildResult(True, PLAN_ID)
                )
