"""
Unit tests for ci_common.models.

Tests attribute paths, build results and history records.
"""

from datetime import UTC, datetime

import pytest

from ci_common.models import (
    AttrPath,
    BuildRecord,
    BuildResult,
    ItemState,
    Job,
    Repository,
)


class TestAttrPath:
    """Test suite for AttrPath."""

    def test_dotted_single_segment(self):
        assert AttrPath(("build",)).dotted() == "build"

    def test_dotted_joins_segments(self):
        assert AttrPath(("tests", "unit", "x86_64-linux")).dotted() == "tests.unit.x86_64-linux"

    def test_str_is_dotted(self):
        assert str(AttrPath(("a", "b"))) == "a.b"

    def test_empty_path_rejected(self):
        with pytest.raises(ValueError):
            AttrPath(())

    def test_from_json(self):
        assert AttrPath.from_json(["tests", "unit"]) == AttrPath(("tests", "unit"))

    @pytest.mark.parametrize("value", [[], "build", [1], ["a", None], {"a": 1}])
    def test_from_json_rejects_other_shapes(self, value):
        with pytest.raises(ValueError):
            AttrPath.from_json(value)


class TestRepository:
    """Test suite for Repository."""

    def test_full_name(self):
        assert Repository("acme", "widgets").full_name == "acme/widgets"

    def test_clone_url_optional(self):
        assert Repository("acme", "widgets").clone_url is None


class TestJob:
    """Test suite for Job identity."""

    def test_identical_jobs_are_equal(self, repo):
        a = Job(repo, "abc123", AttrPath(("build",)))
        b = Job(repo, "abc123", AttrPath(("build",)))
        assert a == b

    def test_jobs_differ_by_attr_path(self, repo):
        assert Job(repo, "abc123", AttrPath(("build",))) != Job(
            repo, "abc123", AttrPath(("test",))
        )


class TestBuildResult:
    """Test suite for BuildResult."""

    def test_plan_name_is_file_name(self):
        result = BuildResult(success=True, plan_id="/nix/store/abc-hello.drv")
        assert result.plan_name == "abc-hello.drv"

    def test_plan_name_without_directory(self):
        assert BuildResult(success=False, plan_id="abc-hello.drv").plan_name == "abc-hello.drv"


class TestBuildRecord:
    """Test suite for BuildRecord."""

    def test_defaults_to_queued(self):
        record = BuildRecord(id="r1", kind="commit", repository="acme/widgets", commit="abc123")
        assert record.state == ItemState.QUEUED
        assert record.success is None
        assert record.started_at is None

    def test_to_dict(self):
        queued = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        record = BuildRecord(
            id="r1",
            kind="job",
            repository="acme/widgets",
            commit="abc123",
            attr_path="build",
            state=ItemState.COMPLETED,
            success=False,
            plan_id="/nix/store/abc-build.drv",
            queued_at=queued,
        )

        result = record.to_dict()

        assert result["state"] == "completed"
        assert result["success"] is False
        assert result["attr_path"] == "build"
        assert result["queued_at"] == queued.isoformat()
        assert result["finished_at"] is None
