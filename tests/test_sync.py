"""
Unit tests for the SyncService.

Tests cover:
- Concurrent discovery and its failure modes
- Task planning and confirmation of deletions
- Execution of open tasks only
- Report building after the pool has drained
- A full run against real git repositories
"""

import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import init_repo
from glsync.core.git import GitActions, make_task_worker
from glsync.core.gitlab import GitlabError, RemoteTreeWalker, WalkResult
from glsync.core.reconciler import SKIPPED_NON_DEFAULT_BRANCH, SKIPPED_USER_DECLINED
from glsync.core.scanner import LocalTreeScanner, ScanError
from glsync.core.sync import Discovery, SyncError, SyncService
from glsync.models.project import LocalProject, RemoteProject
from glsync.models.task import TaskAction, TaskStatus


def remote(path: str, branch: str = "main", clone_url: str = "") -> RemoteProject:
    return RemoteProject(path=path, default_branch=branch, clone_url=clone_url or f"git@x:{path}.git")


def local(path: str, branch: str = "main") -> LocalProject:
    return LocalProject(path=path, branch=branch)


class TestSyncService:
    """Tests for SyncService class."""

    @pytest.fixture
    def walker(self):
        walker = MagicMock(spec=RemoteTreeWalker)
        walker.walk.return_value = WalkResult(
            projects=[remote("a"), remote("b"), remote("c", branch="develop")]
        )
        return walker

    @pytest.fixture
    def scanner(self):
        scanner = MagicMock(spec=LocalTreeScanner)
        scanner.scan.return_value = [local("b"), local("c"), local("d")]
        return scanner

    @pytest.fixture
    def service(self, walker, scanner):
        return SyncService(walker, scanner, workers=2)

    def test_discover(self, service, walker):
        callback = MagicMock()

        discovery = service.discover("acme", callback)

        assert [p.path for p in discovery.remote_projects] == ["a", "b", "c"]
        assert [p.path for p in discovery.local_projects] == ["b", "c", "d"]
        walker.walk.assert_called_once_with("acme", callback)

    def test_discover_runs_walk_and_scan_concurrently(self, walker, scanner):
        barrier = threading.Barrier(2, timeout=5)

        def walk(group_path, on_group_visited=None):
            barrier.wait()
            return WalkResult()

        def scan():
            barrier.wait()
            return []

        walker.walk.side_effect = walk
        scanner.scan.side_effect = scan

        discovery = SyncService(walker, scanner).discover("acme")

        assert discovery == Discovery([], [])

    def test_discover_fails_on_any_remote_error(self, service, walker):
        walker.walk.return_value = WalkResult(
            projects=[remote("a")],
            errors=[GitlabError("Listing subgroups of acme/x failed: timeout")],
        )

        with pytest.raises(SyncError, match="Error getting gitlab projects") as exc_info:
            service.discover("acme")

        assert len(exc_info.value.errors) == 1
        assert "acme/x" in str(exc_info.value)

    def test_discover_fails_on_scan_error(self, service, scanner):
        scanner.scan.side_effect = ScanError("Local path is not a directory: /nope")

        with pytest.raises(SyncError, match="Error getting local projects"):
            service.discover("acme")

    def test_plan_creates_one_task_per_path(self, service):
        discovery = service.discover("acme")

        tasks = service.plan(discovery, "/mirror")

        by_path = {task.path: task for task in tasks}
        assert by_path["a"].action == TaskAction.CLONE
        assert by_path["b"].action == TaskAction.PULL
        assert by_path["c"].message == SKIPPED_NON_DEFAULT_BRANCH
        assert by_path["d"].action == TaskAction.DELETE
        assert by_path["a"].local_path == "/mirror/a"

    def test_plan_asks_before_deleting(self, service):
        confirm = MagicMock(return_value=False)

        tasks = service.plan(service.discover("acme"), "/mirror", confirm)

        confirm.assert_called_once_with("Delete local project d?")
        deleted = next(task for task in tasks if task.path == "d")
        assert deleted.status == TaskStatus.COMPLETED
        assert deleted.message == SKIPPED_USER_DECLINED

    def test_execute_only_runs_open_tasks(self, service):
        tasks = service.plan(service.discover("acme"), "/mirror")
        worked = []
        lock = threading.Lock()

        def work(task):
            with lock:
                worked.append(task.path)

        service.execute(tasks, work)

        assert sorted(worked) == ["a", "b", "d"]
        assert all(task.status == TaskStatus.COMPLETED for task in tasks)

    def test_failed_task_is_reported(self, service):
        def work(task):
            if task.action == TaskAction.DELETE:
                raise OSError("permission denied")

        tasks = service.plan(service.discover("acme"), "/mirror")
        service.execute(tasks, work)
        report = service.build_report(tasks)

        assert report.total_tasks == 4
        assert report.executed == 3
        assert report.skipped == 1
        assert report.failed == 1
        assert report.failures[0].path == "d"
        assert report.failures[0].action == TaskAction.DELETE
        assert report.failures[0].error == "permission denied"


class TestBuildReport:
    """Tests for SyncService.build_report."""

    def test_skipped_tasks_are_counted_from_messages(self, make_task):
        pulled = make_task("a")
        skipped = make_task("b")
        skipped.message = SKIPPED_NON_DEFAULT_BRANCH
        failed = make_task("c", TaskAction.CLONE)
        failed.error = RuntimeError("boom")

        report = SyncService.build_report([pulled, skipped, failed])

        assert report.total_tasks == 3
        assert report.executed == 2
        assert report.skipped == 1
        assert report.failed == 1
        assert report.has_failures

    def test_explicit_executed_count(self, make_task):
        report = SyncService.build_report([make_task("a"), make_task("b")], executed=1)

        assert report.executed == 1
        assert report.skipped == 1
        assert not report.has_failures


class TestEndToEnd:
    """A full run against local git repositories standing in for GitLab."""

    def test_clone_pull_and_delete(self, temp_directory: Path, local_root: Path, make_working_copy):
        upstream_new = init_repo(temp_directory / "upstream" / "new")
        make_working_copy("kept")
        stale = make_working_copy("team/stale")

        walker = MagicMock(spec=RemoteTreeWalker)
        walker.walk.return_value = WalkResult(
            projects=[
                remote("team/new", clone_url=str(upstream_new)),
                remote("kept", clone_url="unused"),
            ]
        )
        service = SyncService(walker, LocalTreeScanner(local_root), workers=2)
        work = make_task_worker(GitActions())

        def work_without_pulling(task):
            # "kept" has no upstream to pull from
            if task.action == TaskAction.PULL:
                task.message = "pulled"
                return
            work(task)

        tasks = service.plan(service.discover("acme"), str(local_root))
        service.execute(tasks, work_without_pulling)
        report = service.build_report(tasks)

        assert report.failed == 0
        assert report.executed == 3
        assert (local_root / "team" / "new" / ".git").is_dir()
        assert not stale.exists()
        assert (local_root / "kept" / ".git").is_dir()
