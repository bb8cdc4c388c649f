"""
Sync service mirroring a GitLab group tree into a local directory.

This module provides functionality to:
- Discover remote projects and local working copies
- Derive clone/pull/delete tasks for every logical path
- Execute open tasks on a bounded worker pool
- Summarise task failures after the pool has drained
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

from glsync.core.gitlab import GroupVisitedCallback, RemoteTreeWalker
from glsync.core.reconciler import SKIPPED_PREFIX, ConfirmCallback, create_tasks
from glsync.core.scanner import LocalTreeScanner, ScanError
from glsync.core.scheduler import TaskScheduler, TaskWork
from glsync.models.project import LocalProject, RemoteProject
from glsync.models.report import SyncReport, TaskFailure
from glsync.models.task import Task, TaskStatus, filter_tasks

logger = logging.getLogger(__name__)


class SyncError(Exception):
    """Raised when a run cannot proceed safely (discovery or scan failed)."""

    def __init__(self, message: str, errors: Optional[List[Exception]] = None):
        super().__init__(message)
        self.errors = errors or []


@dataclass
class Discovery:
    """Remote and local state found before any task is created."""

    remote_projects: List[RemoteProject]
    local_projects: List[LocalProject]


class SyncService:
    """
    Service for synchronizing a local tree with a GitLab group.

    Remote discovery and the local scan run concurrently. Any discovery
    or scan error is fatal: a partial remote listing could otherwise
    turn into deletion of local projects that simply were not listed.
    """

    def __init__(
        self,
        walker: RemoteTreeWalker,
        scanner: LocalTreeScanner,
        workers: int = 5,
    ):
        self.walker = walker
        self.scanner = scanner
        self.scheduler = TaskScheduler(workers)

    def discover(
        self,
        group_path: str,
        on_group_visited: Optional[GroupVisitedCallback] = None,
    ) -> Discovery:
        """
        Walk the remote group tree and scan the local tree.

        Raises:
            SyncError: If any remote request failed or the scan failed.
        """
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="glsync-discover") as executor:
            walk_future = executor.submit(self.walker.walk, group_path, on_group_visited)
            scan_future = executor.submit(self.scanner.scan)

            walk_result = walk_future.result()
            try:
                local_projects = scan_future.result()
            except ScanError as e:
                raise SyncError(f"Error getting local projects: {e}") from e

        if walk_result.errors:
            details = "; ".join(str(error) for error in walk_result.errors)
            raise SyncError(
                f"Error getting gitlab projects: {details}",
                errors=walk_result.errors,
            )

        logger.info(
            f"Discovered {len(walk_result.projects)} remote and "
            f"{len(local_projects)} local project(s)"
        )
        return Discovery(walk_result.projects, local_projects)

    def plan(
        self,
        discovery: Discovery,
        local_root: str,
        confirm: Optional[ConfirmCallback] = None,
    ) -> List[Task]:
        """Create one task per logical path."""
        return create_tasks(
            discovery.remote_projects,
            discovery.local_projects,
            local_root,
            confirm,
        )

    def execute(self, tasks: Sequence[Task], work: TaskWork) -> List[Task]:
        """Run every open task and wait for all of them to complete."""
        open_tasks = filter_tasks(tasks, TaskStatus.OPEN)
        self.scheduler.run(open_tasks, work)
        return list(tasks)

    @staticmethod
    def build_report(tasks: Sequence[Task], executed: Optional[int] = None) -> SyncReport:
        """
        Summarise a finished run.

        Args:
            tasks: All tasks of the run, including the ones created
                already completed.
            executed: Number of tasks dispatched to workers. Defaults to
                the number of tasks that are not marked as skipped.

        Returns:
            SyncReport with one TaskFailure per task carrying an error.
        """
        failures = [
            TaskFailure(path=task.path, action=task.action, error=str(task.error))
            for task in tasks
            if task.error is not None
        ]
        if executed is None:
            skipped = sum(1 for task in tasks if task.message.startswith(SKIPPED_PREFIX))
            executed = len(tasks) - skipped
        else:
            skipped = len(tasks) - executed

        return SyncReport(
            total_tasks=len(tasks),
            executed=executed,
            skipped=skipped,
            failed=len(failures),
            failures=failures,
        )
