"""
Core modules for glsync.

This package contains the core business logic for:
- Walking the GitLab group tree
- Scanning the local directory tree
- Pairing both sides into tasks
- Executing tasks on a bounded worker pool
- Clone, pull and delete operations
"""

from glsync.core.git import (
    CloneError,
    DeleteError,
    GitActionError,
    GitActions,
    PullError,
    make_task_worker,
)
from glsync.core.gitlab import GitlabClient, GitlabError, RemoteTreeWalker, WalkResult
from glsync.core.progress import LineWriter, parse_receiving_objects
from glsync.core.reconciler import create_tasks, pair_projects
from glsync.core.scanner import LocalTreeScanner, ScanError
from glsync.core.scheduler import TaskScheduler
from glsync.core.sync import Discovery, SyncError, SyncService

__all__ = [
    "CloneError",
    "DeleteError",
    "GitActionError",
    "GitActions",
    "PullError",
    "make_task_worker",
    "GitlabClient",
    "GitlabError",
    "RemoteTreeWalker",
    "WalkResult",
    "LineWriter",
    "parse_receiving_objects",
    "create_tasks",
    "pair_projects",
    "LocalTreeScanner",
    "ScanError",
    "TaskScheduler",
    "Discovery",
    "SyncError",
    "SyncService",
]
