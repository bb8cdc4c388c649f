"""
Data models for glsync.

This package contains:
- Remote and local project descriptors
- The concurrently observed Task state
- The report returned after a sync run
"""

from glsync.models.project import LocalProject, ProjectPair, RemoteProject
from glsync.models.report import SyncReport, TaskFailure
from glsync.models.task import Task, TaskAction, TaskStatus, filter_tasks

__all__ = [
    "LocalProject",
    "ProjectPair",
    "RemoteProject",
    "SyncReport",
    "TaskFailure",
    "Task",
    "TaskAction",
    "TaskStatus",
    "filter_tasks",
]
