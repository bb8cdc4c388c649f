"""Pydantic models for the result of a sync run."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from glsync.models.task import TaskAction


class TaskFailure(BaseModel):
    """A task that completed with an error."""

    path: str = Field(description="Logical path of the project")
    action: TaskAction = Field(description="Action that failed")
    error: str = Field(description="Error message raised by the action")


class SyncReport(BaseModel):
    """Report generated after the worker pool has drained."""

    timestamp: datetime = Field(default_factory=datetime.now)
    total_tasks: int = Field(default=0, ge=0)
    executed: int = Field(default=0, ge=0, description="Tasks dispatched to a worker")
    skipped: int = Field(default=0, ge=0, description="Tasks created already completed")
    failed: int = Field(default=0, ge=0)
    failures: List[TaskFailure] = Field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0
