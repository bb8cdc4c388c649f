"""
Task state model.

A Task is one unit of reconciliation work (clone, pull or delete one
project). Its identity is fixed at creation; status, message, error and
numeric progress are mutated by the worker that executes it while the
renderer reads them from another thread.

Each field is guarded by the task's lock, so a reader always sees a
value written completely by a single setter call. There is no
multi-field atomic update: while a task transitions, status and message
can be observed in any interleaving. Readers that display several
fields get an eventually consistent view, not a transactional one.
"""

import threading
from enum import Enum
from typing import Iterable, Optional

from glsync.models.project import ProjectPair


class TaskAction(str, Enum):
    """What a task does to its project."""

    CLONE = "clone"
    PULL = "pull"
    DELETE = "delete"


class TaskStatus(str, Enum):
    """Lifecycle of a task: open -> progressing -> completed."""

    OPEN = "open"
    PROGRESSING = "progressing"
    COMPLETED = "completed"


class Task:
    """A reconciliation action against one logical path."""

    def __init__(
        self,
        path: str,
        project_pair: ProjectPair,
        local_path: str,
        branch: str,
        action: TaskAction,
        status: TaskStatus = TaskStatus.OPEN,
        message: str = "",
    ):
        self.path = path
        self.project_pair = project_pair
        self.local_path = local_path
        self.branch = branch
        self.action = action

        self._lock = threading.Lock()
        self._status = status
        self._message = message
        self._error: Optional[BaseException] = None
        self._progress: Optional[tuple[int, int]] = None

    def __repr__(self) -> str:
        return f"Task(path={self.path!r}, action={self.action.value}, status={self.status.value})"

    @property
    def status(self) -> TaskStatus:
        with self._lock:
            return self._status

    @status.setter
    def status(self, status: TaskStatus) -> None:
        with self._lock:
            self._status = status

    @property
    def message(self) -> str:
        with self._lock:
            return self._message

    @message.setter
    def message(self, message: str) -> None:
        with self._lock:
            self._message = message

    @property
    def error(self) -> Optional[BaseException]:
        with self._lock:
            return self._error

    @error.setter
    def error(self, error: Optional[BaseException]) -> None:
        with self._lock:
            self._error = error

    @property
    def progress(self) -> Optional[tuple[int, int]]:
        """Last reported (current, total) object count, if any."""
        with self._lock:
            return self._progress

    def set_progress(self, current: int, total: int) -> None:
        with self._lock:
            self._progress = (current, total)


def filter_tasks(tasks: Iterable[Task], status: TaskStatus) -> list[Task]:
    """Return the tasks currently in the given status."""
    return [task for task in tasks if task.status == status]
