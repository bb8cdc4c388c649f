"""
Bounded worker pool for executing tasks.

A fixed number of worker threads drain a queue that is filled with all
tasks before the workers start. Each task is executed exactly once; a
failing task is recorded and the worker moves on to the next one.
"""

import logging
import queue
import threading
from typing import Callable, List, Sequence

from glsync.models.task import Task, TaskStatus

logger = logging.getLogger(__name__)

TaskWork = Callable[[Task], None]


class TaskScheduler:
    """Runs tasks on at most ``workers`` threads at a time."""

    def __init__(self, workers: int = 5):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.workers = workers

    def run(self, tasks: Sequence[Task], work: TaskWork) -> List[Task]:
        """
        Execute every task and wait until all of them are completed.

        Args:
            tasks: Open tasks to execute.
            work: Called once per task on a worker thread. Raising marks
                the task as failed; the exception is stored on task.error.

        Returns:
            The tasks, all in COMPLETED status.
        """
        task_queue: "queue.Queue[Task]" = queue.Queue()
        for task in tasks:
            task_queue.put(task)

        worker_count = min(self.workers, len(tasks))
        logger.info(f"Running {len(tasks)} task(s) on {worker_count} worker(s)")

        threads = [
            threading.Thread(
                target=self._worker,
                args=(task_queue, work),
                name=f"glsync-worker-{index}",
                daemon=True,
            )
            for index in range(worker_count)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        return list(tasks)

    @staticmethod
    def _worker(task_queue: "queue.Queue[Task]", work: TaskWork) -> None:
        while True:
            try:
                task = task_queue.get_nowait()
            except queue.Empty:
                return

            task.status = TaskStatus.PROGRESSING
            try:
                work(task)
            except Exception as e:
                logger.error(f"Failed to {task.action.value} {task.path}: {e}")
                task.error = e
            else:
                logger.debug(f"Finished {task.action.value} {task.path}")
            finally:
                task.status = TaskStatus.COMPLETED
