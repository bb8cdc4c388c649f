"""
Clone, pull and delete operations on local working copies.

Clone and pull shell out to the git binary so that the user's SSH agent,
credential helpers and merge configuration apply unchanged. Progress
output is streamed line by line to a callback while the command runs.
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from git import Repo
from git.exc import InvalidGitRepositoryError, NoSuchPathError

from glsync.core.progress import LineCallback, LineWriter, parse_receiving_objects
from glsync.core.scheduler import TaskWork
from glsync.models.task import Task, TaskAction

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


class GitActionError(Exception):
    """Base exception for clone, pull and delete operations."""


class CloneError(GitActionError):
    """Raised when a project cannot be cloned."""


class PullError(GitActionError):
    """Raised when a working copy cannot be pulled."""


class DeleteError(GitActionError):
    """Raised when a working copy cannot be deleted."""


class GitActions:
    """Runs git operations against local working copies."""

    def __init__(self, git_binary: str = "git"):
        self.git_binary = git_binary

    def clone(
        self,
        clone_url: str,
        local_path: str,
        on_line: Optional[LineCallback] = None,
    ) -> None:
        """
        Clone a project into a directory that must not exist yet.

        Raises:
            CloneError: If the target exists or git fails.
        """
        target = Path(local_path)
        if target.exists():
            raise CloneError(f"Target directory already exists: {local_path}")

        target.parent.mkdir(parents=True, exist_ok=True)
        returncode, output = self._run(
            ["clone", "--progress", clone_url, local_path], None, on_line
        )
        if returncode != 0:
            raise CloneError(f"git clone exited with status {returncode}\n{output}")

    def pull(self, local_path: str, on_line: Optional[LineCallback] = None) -> None:
        """
        Pull the checked out branch of a working copy.

        git exits 0 for a working copy that is already up to date, so
        every nonzero exit is a failure.

        Raises:
            PullError: If git fails.
        """
        if not Path(local_path).is_dir():
            raise PullError(f"Working copy does not exist: {local_path}")

        returncode, output = self._run(["pull", "--progress"], local_path, on_line)
        if returncode != 0:
            raise PullError(f"git pull exited with status {returncode}\n{output}")

    def delete(self, local_path: str) -> None:
        """
        Delete a working copy from disk.

        Raises:
            DeleteError: If the path is not a working copy or removal fails.
        """
        try:
            Repo(local_path).close()
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise DeleteError(f"Not a git working copy: {local_path}") from e

        try:
            shutil.rmtree(local_path)
        except OSError as e:
            raise DeleteError(f"Failed to delete {local_path}: {e}") from e

    def _run(
        self,
        args: List[str],
        cwd: Optional[str],
        on_line: Optional[LineCallback],
    ) -> tuple[int, str]:
        """Run git, streaming combined output to on_line. Returns (returncode, output)."""
        lines: List[str] = []

        def collect(line: str) -> None:
            lines.append(line)
            if on_line is not None:
                on_line(line)

        writer = LineWriter(collect)
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        command = [self.git_binary] + args
        logger.debug(f"Running {' '.join(command)} in {cwd or os.getcwd()}")

        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                env=env,
            )
        except OSError as e:
            raise GitActionError(f"Failed to start {command[0]}: {e}") from e

        with process:
            assert process.stdout is not None
            while True:
                chunk = process.stdout.read1(READ_CHUNK_SIZE)
                if not chunk:
                    break
                writer.write(chunk)
            writer.flush()
            returncode = process.wait()

        return returncode, "\n".join(lines)


def make_task_worker(actions: GitActions) -> TaskWork:
    """
    Build the function the scheduler runs for each task.

    Every progress line replaces the task message; "Receiving objects"
    lines also update the task's numeric progress.
    """

    def on_progress(task: Task) -> LineCallback:
        def handle(line: str) -> None:
            task.message = line
            counts = parse_receiving_objects(line)
            if counts is not None:
                task.set_progress(*counts)

        return handle

    def work(task: Task) -> None:
        if task.action == TaskAction.CLONE:
            remote = task.project_pair.remote
            if remote is None:
                raise CloneError(f"No remote project for {task.path}")
            actions.clone(remote.clone_url, task.local_path, on_progress(task))
        elif task.action == TaskAction.PULL:
            actions.pull(task.local_path, on_progress(task))
        elif task.action == TaskAction.DELETE:
            task.message = "deleting"
            actions.delete(task.local_path)
        else:
            raise GitActionError(f"Unknown action {task.action}")

    return work
