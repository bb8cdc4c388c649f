"""
Pytest configuration and shared fixtures for glsync tests.
"""

import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from glsync.models.project import LocalProject, ProjectPair, RemoteProject
from glsync.models.task import Task, TaskAction


def run_git(args: list[str], cwd: Path) -> subprocess.CompletedProcess:
    """Run git in cwd with a fixed identity, failing the test on error."""
    return subprocess.run(
        [
            "git",
            "-c", "user.email=test@example.com",
            "-c", "user.name=Test User",
            "-c", "commit.gpgsign=false",
            "-c", "init.defaultBranch=main",
        ] + args,
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )


def init_repo(path: Path, branch: str = "main") -> Path:
    """Create a git repository at path with one commit on branch."""
    path.mkdir(parents=True, exist_ok=True)
    run_git(["init"], path)
    run_git(["symbolic-ref", "HEAD", f"refs/heads/{branch}"], path)

    (path / "README.md").write_text("# Test Repository\n")
    run_git(["add", "."], path)
    run_git(["commit", "-m", "Initial commit"], path)
    return path


@pytest.fixture
def temp_directory() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def git_repo(temp_directory: Path) -> Path:
    """Create a temporary git repository with one commit on main."""
    return init_repo(temp_directory / "test-repo")


@pytest.fixture
def local_root(temp_directory: Path) -> Path:
    """Empty directory used as the local mirror root."""
    root = temp_directory / "mirror"
    root.mkdir()
    return root


@pytest.fixture
def make_working_copy(local_root: Path) -> Callable[..., Path]:
    """Factory creating a working copy at a logical path below local_root."""

    def _make(logical_path: str, branch: str = "main") -> Path:
        return init_repo(local_root / logical_path, branch=branch)

    return _make


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Factory for tasks with a matching project pair."""

    def _make(path: str = "team/app", action: TaskAction = TaskAction.PULL) -> Task:
        remote = RemoteProject(path=path, default_branch="main", clone_url=f"git@example.com:{path}.git")
        local = LocalProject(path=path, branch="main")
        if action == TaskAction.CLONE:
            pair = ProjectPair(remote=remote)
        elif action == TaskAction.DELETE:
            pair = ProjectPair(local=local)
        else:
            pair = ProjectPair(remote=remote, local=local)
        return Task(path, pair, f"/tmp/mirror/{path}", "main", action)

    return _make
