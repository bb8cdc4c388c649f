"""Discovery of git working copies below a local directory."""

import logging
import os
from pathlib import Path
from typing import List, Optional

from git import Repo
from git.exc import InvalidGitRepositoryError, NoSuchPathError

from glsync.models.project import LocalProject

logger = logging.getLogger(__name__)

DETACHED_HEAD = "HEAD"


class ScanError(Exception):
    """Raised when the local directory tree cannot be walked."""


class LocalTreeScanner:
    """
    Finds working copies below a root directory.

    Every subdirectory that is the root of a git working copy yields one
    LocalProject. The scan does not descend into a working copy once
    found, so nested repositories are not reported.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def scan(self) -> List[LocalProject]:
        """
        Walk the root directory.

        Returns:
            One LocalProject per working copy, paths relative to the root
            with '/' separators.

        Raises:
            ScanError: If the root or any directory below it cannot be read.
        """
        if not self.root.is_dir():
            raise ScanError(f"Local path is not a directory: {self.root}")

        logger.info(f"Scanning {self.root} for working copies")
        projects: List[LocalProject] = []

        def on_error(error: OSError) -> None:
            raise ScanError(f"Failed to scan {error.filename}: {error.strerror}") from error

        for dirpath, dirnames, _filenames in os.walk(self.root, onerror=on_error):
            current = Path(dirpath)
            if current == self.root:
                continue

            branch = self._read_branch(current)
            if branch is None:
                continue

            relative = current.relative_to(self.root).as_posix()
            logger.debug(f"Found working copy {relative} on branch {branch}")
            projects.append(LocalProject(path=relative, branch=branch))
            dirnames.clear()

        logger.info(f"Found {len(projects)} working copies below {self.root}")
        return projects

    @staticmethod
    def _read_branch(path: Path) -> Optional[str]:
        """Return the checked out branch if path is a working copy root."""
        if not (path / ".git").exists():
            return None

        try:
            repo = Repo(path)
        except (InvalidGitRepositoryError, NoSuchPathError):
            return None

        try:
            return repo.active_branch.name
        except TypeError:
            return DETACHED_HEAD
        finally:
            repo.close()
