"""
Pairing of remote and local projects into tasks.

Remote and local descriptors are joined on their logical path by exact,
case-sensitive string comparison. No normalisation is applied, so on a
case-insensitive filesystem "Team/App" and "team/app" are treated as two
different projects.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from glsync.models.project import LocalProject, ProjectPair, RemoteProject
from glsync.models.task import Task, TaskAction, TaskStatus

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[str], bool]

SKIPPED_PREFIX = "skipped: "
SKIPPED_NON_DEFAULT_BRANCH = f"{SKIPPED_PREFIX}non-default branch"
SKIPPED_USER_DECLINED = f"{SKIPPED_PREFIX}user declined"


def pair_projects(
    remote_projects: Iterable[RemoteProject],
    local_projects: Iterable[LocalProject],
) -> Dict[str, ProjectPair]:
    """
    Full outer join of remote and local projects keyed by logical path.

    Args:
        remote_projects: Projects found below the GitLab root group.
        local_projects: Working copies found below the local root.

    Returns:
        Mapping of logical path to its ProjectPair.
    """
    remotes: Dict[str, RemoteProject] = {}
    locals_: Dict[str, LocalProject] = {}

    for project in remote_projects:
        remotes[project.path] = project
    for project in local_projects:
        locals_[project.path] = project

    return {
        path: ProjectPair(remote=remotes.get(path), local=locals_.get(path))
        for path in remotes.keys() | locals_.keys()
    }


def local_path_for(local_root: str, logical_path: str) -> str:
    """Filesystem location of a logical path below the local root."""
    return f"{local_root}/{logical_path}"


def create_task(
    path: str,
    pair: ProjectPair,
    local_root: str,
    confirm: Optional[ConfirmCallback] = None,
) -> Task:
    """
    Derive the task for one project pair.

    | remote  | local                        | action | initial status        |
    |---------|------------------------------|--------|-----------------------|
    | present | present, on default branch   | pull   | open                  |
    | present | present, on another branch   | pull   | completed (skipped)   |
    | present | absent                       | clone  | open                  |
    | absent  | present                      | delete | open, or completed if |
    |         |                              |        | confirm() says no     |

    Args:
        path: Logical path of the pair.
        pair: Remote and local side of the path.
        local_root: Root directory of the local tree.
        confirm: Asked before deleting a local-only project. When None,
            local-only projects are always deleted.

    Returns:
        The new Task.
    """
    local_path = local_path_for(local_root, path)
    remote, local = pair.remote, pair.local

    if remote is not None and local is not None:
        if remote.default_branch == local.branch:
            return Task(path, pair, local_path, local.branch, TaskAction.PULL)
        logger.debug(
            f"Skipping {path}: on {local.branch}, default is {remote.default_branch}"
        )
        return Task(
            path, pair, local_path, local.branch, TaskAction.PULL,
            status=TaskStatus.COMPLETED,
            message=SKIPPED_NON_DEFAULT_BRANCH,
        )

    if remote is not None:
        return Task(path, pair, local_path, remote.default_branch, TaskAction.CLONE)

    if local is not None:
        if confirm is None or confirm(f"Delete local project {path}?"):
            return Task(path, pair, local_path, local.branch, TaskAction.DELETE)
        return Task(
            path, pair, local_path, local.branch, TaskAction.DELETE,
            status=TaskStatus.COMPLETED,
            message=SKIPPED_USER_DECLINED,
        )

    raise ValueError(f"Project pair for {path} has neither a remote nor a local project")


def create_tasks(
    remote_projects: Iterable[RemoteProject],
    local_projects: Iterable[LocalProject],
    local_root: str,
    confirm: Optional[ConfirmCallback] = None,
) -> List[Task]:
    """
    Build one task per distinct logical path.

    Tasks are returned sorted by logical path so that confirmation
    prompts and reports come out in a stable order.
    """
    pairs = pair_projects(remote_projects, local_projects)
    tasks = [
        create_task(path, pairs[path], local_root, confirm)
        for path in sorted(pairs)
    ]

    logger.info(
        f"Created {len(tasks)} task(s), "
        f"{sum(1 for t in tasks if t.status == TaskStatus.OPEN)} open"
    )
    return tasks
