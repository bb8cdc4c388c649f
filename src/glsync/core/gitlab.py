"""
GitLab group tree discovery.

This module provides:
- A small REST client for the group and project endpoints
- A walker that lists every active project below a root group,
  following subgroups of any depth concurrently
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List, Optional, Protocol
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from glsync.config import CloneProtocol
from glsync.models.project import RemoteProject

logger = logging.getLogger(__name__)

GroupVisitedCallback = Callable[[str], None]


class GitlabError(Exception):
    """Raised when a GitLab API request fails."""


class GitlabNamespace(BaseModel):
    """Namespace a project lives in."""

    full_path: str


class GitlabGroup(BaseModel):
    """A GitLab group or subgroup."""

    id: int
    full_path: str


class GitlabProject(BaseModel):
    """The subset of the GitLab project payload glsync needs."""

    id: int
    path_with_namespace: str
    default_branch: Optional[str] = None
    ssh_url_to_repo: str = ""
    http_url_to_repo: str = ""
    archived: bool = False
    namespace: GitlabNamespace


class GitlabApi(Protocol):
    """Operations the walker needs from a GitLab client."""

    def get_group(self, full_path: str) -> Optional[GitlabGroup]: ...

    def list_group_projects(self, group_id: int) -> List[GitlabProject]: ...

    def list_subgroups(self, group_id: int) -> List[GitlabGroup]: ...


class GitlabClient:
    """Thin synchronous client for the GitLab v4 REST API."""

    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = 30.0,
        per_page: int = 100,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url.rstrip("/")
        self.per_page = per_page
        self._client = httpx.Client(
            base_url=f"{self.url}/api/v4",
            headers={"PRIVATE-TOKEN": token},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GitlabClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_group(self, full_path: str) -> Optional[GitlabGroup]:
        """
        Look up a group by its full path.

        Args:
            full_path: Full group path, e.g. "acme/platform".

        Returns:
            The group, or None if no group with exactly this path exists.

        Raises:
            GitlabError: If the request fails for any other reason.
        """
        endpoint = f"/groups/{quote(full_path, safe='')}"
        try:
            response = self._client.get(endpoint, params={"with_projects": "false"})
        except httpx.HTTPError as e:
            raise GitlabError(f"Failed to get group {full_path}: {e}") from e

        if response.status_code == 404:
            return None

        group = self._parse(GitlabGroup, self._json(response, endpoint), endpoint)
        if group.full_path != full_path:
            return None
        return group

    def list_group_projects(self, group_id: int) -> List[GitlabProject]:
        """List the direct projects of a group."""
        endpoint = f"/groups/{group_id}/projects"
        return [
            self._parse(GitlabProject, item, endpoint)
            for item in self._paginate(endpoint)
        ]

    def list_subgroups(self, group_id: int) -> List[GitlabGroup]:
        """List the direct subgroups of a group."""
        endpoint = f"/groups/{group_id}/subgroups"
        return [
            self._parse(GitlabGroup, item, endpoint)
            for item in self._paginate(endpoint)
        ]

    def _paginate(self, endpoint: str) -> Iterator[dict]:
        page = "1"
        while page:
            try:
                response = self._client.get(
                    endpoint, params={"per_page": self.per_page, "page": page}
                )
            except httpx.HTTPError as e:
                raise GitlabError(f"Request {endpoint} failed: {e}") from e

            items = self._json(response, endpoint)
            if not isinstance(items, list):
                raise GitlabError(f"Unexpected response from {endpoint}: expected a list")

            yield from items
            page = response.headers.get("X-Next-Page", "").strip()
            if not items:
                break

    @staticmethod
    def _json(response: httpx.Response, endpoint: str) -> Any:
        try:
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise GitlabError(
                f"Request {endpoint} failed with status {response.status_code}: {response.text}"
            ) from e
        except ValueError as e:
            raise GitlabError(f"Invalid JSON from {endpoint}: {e}") from e

    @staticmethod
    def _parse(model: type, item: Any, endpoint: str) -> Any:
        try:
            return model.model_validate(item)
        except ValidationError as e:
            raise GitlabError(f"Unexpected payload from {endpoint}: {e}") from e


@dataclass
class WalkResult:
    """Projects found by a walk and every error met on the way."""

    projects: List[RemoteProject] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)


class _WalkState:
    """Per-walk aggregation shared by all pool jobs."""

    def __init__(self, executor: ThreadPoolExecutor):
        self.executor = executor
        self.result = WalkResult()
        self._lock = threading.Lock()
        self._pending = 0
        self._done = threading.Event()

    def submit(self, fn: Callable[..., None], *args: Any) -> None:
        with self._lock:
            self._pending += 1
        self.executor.submit(self._run, fn, args)

    def _run(self, fn: Callable[..., None], args: tuple) -> None:
        try:
            fn(*args)
        except Exception as e:
            logger.warning(f"Group tree request failed: {e}")
            self.add_error(e)
        finally:
            with self._lock:
                self._pending -= 1
                finished = self._pending == 0
            if finished:
                self._done.set()

    def add_projects(self, projects: List[RemoteProject]) -> None:
        with self._lock:
            self.result.projects.extend(projects)

    def add_error(self, error: Exception) -> None:
        with self._lock:
            self.result.errors.append(error)

    def wait(self) -> WalkResult:
        self._done.wait()
        return self.result


class RemoteTreeWalker:
    """
    Lists every active project below a GitLab group.

    For every group the project list and the subgroup list are requested
    concurrently, and every subgroup is walked the same way. Requests run
    on a pool of at most ``max_concurrency`` threads that is created per
    walk. A failing request is recorded and the rest of the tree is still
    walked; the caller decides whether errors are fatal.

    No ordering of the returned projects is guaranteed.
    """

    def __init__(
        self,
        client: GitlabApi,
        max_concurrency: int = 8,
        clone_protocol: CloneProtocol = CloneProtocol.SSH,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.client = client
        self.max_concurrency = max_concurrency
        self.clone_protocol = clone_protocol

    def walk(
        self,
        root_path: str,
        on_group_visited: Optional[GroupVisitedCallback] = None,
    ) -> WalkResult:
        """
        Walk the group tree below root_path.

        Args:
            root_path: Full path of the root group.
            on_group_visited: Called with the full path of every group
                before its children are requested. May be called from
                pool threads.

        Returns:
            WalkResult with the partial or complete project list and all
            errors encountered.
        """
        try:
            root = self.client.get_group(root_path)
        except GitlabError as e:
            return WalkResult(errors=[e])

        if root is None:
            return WalkResult(errors=[GitlabError(f"group {root_path} not found")])

        logger.info(f"Walking GitLab group tree below {root_path}")
        visit = on_group_visited or (lambda _path: None)

        with ThreadPoolExecutor(
            max_workers=self.max_concurrency, thread_name_prefix="gitlab-walk"
        ) as executor:
            state = _WalkState(executor)
            state.submit(self._visit, state, root, root_path, visit)
            result = state.wait()

        logger.info(
            f"Found {len(result.projects)} project(s) below {root_path} "
            f"with {len(result.errors)} error(s)"
        )
        return result

    def _visit(
        self,
        state: _WalkState,
        group: GitlabGroup,
        root_path: str,
        visit: GroupVisitedCallback,
    ) -> None:
        visit(group.full_path)
        state.submit(self._collect_projects, state, group, root_path)
        state.submit(self._descend, state, group, root_path, visit)

    def _collect_projects(
        self, state: _WalkState, group: GitlabGroup, root_path: str
    ) -> None:
        try:
            projects = self.client.list_group_projects(group.id)
        except GitlabError as e:
            raise GitlabError(f"Listing projects of {group.full_path} failed: {e}") from e

        active = [
            self._to_remote_project(project, root_path)
            for project in projects
            if self._is_owned_and_active(project, group)
        ]
        logger.debug(f"{group.full_path}: {len(active)} of {len(projects)} project(s) kept")
        state.add_projects(active)

    def _descend(
        self,
        state: _WalkState,
        group: GitlabGroup,
        root_path: str,
        visit: GroupVisitedCallback,
    ) -> None:
        try:
            subgroups = self.client.list_subgroups(group.id)
        except GitlabError as e:
            raise GitlabError(f"Listing subgroups of {group.full_path} failed: {e}") from e

        for subgroup in subgroups:
            self._visit(state, subgroup, root_path, visit)

    @staticmethod
    def _is_owned_and_active(project: GitlabProject, group: GitlabGroup) -> bool:
        # Projects shared into a group live elsewhere and would collide
        # with their canonical location.
        if project.archived:
            return False
        return project.namespace.full_path == group.full_path

    def _to_remote_project(self, project: GitlabProject, root_path: str) -> RemoteProject:
        prefix = f"{root_path}/"
        path = project.path_with_namespace
        if path.startswith(prefix):
            path = path[len(prefix):]

        if self.clone_protocol == CloneProtocol.HTTP:
            clone_url = project.http_url_to_repo
        else:
            clone_url = project.ssh_url_to_repo

        return RemoteProject(
            path=path,
            default_branch=project.default_branch or "",
            clone_url=clone_url,
        )
