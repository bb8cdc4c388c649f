"""Pydantic models for remote and local project descriptors."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RemoteProject(BaseModel):
    """An active project found below the GitLab root group."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Project path relative to the root group")
    default_branch: str = Field(description="Default branch of the project")
    clone_url: str = Field(description="URL used to clone the project")


class LocalProject(BaseModel):
    """A working copy found below the local root directory."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Working copy path relative to the local root")
    branch: str = Field(description="Currently checked out branch (short name)")


class ProjectPair(BaseModel):
    """Remote and local side of one logical path."""

    model_config = ConfigDict(frozen=True)

    remote: Optional[RemoteProject] = None
    local: Optional[LocalProject] = None

    @property
    def path(self) -> str:
        """The logical path shared by both sides."""
        if self.remote is not None:
            return self.remote.path
        if self.local is not None:
            return self.local.path
        raise ValueError("ProjectPair has neither a remote nor a local project")
