"""Build/deploy run data models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _ConfigSection(BaseModel):
    # Run configs come from the build pipeline and carry more than we read
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class GitConfig(_ConfigSection):
    remote_url: str = Field(alias="remoteUrl")


class ApplicationDirConfig(_ConfigSection):
    tmp: Optional[str] = None


class ApplicationConfig(_ConfigSection):
    dir: ApplicationDirConfig = Field(default_factory=ApplicationDirConfig)


class DeployConfig(_ConfigSection):
    enabled: bool = False
    on_pull_request_resolve: bool = Field(default=False, alias="onPullRequestResolve")


class HostConfig(_ConfigSection):
    name: str


class UpdateSetInfo(_ConfigSection):
    """Display metadata of the update set in the change-management system."""

    sys_id: str
    name: str


class BuildInfo(_ConfigSection):
    commit_id: Optional[str] = Field(default=None, alias="commitId")


class RunConfig(_ConfigSection):
    """Configuration snapshot embedded in a run."""

    git: GitConfig
    application: ApplicationConfig = Field(default_factory=ApplicationConfig)
    deploy: Optional[DeployConfig] = None
    branch_name: str = Field(alias="branchName")
    host: HostConfig
    update_set: UpdateSetInfo = Field(alias="updateSet")
    build: BuildInfo = Field(default_factory=BuildInfo)


class RunRecord(BaseModel):
    """
    One build/deploy attempt tied to a change set.

    `branch_commit_id` keeps the pre-merge commit once the run has been
    rebound to its merge-base. `version` is owned by the store.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    commit_id: str = Field(alias="commitId")
    branch_commit_id: Optional[str] = Field(default=None, alias="branchCommitId")
    config: Optional[RunConfig] = None
    version: int = 0
