"""Data models for the pull request resolution service."""

from .api_response import WebhookResponse, WorkflowOutcome, WorkflowResult
from .change_set import ChangeSetRecord, ChangeSetStatus
from .pull_request import BranchRef, PullRequestEvent, ValidatedEvent
from .run import (
    ApplicationConfig,
    ApplicationDirConfig,
    BuildInfo,
    DeployConfig,
    GitConfig,
    HostConfig,
    RunConfig,
    RunRecord,
    UpdateSetInfo,
)

__all__ = [
    # Pull request models
    "BranchRef",
    "PullRequestEvent",
    "ValidatedEvent",
    # Change set models
    "ChangeSetStatus",
    "ChangeSetRecord",
    # Run models
    "GitConfig",
    "ApplicationDirConfig",
    "ApplicationConfig",
    "DeployConfig",
    "HostConfig",
    "UpdateSetInfo",
    "BuildInfo",
    "RunConfig",
    "RunRecord",
    # API response models
    "WorkflowOutcome",
    "WorkflowResult",
    "WebhookResponse",
]
