"""Change set (update set) record models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ChangeSetStatus(str, Enum):
    """Lifecycle status of a change set."""

    CODE_REVIEW_PENDING = "code_review_pending"
    CODE_REVIEW_REJECTED = "code_review_rejected"
    COMPLETE = "complete"
    DEPLOYMENT_IN_PROGRESS = "deployment_in_progress"
    FAILED = "failed"


class ChangeSetRecord(BaseModel):
    """
    Change set tracked by the change-management system.

    `version` is owned by the store and used for compare-and-swap writes.
    """

    model_config = ConfigDict(populate_by_name=True)

    update_set_id: str = Field(alias="updateSetId")
    run_id: Optional[str] = Field(default=None, alias="runId")
    pull_request_raised: bool = Field(default=False, alias="pullRequestRaised")
    status: Optional[ChangeSetStatus] = None
    version: int = 0
