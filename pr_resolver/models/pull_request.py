"""Pull request event data models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BranchRef(BaseModel):
    """One side of a pull request."""

    model_config = ConfigDict(frozen=True)

    branch: str


class PullRequestEvent(BaseModel):
    """Pull request resolution event delivered by the webhook source."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    target: BranchRef
    source: BranchRef
    action: str = ""  # free text, e.g. 'merged', 'declined', 'deleted'
    merge_id: Optional[str] = Field(default=None, alias="mergeId")


class ValidatedEvent(BaseModel):
    """Event that passed branch validation, with its change-set id."""

    model_config = ConfigDict(frozen=True)

    event: PullRequestEvent
    change_set_id: str
