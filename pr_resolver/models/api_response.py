"""API response data models."""

from enum import Enum

from pydantic import BaseModel


class WorkflowOutcome(str, Enum):
    """Terminal outcome of one pull request event."""

    IGNORED = "ignored"
    ALREADY_RESOLVED = "already_resolved"
    REJECTED = "rejected"
    MANUAL_DEPLOYMENT_REQUIRED = "manual_deployment_required"
    DEPLOYMENT_TRIGGERED = "deployment_triggered"


class WorkflowResult(BaseModel):
    """Result returned by the resolution workflow."""

    outcome: WorkflowOutcome
    change_set_id: str
    message: str


class WebhookResponse(BaseModel):
    """Response from webhook handler."""

    status: str
    message: str

