"""
Webhook endpoint for pull request resolution events.
"""

import hashlib
import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import ValidationError

from pr_resolver.config import settings
from pr_resolver.models.api_response import WebhookResponse
from pr_resolver.models.pull_request import PullRequestEvent
from pr_resolver.services.errors import PullRequestEventError
from pr_resolver.services.pull_request_workflow import (
    PullRequestWorkflow,
    create_pull_request_workflow,
)
from pr_resolver.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def get_pull_request_workflow() -> PullRequestWorkflow:
    """Dependency providing the workflow wired to the shared Redis client."""
    return create_pull_request_workflow()


def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Verify webhook signature for security.

    Args:
        payload: Raw request payload
        signature: Hex HMAC-SHA256 digest, optionally prefixed with 'sha256='
        secret: Shared webhook secret

    Returns:
        True if signature is valid, False otherwise
    """
    if not signature:
        return False

    if signature.startswith("sha256="):
        signature = signature[len("sha256="):]

    expected_signature = hmac.new(
        secret.encode(),
        payload,
        hashlib.sha256
    ).hexdigest()

    # Constant-time comparison
    return hmac.compare_digest(signature, expected_signature)


@router.post("/pull-request", response_model=WebhookResponse)
async def handle_pull_request_webhook(
    request: Request,
    x_hub_signature: str = Header(None, alias="X-Hub-Signature-256"),
    workflow: PullRequestWorkflow = Depends(get_pull_request_workflow),
) -> WebhookResponse:
    """
    Receive a pull request resolution event and run the workflow.

    The event is processed before responding so the status code tells the
    delivering system whether the event was applied.

    Raises:
        HTTPException: 401 on a bad signature, 400 on a malformed payload,
            otherwise the status mapped from the workflow error
    """
    payload = await request.body()

    if settings.webhook_secret and not verify_webhook_signature(
        payload, x_hub_signature, settings.webhook_secret
    ):
        logger.warning("Invalid webhook signature received")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        event = PullRequestEvent.model_validate_json(payload)
    except ValidationError as e:
        logger.error(f"Invalid pull request event payload: {e.error_count()} errors")
        raise HTTPException(status_code=400, detail="Invalid pull request event payload")

    try:
        result = await workflow.process(event)
    except PullRequestEventError as e:
        raise HTTPException(status_code=e.http_status, detail=f"{type(e).__name__}: {e}")
    except Exception as e:
        logger.error(f"Error handling pull request webhook: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error processing webhook")

    return WebhookResponse(status=result.outcome.value, message=result.message)
