"""
Hand-off of merged change sets to the deployment pipeline.
"""

from datetime import datetime, timezone
from typing import Optional

from pr_resolver.services.redis_client import RedisClient
from pr_resolver.utils.logging import get_logger

logger = get_logger(__name__)


class DeploymentTrigger:
    """Queues deployment jobs; completion is tracked by the deployment worker."""

    def __init__(self, redis_client: RedisClient):
        self.redis_client = redis_client

    async def run(self, commit_id: Optional[str], deploy: bool = True, run_id: Optional[str] = None) -> None:
        """
        Enqueue a deployment of `commit_id`.

        Raises:
            RedisConnectionError: If the job cannot be queued
        """
        job_payload = {
            "commit_id": commit_id,
            "deploy": deploy,
            "run_id": run_id,
            "queued_at": datetime.now(timezone.utc).isoformat(),
        }
        await self.redis_client.enqueue_deployment_job(job_payload)
        logger.info(f"Deployment triggered for commit {commit_id}", extra={"run_id": run_id})

    async def is_queued(self, run_id: str) -> bool:
        """Whether a deployment has already been queued for `run_id`."""
        return await self.redis_client.has_deployment_job(run_id)
