"""
Audit trail of pipeline steps per run.
"""

from datetime import datetime, timezone
from typing import Optional

from redis.exceptions import RedisError

from pr_resolver.models.run import RunConfig
from pr_resolver.services.redis_client import RedisClient, RedisConnectionError
from pr_resolver.utils.logging import get_logger

logger = get_logger(__name__)


class StepRecorder:
    """Logs each step and appends it to the run's step list; never raises."""

    def __init__(self, redis_client: RedisClient):
        self.redis_client = redis_client

    async def record(
        self,
        run_id: str,
        config: RunConfig,
        message: str,
        error: Optional[Exception] = None,
    ) -> None:
        """
        Record a step for the run.

        Args:
            run_id: Run the step belongs to
            config: Run configuration (update set name is attached)
            message: Human-readable step text
            error: Exception to attach, if the step reports a failure
        """
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "update_set": config.update_set.name,
            "message": message,
            "error": f"{type(error).__name__}: {error}" if error else None,
        }

        if error:
            logger.warning(f"Step: {message} ({entry['error']})", extra={"run_id": run_id})
        else:
            logger.info(f"Step: {message}", extra={"run_id": run_id})

        try:
            await self.redis_client.append_run_step(run_id, entry)
        except (RedisConnectionError, RedisError, RuntimeError) as e:
            logger.error(f"Could not persist step for run {run_id}: {e}", extra={"run_id": run_id})
