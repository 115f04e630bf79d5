"""
Redis client wrapper for change-set and run records.

This service provides Redis operations for:
- Change set records using hashes
- Run records using hashes
- Run step (audit) log using lists
- Deployment job queue using lists

Record writes are compare-and-swap on a per-record version counter, so two
concurrent deliveries for the same change set cannot silently interleave.
Includes connection pooling and retry logic for resilience.
"""

import json
import logging
import asyncio
from typing import Optional, List, Dict, Any
from contextlib import asynccontextmanager
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from pydantic import ValidationError
from redis.exceptions import RedisError, ConnectionError, TimeoutError, WatchError

from pr_resolver.models.change_set import ChangeSetRecord
from pr_resolver.models.run import RunRecord
from pr_resolver.services.errors import MissingConfiguration, StoreWriteFailed


logger = logging.getLogger(__name__)


class RedisConnectionError(Exception):
    """Raised when Redis connection fails after retries."""
    pass


class RedisClient:
    """
    Redis client wrapper with connection pooling and retry logic.

    Provides methods for:
    - Change set storage (hash operations, compare-and-swap updates)
    - Run storage (hash operations, compare-and-swap updates)
    - Run step log (list append)
    - Deployment job queue (list push/pop)
    """

    # Redis key prefixes
    CHANGE_SET_PREFIX = "change_set:{change_set_id}"
    RUN_PREFIX = "run:{run_id}"
    RUN_STEPS_PREFIX = "run:{run_id}:steps"
    RUN_DEPLOYMENT_PREFIX = "run:{run_id}:deployment"
    DEPLOYMENT_QUEUE_KEY = "job_queue:deployments"

    def __init__(
        self,
        redis_url: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        connection_timeout: int = 5
    ):
        """
        Initialize Redis client.

        Args:
            redis_url: Redis connection URL. If None, will load from settings.
            max_retries: Maximum number of retry attempts for transient errors
            retry_delay: Base delay between retries (exponential backoff)
            connection_timeout: Connection timeout in seconds
        """
        self._redis_url = redis_url
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._connection_timeout = connection_timeout

    async def initialize(self) -> None:
        """
        Initialize Redis connection pool.

        Should be called during application startup.

        Raises:
            RedisConnectionError: If connection fails
        """
        try:
            if not self._redis_url:
                from pr_resolver.config import settings
                self._redis_url = settings.redis_url

            self._pool = ConnectionPool.from_url(
                self._redis_url,
                max_connections=10,
                decode_responses=True,
                socket_timeout=self._connection_timeout,
                socket_connect_timeout=self._connection_timeout
            )

            self._client = redis.Redis(connection_pool=self._pool)

            await self._client.ping()

            logger.info("Redis connection pool initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize Redis connection pool: {e}")
            raise RedisConnectionError(f"Failed to connect to Redis: {e}")

    async def close(self) -> None:
        """
        Close Redis connection pool.

        Should be called during application shutdown.
        """
        if self._client:
            await self._client.aclose()

        if self._pool:
            await self._pool.disconnect()

        logger.info("Redis connection pool closed")

    @asynccontextmanager
    async def _get_client(self):
        """
        Get Redis client with connection check.

        Yields:
            redis.Redis: Redis client instance

        Raises:
            RuntimeError: If client not initialized
        """
        if not self._client:
            raise RuntimeError("Redis client not initialized. Call initialize() first.")

        yield self._client

    async def _retry_operation(self, operation, *args, **kwargs):
        """
        Execute Redis operation with retry logic.

        Only connection-level failures are retried; a lost compare-and-swap
        surfaces immediately as StoreWriteFailed.

        Raises:
            RedisConnectionError: If operation fails after all retries
        """
        last_error = None

        for attempt in range(self._max_retries):
            try:
                return await operation(*args, **kwargs)

            except (ConnectionError, TimeoutError) as e:
                last_error = e
                if attempt < self._max_retries - 1:
                    delay = self._retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Redis operation failed (attempt {attempt + 1}/{self._max_retries}), "
                        f"retrying in {delay}s: {e}"
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"Redis operation failed after {self._max_retries} attempts: {e}")

            except RedisError as e:
                # Non-transient errors, don't retry
                logger.error(f"Redis operation failed with non-transient error: {e}")
                raise

        raise RedisConnectionError(f"Redis operation failed after {self._max_retries} retries: {last_error}")

    async def _compare_and_swap(self, key: str, expected_version: int, data: Dict[str, Any]) -> int:
        """
        Replace the record at `key` if its stored version still matches.

        Args:
            key: Record hash key
            expected_version: Version the caller loaded
            data: Serialized record (without version)

        Returns:
            The new version

        Raises:
            StoreWriteFailed: If the record is missing, was modified
                concurrently, or Redis is unreachable
        """
        async def _swap():
            async with self._get_client() as client:
                async with client.pipeline(transaction=True) as pipe:
                    await pipe.watch(key)
                    current = await pipe.hget(key, "version")

                    if current is None:
                        await pipe.unwatch()
                        raise StoreWriteFailed(f"Record {key} does not exist")

                    if int(current) != expected_version:
                        await pipe.unwatch()
                        raise StoreWriteFailed(
                            f"Record {key} was modified concurrently "
                            f"(expected version {expected_version}, found {current})"
                        )

                    new_version = expected_version + 1
                    pipe.multi()
                    pipe.hset(key, mapping={"data": json.dumps(data), "version": new_version})
                    await pipe.execute()
                    return new_version

        try:
            return await self._retry_operation(_swap)
        except WatchError:
            raise StoreWriteFailed(f"Record {key} was modified concurrently")
        except (RedisConnectionError, RedisError) as e:
            raise StoreWriteFailed(f"Failed to write {key}: {e}") from e

    async def _load(self, key: str) -> Optional[Dict[str, Any]]:
        async def _get():
            async with self._get_client() as client:
                stored = await client.hgetall(key)

                if not stored or "data" not in stored:
                    return None

                record = json.loads(stored["data"])
                record["version"] = int(stored.get("version", 0))
                return record

        return await self._retry_operation(_get)

    async def _create(self, key: str, data: Dict[str, Any]) -> None:
        async def _set():
            async with self._get_client() as client:
                created = await client.hsetnx(key, "data", json.dumps(data))
                if not created:
                    raise StoreWriteFailed(f"Record {key} already exists")
                await client.hset(key, "version", 0)

        try:
            await self._retry_operation(_set)
        except (RedisConnectionError, RedisError) as e:
            raise StoreWriteFailed(f"Failed to create {key}: {e}") from e

    # ========== Change Set Operations (Hash) ==========

    def _change_set_key(self, change_set_id: str) -> str:
        """Get Redis key for a change set."""
        return self.CHANGE_SET_PREFIX.format(change_set_id=change_set_id.lower())

    async def save_change_set(self, record: ChangeSetRecord) -> None:
        """
        Store a new change set record.

        Raises:
            StoreWriteFailed: If a record with the same id already exists
        """
        key = self._change_set_key(record.update_set_id)
        await self._create(key, record.model_dump(mode="json", by_alias=True, exclude={"version"}))
        record.version = 0
        logger.debug(f"Saved change set {record.update_set_id}")

    async def find_change_set(self, change_set_id: str) -> Optional[ChangeSetRecord]:
        """
        Retrieve a change set by its update set id.

        Returns:
            ChangeSetRecord if found, None otherwise
        """
        data = await self._load(self._change_set_key(change_set_id))

        if data is None:
            return None

        logger.debug(f"Retrieved change set {change_set_id}")
        return ChangeSetRecord.model_validate(data)

    async def update_change_set(self, record: ChangeSetRecord) -> None:
        """
        Persist a modified change set if nobody else wrote it since it was read.

        On success `record.version` is advanced to the stored version.

        Raises:
            StoreWriteFailed: On version conflict or write failure
        """
        key = self._change_set_key(record.update_set_id)
        record.version = await self._compare_and_swap(
            key,
            record.version,
            record.model_dump(mode="json", by_alias=True, exclude={"version"})
        )
        logger.debug(f"Updated change set {record.update_set_id} to version {record.version}")

    # ========== Run Operations (Hash) ==========

    def _run_key(self, run_id: str) -> str:
        """Get Redis key for a run."""
        return self.RUN_PREFIX.format(run_id=run_id)

    async def save_run(self, record: RunRecord) -> None:
        """
        Store a new run record.

        Raises:
            StoreWriteFailed: If a run with the same id already exists
        """
        await self._create(
            self._run_key(record.id),
            record.model_dump(mode="json", by_alias=True, exclude={"version"})
        )
        record.version = 0
        logger.debug(f"Saved run {record.id}")

    async def get_run(self, run_id: str) -> Optional[RunRecord]:
        """
        Retrieve a run by id.

        Returns:
            RunRecord if found, None otherwise

        Raises:
            MissingConfiguration: If the stored run does not have the expected shape
        """
        data = await self._load(self._run_key(run_id))

        if data is None:
            return None

        logger.debug(f"Retrieved run {run_id}")
        try:
            return RunRecord.model_validate(data)
        except ValidationError as e:
            raise MissingConfiguration(
                f"Run {run_id} has an invalid configuration: {e.error_count()} errors"
            ) from e

    async def update_run(self, record: RunRecord) -> None:
        """
        Persist a modified run if nobody else wrote it since it was read.

        Raises:
            StoreWriteFailed: On version conflict or write failure
        """
        record.version = await self._compare_and_swap(
            self._run_key(record.id),
            record.version,
            record.model_dump(mode="json", by_alias=True, exclude={"version"})
        )
        logger.debug(f"Updated run {record.id} to version {record.version}")

    # ========== Run Step Log (List) ==========

    async def append_run_step(self, run_id: str, step: Dict[str, Any]) -> None:
        """
        Append an audit step to a run.

        Raises:
            RedisConnectionError: If operation fails after retries
        """
        async def _append():
            async with self._get_client() as client:
                key = self.RUN_STEPS_PREFIX.format(run_id=run_id)
                await client.rpush(key, json.dumps(step))

        await self._retry_operation(_append)

    async def get_run_steps(self, run_id: str) -> List[Dict[str, Any]]:
        """
        Get all audit steps recorded for a run, oldest first.
        """
        async def _get():
            async with self._get_client() as client:
                key = self.RUN_STEPS_PREFIX.format(run_id=run_id)
                entries = await client.lrange(key, 0, -1)
                return [json.loads(entry) for entry in entries]

        return await self._retry_operation(_get)

    # ========== Deployment Queue Operations (List) ==========

    async def enqueue_deployment_job(self, job_payload: Dict[str, Any]) -> None:
        """
        Enqueue deployment job.

        When the payload names a run, the run is marked as queued in the
        same transaction.

        Raises:
            RedisConnectionError: If operation fails after retries
        """
        run_id = job_payload.get("run_id")

        async def _enqueue():
            async with self._get_client() as client:
                async with client.pipeline(transaction=True) as pipe:
                    pipe.rpush(self.DEPLOYMENT_QUEUE_KEY, json.dumps(job_payload))
                    if run_id:
                        pipe.set(self.RUN_DEPLOYMENT_PREFIX.format(run_id=run_id), json.dumps(job_payload))
                    await pipe.execute()
                logger.info(f"Enqueued deployment job for run {run_id}")

        await self._retry_operation(_enqueue)

    async def has_deployment_job(self, run_id: str) -> bool:
        """
        Check whether a deployment was ever queued for a run.
        """
        async def _exists():
            async with self._get_client() as client:
                return bool(await client.exists(self.RUN_DEPLOYMENT_PREFIX.format(run_id=run_id)))

        return await self._retry_operation(_exists)

    async def dequeue_deployment_job(self, timeout: int = 0) -> Optional[Dict[str, Any]]:
        """
        Dequeue deployment job.

        Args:
            timeout: Blocking timeout in seconds (0 for non-blocking)

        Returns:
            Job payload if available, None if queue is empty
        """
        async def _dequeue():
            async with self._get_client() as client:
                if timeout > 0:
                    result = await client.blpop(self.DEPLOYMENT_QUEUE_KEY, timeout=timeout)
                    if not result:
                        return None
                    _, job_json = result
                else:
                    job_json = await client.lpop(self.DEPLOYMENT_QUEUE_KEY)

                if not job_json:
                    return None

                return json.loads(job_json)

        return await self._retry_operation(_dequeue)

    async def get_queue_length(self) -> int:
        """
        Get number of deployment jobs in queue.
        """
        async def _get_length():
            async with self._get_client() as client:
                return await client.llen(self.DEPLOYMENT_QUEUE_KEY)

        return await self._retry_operation(_get_length)

    # ========== Utility Methods ==========

    async def ping(self) -> bool:
        """
        Test Redis connection.

        Returns:
            True if connection is healthy

        Raises:
            RedisConnectionError: If ping fails
        """
        async def _ping():
            async with self._get_client() as client:
                return await client.ping()

        return await self._retry_operation(_ping)


_redis_client: Optional[RedisClient] = None


def get_redis_client() -> RedisClient:
    """
    Get or create the global Redis client instance.

    Returns:
        RedisClient instance
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = RedisClient()
    return _redis_client
