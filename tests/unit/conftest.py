"""
Shared fixtures for unit tests.
"""

from typing import AsyncGenerator

import fakeredis
import pytest

from pr_resolver.models.change_set import ChangeSetRecord, ChangeSetStatus
from pr_resolver.models.run import RunConfig, RunRecord
from pr_resolver.services.redis_client import RedisClient

CHANGE_SET_ID = "0123456789abcdef0123456789abcdef"


@pytest.fixture
async def redis_client() -> AsyncGenerator[RedisClient, None]:
    """Create Redis client with fakeredis for testing."""
    client = RedisClient(redis_url="redis://localhost:6379/0")

    fake_redis = fakeredis.FakeAsyncRedis(decode_responses=True)
    client._client = fake_redis

    yield client

    await fake_redis.flushdb()
    await fake_redis.aclose()


def make_config(**overrides) -> RunConfig:
    """Build a run config in the shape the build pipeline stores it."""
    data = {
        "git": {"remoteUrl": "https://git.example.com/acme/app.git"},
        "application": {"dir": {"tmp": "/tmp/pr-resolver-tests"}},
        "deploy": {"enabled": True, "onPullRequestResolve": True},
        "branchName": f"feature-@{CHANGE_SET_ID}",
        "host": {"name": "https://acme.service-now.com"},
        "updateSet": {"sys_id": CHANGE_SET_ID, "name": "Login page fixes"},
        "build": {"commitId": "build123"},
    }
    data.update(overrides)
    return RunConfig.model_validate(data)


@pytest.fixture
def run_config() -> RunConfig:
    return make_config()


@pytest.fixture
def change_set() -> ChangeSetRecord:
    return ChangeSetRecord(
        update_set_id=CHANGE_SET_ID,
        run_id="run-1",
        pull_request_raised=True,
        status=ChangeSetStatus.CODE_REVIEW_PENDING,
    )


@pytest.fixture
def run(run_config: RunConfig) -> RunRecord:
    return RunRecord(id="run-1", commit_id="abc123", config=run_config)
