"""Business logic services package."""

from pr_resolver.services.errors import (
    PullRequestEventError,
    InvalidTarget,
    InvalidSourceBranch,
    ChangeSetNotFound,
    RunNotFound,
    MissingConfiguration,
    MergeBaseNotFound,
    GitOperationFailed,
    StoreWriteFailed,
)
from pr_resolver.services.redis_client import (
    RedisClient,
    RedisConnectionError,
    get_redis_client
)
from pr_resolver.services.pull_request_workflow import (
    PullRequestWorkflow,
    create_pull_request_workflow
)

__all__ = [
    'PullRequestEventError',
    'InvalidTarget',
    'InvalidSourceBranch',
    'ChangeSetNotFound',
    'RunNotFound',
    'MissingConfiguration',
    'MergeBaseNotFound',
    'GitOperationFailed',
    'StoreWriteFailed',
    'RedisClient',
    'RedisConnectionError',
    'get_redis_client',
    'PullRequestWorkflow',
    'create_pull_request_workflow'
]
