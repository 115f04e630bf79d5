"""
Utility modules for the pull request resolution service.
"""

from pr_resolver.utils.logging import (
    get_logger,
    setup_logging,
    log_pull_request_event,
    log_stage_transition,
    log_git_command,
    log_error_with_context,
)
from pr_resolver.utils.resilience import retry_with_backoff

__all__ = [
    "get_logger",
    "setup_logging",
    "log_pull_request_event",
    "log_stage_transition",
    "log_git_command",
    "log_error_with_context",
    "retry_with_backoff",
]
