"""
Error taxonomy for pull request event processing.

Every error is terminal for the event being processed; the webhook layer
maps each type to an HTTP status so the delivering system can decide
whether to redeliver.
"""

from typing import Optional


class PullRequestEventError(Exception):
    """Base exception for pull request event processing."""

    http_status: int = 500


class InvalidTarget(PullRequestEventError):
    """Pull request does not target the integration branch."""

    http_status = 400


class InvalidSourceBranch(PullRequestEventError):
    """Source branch name does not carry a change-set id."""

    http_status = 400


class ChangeSetNotFound(PullRequestEventError):
    """No change set (or no run reference) for the parsed id."""

    http_status = 404


class RunNotFound(PullRequestEventError):
    """Change set references a run that does not exist."""

    http_status = 404


class MissingConfiguration(PullRequestEventError):
    """Run has no configuration attached."""

    http_status = 409


class MergeBaseNotFound(PullRequestEventError):
    """git merge-base produced no commit id."""

    http_status = 502


class GitOperationFailed(PullRequestEventError):
    """A git process failed, timed out or could not be started."""

    http_status = 502

    def __init__(self, message: str, stderr: Optional[str] = None, returncode: Optional[int] = None):
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode


class StoreWriteFailed(PullRequestEventError):
    """A record could not be persisted, including lost compare-and-swap races."""

    http_status = 409
