"""
Classification of free-text pull request action labels.
"""

from enum import Enum


class PullRequestAction(str, Enum):
    """Resolved pull request action."""

    MERGE = "merge"
    DECLINE = "decline"
    DELETE = "delete"
    IGNORE = "ignore"


# First matching token wins
ACTION_PRIORITY = (
    PullRequestAction.MERGE,
    PullRequestAction.DECLINE,
    PullRequestAction.DELETE,
)


def classify_action(label: str) -> PullRequestAction:
    """
    Map an action label such as 'pullrequest:fulfilled merged' to one action.

    Matching is case-insensitive substring containment; a label containing
    several tokens resolves by ACTION_PRIORITY. Labels with no token are
    IGNORE.
    """
    normalized = (label or "").lower()
    for action in ACTION_PRIORITY:
        if action.value in normalized:
            return action
    return PullRequestAction.IGNORE
