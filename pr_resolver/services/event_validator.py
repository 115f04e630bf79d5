"""
Pull request event validation and change-set id extraction.
"""

import re

from pr_resolver.models.pull_request import PullRequestEvent, ValidatedEvent
from pr_resolver.services.errors import InvalidSourceBranch, InvalidTarget

# <prefix>-@<32 hex digit update set sys_id>
SOURCE_BRANCH_PATTERN = re.compile(r"^(\S+)-@([a-f0-9]{32})$", re.IGNORECASE)


def extract_change_set_id(source_branch: str) -> str:
    """
    Return the change-set id embedded in a feature branch name.

    Raises:
        InvalidSourceBranch: If the branch does not follow `<prefix>-@<id>`
    """
    match = SOURCE_BRANCH_PATTERN.match(source_branch)
    if not match:
        raise InvalidSourceBranch(f"source branch is invalid: {source_branch!r}")
    return match.group(2)


def validate_event(event: PullRequestEvent, integration_branch: str = "master") -> ValidatedEvent:
    """
    Check that the pull request targets the integration branch and comes
    from a change-set branch.

    Raises:
        InvalidTarget: If the target branch is not `integration_branch`
        InvalidSourceBranch: If the source branch carries no change-set id
    """
    if event.target.branch != integration_branch:
        raise InvalidTarget(f"target must be {integration_branch!r}, got {event.target.branch!r}")

    return ValidatedEvent(event=event, change_set_id=extract_change_set_id(event.source.branch))
