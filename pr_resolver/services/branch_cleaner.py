"""
Feature branch removal after a merged pull request.
"""

from typing import Callable, Optional

from pr_resolver.models.run import RunConfig
from pr_resolver.services.git_client import GitClient
from pr_resolver.services.workspace import ephemeral_workspace
from pr_resolver.utils.logging import get_logger

logger = get_logger(__name__)


class BranchCleaner:
    """Deletes remote feature branches from a scratch repository."""

    def __init__(
        self,
        workspace_root: str = "/tmp/pr-resolver",
        git_timeout: float = 120.0,
        user_name: Optional[str] = None,
        user_email: Optional[str] = None,
        git_client_factory: Callable[..., GitClient] = GitClient,
    ):
        self.workspace_root = workspace_root
        self.git_timeout = git_timeout
        self.user_name = user_name
        self.user_email = user_email
        self._git_client_factory = git_client_factory

    async def delete_branch(self, config: RunConfig, branch_name: str) -> None:
        """
        Delete `branch_name` from the run's remote.

        Raises:
            GitOperationFailed: If the push fails or times out
        """
        async with ephemeral_workspace(config.application.dir.tmp or self.workspace_root) as workspace:
            git = self._git_client_factory(
                workspace,
                config.git.remote_url,
                user_name=self.user_name,
                user_email=self.user_email,
                timeout=self.git_timeout,
            )
            await git.delete_remote_branch(branch_name)

        logger.info(f"Deleted branch {branch_name} from {config.git.remote_url}")
