"""
Merge-base resolution for merged pull requests.

When the webhook does not carry the merge commit, the run's tracked commit
is resolved against the integration branch inside a history-only clone that
lives in an ephemeral workspace.
"""

from typing import Awaitable, Callable, Optional

from pr_resolver.models.run import RunConfig, RunRecord
from pr_resolver.services.errors import MergeBaseNotFound
from pr_resolver.services.git_client import GitClient
from pr_resolver.services.workspace import ephemeral_workspace
from pr_resolver.utils.logging import get_logger

logger = get_logger(__name__)

StepCallback = Callable[[str], Awaitable[None]]


def parse_merge_base_output(output: str) -> str:
    """
    Return the first non-empty line of `git merge-base` output.

    Raises:
        MergeBaseNotFound: If the output holds no commit id
    """
    for line in output.splitlines():
        line = line.strip()
        if line:
            return line
    raise MergeBaseNotFound("git merge-base returned no commit")


class MergeBaseResolver:
    """Computes the merge-base of a run's commit and the integration branch."""

    def __init__(
        self,
        integration_branch: str = "master",
        workspace_root: str = "/tmp/pr-resolver",
        git_timeout: float = 120.0,
        user_name: Optional[str] = None,
        user_email: Optional[str] = None,
        git_client_factory: Callable[..., GitClient] = GitClient,
    ):
        self.integration_branch = integration_branch
        self.workspace_root = workspace_root
        self.git_timeout = git_timeout
        self.user_name = user_name
        self.user_email = user_email
        self._git_client_factory = git_client_factory

    def _workspace_base(self, config: RunConfig) -> str:
        return config.application.dir.tmp or self.workspace_root

    async def resolve(self, run: RunRecord, step: Optional[StepCallback] = None) -> str:
        """
        Resolve the merge commit for `run`.

        The workspace is removed whether or not git succeeds.

        Args:
            run: Run whose `commit_id` is the pull request head
            step: Optional audit callback

        Returns:
            Merge-base commit id

        Raises:
            GitOperationFailed: If clone or merge-base fails or times out
            MergeBaseNotFound: If merge-base printed nothing
        """
        config = run.config
        remote_url = config.git.remote_url

        async with ephemeral_workspace(self._workspace_base(config)) as workspace:
            git = self._git_client_factory(
                workspace,
                remote_url,
                user_name=self.user_name,
                user_email=self.user_email,
                timeout=self.git_timeout,
            )

            if step:
                await step(f"Checking out git repo {remote_url} on commit {run.commit_id}")

            await git.clone(no_checkout=True)
            output = await git.merge_base(run.commit_id, f"origin/{self.integration_branch}")
            merge_id = parse_merge_base_output(output)

        logger.info(
            f"Resolved merge-base {merge_id} for commit {run.commit_id}",
            extra={"run_id": run.id}
        )
        return merge_id
