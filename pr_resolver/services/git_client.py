"""
Git client running the git CLI against a single workspace directory.

Every command is bounded by a timeout; failures of any kind (non-zero exit,
timeout, missing executable) are raised as GitOperationFailed.
"""

import asyncio
import os
import time
from pathlib import Path
from typing import List, Optional, Union

from pr_resolver.services.errors import GitOperationFailed
from pr_resolver.utils.logging import get_logger, log_git_command

logger = get_logger(__name__)


class GitClient:
    """
    Runs git commands for one repository clone.

    The workspace directory must exist; clone() populates it.
    """

    def __init__(
        self,
        workspace_dir: Union[str, Path],
        remote_url: str,
        user_name: Optional[str] = None,
        user_email: Optional[str] = None,
        timeout: float = 120.0,
    ):
        """
        Args:
            workspace_dir: Directory holding (or receiving) the clone
            remote_url: Repository URL
            user_name: Committer name passed as -c user.name
            user_email: Committer email passed as -c user.email
            timeout: Seconds before a git process is killed
        """
        self.workspace_dir = Path(workspace_dir)
        self.remote_url = remote_url
        self.user_name = user_name
        self.user_email = user_email
        self.timeout = timeout

    def _base_command(self) -> List[str]:
        command = ["git"]
        if self.user_name:
            command += ["-c", f"user.name={self.user_name}"]
        if self.user_email:
            command += ["-c", f"user.email={self.user_email}"]
        return command

    async def _exec(self, args: List[str]) -> str:
        """
        Run `git <args>` inside the workspace and return stdout.

        Raises:
            GitOperationFailed: On non-zero exit, timeout or spawn failure
        """
        env = dict(os.environ, GIT_TERMINAL_PROMPT="0", LC_ALL="C")
        start = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                *self._base_command(), *args,
                cwd=str(self.workspace_dir),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            log_git_command(logger, args, error=str(e))
            raise GitOperationFailed(f"Could not start git {args[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            log_git_command(logger, args, error=f"timed out after {self.timeout}s")
            raise GitOperationFailed(f"git {args[0]} timed out after {self.timeout}s")
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            raise

        duration_ms = (time.monotonic() - start) * 1000
        stderr_text = stderr.decode(errors="replace").strip()

        if process.returncode != 0:
            log_git_command(
                logger, args,
                returncode=process.returncode,
                duration_ms=duration_ms,
                error=stderr_text or "no output"
            )
            raise GitOperationFailed(
                f"git {args[0]} exited with {process.returncode}: {stderr_text}",
                stderr=stderr_text,
                returncode=process.returncode,
            )

        log_git_command(logger, args, returncode=0, duration_ms=duration_ms)
        return stdout.decode(errors="replace")

    async def clone(self, no_checkout: bool = True) -> None:
        """Clone the remote into the workspace; history only when `no_checkout`."""
        args = ["clone", "--quiet"]
        if no_checkout:
            args.append("--no-checkout")
        args += [self.remote_url, str(self.workspace_dir)]
        await self._exec(args)

    async def merge_base(self, commit_a: str, commit_b: str) -> str:
        """Return the raw output of `git merge-base commit_a commit_b`."""
        return await self._exec(["merge-base", commit_a, commit_b])

    async def delete_remote_branch(self, branch_name: str) -> None:
        """Delete `branch_name` on the remote; a branch that is already gone is not an error."""
        if not (self.workspace_dir / ".git").exists():
            # git push needs a repository to run from, not its contents
            await self._exec(["init", "--quiet"])
        try:
            await self._exec(["push", "--quiet", self.remote_url, "--delete", branch_name])
        except GitOperationFailed as e:
            if "remote ref does not exist" not in (e.stderr or ""):
                raise
            logger.info(f"Branch {branch_name} is already gone from the remote")
