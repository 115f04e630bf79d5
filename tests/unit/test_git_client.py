"""
Unit tests for the git client.

Runs the real git CLI against repositories created under tmp_path.
"""

import asyncio
import shutil
import subprocess
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pr_resolver.services.errors import GitOperationFailed
from pr_resolver.services.git_client import GitClient

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def origin(tmp_path: Path) -> dict:
    """Origin repository with a master commit and a feature branch on top."""
    repo = tmp_path / "origin"
    repo.mkdir()
    git(repo, "init", "--quiet")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/master")

    (repo / "README.md").write_text("base\n")
    git(repo, "add", "README.md")
    git(repo, "commit", "--quiet", "-m", "base")
    base = git(repo, "rev-parse", "HEAD")

    git(repo, "checkout", "--quiet", "-b", "feature-@0123456789abcdef0123456789abcdef")
    (repo / "feature.txt").write_text("feature\n")
    git(repo, "add", "feature.txt")
    git(repo, "commit", "--quiet", "-m", "feature")
    feature = git(repo, "rev-parse", "HEAD")

    git(repo, "checkout", "--quiet", "master")
    (repo / "README.md").write_text("base\nmore\n")
    git(repo, "commit", "--quiet", "-am", "master moves on")

    return {"path": repo, "base": base, "feature": feature}


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@requires_git
@pytest.mark.asyncio
async def test_clone_without_checkout_has_history_only(origin, workspace):
    client = GitClient(workspace, str(origin["path"]))

    await client.clone(no_checkout=True)

    assert (workspace / ".git").is_dir()
    assert not (workspace / "README.md").exists()


@requires_git
@pytest.mark.asyncio
async def test_merge_base_against_integration_branch(origin, workspace):
    client = GitClient(workspace, str(origin["path"]))
    await client.clone(no_checkout=True)

    output = await client.merge_base(origin["feature"], "origin/master")

    assert output.strip() == origin["base"]


@requires_git
@pytest.mark.asyncio
async def test_merge_base_unknown_commit_fails(origin, workspace):
    client = GitClient(workspace, str(origin["path"]))
    await client.clone(no_checkout=True)

    with pytest.raises(GitOperationFailed) as exc_info:
        await client.merge_base("f" * 40, "origin/master")

    assert exc_info.value.returncode != 0


@requires_git
@pytest.mark.asyncio
async def test_clone_missing_remote_fails(tmp_path, workspace):
    client = GitClient(workspace, str(tmp_path / "does-not-exist"))

    with pytest.raises(GitOperationFailed) as exc_info:
        await client.clone(no_checkout=True)

    assert exc_info.value.stderr


@requires_git
@pytest.mark.asyncio
async def test_delete_remote_branch(origin, workspace):
    branch = "feature-@0123456789abcdef0123456789abcdef"
    client = GitClient(workspace, str(origin["path"]), user_name="CI", user_email="ci@example.com")

    await client.delete_remote_branch(branch)

    assert git(origin["path"], "branch", "--list", branch) == ""


@requires_git
@pytest.mark.asyncio
async def test_delete_already_deleted_branch_succeeds(origin, workspace, tmp_path):
    branch = "feature-@0123456789abcdef0123456789abcdef"
    await GitClient(workspace, str(origin["path"])).delete_remote_branch(branch)

    second_workspace = tmp_path / "second"
    second_workspace.mkdir()
    await GitClient(second_workspace, str(origin["path"])).delete_remote_branch(branch)

    assert git(origin["path"], "branch", "--list", branch) == ""


@pytest.mark.asyncio
async def test_missing_git_executable_fails(workspace):
    client = GitClient(workspace, "https://git.example.com/repo.git")

    with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("git"))):
        with pytest.raises(GitOperationFailed, match="Could not start git clone"):
            await client.clone()


@pytest.mark.asyncio
async def test_timeout_kills_process(workspace):
    process = MagicMock()
    process.communicate = MagicMock()
    process.wait = AsyncMock(return_value=-9)
    client = GitClient(workspace, "https://git.example.com/repo.git", timeout=0.01)

    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
        with patch("asyncio.wait_for", AsyncMock(side_effect=asyncio.TimeoutError())):
            with pytest.raises(GitOperationFailed, match="timed out"):
                await client.merge_base("abc123", "origin/master")

    process.kill.assert_called_once()


@pytest.mark.asyncio
async def test_cancellation_kills_process(workspace):
    process = MagicMock()
    process.communicate = MagicMock()
    process.returncode = None
    client = GitClient(workspace, "https://git.example.com/repo.git")

    with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)):
        with patch("asyncio.wait_for", AsyncMock(side_effect=asyncio.CancelledError())):
            with pytest.raises(asyncio.CancelledError):
                await client.clone()

    process.kill.assert_called_once()


def test_user_identity_is_passed_as_config(workspace):
    client = GitClient(workspace, "url", user_name="CI Bot", user_email="ci@example.com")

    assert client._base_command() == [
        "git", "-c", "user.name=CI Bot", "-c", "user.email=ci@example.com"
    ]
