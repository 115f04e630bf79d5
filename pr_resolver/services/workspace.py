"""
Ephemeral workspaces for throwaway repository clones.
"""

import asyncio
import shutil
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Union

from pr_resolver.utils.logging import get_logger

logger = get_logger(__name__)


def allocate_workspace_path(base_dir: Union[str, Path]) -> Path:
    """Return a fresh, collision-free directory path under `base_dir`."""
    return Path(base_dir) / uuid.uuid4().hex


@asynccontextmanager
async def ephemeral_workspace(base_dir: Union[str, Path]) -> AsyncIterator[Path]:
    """
    Create a uniquely named directory and remove it on every exit path.

    Usage:
        async with ephemeral_workspace(config.application.dir.tmp) as workspace:
            await GitClient(workspace, remote_url).clone(no_checkout=True)
    """
    path = allocate_workspace_path(base_dir)
    await asyncio.to_thread(path.mkdir, parents=True, exist_ok=False)
    logger.debug(f"Created workspace {path}")

    try:
        yield path
    finally:
        await asyncio.to_thread(_remove_tree, path)


def _remove_tree(path: Path) -> None:
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError as e:
        # Must not mask the error that ended the block
        logger.warning(f"Could not reclaim workspace {path}: {e}")
        return
    logger.debug(f"Removed workspace {path}")
