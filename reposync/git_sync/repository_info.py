"""Working-copy classification."""

import logging
from enum import Enum
from pathlib import Path


GIT_METADATA_MARKER = ".git"


class RepositoryState(Enum):
    """Observed state of a target directory."""
    ABSENT = "absent"                # Directory does not exist
    UNINITIALIZED = "uninitialized"  # Directory exists, no git metadata
    PRESENT = "present"              # Directory holds a working copy

    @property
    def is_repo(self) -> bool:
        return self is RepositoryState.PRESENT


def classify_repository(target_path: Path) -> RepositoryState:
    """
    Classify ``target_path`` by looking for the git metadata marker.

    The marker may be a directory (regular clone) or a file (worktrees and
    submodules use a ``gitdir:`` pointer file); either counts as a working copy.
    """
    logger = logging.getLogger('reposync.git_sync.repository_info')

    if not target_path.exists():
        logger.debug(f"Repository state for {target_path}: absent")
        return RepositoryState.ABSENT

    if (target_path / GIT_METADATA_MARKER).exists():
        logger.debug(f"Repository state for {target_path}: present")
        return RepositoryState.PRESENT

    logger.debug(f"Repository state for {target_path}: uninitialized")
    return RepositoryState.UNINITIALIZED
