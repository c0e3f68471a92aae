"""Ahead/behind counts of the current branch against its remote-tracking branch."""

import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from git import GitCommandError, Reference

from ..errors import RepositoryStorageError
from .locator import RepositoryHandle, locate_repository


logger = logging.getLogger('markgit.divergence')


@dataclass
class DivergenceCount:
    """Commits only on the local branch (ahead) and only on the upstream (behind)."""
    ahead: int
    behind: int
    upstream: Optional[str] = None

    @property
    def synchronized(self) -> bool:
        return self.upstream is not None and self.ahead == 0 and self.behind == 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def current_branch_name(handle: RepositoryHandle) -> Optional[str]:
    """Short name of the checked-out branch, None when HEAD is unborn or detached."""
    head = handle.repo.head
    if head.is_detached or not head.is_valid():
        return None
    return head.reference.name


def count_ahead_behind(handle: RepositoryHandle, local: str, upstream: str) -> Tuple[int, int]:
    """Walk the commit graph from both tips down to their merge base."""
    try:
        output = handle.repo.git.rev_list("--left-right", "--count", f"{local}...{upstream}")
    except GitCommandError as e:
        raise RepositoryStorageError(
            f"Failed to compare {local} with {upstream}: {e.stderr.strip() if e.stderr else e}",
            context={'working_tree_root': str(handle.working_tree_root)}
        )

    ahead, behind = output.split()
    return int(ahead), int(behind)


def divergence_for(handle: RepositoryHandle, remote_name: str = "origin") -> Optional[DivergenceCount]:
    """
    Compare the current branch of a located repository with ``<remote>/<branch>``.

    Returns:
        None when HEAD is unborn or detached; a zero count with upstream=None
        when no remote-tracking ref exists; otherwise the ahead/behind counts
    """
    branch = current_branch_name(handle)
    if branch is None:
        logger.debug(f"No branch checked out in {handle.working_tree_root}, no divergence")
        return None

    upstream_path = f"refs/remotes/{remote_name}/{branch}"
    upstream_ref = Reference(handle.repo, upstream_path)
    if not upstream_ref.is_valid():
        logger.debug(f"No remote-tracking ref {upstream_path}, reporting zero divergence")
        return DivergenceCount(ahead=0, behind=0, upstream=None)

    ahead, behind = count_ahead_behind(handle, f"refs/heads/{branch}", upstream_path)
    logger.debug(f"{branch} is {ahead} ahead and {behind} behind {remote_name}/{branch}")
    return DivergenceCount(ahead=ahead, behind=behind, upstream=f"{remote_name}/{branch}")


def get_ahead_behind(path: Union[str, Path], remote_name: str = "origin") -> Optional[DivergenceCount]:
    """
    Locate the repository containing path and compute its divergence.

    Raises:
        NotARepositoryError, BareRepositoryError, RepositoryStorageError
    """
    with locate_repository(path) as handle:
        return divergence_for(handle, remote_name)
