"""Discard a single file's staged and unstaged changes by restoring it from HEAD."""

import logging
from pathlib import Path
from typing import Union

from git import GitCommandError

from ..errors import CannotRevertUntrackedError, RepositoryStorageError
from .locator import RepositoryHandle, locate_for_file
from .status import StatusFlag, get_path_flags


logger = logging.getLogger('markgit.revert')


def head_has_path(handle: RepositoryHandle, relative_path: str) -> bool:
    """True when the HEAD commit stores a version of the path."""
    head = handle.repo.head
    if not head.is_valid():
        return False
    try:
        head.commit.tree[relative_path]
    except KeyError:
        return False
    return True


def revert_path(handle: RepositoryHandle, path: Union[str, Path]) -> None:
    """
    Restore one path of an already located repository to its HEAD version.

    Both the index entry and the working-tree file are reset; every other
    path keeps its staged and unstaged state.

    Raises:
        CannotRevertUntrackedError: If the path is untracked or absent from HEAD
        PathOutsideWorkingTreeError, RepositoryStorageError
    """
    relative_path = handle.relative_path(path)

    flags = get_path_flags(handle, relative_path)
    if flags & StatusFlag.WT_NEW:
        raise CannotRevertUntrackedError(
            f"Cannot revert an untracked file: {relative_path}",
            context={'path': str(path)}
        )

    try:
        in_head = head_has_path(handle, relative_path)
    except (OSError, ValueError) as e:
        raise RepositoryStorageError(f"Failed to read HEAD: {e}", context={'path': str(path)})

    if not in_head:
        raise CannotRevertUntrackedError(
            f"Cannot revert a file that has no committed version: {relative_path}",
            context={'path': str(path)}
        )

    logger.info(f"Reverting {relative_path} to HEAD in {handle.working_tree_root}")
    try:
        handle.repo.git.checkout("HEAD", "--", f":(literal){relative_path}")
    except GitCommandError as e:
        raise RepositoryStorageError(
            f"Failed to revert {relative_path}: {e.stderr.strip() if e.stderr else e}",
            context={'path': str(path), 'working_tree_root': str(handle.working_tree_root)}
        )


def revert_file(path: Union[str, Path]) -> None:
    """
    Locate the repository of a file and restore the file from HEAD.

    Args:
        path: Absolute path of the file to revert

    Raises:
        NotARepositoryError, BareRepositoryError, PathOutsideWorkingTreeError,
        CannotRevertUntrackedError, RepositoryStorageError
    """
    with locate_for_file(path) as handle:
        revert_path(handle, path)
