"""Repository discovery: map an arbitrary path to its enclosing working tree."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from git import Repo, InvalidGitRepositoryError, NoSuchPathError

from ..errors import NotARepositoryError, BareRepositoryError, PathOutsideWorkingTreeError
from ..platform import normalize_path


logger = logging.getLogger('markgit.locator')


@dataclass
class RepositoryHandle:
    """
    Short-lived handle on an on-disk repository.

    Handles are opened per call and discarded afterwards; use them as a
    context manager so the underlying GitPython resources are released.
    """
    repo: Repo
    working_tree_root: Path

    def relative_path(self, path: Union[str, Path]) -> str:
        """
        Express a path relative to the working-tree root, in git's ``/`` form.

        Raises:
            PathOutsideWorkingTreeError: If the path does not live under the root
        """
        target = _normalize_keep_leaf(path)
        try:
            relative = target.relative_to(self.working_tree_root)
        except ValueError:
            raise PathOutsideWorkingTreeError(
                f"Path is outside the working tree: {path}",
                context={'path': str(path), 'working_tree_root': str(self.working_tree_root)}
            )
        if not relative.parts:
            raise PathOutsideWorkingTreeError(
                f"Path is the working-tree root, not a file: {path}",
                context={'path': str(path), 'working_tree_root': str(self.working_tree_root)}
            )
        if relative.parts[0] == ".git":
            raise PathOutsideWorkingTreeError(
                f"Path is inside the repository metadata directory: {path}",
                context={'path': str(path), 'working_tree_root': str(self.working_tree_root)}
            )
        return relative.as_posix()

    def absolute_path(self, relative_path: str) -> Path:
        """Inverse of relative_path for paths reported by git."""
        return self.working_tree_root / Path(relative_path)

    def close(self) -> None:
        self.repo.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _normalize_keep_leaf(path: Union[str, Path]) -> Path:
    # Resolve the directory only, so a symlinked file still counts as inside the tree
    path = Path(path).expanduser()
    if path.name in ("", ".", ".."):
        return normalize_path(path)
    return normalize_path(path.parent) / path.name


def _nearest_existing_directory(path: Path) -> Path:
    """Walk up until an existing directory is found (deleted files still belong to a repo)."""
    candidate = path
    while not candidate.is_dir():
        if candidate.parent == candidate:
            break
        candidate = candidate.parent
    return candidate


def locate_repository(path: Union[str, Path]) -> RepositoryHandle:
    """
    Find the repository enclosing a file or directory.

    Parent directories are ascended until one containing repository metadata
    is found.

    Args:
        path: File or directory path; it does not need to exist

    Returns:
        RepositoryHandle bound to the resolved working-tree root

    Raises:
        NotARepositoryError: If no ancestor is a repository
        BareRepositoryError: If the repository has no working tree
    """
    start = _nearest_existing_directory(normalize_path(path))
    logger.debug(f"Discovering repository from: {start}")

    try:
        repo = Repo(start, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        raise NotARepositoryError(
            f"Not a git repository: {path}",
            context={'path': str(path)}
        )

    if repo.bare or repo.working_tree_dir is None:
        repo.close()
        raise BareRepositoryError(
            f"Bare repository has no working tree: {repo.git_dir}",
            context={'path': str(path)}
        )

    working_tree_root = normalize_path(repo.working_tree_dir)
    logger.debug(f"Located working tree {working_tree_root} for {path}")
    return RepositoryHandle(repo=repo, working_tree_root=working_tree_root)


def locate_for_file(path: Union[str, Path]) -> RepositoryHandle:
    """
    Find the repository for a single file, starting at the file's parent directory.

    Raises:
        NotARepositoryError: If no ancestor is a repository
        BareRepositoryError: If the repository has no working tree
    """
    file_path = Path(path).expanduser()
    return locate_repository(file_path.parent)
