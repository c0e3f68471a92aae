"""Single-file commit: stage one path, then commit the whole resulting index on HEAD."""

import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from git import Actor, GitCommandError

from ..errors import RepositoryStorageError
from .locator import RepositoryHandle, locate_for_file


logger = logging.getLogger('markgit.commit')


@dataclass
class CommitRecord:
    """The commit created by commit_file."""
    hexsha: str
    message: str
    author_name: str
    author_email: str
    parents: List[str]
    tree: str
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def repository_signature(handle: RepositoryHandle) -> Actor:
    """
    Read the configured identity (user.name / user.email) used as author and committer.

    Raises:
        RepositoryStorageError: If either value is not configured
    """
    try:
        with handle.repo.config_reader() as config_reader:
            name = config_reader.get_value("user", "name", "")
            email = config_reader.get_value("user", "email", "")
    except (OSError, ValueError) as e:
        raise RepositoryStorageError(f"Failed to read git configuration: {e}")

    if not name or not email:
        missing = "user.name" if not name else "user.email"
        raise RepositoryStorageError(
            f"Git {missing} not configured",
            context={'working_tree_root': str(handle.working_tree_root)}
        )
    return Actor(str(name), str(email))


def stage_path(handle: RepositoryHandle, relative_path: str) -> None:
    """Stage exactly one path; a deleted tracked file stages its removal."""
    try:
        handle.repo.git.add("--", f":(literal){relative_path}")
    except GitCommandError as e:
        raise RepositoryStorageError(
            f"Failed to stage {relative_path}: {e.stderr.strip() if e.stderr else e}",
            context={'path': relative_path, 'working_tree_root': str(handle.working_tree_root)}
        )


def signature_environment(signature: Actor) -> Dict[str, str]:
    """Author and committer identity in the form git's plumbing commands read it."""
    return {
        "GIT_AUTHOR_NAME": signature.name,
        "GIT_AUTHOR_EMAIL": signature.email,
        "GIT_COMMITTER_NAME": signature.name,
        "GIT_COMMITTER_EMAIL": signature.email,
    }


def commit_index(handle: RepositoryHandle, message: str, relative_path: str, signature: Actor) -> CommitRecord:
    """
    Write a tree from the current index and commit it on HEAD.

    The parent is the current HEAD commit, or none when HEAD is unborn.
    Tree and commit are written by git itself, so every index format git
    can produce (including version 4) is supported.
    """
    git = handle.repo.git
    try:
        head = handle.repo.head
        parents = [head.commit.hexsha] if head.is_valid() else []

        tree = git.write_tree().strip()
        parent_args = [arg for parent in parents for arg in ("-p", parent)]
        hexsha = git.commit_tree(
            tree, *parent_args, "-m", message,
            env=signature_environment(signature)
        ).strip()

        subject = message.strip().splitlines()[0]
        reflog = f"commit{'' if parents else ' (initial)'}: {subject}"
        # The old value makes the ref update fail if HEAD moved underneath us
        git.update_ref("-m", reflog, "HEAD", hexsha, *parents)
    except (GitCommandError, OSError, ValueError) as e:
        detail = e.stderr.strip() if isinstance(e, GitCommandError) and e.stderr else e
        raise RepositoryStorageError(
            f"Failed to create commit: {detail}",
            context={'path': relative_path, 'working_tree_root': str(handle.working_tree_root)}
        )

    return CommitRecord(
        hexsha=hexsha,
        message=message,
        author_name=signature.name,
        author_email=signature.email,
        parents=parents,
        tree=tree,
        path=relative_path,
    )


def _index_file(handle: RepositoryHandle) -> Path:
    return Path(handle.repo.git_dir) / "index"


def _restore_index(handle: RepositoryHandle, snapshot: Optional[bytes]) -> None:
    index_file = _index_file(handle)
    try:
        if snapshot is None:
            index_file.unlink(missing_ok=True)
        else:
            index_file.write_bytes(snapshot)
    except OSError as e:
        logger.error(f"Failed to restore index of {handle.working_tree_root}: {e}")


def commit_path(handle: RepositoryHandle, path: Union[str, Path], message: str) -> CommitRecord:
    """
    Stage a single file of an already located repository and commit it on HEAD.

    Changes to other paths that were already staged are part of the new
    commit's tree; only the named path's staged state is changed here.

    Raises:
        PathOutsideWorkingTreeError, RepositoryStorageError
    """
    if not message or not message.strip():
        raise RepositoryStorageError("Commit message must not be empty", context={'path': str(path)})

    relative_path = handle.relative_path(path)
    # Identity is checked before staging so a failure leaves the index as it was
    signature = repository_signature(handle)
    logger.info(f"Committing {relative_path} in {handle.working_tree_root}")

    index_file = _index_file(handle)
    try:
        snapshot = index_file.read_bytes() if index_file.exists() else None
    except OSError as e:
        raise RepositoryStorageError(f"Failed to read index: {e}", context={'path': str(path)})

    try:
        stage_path(handle, relative_path)
        record = commit_index(handle, message, relative_path, signature)
    except RepositoryStorageError:
        # Never leave the path staged without a commit
        _restore_index(handle, snapshot)
        raise

    logger.info(f"Created commit {record.hexsha[:7]} for {relative_path}")
    return record


def commit_file(path: Union[str, Path], message: str) -> CommitRecord:
    """
    Locate the repository of a file, stage that file and create a commit.

    Args:
        path: Absolute path of the file to commit
        message: Commit message

    Returns:
        CommitRecord describing the new commit

    Raises:
        NotARepositoryError, BareRepositoryError, PathOutsideWorkingTreeError,
        RepositoryStorageError
    """
    with locate_for_file(path) as handle:
        return commit_path(handle, path, message)
