"""
Working-tree status classification.

Git reports index and worktree changes as independent flags that can occur
together (a file can be both newly added to the index and modified again in
the worktree). The editor shows exactly one badge per file, so raw status is
first translated into a library-neutral StatusFlag set and then resolved
against an ordered rule table where the first matching rule wins.
"""

import logging
from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Dict, Iterator, List, Optional, Tuple

from git import GitCommandError

from ..errors import RepositoryStorageError
from .locator import RepositoryHandle


logger = logging.getLogger('markgit.status')


class StatusFlag(IntFlag):
    """Combined index/worktree state of a single path."""
    NONE = 0
    INDEX_NEW = 1 << 0
    INDEX_MODIFIED = 1 << 1
    INDEX_DELETED = 1 << 2
    INDEX_RENAMED = 1 << 3
    INDEX_TYPECHANGE = 1 << 4
    WT_NEW = 1 << 7
    WT_MODIFIED = 1 << 8
    WT_DELETED = 1 << 9
    WT_TYPECHANGE = 1 << 10
    WT_RENAMED = 1 << 11
    IGNORED = 1 << 14
    CONFLICTED = 1 << 15


class StatusLabel(Enum):
    """User-facing status badge."""
    CONFLICTED = "conflicted"
    STAGED_MODIFIED = "staged_modified"
    STAGED = "staged"
    MODIFIED = "modified"
    UNTRACKED = "untracked"
    DELETED = "deleted"
    RENAMED = "renamed"


StatusMap = Dict[str, StatusLabel]


@dataclass(frozen=True)
class _Rule:
    label: StatusLabel
    any_of: StatusFlag = StatusFlag.NONE
    all_of: StatusFlag = StatusFlag.NONE
    none_of: StatusFlag = StatusFlag.NONE

    def matches(self, flags: StatusFlag) -> bool:
        if self.any_of and not flags & self.any_of:
            return False
        if self.all_of and flags & self.all_of != self.all_of:
            return False
        if self.none_of and flags & self.none_of:
            return False
        return True


# Order matters: first match wins.
CLASSIFICATION_RULES: Tuple[_Rule, ...] = (
    _Rule(StatusLabel.CONFLICTED, any_of=StatusFlag.CONFLICTED),
    _Rule(StatusLabel.STAGED_MODIFIED, all_of=StatusFlag.INDEX_NEW | StatusFlag.WT_MODIFIED),
    _Rule(
        StatusLabel.STAGED,
        any_of=StatusFlag.INDEX_MODIFIED | StatusFlag.INDEX_NEW | StatusFlag.INDEX_RENAMED,
        none_of=StatusFlag.WT_MODIFIED | StatusFlag.WT_DELETED,
    ),
    _Rule(StatusLabel.MODIFIED, any_of=StatusFlag.WT_MODIFIED | StatusFlag.INDEX_MODIFIED),
    _Rule(StatusLabel.UNTRACKED, any_of=StatusFlag.WT_NEW),
    _Rule(StatusLabel.DELETED, any_of=StatusFlag.WT_DELETED | StatusFlag.INDEX_DELETED),
    _Rule(StatusLabel.RENAMED, any_of=StatusFlag.WT_RENAMED | StatusFlag.INDEX_RENAMED),
)


def classify(flags: StatusFlag) -> Optional[StatusLabel]:
    """Resolve a flag set to a single label, or None for unmodified/ignored paths."""
    for rule in CLASSIFICATION_RULES:
        if rule.matches(flags):
            return rule.label
    return None


_CONFLICT_CODES = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}

_INDEX_CODES = {
    "M": StatusFlag.INDEX_MODIFIED,
    "T": StatusFlag.INDEX_TYPECHANGE,
    "A": StatusFlag.INDEX_NEW,
    "C": StatusFlag.INDEX_NEW,
    "D": StatusFlag.INDEX_DELETED,
    "R": StatusFlag.INDEX_RENAMED,
}

_WORKTREE_CODES = {
    "M": StatusFlag.WT_MODIFIED,
    "T": StatusFlag.WT_TYPECHANGE,
    "A": StatusFlag.WT_NEW,  # intent-to-add
    "D": StatusFlag.WT_DELETED,
    "R": StatusFlag.WT_RENAMED,
}


def flags_from_porcelain(code: str) -> StatusFlag:
    """Translate a two-letter ``git status --porcelain`` XY code into StatusFlag."""
    if code == "??":
        return StatusFlag.WT_NEW
    if code == "!!":
        return StatusFlag.IGNORED
    if code in _CONFLICT_CODES:
        return StatusFlag.CONFLICTED

    flags = StatusFlag.NONE
    flags |= _INDEX_CODES.get(code[0], StatusFlag.NONE)
    flags |= _WORKTREE_CODES.get(code[1], StatusFlag.NONE)
    return flags


def parse_porcelain_z(output: str) -> Iterator[Tuple[str, StatusFlag]]:
    """
    Parse NUL-separated ``git status --porcelain -z`` output.

    Yields (relative_path, flags). Rename and copy entries carry their source
    path as the following field; the destination path is the one reported.
    """
    fields = output.split("\0")
    position = 0
    while position < len(fields):
        entry = fields[position]
        position += 1
        if len(entry) < 4:
            continue

        code, path = entry[:2], entry[3:]
        if code[0] in "RC" or code[1] in "RC":
            position += 1  # skip rename source

        yield path, flags_from_porcelain(code)


def _run_status(handle: RepositoryHandle, *pathspec: str) -> str:
    args = ["--porcelain", "-z", "--untracked-files=all"]
    if pathspec:
        args.append("--")
        args.extend(pathspec)

    try:
        return handle.repo.git.status(*args)
    except GitCommandError as e:
        raise RepositoryStorageError(
            f"Failed to read repository status: {e.stderr.strip() if e.stderr else e}",
            context={'working_tree_root': str(handle.working_tree_root)}
        )


def collect_flags(handle: RepositoryHandle, *pathspec: str) -> Dict[str, StatusFlag]:
    """Raw flag sets per relative path, merged when git reports a path twice."""
    collected: Dict[str, StatusFlag] = {}
    for path, flags in parse_porcelain_z(_run_status(handle, *pathspec)):
        collected[path] = collected.get(path, StatusFlag.NONE) | flags
    return collected


def get_tree_status(handle: RepositoryHandle) -> StatusMap:
    """
    Classify every changed or untracked path in the working tree.

    Untracked directories are recursed into and ignored paths are excluded.

    Returns:
        Mapping of absolute path string to StatusLabel; unmodified paths are absent
    """
    statuses: StatusMap = {}
    for relative_path, flags in collect_flags(handle).items():
        label = classify(flags)
        if label is None:
            continue
        statuses[str(handle.absolute_path(relative_path))] = label

    logger.debug(f"Classified {len(statuses)} paths under {handle.working_tree_root}")
    return statuses


def get_path_flags(handle: RepositoryHandle, relative_path: str) -> StatusFlag:
    """Flag set for exactly one path relative to the working-tree root."""
    return collect_flags(handle, f":(literal){relative_path}").get(relative_path, StatusFlag.NONE)


def get_path_status(handle: RepositoryHandle, relative_path: str) -> Optional[StatusLabel]:
    """Label for exactly one path relative to the working-tree root, None when unmodified."""
    return classify(get_path_flags(handle, relative_path))


def summarize(statuses: StatusMap) -> Dict[str, int]:
    """Count paths per label value, for log lines and status bars."""
    counts: Dict[str, int] = {}
    for label in statuses.values():
        counts[label.value] = counts.get(label.value, 0) + 1
    return counts


__all__: List[str] = [
    "StatusFlag",
    "StatusLabel",
    "StatusMap",
    "CLASSIFICATION_RULES",
    "classify",
    "flags_from_porcelain",
    "parse_porcelain_z",
    "collect_flags",
    "get_tree_status",
    "get_path_flags",
    "get_path_status",
    "summarize",
]
