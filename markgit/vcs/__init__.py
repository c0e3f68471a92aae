"""Local version-control integration for markgit."""

from .locator import RepositoryHandle, locate_repository, locate_for_file
from .status import StatusFlag, StatusLabel, classify, get_tree_status, get_path_status
from .commit import CommitRecord, commit_file
from .revert import revert_file
from .divergence import DivergenceCount, get_ahead_behind
from .sync import SyncEngine, SyncOutcome, SyncPhase, CommandResult
from .results import GitOperationResult
from .manager import GitIntegrationManager, get_git_integration_manager

__all__ = [
    'RepositoryHandle',
    'locate_repository',
    'locate_for_file',
    'StatusFlag',
    'StatusLabel',
    'classify',
    'get_tree_status',
    'get_path_status',
    'CommitRecord',
    'commit_file',
    'revert_file',
    'DivergenceCount',
    'get_ahead_behind',
    'SyncEngine',
    'SyncOutcome',
    'SyncPhase',
    'CommandResult',
    'GitOperationResult',
    'GitIntegrationManager',
    'get_git_integration_manager',
]
