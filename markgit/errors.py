"""Error taxonomy and error handling framework for markgit."""

import logging
from enum import Enum
from typing import Dict, Any, Optional


class ErrorCategory(Enum):
    """Categories of errors for structured error handling."""
    REPOSITORY_ACCESS = "repository_access"
    PATH = "path"
    REVERT = "revert"
    SYNC = "sync"
    STORAGE = "storage"
    CONCURRENCY = "concurrency"
    UNKNOWN = "unknown"


class GitIntegrationError(Exception):
    """Base class for every failure surfaced by the version-control engine."""

    error_code = "GIT_INTEGRATION_ERROR"
    category = ErrorCategory.UNKNOWN

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class NotARepositoryError(GitIntegrationError):
    """No ancestor of the path is a git repository."""

    error_code = "NOT_A_REPOSITORY"
    category = ErrorCategory.REPOSITORY_ACCESS


class BareRepositoryError(GitIntegrationError):
    """The repository has no working tree."""

    error_code = "BARE_REPOSITORY"
    category = ErrorCategory.REPOSITORY_ACCESS


class PathOutsideWorkingTreeError(GitIntegrationError):
    error_code = "PATH_OUTSIDE_WORKING_TREE"
    category = ErrorCategory.PATH


class CannotRevertUntrackedError(GitIntegrationError):
    """The path has no committed version to restore."""

    error_code = "CANNOT_REVERT_UNTRACKED"
    category = ErrorCategory.REVERT


class SyncPullFailedError(GitIntegrationError):
    error_code = "SYNC_PULL_FAILED"
    category = ErrorCategory.SYNC

    def __init__(self, reason: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"git pull failed: {reason}", context)
        self.reason = reason


class SyncPushFailedError(GitIntegrationError):
    error_code = "SYNC_PUSH_FAILED"
    category = ErrorCategory.SYNC

    def __init__(self, reason: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"git push failed: {reason}", context)
        self.reason = reason


class RepositoryStorageError(GitIntegrationError):
    """I/O or object-database failure while reading or writing the repository."""

    error_code = "REPOSITORY_STORAGE_ERROR"
    category = ErrorCategory.STORAGE


class LockTimeoutError(GitIntegrationError):
    """Another operation held the repository lock for longer than the configured timeout."""

    error_code = "LOCK_TIMEOUT"
    category = ErrorCategory.CONCURRENCY


class ErrorHandler:
    """Turns engine failures into logged, plain-value operation results."""

    def __init__(self):
        self.logger = logging.getLogger('markgit.error_handler')

    def handle_git_error(self, error: Exception, operation: str, context: Dict[str, Any] = None):
        """
        Convert an engine failure into a failed GitOperationResult.

        Known GitIntegrationError subclasses keep their own error code and
        message. Anything else is reported as UNEXPECTED_ERROR and logged
        with its traceback.

        Args:
            error: The exception raised by an engine component
            operation: Name of the operation that failed
            context: Additional context such as the requested path

        Returns:
            GitOperationResult with success=False
        """
        from .vcs.results import GitOperationResult

        context = dict(context or {})

        if isinstance(error, GitIntegrationError):
            error_code = error.error_code
            category = error.category
            message = error.message
            context.update(error.context)

            self.logger.warning(
                f"Git operation error: {message}",
                extra={
                    'operation': operation,
                    'error_code': error_code,
                    'category': category.value,
                    'path': context.get('path'),
                }
            )
        else:
            error_code = "UNEXPECTED_ERROR"
            message = f"Unexpected error during {operation}: {error}"

            self.logger.error(
                message,
                exc_info=error,
                extra={
                    'operation': operation,
                    'error_code': error_code,
                    'path': context.get('path'),
                }
            )

        return GitOperationResult(
            success=False,
            message=message,
            operation=operation,
            error_code=error_code,
            working_tree_root=context.get('working_tree_root'),
            context=context or None,
        )


# Initialize global error handler
error_handler = ErrorHandler()
