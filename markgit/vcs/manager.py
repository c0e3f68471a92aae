"""Operation surface of the version-control integration engine."""

import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, Optional, Union

from ..config import Config
from ..errors import NotARepositoryError, error_handler
from ..performance import get_performance_logger
from ..repo_lock import RepositoryLockRegistry, get_lock_registry
from .commit import commit_path
from .divergence import divergence_for
from .locator import locate_for_file, locate_repository
from .results import GitOperationResult, create_success_result
from .revert import revert_path
from .status import get_path_status, get_tree_status, summarize
from .sync import CommandRunner, SyncEngine


PathLike = Union[str, Path]


class GitIntegrationManager:
    """
    Entry point for every editor-facing git operation.

    Each call opens its own repository handle, takes the lock scope of the
    working-tree root (shared for reads, exclusive for commit, revert and
    sync), dispatches to one engine component, and returns a plain
    GitOperationResult. Failures are reported once and never retried.
    """

    def __init__(
        self,
        config: Config,
        lock_registry: Optional[RepositoryLockRegistry] = None,
        sync_runner: Optional[CommandRunner] = None
    ):
        """
        Initialize the manager.

        Args:
            config: Engine configuration
            lock_registry: Per-repository locks, the process-wide registry by default
            sync_runner: Replacement for the subprocess runner used by sync
        """
        self.config = config
        self.logger = logging.getLogger('markgit.manager')
        self.locks = lock_registry or get_lock_registry()
        self.perf_logger = get_performance_logger()
        self.sync_engine = SyncEngine(config, runner=sync_runner, perf_logger=self.perf_logger)

    def _failure(self, error: Exception, operation: str, path: PathLike) -> GitOperationResult:
        return error_handler.handle_git_error(error, operation, context={'path': str(path)})

    def locate_repository(self, path: PathLike) -> GitOperationResult:
        """Resolve the working-tree root enclosing path."""
        operation = "locate_repository"
        try:
            with locate_repository(path) as handle:
                root = str(handle.working_tree_root)
            return create_success_result(
                operation,
                f"Repository found at {root}",
                data={"working_tree_root": root},
                working_tree_root=root
            )
        except Exception as e:
            return self._failure(e, operation, path)

    def get_tree_status(self, path: PathLike) -> GitOperationResult:
        """
        Classify every changed or untracked file of the repository containing path.

        data["statuses"] maps absolute paths to label values.
        """
        operation = "get_tree_status"
        try:
            with locate_repository(path) as handle:
                root = str(handle.working_tree_root)
                with self.locks.read_scope(handle.working_tree_root, self.config.lock_timeout):
                    statuses = get_tree_status(handle)

            counts = summarize(statuses)
            self.logger.debug(f"Tree status for {root}: {counts}")
            return create_success_result(
                operation,
                f"{len(statuses)} changed paths",
                data={
                    "statuses": {file_path: label.value for file_path, label in statuses.items()},
                    "counts": counts,
                },
                working_tree_root=root
            )
        except Exception as e:
            return self._failure(e, operation, path)

    def get_file_status(self, path: PathLike) -> GitOperationResult:
        """
        Status label of a single file; data["status"] is None when unmodified.

        A file outside any repository is reported as unmodified rather than
        as a failure, so the editor simply shows no badge.
        """
        operation = "get_file_status"
        try:
            try:
                handle = locate_for_file(path)
            except NotARepositoryError:
                return create_success_result(operation, "Not under version control", data={"status": None})

            with handle:
                root = str(handle.working_tree_root)
                relative_path = handle.relative_path(path)
                with self.locks.read_scope(handle.working_tree_root, self.config.lock_timeout):
                    label = get_path_status(handle, relative_path)

            status = label.value if label else None
            return create_success_result(
                operation,
                f"{relative_path}: {status or 'unmodified'}",
                data={"status": status},
                working_tree_root=root
            )
        except Exception as e:
            return self._failure(e, operation, path)

    def commit_file(self, path: PathLike, message: str) -> GitOperationResult:
        """Stage one file and commit the resulting index on HEAD."""
        operation = "commit_file"
        try:
            with locate_for_file(path) as handle:
                root = str(handle.working_tree_root)
                with self.locks.write_scope(handle.working_tree_root, self.config.lock_timeout):
                    with self.perf_logger.time_operation(operation, {"path": str(path)}):
                        record = commit_path(handle, path, message)

            return create_success_result(
                operation,
                f"Committed {record.path} as {record.hexsha[:7]}",
                data={"commit": record.to_dict()},
                working_tree_root=root
            )
        except Exception as e:
            return self._failure(e, operation, path)

    def revert_file(self, path: PathLike) -> GitOperationResult:
        """Discard staged and unstaged changes of one file."""
        operation = "revert_file"
        try:
            with locate_for_file(path) as handle:
                root = str(handle.working_tree_root)
                with self.locks.write_scope(handle.working_tree_root, self.config.lock_timeout):
                    with self.perf_logger.time_operation(operation, {"path": str(path)}):
                        revert_path(handle, path)

            return create_success_result(operation, f"Reverted {path}", working_tree_root=root)
        except Exception as e:
            return self._failure(e, operation, path)

    def get_ahead_behind(self, path: PathLike) -> GitOperationResult:
        """
        Divergence of the current branch from its remote-tracking branch.

        data is None when there is no result (not a repository, unborn or
        detached HEAD); otherwise {ahead, behind, upstream} where upstream is
        None when no remote-tracking ref exists.
        """
        operation = "get_ahead_behind"
        try:
            try:
                handle = locate_repository(path)
            except NotARepositoryError:
                return create_success_result(operation, "Not under version control", data=None)

            with handle:
                root = str(handle.working_tree_root)
                with self.locks.read_scope(handle.working_tree_root, self.config.lock_timeout):
                    divergence = divergence_for(handle, self.config.remote_name)

            if divergence is None:
                return create_success_result(operation, "No branch checked out", data=None, working_tree_root=root)
            if divergence.upstream is None:
                message = "No upstream configured"
            else:
                message = f"{divergence.ahead} ahead, {divergence.behind} behind {divergence.upstream}"
            return create_success_result(operation, message, data=divergence.to_dict(), working_tree_root=root)
        except Exception as e:
            return self._failure(e, operation, path)

    def sync(self, path: PathLike) -> GitOperationResult:
        """Fast-forward pull then push; a failed pull skips the push."""
        operation = "sync"
        try:
            with locate_repository(path) as handle:
                root = handle.working_tree_root

            with self.locks.write_scope(root, self.config.lock_timeout):
                with self.perf_logger.time_operation(operation, {"working_tree_root": str(root)}):
                    outcome = self.sync_engine.sync(root)

            if not outcome.success:
                return error_handler.handle_git_error(
                    outcome.to_error(),
                    operation,
                    context={'path': str(path), 'working_tree_root': str(root)}
                )
            return create_success_result(operation, outcome.message, working_tree_root=str(root))
        except Exception as e:
            return self._failure(e, operation, path)

    def sync_background(
        self,
        path: PathLike,
        callback: Optional[Callable[[GitOperationResult], None]] = None
    ) -> "Future[GitOperationResult]":
        """
        Run sync on a daemon thread.

        The caller may wait on the returned future with a timeout and give up;
        the git processes keep running and the future (and callback) still
        complete when they finish.
        """
        future: "Future[GitOperationResult]" = Future()
        future.set_running_or_notify_cancel()

        def sync_worker():
            result = self.sync(path)
            if result.success:
                self.logger.info(f"Background sync completed for {path}")
            else:
                self.logger.warning(f"Background sync failed for {path}: {result.message}")
            future.set_result(result)
            if callback is not None:
                try:
                    callback(result)
                except Exception as e:
                    self.logger.error(f"Sync callback raised for {path}: {e}", exc_info=True)

        sync_thread = threading.Thread(
            target=sync_worker,
            name=f"GitSync-{Path(path).name}",
            daemon=True
        )
        sync_thread.start()
        return future


# Global manager instance
_manager: Optional[GitIntegrationManager] = None
_manager_guard = threading.Lock()


def get_git_integration_manager(config: Config) -> GitIntegrationManager:
    """
    Get or create the global manager instance.

    Args:
        config: Engine configuration, used only on first creation

    Returns:
        GitIntegrationManager instance
    """
    global _manager
    with _manager_guard:
        if _manager is None:
            _manager = GitIntegrationManager(config)
        return _manager
