"""
Pull-then-push synchronization with the remote.

Both phases run the environment's own git executable as a subprocess in the
working-tree root, so credential helpers, SSH agents and transport settings
are whatever the user already configured. The runner is pluggable for tests
and for editors that want to route the commands elsewhere.
"""

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from ..config import Config
from ..errors import GitIntegrationError, SyncPullFailedError, SyncPushFailedError
from ..performance import PerformanceLogger, get_performance_logger


logger = logging.getLogger('markgit.sync')


class SyncPhase(Enum):
    """Which half of a sync produced the outcome."""
    PULL = "pull"
    PUSH = "push"


@dataclass
class CommandResult:
    """Outcome of one external git invocation."""
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def detail(self) -> str:
        return self.stderr.strip() or self.stdout.strip() or f"exit status {self.returncode}"


CommandRunner = Callable[[List[str], Path], CommandResult]


def run_git_command(args: List[str], cwd: Path) -> CommandResult:
    """
    Run a git command to completion in cwd, capturing its output.

    Terminal credential prompts are disabled because nobody can answer them
    from an editor; configured credential helpers still run.

    Raises:
        OSError: If the executable cannot be started
    """
    env = dict(os.environ)
    env.setdefault("GIT_TERMINAL_PROMPT", "0")

    start_time = time.time()
    completed = subprocess.run(
        args,
        cwd=str(cwd),
        capture_output=True,
        text=True,
        stdin=subprocess.DEVNULL,
        env=env,
    )
    return CommandResult(
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        duration=time.time() - start_time,
    )


@dataclass
class SyncOutcome:
    """Success, or a failure tagged with the phase that failed."""
    success: bool
    message: str
    phase: Optional[SyncPhase] = None
    pull_output: str = ""
    push_output: str = ""

    def to_error(self) -> Optional[GitIntegrationError]:
        """Typed error for a failed outcome, None on success."""
        if self.success:
            return None
        if self.phase is SyncPhase.PULL:
            return SyncPullFailedError(self.message)
        return SyncPushFailedError(self.message)

    def raise_for_failure(self) -> None:
        error = self.to_error()
        if error is not None:
            raise error


class SyncEngine:
    """Sequences a fast-forward-only pull and a push, failing fast on the pull."""

    def __init__(
        self,
        config: Config,
        runner: Optional[CommandRunner] = None,
        perf_logger: Optional[PerformanceLogger] = None
    ):
        self.config = config
        self.runner = runner or run_git_command
        self.perf_logger = perf_logger or get_performance_logger()

    def _run_phase(self, phase: SyncPhase, args: List[str], cwd: Path) -> CommandResult:
        command = " ".join(args)
        logger.debug(f"Running {phase.value} phase: {command} (cwd={cwd})")
        try:
            result = self.runner(args, cwd)
        except OSError as e:
            logger.error(f"Failed to run git {phase.value}: {e}")
            return CommandResult(returncode=-1, stderr=f"Failed to run git {phase.value}: {e}")

        self.perf_logger.log_git_command_performance(command, result.duration, success=result.success)
        return result

    def sync(self, working_tree_root: Path) -> SyncOutcome:
        """
        Pull (fast-forward only) and then push.

        A failed pull ends the sync before the push is attempted. A failed
        push leaves the successful pull in place.

        Args:
            working_tree_root: Directory the git processes run in

        Returns:
            SyncOutcome, success only when both phases succeed
        """
        logger.info(f"Starting sync in {working_tree_root}")

        pull = self._run_phase(SyncPhase.PULL, self.config.pull_command, working_tree_root)
        if not pull.success:
            logger.warning(f"Pull failed in {working_tree_root}: {pull.detail}")
            return SyncOutcome(
                success=False,
                message=pull.detail,
                phase=SyncPhase.PULL,
                pull_output=pull.stdout,
            )

        push = self._run_phase(SyncPhase.PUSH, self.config.push_command, working_tree_root)
        if not push.success:
            logger.warning(f"Push failed in {working_tree_root} after successful pull: {push.detail}")
            return SyncOutcome(
                success=False,
                message=push.detail,
                phase=SyncPhase.PUSH,
                pull_output=pull.stdout,
                push_output=push.stdout,
            )

        logger.info(f"Sync complete in {working_tree_root}")
        return SyncOutcome(
            success=True,
            message="Sync complete",
            pull_output=pull.stdout,
            push_output=push.stdout,
        )
