"""Configuration management for markgit."""

import os
import shlex
import logging
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

from .platform import get_platform_specific_defaults, validate_git_availability

load_dotenv()  # Load .env file if it exists


VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class Config:
    """Configuration for the version-control integration engine with validation and defaults."""

    # Logging
    log_level: str = "INFO"

    # Remote used for ahead/behind comparison
    remote_name: str = "origin"

    # Seconds to wait for the per-repository lock before giving up
    lock_timeout: float = 30.0

    # External sync commands, run in the working-tree root
    git_executable: str = "git"
    pull_args: List[str] = field(default_factory=lambda: ["pull", "--ff-only"])
    push_args: List[str] = field(default_factory=lambda: ["push"])

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.pull_args, str):
            self.pull_args = shlex.split(self.pull_args)
        if isinstance(self.push_args, str):
            self.push_args = shlex.split(self.push_args)

        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}")

        if not self.remote_name or "/" in self.remote_name:
            raise ValueError(f"Invalid remote name: {self.remote_name!r}")

        if self.lock_timeout <= 0:
            raise ValueError("lock_timeout must be positive")

        if not self.pull_args:
            raise ValueError("pull_args must not be empty")

        if not self.push_args:
            raise ValueError("push_args must not be empty")

    @property
    def pull_command(self) -> List[str]:
        """Full argument vector for the pull phase of a sync."""
        return [self.git_executable, *self.pull_args]

    @property
    def push_command(self) -> List[str]:
        """Full argument vector for the push phase of a sync."""
        return [self.git_executable, *self.push_args]


def load_configuration() -> Config:
    """Load configuration from environment variables with platform-specific defaults."""
    try:
        platform_defaults = get_platform_specific_defaults()

        return Config(
            log_level=os.getenv("MARKGIT_LOG_LEVEL", platform_defaults['log_level']).upper(),
            remote_name=os.getenv("MARKGIT_REMOTE", platform_defaults['remote_name']),
            lock_timeout=float(os.getenv("MARKGIT_LOCK_TIMEOUT", str(platform_defaults['lock_timeout']))),
            git_executable=os.getenv("MARKGIT_GIT", platform_defaults['git_executable']),
            pull_args=os.getenv("MARKGIT_PULL_ARGS", "pull --ff-only"),
            push_args=os.getenv("MARKGIT_PUSH_ARGS", "push"),
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return any errors or warnings."""
    errors = []

    git_available, git_error = validate_git_availability(config.git_executable)
    if not git_available:
        errors.append(f"ERROR: {git_error}")

    if config.pull_args[0] != "pull":
        errors.append(f"ERROR: Pull arguments must start with 'pull', got: {' '.join(config.pull_args)}")
    elif "--ff-only" not in config.pull_args:
        errors.append("WARNING: Pull arguments do not include --ff-only; sync may create merge commits")

    if config.push_args[0] != "push":
        errors.append(f"ERROR: Push arguments must start with 'push', got: {' '.join(config.push_args)}")

    if config.lock_timeout > 300:
        logging.getLogger('markgit.config').debug(f"Long lock timeout configured: {config.lock_timeout}s")
        errors.append("WARNING: Lock timeout above 5 minutes may leave the editor unresponsive")

    return errors
