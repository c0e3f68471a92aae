"""Helpers for building throwaway git repositories in tests."""

import os
import subprocess
from pathlib import Path

from markgit.platform import get_git_executable, get_platform_info


def run_git(repo_dir: Path, *args: str) -> str:
    """Run a git command in repo_dir and return its stdout, failing loudly."""
    git_executable = get_git_executable()
    platform_info = get_platform_info()

    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"

    result = subprocess.run(
        [git_executable, *args],
        check=True,
        capture_output=True,
        text=True,
        cwd=repo_dir,
        env=env,
        shell=platform_info.is_windows
    )
    return result.stdout


def configure_identity(repo_dir: Path, name: str = "Test User", email: str = "test@example.com") -> None:
    run_git(repo_dir, "config", "user.name", name)
    run_git(repo_dir, "config", "user.email", email)
    run_git(repo_dir, "config", "commit.gpgsign", "false")


def init_repo(repo_dir: Path, bare: bool = False, with_identity: bool = True) -> Path:
    """
    Create a repository whose branch is ``main`` regardless of init.defaultBranch.

    Returns:
        The repository directory
    """
    repo_dir.mkdir(parents=True, exist_ok=True)
    if bare:
        run_git(repo_dir, "init", "--bare")
    else:
        run_git(repo_dir, "init")
    run_git(repo_dir, "symbolic-ref", "HEAD", "refs/heads/main")

    if with_identity and not bare:
        configure_identity(repo_dir)
    return repo_dir


def write_file(repo_dir: Path, relative_path: str, content: str) -> Path:
    file_path = repo_dir / relative_path
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(content, encoding="utf-8")
    return file_path


def commit_all(repo_dir: Path, message: str) -> str:
    """Stage everything and commit with the CLI; returns the new HEAD sha."""
    run_git(repo_dir, "add", "-A")
    run_git(repo_dir, "commit", "-m", message)
    return head_sha(repo_dir)


def head_sha(repo_dir: Path, ref: str = "HEAD") -> str:
    return run_git(repo_dir, "rev-parse", ref).strip()


def clone_repo(remote_dir: Path, clone_dir: Path) -> Path:
    """Clone remote_dir into clone_dir and configure a commit identity."""
    run_git(clone_dir.parent, "clone", str(remote_dir), clone_dir.name)
    configure_identity(clone_dir)
    return clone_dir


def create_remote_with_clone(base_dir: Path, clone_name: str = "work") -> tuple[Path, Path]:
    """
    Create a bare remote seeded with one commit on main, and a clone of it.

    Returns:
        Tuple of (remote_dir, clone_dir)
    """
    remote_dir = init_repo(base_dir / "remote.git", bare=True)

    seed_dir = init_repo(base_dir / "seed")
    write_file(seed_dir, "README.md", "# Notes\n")
    commit_all(seed_dir, "Initial commit")
    run_git(seed_dir, "remote", "add", "origin", str(remote_dir))
    run_git(seed_dir, "push", "origin", "main")

    clone_dir = clone_repo(remote_dir, base_dir / clone_name)
    return remote_dir, clone_dir
