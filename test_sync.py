#!/usr/bin/env python3
"""
Unit tests for pull-then-push synchronization.

The sequencing rules are checked with a mock command runner; a second
group runs the real git executable against a local bare remote.
"""

import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock

sys.path.insert(0, str(Path(__file__).parent))

from markgit.config import Config
from markgit.errors import SyncPullFailedError, SyncPushFailedError
from markgit.vcs.sync import CommandResult, SyncEngine, SyncPhase
from git_test_utils import (
    write_file,
    commit_all,
    clone_repo,
    create_remote_with_clone,
    head_sha,
    run_git,
)


class TestSyncSequencing(unittest.TestCase):
    """Sequencing and failure tagging with a mock runner."""

    def setUp(self):
        self.config = Config(log_level="DEBUG")
        self.root = Path(tempfile.gettempdir())

    def _engine(self, *results):
        runner = Mock(side_effect=list(results))
        return SyncEngine(self.config, runner=runner), runner

    def test_success_runs_pull_then_push(self):
        engine, runner = self._engine(
            CommandResult(0, stdout="Already up to date.\n"),
            CommandResult(0, stdout=""),
        )

        outcome = engine.sync(self.root)

        self.assertTrue(outcome.success)
        self.assertEqual(outcome.message, "Sync complete")
        self.assertIsNone(outcome.to_error())
        self.assertEqual(runner.call_count, 2)
        self.assertEqual(runner.call_args_list[0].args, (["git", "pull", "--ff-only"], self.root))
        self.assertEqual(runner.call_args_list[1].args, (["git", "push"], self.root))
        print("  ✓ Pull runs before push")

    def test_pull_failure_skips_push(self):
        engine, runner = self._engine(
            CommandResult(128, stderr="fatal: Not possible to fast-forward, aborting.\n"),
        )

        outcome = engine.sync(self.root)

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.phase, SyncPhase.PULL)
        self.assertEqual(runner.call_count, 1)

        error = outcome.to_error()
        self.assertIsInstance(error, SyncPullFailedError)
        self.assertEqual(error.reason, "fatal: Not possible to fast-forward, aborting.")
        self.assertEqual(error.message, "git pull failed: fatal: Not possible to fast-forward, aborting.")
        print("  ✓ Failed pull is tagged and push is never attempted")

    def test_push_failure_after_successful_pull(self):
        engine, runner = self._engine(
            CommandResult(0, stdout="Updating 1a2b3c..4d5e6f\nFast-forward\n"),
            CommandResult(1, stderr="! [rejected] main -> main (fetch first)\n"),
        )

        outcome = engine.sync(self.root)

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.phase, SyncPhase.PUSH)
        self.assertIn("Fast-forward", outcome.pull_output)
        self.assertEqual(runner.call_count, 2)
        with self.assertRaises(SyncPushFailedError):
            outcome.raise_for_failure()
        print("  ✓ Failed push is tagged with the push phase")

    def test_failure_without_output_reports_exit_status(self):
        engine, _ = self._engine(CommandResult(1))

        outcome = engine.sync(self.root)

        self.assertEqual(outcome.message, "exit status 1")

    def test_unstartable_executable_is_a_pull_failure(self):
        runner = Mock(side_effect=FileNotFoundError("No such file or directory: 'git'"))
        engine = SyncEngine(self.config, runner=runner)

        outcome = engine.sync(self.root)

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.phase, SyncPhase.PULL)
        self.assertIn("Failed to run git pull", outcome.message)
        self.assertEqual(runner.call_count, 1)

    def test_configured_arguments_are_used(self):
        config = Config(git_executable="/usr/bin/git", pull_args="pull --ff-only --quiet", push_args=["push", "--quiet"])
        runner = Mock(side_effect=[CommandResult(0), CommandResult(0)])

        SyncEngine(config, runner=runner).sync(self.root)

        self.assertEqual(runner.call_args_list[0].args[0], ["/usr/bin/git", "pull", "--ff-only", "--quiet"])
        self.assertEqual(runner.call_args_list[1].args[0], ["/usr/bin/git", "push", "--quiet"])


class TestSyncWithRemote(unittest.TestCase):
    """Sync against a local bare remote using the real git executable."""

    def setUp(self):
        print(f"\nSetting up test: {self._testMethodName}")
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.remote_dir, self.clone_dir = create_remote_with_clone(self.temp_dir)
        self.engine = SyncEngine(Config())

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _push_from_other_clone(self):
        other_dir = clone_repo(self.remote_dir, self.temp_dir / "other")
        write_file(other_dir, "remote.md", "from elsewhere\n")
        commit_all(other_dir, "Remote change")
        run_git(other_dir, "push", "origin", "main")
        return head_sha(other_dir)

    def test_sync_pushes_local_commit(self):
        write_file(self.clone_dir, "local.md", "local\n")
        local_head = commit_all(self.clone_dir, "Local change")

        outcome = self.engine.sync(self.clone_dir)

        self.assertTrue(outcome.success, outcome.message)
        self.assertEqual(head_sha(self.remote_dir, "main"), local_head)
        print("  ✓ Local commit reaches the remote")

    def test_sync_fast_forwards_remote_commit(self):
        remote_head = self._push_from_other_clone()

        outcome = self.engine.sync(self.clone_dir)

        self.assertTrue(outcome.success, outcome.message)
        self.assertEqual(head_sha(self.clone_dir), remote_head)
        self.assertTrue((self.clone_dir / "remote.md").exists())
        print("  ✓ Remote commit is fast-forwarded locally")

    def test_diverged_history_fails_at_pull(self):
        remote_head = self._push_from_other_clone()
        write_file(self.clone_dir, "local.md", "local\n")
        local_head = commit_all(self.clone_dir, "Local change")

        outcome = self.engine.sync(self.clone_dir)

        self.assertFalse(outcome.success)
        self.assertEqual(outcome.phase, SyncPhase.PULL)
        self.assertEqual(head_sha(self.clone_dir), local_head)
        self.assertEqual(head_sha(self.remote_dir, "main"), remote_head)
        print("  ✓ Diverged history stops at the pull and pushes nothing")


if __name__ == "__main__":
    unittest.main(verbosity=2)
