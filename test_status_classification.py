#!/usr/bin/env python3
"""
Unit tests for working-tree status classification.

Covers the ordered rule table on synthetic flag sets, parsing of
``git status --porcelain -z`` output, and classification of real
repository states produced with the git CLI.
"""

import shutil
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from markgit.vcs.locator import locate_repository
from markgit.vcs.status import (
    StatusFlag,
    StatusLabel,
    classify,
    flags_from_porcelain,
    parse_porcelain_z,
    get_tree_status,
    get_path_status,
    summarize,
)
from git_test_utils import init_repo, write_file, commit_all, run_git


class TestClassificationRules(unittest.TestCase):
    """Precedence of the rule table on synthetic flag combinations."""

    def test_conflict_wins_over_everything(self):
        flags = StatusFlag.CONFLICTED | StatusFlag.INDEX_NEW | StatusFlag.WT_MODIFIED
        self.assertEqual(classify(flags), StatusLabel.CONFLICTED)
        print("  ✓ Conflicted takes precedence")

    def test_new_then_edited_is_staged_modified(self):
        flags = StatusFlag.INDEX_NEW | StatusFlag.WT_MODIFIED
        self.assertEqual(classify(flags), StatusLabel.STAGED_MODIFIED)
        print("  ✓ Added then edited reads as staged_modified")

    def test_index_only_changes_are_staged(self):
        for flags in (StatusFlag.INDEX_NEW, StatusFlag.INDEX_MODIFIED, StatusFlag.INDEX_RENAMED):
            with self.subTest(flags=flags):
                self.assertEqual(classify(flags), StatusLabel.STAGED)
        print("  ✓ Index-only changes are staged")

    def test_index_modified_with_worktree_edit_is_modified(self):
        flags = StatusFlag.INDEX_MODIFIED | StatusFlag.WT_MODIFIED
        self.assertEqual(classify(flags), StatusLabel.MODIFIED)
        print("  ✓ Staged modification edited again reads as modified")

    def test_staged_new_then_deleted_is_deleted(self):
        flags = StatusFlag.INDEX_NEW | StatusFlag.WT_DELETED
        self.assertEqual(classify(flags), StatusLabel.DELETED)

    def test_untracked(self):
        self.assertEqual(classify(StatusFlag.WT_NEW), StatusLabel.UNTRACKED)

    def test_deleted_from_worktree_or_index(self):
        self.assertEqual(classify(StatusFlag.WT_DELETED), StatusLabel.DELETED)
        self.assertEqual(classify(StatusFlag.INDEX_DELETED), StatusLabel.DELETED)

    def test_worktree_rename_is_renamed(self):
        self.assertEqual(classify(StatusFlag.WT_RENAMED), StatusLabel.RENAMED)

    def test_renamed_and_deleted_resolves_to_deleted(self):
        flags = StatusFlag.INDEX_RENAMED | StatusFlag.WT_DELETED
        self.assertEqual(classify(flags), StatusLabel.DELETED)

    def test_unmodified_and_ignored_have_no_label(self):
        self.assertIsNone(classify(StatusFlag.NONE))
        self.assertIsNone(classify(StatusFlag.IGNORED))
        print("  ✓ Unmodified and ignored paths get no label")


class TestPorcelainParsing(unittest.TestCase):
    """Translation of porcelain XY codes and -z records."""

    def test_flags_from_codes(self):
        self.assertEqual(flags_from_porcelain("??"), StatusFlag.WT_NEW)
        self.assertEqual(flags_from_porcelain("!!"), StatusFlag.IGNORED)
        self.assertEqual(flags_from_porcelain(" M"), StatusFlag.WT_MODIFIED)
        self.assertEqual(flags_from_porcelain("M "), StatusFlag.INDEX_MODIFIED)
        self.assertEqual(flags_from_porcelain("AM"), StatusFlag.INDEX_NEW | StatusFlag.WT_MODIFIED)
        self.assertEqual(flags_from_porcelain(" D"), StatusFlag.WT_DELETED)

    def test_all_unmerged_codes_are_conflicts(self):
        for code in ("DD", "AU", "UD", "UA", "DU", "AA", "UU"):
            with self.subTest(code=code):
                self.assertEqual(flags_from_porcelain(code), StatusFlag.CONFLICTED)
        print("  ✓ All unmerged XY codes map to CONFLICTED")

    def test_rename_reports_destination_and_skips_source(self):
        output = "R  notes/new name.md\0notes/old name.md\0?? draft.md\0"
        entries = list(parse_porcelain_z(output))

        self.assertEqual(entries, [
            ("notes/new name.md", StatusFlag.INDEX_RENAMED),
            ("draft.md", StatusFlag.WT_NEW),
        ])
        print("  ✓ Rename record keyed by destination path")

    def test_empty_output(self):
        self.assertEqual(list(parse_porcelain_z("")), [])

    def test_summarize_counts_labels(self):
        counts = summarize({
            "/r/a.md": StatusLabel.MODIFIED,
            "/r/b.md": StatusLabel.MODIFIED,
            "/r/c.md": StatusLabel.UNTRACKED,
        })
        self.assertEqual(counts, {"modified": 2, "untracked": 1})


class TestRepositoryStatus(unittest.TestCase):
    """Classification of states produced by the git CLI."""

    def setUp(self):
        print(f"\nSetting up test: {self._testMethodName}")
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.repo_dir = init_repo(self.temp_dir / "notes")

        write_file(self.repo_dir, "tracked.md", "original\n")
        write_file(self.repo_dir, "docs/guide.md", "guide\n")
        write_file(self.repo_dir, ".gitignore", "*.tmp\n")
        commit_all(self.repo_dir, "Initial commit")

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _tree_status(self):
        with locate_repository(self.repo_dir) as handle:
            return get_tree_status(handle)

    def _path_status(self, relative_path):
        with locate_repository(self.repo_dir) as handle:
            return get_path_status(handle, relative_path)

    def test_clean_repository_has_empty_status(self):
        self.assertEqual(self._tree_status(), {})
        print("  ✓ Clean tree reports no paths")

    def test_mixed_tree_status(self):
        write_file(self.repo_dir, "tracked.md", "changed\n")
        write_file(self.repo_dir, "drafts/deep/new.md", "new\n")
        write_file(self.repo_dir, "scratch.tmp", "ignored\n")
        (self.repo_dir / "docs" / "guide.md").unlink()

        statuses = self._tree_status()

        self.assertEqual(statuses, {
            str(self.repo_dir / "tracked.md"): StatusLabel.MODIFIED,
            str(self.repo_dir / "drafts" / "deep" / "new.md"): StatusLabel.UNTRACKED,
            str(self.repo_dir / "docs" / "guide.md"): StatusLabel.DELETED,
        })
        print("  ✓ Untracked directories recursed, ignored files excluded")

    def test_staged_then_edited_new_file(self):
        write_file(self.repo_dir, "fresh.md", "one\n")
        run_git(self.repo_dir, "add", "fresh.md")
        write_file(self.repo_dir, "fresh.md", "two\n")

        self.assertEqual(self._path_status("fresh.md"), StatusLabel.STAGED_MODIFIED)
        print("  ✓ Added-then-edited file reads as staged_modified")

    def test_staged_modification(self):
        write_file(self.repo_dir, "tracked.md", "changed\n")
        run_git(self.repo_dir, "add", "tracked.md")

        self.assertEqual(self._path_status("tracked.md"), StatusLabel.STAGED)

    def test_staged_rename_is_keyed_by_new_path(self):
        run_git(self.repo_dir, "config", "status.renames", "true")
        run_git(self.repo_dir, "mv", "tracked.md", "renamed.md")

        statuses = self._tree_status()

        self.assertEqual(statuses.get(str(self.repo_dir / "renamed.md")), StatusLabel.STAGED)
        self.assertNotIn(str(self.repo_dir / "tracked.md"), statuses)

    def test_single_path_query_on_unmodified_file(self):
        write_file(self.repo_dir, "tracked.md", "changed\n")

        self.assertIsNone(self._path_status("docs/guide.md"))
        self.assertEqual(self._path_status("tracked.md"), StatusLabel.MODIFIED)

    def test_single_path_query_with_glob_characters(self):
        write_file(self.repo_dir, "a*.md", "star\n")
        write_file(self.repo_dir, "ab.md", "plain\n")
        commit_all(self.repo_dir, "Add files")
        write_file(self.repo_dir, "ab.md", "changed\n")

        self.assertIsNone(self._path_status("a*.md"))
        self.assertEqual(self._path_status("ab.md"), StatusLabel.MODIFIED)
        print("  ✓ Single-path queries match literally")

    def test_unborn_head_reports_untracked(self):
        empty_dir = init_repo(self.temp_dir / "empty")
        write_file(empty_dir, "first.md", "hello\n")

        with locate_repository(empty_dir) as handle:
            statuses = get_tree_status(handle)

        self.assertEqual(statuses, {str(empty_dir / "first.md"): StatusLabel.UNTRACKED})

    def test_merge_conflict_is_conflicted(self):
        run_git(self.repo_dir, "checkout", "-b", "other")
        write_file(self.repo_dir, "tracked.md", "other side\n")
        commit_all(self.repo_dir, "Edit on other")
        run_git(self.repo_dir, "checkout", "main")
        write_file(self.repo_dir, "tracked.md", "main side\n")
        commit_all(self.repo_dir, "Edit on main")

        with self.assertRaises(subprocess.CalledProcessError):
            run_git(self.repo_dir, "merge", "other")

        self.assertEqual(self._path_status("tracked.md"), StatusLabel.CONFLICTED)
        self.assertEqual(self._tree_status(), {str(self.repo_dir / "tracked.md"): StatusLabel.CONFLICTED})
        print("  ✓ Conflicting merge reads as conflicted from both queries")

    def test_repeated_tree_status_is_unchanged(self):
        write_file(self.repo_dir, "tracked.md", "changed\n")
        write_file(self.repo_dir, "fresh.md", "one\n")
        run_git(self.repo_dir, "add", "fresh.md")
        write_file(self.repo_dir, "loose.md", "loose\n")

        first = self._tree_status()
        second = self._tree_status()

        self.assertEqual(first, second)
        self.assertEqual(len(first), 3)
        self.assertEqual(run_git(self.repo_dir, "diff", "--cached", "--name-only").split(), ["fresh.md"])
        self.assertEqual(self._path_status("loose.md"), StatusLabel.UNTRACKED)


if __name__ == "__main__":
    unittest.main(verbosity=2)
