#!/usr/bin/env python3
"""
Unit tests for the status summary formatter.

The compact counts must equal the lengths of the lists printed at the higher
verbosity tiers, for every tier.
"""

import unittest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent))

from vgl.context.models import RepoContext
from vgl.status.classifier import FileCategory, FileClassification
from vgl.status.formatter import (
    SummaryFormatter,
    Verbosity,
    render_context_state,
    render_status,
    truncate_middle,
)
from vgl.status.renames import INCOMING, unify_comparison, unify_renames
from vgl.status.service import StatusReport
from vgl.status.sync_state import SyncKind, SyncState
from vgl.vcs.models import ChangeEntry, ChangeKind, CommitInfo


def section(lines, title):
    """Entries listed under ``-- title:``."""
    start = lines.index(f"-- {title}:") + 1
    items = []
    for line in lines[start:]:
        if not line.startswith("  ") or line.startswith("  --"):
            break
        items.append(line.strip())
    return [] if items == ["(none)"] else items


def build_report(remote: bool = True) -> StatusReport:
    context = RepoContext(local_root=Path("/home/user/projects/example"), local_branch="main",
                          remote_url="https://example.com/example.git" if remote else None)
    classification = FileClassification(
        categories={
            "README.md": FileCategory.TRACKED,
            "src/app.py": FileCategory.TRACKED,
            "b.txt": FileCategory.TRACKED,
            "src/util.py": FileCategory.TRACKED,
            "notes.txt": FileCategory.UNTRACKED,
            "draft.md": FileCategory.UNDECIDED,
            "build": FileCategory.IGNORED,
            "vendor/lib": FileCategory.IGNORED,
        },
        nested_roots={"vendor/lib"}
    )
    working = [
        ChangeEntry("src/app.py", ChangeKind.MODIFIED),
        ChangeEntry("b.txt", ChangeKind.RENAMED, source_path="a.txt"),
        ChangeEntry("src/util.py", ChangeKind.ADDED),
        ChangeEntry("old.cfg", ChangeKind.DELETED),
    ]
    committed = [ChangeEntry("README.md", ChangeKind.MODIFIED)]
    renames = unify_renames(committed, working, pairing="none")
    incoming = unify_comparison([ChangeEntry("CHANGELOG.md", ChangeKind.MODIFIED),
                                 ChangeEntry("docs/guide.md", ChangeKind.ADDED)], INCOMING, "none")
    return StatusReport(
        context=context,
        classification=classification,
        renames=renames,
        sync=SyncState(SyncKind.DIVERGED, ahead=2, behind=1) if remote else SyncState(SyncKind.LOCAL_ONLY),
        incoming=incoming if remote else unify_comparison([], INCOMING),
        commits_to_push=[CommitInfo("abc1234", "Second"), CommitInfo("def5678", "First")] if remote else [],
        commits_to_pull=[CommitInfo("9abcdef", "Remote fix")] if remote else [],
        local_branches=["feature", "main"],
        remote_branches=["main"] if remote else []
    )


class TestTruncateMiddle(unittest.TestCase):

    def test_short_text_untouched(self):
        self.assertEqual(truncate_middle("short", 35), "short")

    def test_middle_replaced(self):
        text = "abcdefghijklmnopqrstuvwxyz"
        result = truncate_middle(text, 11)
        self.assertEqual(result, "abcd...wxyz")
        self.assertEqual(len(result), 11)


class TestSummaryFormatter(unittest.TestCase):

    def test_default_tier_has_five_lines(self):
        lines = render_status(build_report(), Verbosity.DEFAULT)
        self.assertEqual(len(lines), 5)
        self.assertTrue(lines[0].startswith("LOCAL   "))
        self.assertTrue(lines[0].endswith(" :: main"))
        self.assertEqual(lines[1], "REMOTE  https://example.com/example.git :: main (diverged: ahead 2, behind 1)")
        self.assertEqual(lines[2], "COMMITS 4 to Commit, 2 to Push, 1 to Pull")
        self.assertEqual(lines[3], "FILES   1 Added, 1 Modified, 1 Renamed, 1 Deleted")
        self.assertEqual(lines[4], "        1 Undecided, 4 Tracked, 1 Untracked, 2 Ignored")

    def test_local_only_remote_line(self):
        lines = render_status(build_report(remote=False))
        self.assertEqual(lines[1], "REMOTE  (none) :: (none) (local only)")

    def test_elevated_lists_match_counts(self):
        report = build_report()
        lines = render_status(report, Verbosity.ELEVATED)

        to_commit = section(lines, "Files to Commit")
        self.assertEqual(len(to_commit), len(report.files_to_commit))
        self.assertIn("R a.txt -> b.txt", to_commit)
        self.assertEqual(section(lines, "Files to Push"), ["M README.md"])
        self.assertEqual(section(lines, "Commits to Push"), ["abc1234 Second", "def5678 First"])
        self.assertEqual(section(lines, "Commits to Pull"), ["9abcdef Remote fix"])
        self.assertNotIn("-- Tracked Files:", lines)

    def test_files_to_merge_listed_after_files_to_push(self):
        report = build_report()
        lines = render_status(report, Verbosity.ELEVATED)

        to_merge = section(lines, "Files to Merge")
        self.assertEqual(len(to_merge), len(report.files_to_merge))
        self.assertEqual(to_merge, ["M CHANGELOG.md", "A docs/guide.md"])
        self.assertLess(lines.index("-- Files to Push:"), lines.index("-- Files to Merge:"))

    def test_files_to_merge_empty_without_remote(self):
        lines = render_status(build_report(remote=False), Verbosity.ELEVATED)
        self.assertEqual(section(lines, "Files to Merge"), [])

    def test_full_lists_match_classification_counts(self):
        report = build_report()
        lines = render_status(report, Verbosity.FULL)
        counts = report.classification.counts()

        self.assertEqual(len(section(lines, "Undecided Files")), counts[FileCategory.UNDECIDED])
        self.assertEqual(len(section(lines, "Tracked Files")), counts[FileCategory.TRACKED])
        self.assertEqual(len(section(lines, "Untracked Files")), counts[FileCategory.UNTRACKED])
        ignored = section(lines, "Ignored Files")
        self.assertEqual(len(ignored), counts[FileCategory.IGNORED])
        self.assertIn("vendor/lib (repo)", ignored)
        self.assertIn("  * main", lines)
        self.assertIn("    feature", lines)

    def test_counts_identical_across_tiers(self):
        report = build_report()
        compact = render_status(report, Verbosity.DEFAULT)
        full = render_status(report, Verbosity.FULL)
        for label in ("COMMITS", "FILES"):
            self.assertEqual([l for l in compact if l.startswith(label)],
                             [l for l in full if l.startswith(label)])

    def test_default_tier_truncates_long_paths(self):
        report = build_report()
        report.context.local_root = Path("/very/long/path/" + "x" * 60 + "/repository")
        line = SummaryFormatter(Verbosity.DEFAULT, max_path=35).local_lines(report)[0]
        self.assertIn("...", line)
        full_line = SummaryFormatter(Verbosity.FULL).local_lines(report)[0]
        self.assertNotIn("...", full_line)


class TestRenderContextState(unittest.TestCase):

    def test_without_jump_context(self):
        context = RepoContext(local_root=Path("/repo"), local_branch="main")
        lines = render_context_state(context)
        self.assertEqual(len(lines), 4)
        self.assertEqual(lines[0], "LOCAL   /repo  :: main")
        self.assertEqual(lines[1], "        (none) :: (none)")
        self.assertEqual(lines[2], "REMOTE  (none) :: (none)")

    def test_same_directory_jump_context(self):
        context = RepoContext(local_root=Path("/repo"), local_branch="main")
        context.remember_as_alternate()
        context.local_branch = "feature"
        lines = render_context_state(context)
        self.assertIn("(same)", lines[1])
        self.assertTrue(lines[1].endswith(":: main"))
        self.assertTrue(lines[0].endswith(":: feature"))
        separators = {line.index(" :: ") for line in lines}
        self.assertEqual(len(separators), 1)


if __name__ == "__main__":
    unittest.main()
