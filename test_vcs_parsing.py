#!/usr/bin/env python3
"""Unit tests for the parsers of git's machine-readable output and the provider's file hashing."""

import unittest
from pathlib import Path
from unittest.mock import MagicMock

import sys
sys.path.insert(0, str(Path(__file__).parent))

from git import GitCommandError

from vgl.vcs.models import ChangeEntry, ChangeKind
from vgl.vcs.parsing import (
    parse_left_right_count,
    parse_ls_tree,
    parse_name_status,
    parse_porcelain_status,
)
from vgl.vcs.provider import GitStatusProvider


class TestPorcelainStatus(unittest.TestCase):

    def test_codes_map_onto_sets(self):
        output = "\0".join([
            "A  added.txt",
            "M  staged.txt",
            " M worktree.txt",
            "D  removed.txt",
            " D missing.txt",
            "?? new.txt",
            "!! build/",
            "UU conflict.txt",
            "MM both.txt",
        ]) + "\0"
        status = parse_porcelain_status(output)

        self.assertEqual(status.added, {"added.txt"})
        self.assertEqual(status.changed, {"staged.txt", "both.txt"})
        self.assertEqual(status.modified, {"worktree.txt", "both.txt"})
        self.assertEqual(status.removed, {"removed.txt"})
        self.assertEqual(status.missing, {"missing.txt"})
        self.assertEqual(status.untracked, {"new.txt"})
        self.assertEqual(status.ignored, {"build"})
        self.assertEqual(status.conflicting, {"conflict.txt"})
        self.assertIn("conflict.txt", status.live_tracked)
        self.assertTrue(status.has_changes())

    def test_rename_record_skips_source_field(self):
        status = parse_porcelain_status("R  new.txt\0old.txt\0?? other.txt\0")
        self.assertEqual(status.changed, {"new.txt"})
        self.assertEqual(status.untracked, {"other.txt"})

    def test_empty_output(self):
        self.assertFalse(parse_porcelain_status("").has_changes())


class TestNameStatus(unittest.TestCase):

    def test_all_kinds(self):
        output = "A\0new.txt\0M\0changed.txt\0D\0gone.txt\0R100\0a.txt\0b.txt\0C075\0src.c\0copy.c\0"
        entries = parse_name_status(output)
        self.assertEqual(entries, [
            ChangeEntry("new.txt", ChangeKind.ADDED),
            ChangeEntry("changed.txt", ChangeKind.MODIFIED),
            ChangeEntry("gone.txt", ChangeKind.DELETED),
            ChangeEntry("b.txt", ChangeKind.RENAMED, source_path="a.txt"),
            ChangeEntry("copy.c", ChangeKind.RENAMED, source_path="src.c", is_copy=True),
        ])
        self.assertEqual(entries[3].describe(), "R a.txt -> b.txt")
        self.assertEqual(entries[4].letter, "C")

    def test_truncated_record_is_dropped(self):
        self.assertEqual(parse_name_status("R100\0only-source.txt"), [])


class TestMiscParsers(unittest.TestCase):

    def test_ls_tree(self):
        output = "100644 blob aaa111\tREADME.md\0040000 tree bbb222\tsrc\0100755 blob ccc333\trun.sh\0"
        self.assertEqual(parse_ls_tree(output), {"README.md": "aaa111", "run.sh": "ccc333"})

    def test_left_right_count(self):
        self.assertEqual(parse_left_right_count("2\t0\n"), (2, 0))
        with self.assertRaises(ValueError):
            parse_left_right_count("garbage")


class TestWorkingFileHashes(unittest.TestCase):

    def test_failed_batch_is_hashed_one_path_at_a_time(self):
        def hash_object(*args):
            paths = args[1:]
            if len(paths) > 1 or paths[0] == "link":
                raise GitCommandError(["git", "hash-object"], 128, b"fatal: Unable to hash link")
            return f"blob-{paths[0]}\n"

        repo = MagicMock()
        repo.git.hash_object.side_effect = hash_object

        hashes = GitStatusProvider()._hash_working_files(repo, ["b.txt", "link", "c.txt"])

        self.assertEqual(hashes, {"b.txt": "blob-b.txt", "c.txt": "blob-c.txt"})

    def test_successful_batch_maps_paths_in_order(self):
        repo = MagicMock()
        repo.git.hash_object.return_value = "111\n222"
        hashes = GitStatusProvider()._hash_working_files(repo, ["a.txt", "b.txt"])
        self.assertEqual(hashes, {"a.txt": "111", "b.txt": "222"})


if __name__ == "__main__":
    unittest.main()
