#!/usr/bin/env python3
"""
Unit tests for context persistence.

Covers the key=value round trip, the defaulting rules for absent, blank and
malformed content, and the atomic rewrite performed by ContextStore.save().
"""

import shutil
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

# Add the project root to the path so we can import vgl modules
import sys
sys.path.insert(0, str(Path(__file__).parent))

from vgl.context.models import RepoContext
from vgl.context.store import ContextStore, dumps_context, loads_context, parse_records


class TestContextSerialization(unittest.TestCase):
    """Serializer and deserializer pair."""

    def setUp(self):
        self.root = Path("/work/project")

    def test_round_trip_preserves_every_field(self):
        context = RepoContext(
            local_root=self.root,
            local_branch="feature",
            remote_url="https://example.com/project.git",
            remote_branch="main",
            tracked_paths={"src/app.py", "README.md"},
            untracked_paths={"notes.txt"},
            undecided_paths={"scratch/todo.md"},
        )
        context.remember_as_alternate()
        context.local_branch = "other"

        loaded = loads_context(dumps_context(context), self.root)

        self.assertEqual(loaded.local_root, self.root)
        self.assertEqual(loaded.local_branch, "other")
        self.assertEqual(loaded.remote_url, "https://example.com/project.git")
        self.assertEqual(loaded.remote_branch, "main")
        self.assertEqual(loaded.tracked_paths, {"src/app.py", "README.md"})
        self.assertEqual(loaded.untracked_paths, {"notes.txt"})
        self.assertEqual(loaded.undecided_paths, {"scratch/todo.md"})
        self.assertIsNotNone(loaded.alternate)
        self.assertEqual(loaded.alternate.local_branch, "feature")
        self.assertIsNone(loaded.alternate.alternate)

    def test_dump_starts_with_header_and_timestamp(self):
        context = RepoContext(local_root=self.root)
        text = dumps_context(context, timestamp=datetime(2024, 5, 1, 12, 30, 0))
        lines = text.splitlines()
        self.assertEqual(lines[0], "# VGL Configuration")
        self.assertEqual(lines[1], "# 2024-05-01T12:30:00")
        self.assertIn("local.branch=main", lines)

    def test_dump_sorts_lists_and_omits_empty_values(self):
        context = RepoContext(local_root=self.root, tracked_paths={"b.txt", "a.txt"})
        text = dumps_context(context)
        self.assertIn("tracked.files=a.txt,b.txt", text)
        self.assertNotIn("untracked.files", text)
        self.assertNotIn("remote.url", text)
        self.assertNotIn("jump.", text)

    def test_absent_keys_take_defaults(self):
        loaded = loads_context("", self.root, default_branch="trunk")
        self.assertEqual(loaded.local_root, self.root)
        self.assertEqual(loaded.local_branch, "trunk")
        self.assertIsNone(loaded.remote_url)
        self.assertEqual(loaded.tracked_paths, set())
        self.assertIsNone(loaded.alternate)

    def test_blank_values_mean_unset(self):
        loaded = loads_context("local.branch=\nremote.url=   \ntracked.files=, ,\n", self.root)
        self.assertEqual(loaded.local_branch, "main")
        self.assertIsNone(loaded.remote_url)
        self.assertEqual(loaded.tracked_paths, set())

    def test_unparseable_content_yields_defaults(self):
        garbage = "\x00\x01 this is not a record\n=no key\n%%%%\nunknown.key=1\n"
        loaded = loads_context(garbage, self.root)
        self.assertEqual(loaded.local_root, self.root)
        self.assertEqual(loaded.local_branch, "main")
        self.assertIsNone(loaded.alternate)

    def test_remote_branch_without_url_is_dropped(self):
        loaded = loads_context("remote.branch=dev\n", self.root)
        self.assertIsNone(loaded.remote_branch)

    def test_display_suffix_is_stripped_from_directory(self):
        loaded = loads_context("local.dir=/other/repo :: main\n", self.root)
        self.assertEqual(loaded.local_root, Path("/other/repo"))

    def test_overlapping_decisions_are_repaired(self):
        loaded = loads_context(
            "tracked.files=a.txt,b.txt\nuntracked.files=b.txt,c.txt\nundecided.files=a.txt,d.txt\n",
            self.root
        )
        self.assertEqual(loaded.tracked_paths, {"a.txt", "b.txt"})
        self.assertEqual(loaded.untracked_paths, {"c.txt"})
        self.assertEqual(loaded.undecided_paths, {"d.txt"})
        self.assertTrue(loaded.check_invariants())

    def test_jump_context_exists_only_with_location(self):
        self.assertIsNone(loads_context("jump.remote.url=https://x\n", self.root).alternate)
        alternate = loads_context("jump.local.branch=dev\n", self.root).alternate
        self.assertIsNotNone(alternate)
        self.assertEqual(alternate.local_branch, "dev")
        self.assertEqual(alternate.local_root, self.root)

    def test_paths_keep_surrounding_spaces(self):
        context = RepoContext(local_root=self.root, tracked_paths={" lead.txt", "trail.txt ", "plain.txt"})
        loaded = loads_context(dumps_context(context), self.root)
        self.assertEqual(loaded.tracked_paths, {" lead.txt", "trail.txt ", "plain.txt"})

    def test_comments_and_escapes(self):
        records = parse_records("# comment\n! also a comment\nlocal.branch=a\\\\b\n")
        self.assertEqual(records, {"local.branch": "a\\b"})


class TestContextStore(unittest.TestCase):
    """File-backed store."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        (self.temp_dir / ".git").mkdir()
        self.store = ContextStore(self.temp_dir)

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_missing_file_loads_defaults(self):
        self.assertFalse(self.store.exists())
        context = self.store.load()
        self.assertEqual(context.local_root, self.temp_dir.resolve())
        self.assertEqual(context.local_branch, "main")

    def test_save_then_load_in_fresh_store(self):
        context = RepoContext(local_root=self.temp_dir, local_branch="dev", tracked_paths={"x.py"})
        self.store.save(context)
        self.assertTrue(self.store.exists())

        reloaded = ContextStore(self.temp_dir).load()
        self.assertEqual(reloaded.local_branch, "dev")
        self.assertEqual(reloaded.tracked_paths, {"x.py"})
        leftovers = [p.name for p in self.temp_dir.iterdir() if p.name.endswith(".tmp")]
        self.assertEqual(leftovers, [])

    def test_load_is_cached(self):
        self.assertIs(self.store.load(), self.store.load())

    def test_binary_garbage_does_not_raise(self):
        self.store.path.write_bytes(b"\xff\xfe\x00garbage\x80\x81=\n")
        context = self.store.load()
        self.assertEqual(context.local_branch, "main")

    def test_recorded_directory_without_repository_is_repaired(self):
        self.store.path.write_text(f"local.dir={self.temp_dir / 'gone'}\nlocal.branch=dev\n")
        context = self.store.load()
        self.assertEqual(context.local_root, self.temp_dir.resolve())
        self.assertEqual(context.local_branch, "dev")
        self.assertTrue(self.store.repaired_root)

    def test_recorded_directory_of_other_repository_is_kept(self):
        other = self.temp_dir / "elsewhere"
        (other / ".git").mkdir(parents=True)
        self.store.path.write_text(f"local.dir={other}\n")
        context = self.store.load()
        self.assertEqual(context.local_root, other.resolve())
        self.assertFalse(self.store.repaired_root)

    def test_relative_jump_directory_is_resolved(self):
        (self.temp_dir / "other").mkdir()
        self.store.path.write_text("jump.local.dir=sub/../other\njump.local.branch=dev\n")
        context = self.store.load()
        self.assertEqual(context.alternate.local_root, (self.temp_dir / "other").resolve())
        self.assertEqual(context.alternate.local_branch, "dev")

    def test_delete(self):
        self.store.save(RepoContext(local_root=self.temp_dir))
        self.assertTrue(self.store.delete())
        self.assertFalse(self.store.exists())
        self.assertTrue(self.store.delete())


if __name__ == "__main__":
    unittest.main()
