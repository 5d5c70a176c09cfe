#!/usr/bin/env python3
"""
Tests for the command line surface: argument parsing, output streams and
exit codes (0 success, 1 user error, 2 internal failure).
"""

import io
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

import sys
sys.path.insert(0, str(Path(__file__).parent))

from click.testing import CliRunner
from git import Repo

from vgl.cli import cli, main


GIT_AVAILABLE = shutil.which("git") is not None


class CliTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()
        self.env = patch.dict(os.environ, {
            "VGL_NONINTERACTIVE": "1",
            "VGL_CEILING_DIRECTORY": str(self.temp_dir),
            "VGL_FETCH_ON_STATUS": "false",
        })
        self.env.start()

    def tearDown(self):
        self.env.stop()
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def run_vgl(self, *args):
        """Run vgl in-process; returns (exit code, stdout, stderr)."""
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(list(args))
        return code, out.getvalue(), err.getvalue()


class TestCliBasics(CliTestCase):

    def test_help_lists_verbs(self):
        result = CliRunner().invoke(cli, ["--help"])
        self.assertEqual(result.exit_code, 0)
        for verb in ("create", "track", "status", "switch", "jump", "split", "sync"):
            self.assertIn(verb, result.output)

    def test_version(self):
        code, out, _ = self.run_vgl("--version")
        self.assertEqual(code, 0)
        self.assertIn("vgl", out)

    def test_unknown_option_is_a_user_error(self):
        code, _, err = self.run_vgl("status", "--bogus")
        self.assertEqual(code, 1)
        self.assertIn("Error:", err)

    def test_no_repository(self):
        empty = self.temp_dir / "empty"
        empty.mkdir()
        code, out, err = self.run_vgl("-C", str(empty), "status")
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("Error: No git repository found", err)
        self.assertNotIn("Traceback", err)

    def test_bad_configuration(self):
        with patch.dict(os.environ, {"VGL_RENAME_PAIRING": "similarity"}):
            code, _, err = self.run_vgl("status")
        self.assertEqual(code, 1)
        self.assertIn("Configuration error", err)


@unittest.skipUnless(GIT_AVAILABLE, "git executable not available")
class TestCliWorkflow(CliTestCase):

    def setUp(self):
        super().setUp()
        self.root = self.temp_dir / "project"
        code, _, err = self.run_vgl("-C", str(self.temp_dir), "create", "project")
        self.assertEqual(code, 0, err)
        with Repo(str(self.root)) as repo:
            with repo.config_writer() as writer:
                writer.set_value("user", "name", "Test User")
                writer.set_value("user", "email", "test@example.com")

    def vgl(self, *args):
        return self.run_vgl("-C", str(self.root), *args)

    def test_track_commit_status(self):
        (self.root / "a.txt").write_text("hello\n")
        self.assertEqual(self.vgl("track", "a.txt")[0], 0)
        code, out, _ = self.vgl("commit", "First commit")
        self.assertEqual(code, 0)
        self.assertIn("First commit", out)

        code, out, _ = self.vgl("status", "-vv")
        self.assertEqual(code, 0)
        lines = out.splitlines()
        self.assertTrue(lines[0].startswith("LOCAL   "))
        self.assertIn("-- Tracked Files:", lines)
        self.assertIn("  a.txt", lines)

    def test_nothing_to_commit_exits_one(self):
        code, _, err = self.vgl("commit", "Empty")
        self.assertEqual(code, 1)
        self.assertIn("Nothing to commit", err)

    def test_nested_track_exits_one(self):
        inner = self.root / "lib"
        inner.mkdir()
        Repo.init(str(inner)).close()
        (inner / "x.c").write_text("int x;\n")
        code, _, err = self.vgl("track", "lib/x.c")
        self.assertEqual(code, 1)
        self.assertIn("nested repository", err)

    def test_multi_letter_flags(self):
        (self.root / "a.txt").write_text("hello\n")
        self.vgl("track", "a.txt")
        self.vgl("commit", "First")
        self.assertEqual(self.vgl("split", "--into", "feature")[0], 0)

        code, out, _ = self.vgl("switch", "-lb", "main")
        self.assertEqual(code, 0)
        self.assertIn("branch 'main'", out)

        code, _, _ = self.vgl("jump")
        self.assertEqual(code, 0)
        with Repo(str(self.root)) as repo:
            self.assertEqual(repo.active_branch.name, "feature")

    def test_log_and_abort(self):
        (self.root / "a.txt").write_text("hello\n")
        self.vgl("track", "a.txt")
        self.vgl("commit", "First")

        code, out, _ = self.vgl("log", "-n", "1")
        self.assertEqual(code, 0)
        self.assertIn("First", out)
        self.assertIn("(Test User)", out)

        code, out, _ = self.vgl("abort")
        self.assertEqual(code, 0)
        self.assertIn("No merge in progress.", out)

    def test_checkin_flags(self):
        self.assertEqual(self.vgl("switch", "-rr", "git@github.com:acme/widgets.git")[0], 0)
        code, out, _ = self.vgl("checkin", "-draft")
        self.assertEqual(code, 0)
        self.assertIn("Open your draft pull request: https://github.com/acme/widgets/compare/", out)

        code, _, err = self.vgl("checkin")
        self.assertEqual(code, 1)
        self.assertIn("-draft or -final", err)

    def test_unexpected_failure_exits_two(self):
        with patch("vgl.commands.status", side_effect=RuntimeError("kaboom")):
            code, _, err = self.vgl("status")
        self.assertEqual(code, 2)
        self.assertIn("Internal error: kaboom", err)


if __name__ == "__main__":
    unittest.main()
