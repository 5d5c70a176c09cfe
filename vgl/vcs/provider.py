"""
Git-backed status provider.

This is the narrow interface through which the reconciliation engine talks to
git. Everything here is a thin wrapper over GitPython; the object store, the
diff machinery and the transport all stay inside git itself.
"""

import dataclasses
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set

from git import Repo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..errors import RepositoryNotFoundError
from .branch_utils import (
    get_current_local_branch,
    get_upstream_branch,
    list_local_branches,
    list_remote_branches,
)
from .models import ChangeEntry, ChangeKind, CommitInfo, TrackingCounts, VcsStatus
from .parsing import parse_left_right_count, parse_ls_tree, parse_name_status, parse_porcelain_status
from .remote_utils import fetch_remote, get_remote_url


# git's well-known id for the empty tree
EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

_HASH_BATCH_SIZE = 200


def find_vcs_root(start: Path, ceiling: Optional[Path] = None) -> Optional[Path]:
    """
    Walk upward from ``start`` to the nearest directory holding ``.git``.

    The walk never continues past ``ceiling`` (the ceiling itself is checked).
    """
    current = Path(start).resolve()
    ceiling = Path(ceiling).resolve() if ceiling is not None else None
    while True:
        if (current / ".git").exists():
            return current
        if ceiling is not None and current == ceiling:
            return None
        parent = current.parent
        if parent == current:
            return None
        current = parent


class GitStatusProvider:
    """VCS collaborator implemented over GitPython."""

    def __init__(self, remote_name: str = "origin"):
        self.remote_name = remote_name
        self.logger = logging.getLogger('vgl.vcs.provider')

    # ------------------------------------------------------------------
    # Repository handle
    # ------------------------------------------------------------------

    @contextmanager
    def open_repository(self, root: Path) -> Iterator[Repo]:
        """Open the repository at ``root``; the handle is released on every exit path."""
        try:
            repo = Repo(str(root))
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryNotFoundError(root) from e
        try:
            yield repo
        finally:
            repo.close()

    # ------------------------------------------------------------------
    # Working tree status
    # ------------------------------------------------------------------

    def status(self, repo: Repo) -> VcsStatus:
        """Return the raw added/changed/modified/removed/missing/untracked/ignored sets."""
        output = repo.git.status("--porcelain", "-z", "--no-renames", "--untracked-files=all")
        parsed = parse_porcelain_status(output)
        return dataclasses.replace(parsed, ignored=frozenset(self.scan_ignored(repo)))

    def scan_ignored(self, repo: Repo) -> Set[str]:
        """Best-effort scan for ignored paths; any failure yields an empty set."""
        try:
            output = repo.git.status("--porcelain", "-z", "--ignored", "--untracked-files=normal")
            return set(parse_porcelain_status(output).ignored)
        except Exception as e:
            self.logger.debug(f"Ignored-path scan failed: {e}")
            return set()

    def has_commits(self, repo: Repo) -> bool:
        """True once HEAD resolves to a commit (the branch is not unborn)."""
        try:
            return repo.head.is_valid()
        except Exception:
            return False

    def head_tree_paths(self, repo: Repo) -> Set[str]:
        """Paths of every file recorded in the HEAD tree."""
        if not self.has_commits(repo):
            return set()
        return {item.path for item in repo.head.commit.tree.traverse() if item.type == "blob"}

    # ------------------------------------------------------------------
    # Comparisons
    # ------------------------------------------------------------------

    def diff_trees(self, repo: Repo, old: Optional[str], new: str) -> List[ChangeEntry]:
        """Compare two tree-ish revisions with git's rename/copy detection."""
        base = old or EMPTY_TREE_SHA
        output = repo.git.diff("--name-status", "-z", "-M", "-C", base, new, "--")
        return parse_name_status(output)

    def diff_tree_to_working_tree(self, repo: Repo, old: Optional[str] = "HEAD",
                                  extra_added: Iterable[str] = ()) -> List[ChangeEntry]:
        """
        Compare a reference tree with the live working tree.

        git only compares paths it knows through the index, so untracked
        candidates are appended as additions. An untracked candidate whose
        content is byte-identical to a deleted tracked file is reported as a
        rename, which is what git's own exact-rename pass would find.
        """
        base = old if old and self.resolve_ref(repo, old) else EMPTY_TREE_SHA
        output = repo.git.diff("--name-status", "-z", "-M", "-C", base, "--")
        entries = parse_name_status(output)

        known = {entry.path for entry in entries}
        candidates = sorted(set(extra_added) - known)
        deleted = [entry for entry in entries if entry.kind is ChangeKind.DELETED]

        renamed_targets: Dict[str, str] = {}
        if deleted and candidates and base != EMPTY_TREE_SHA:
            renamed_targets = self._match_exact_renames(repo, base, deleted, candidates)

        if renamed_targets:
            sources = set(renamed_targets.values())
            entries = [entry for entry in entries
                       if not (entry.kind is ChangeKind.DELETED and entry.path in sources)]
            for target in sorted(renamed_targets):
                entries.append(ChangeEntry(path=target, kind=ChangeKind.RENAMED,
                                           source_path=renamed_targets[target]))

        for path in candidates:
            if path not in renamed_targets:
                entries.append(ChangeEntry(path=path, kind=ChangeKind.ADDED))
        return entries

    def _match_exact_renames(self, repo: Repo, base: str, deleted: List[ChangeEntry],
                             candidates: List[str]) -> Dict[str, str]:
        """Map candidate path -> deleted source path for identical content."""
        try:
            blobs = parse_ls_tree(repo.git.ls_tree("-r", "-z", base))
            by_blob: Dict[str, List[str]] = {}
            for entry in sorted(deleted, key=lambda e: e.path):
                blob = blobs.get(entry.path)
                if blob:
                    by_blob.setdefault(blob, []).append(entry.path)
            if not by_blob:
                return {}

            hashes = self._hash_working_files(repo, candidates)
            matches: Dict[str, str] = {}
            for path in candidates:
                sources = by_blob.get(hashes.get(path, ""))
                if sources:
                    matches[path] = sources.pop(0)
            return matches
        except (GitCommandError, OSError) as e:
            self.logger.debug(f"Exact rename detection skipped: {e}")
            return {}

    def _hash_working_files(self, repo: Repo, paths: List[str]) -> Dict[str, str]:
        """Blob ids of working files; paths git cannot hash are left out."""
        hashes: Dict[str, str] = {}
        for start in range(0, len(paths), _HASH_BATCH_SIZE):
            batch = paths[start:start + _HASH_BATCH_SIZE]
            try:
                output = repo.git.hash_object("--", *batch)
            except GitCommandError as e:
                # one unhashable path fails the whole batch; retry one by one
                self.logger.debug(f"Batch hash failed, hashing individually: {e}")
                for path in batch:
                    try:
                        hashes[path] = repo.git.hash_object("--", path).strip()
                    except GitCommandError as inner:
                        self.logger.debug(f"Cannot hash {path}: {inner}")
                continue
            for path, blob in zip(batch, output.split()):
                hashes[path] = blob
        return hashes

    # ------------------------------------------------------------------
    # Refs and tracking
    # ------------------------------------------------------------------

    def resolve_ref(self, repo: Repo, name: str) -> Optional[str]:
        """Resolve a ref to a commit id, or None when it does not exist."""
        if not name:
            return None
        try:
            return repo.git.rev_parse("--verify", "--quiet", f"{name}^{{commit}}").strip() or None
        except GitCommandError:
            return None

    def merge_base(self, repo: Repo, first: str, second: str) -> Optional[str]:
        """Best common ancestor of two revisions, or None for unrelated histories."""
        try:
            bases = repo.merge_base(first, second)
        except GitCommandError as e:
            self.logger.debug(f"No merge base for {first} and {second}: {e}")
            return None
        return bases[0].hexsha if bases else None

    def tracking_status(self, repo: Repo, branch: str, remote_ref: str) -> Optional[TrackingCounts]:
        """Ahead/behind counts of ``branch`` relative to ``remote_ref``."""
        if self.resolve_ref(repo, branch) is None or self.resolve_ref(repo, remote_ref) is None:
            return None
        output = repo.git.rev_list("--left-right", "--count", f"{branch}...{remote_ref}")
        ahead, behind = parse_left_right_count(output)
        return TrackingCounts(ahead=ahead, behind=behind)

    def fetch(self, repo: Repo, remote_name: Optional[str] = None) -> bool:
        """Best-effort fetch; returns False on any failure."""
        return fetch_remote(repo, remote_name or self.remote_name)

    def current_branch(self, repo: Repo) -> Optional[str]:
        return get_current_local_branch(repo)

    def remote_url(self, repo: Repo, remote_name: Optional[str] = None) -> Optional[str]:
        return get_remote_url(repo, remote_name or self.remote_name)

    def upstream_branch(self, repo: Repo, branch: str) -> Optional[str]:
        return get_upstream_branch(repo, branch)

    def local_branches(self, repo: Repo) -> List[str]:
        return list_local_branches(repo)

    def remote_branches(self, repo: Repo, remote_name: Optional[str] = None) -> List[str]:
        return list_remote_branches(repo, remote_name or self.remote_name)

    def remote_ref(self, branch: str, remote_name: Optional[str] = None) -> str:
        """Name of the remote-tracking ref for a remote branch."""
        return f"{remote_name or self.remote_name}/{branch}"

    def list_commits(self, repo: Repo, rev_range: str, max_count: Optional[int] = None) -> List[CommitInfo]:
        """Commits reachable in ``rev_range`` (e.g. ``origin/main..HEAD``), newest first."""
        try:
            return [
                CommitInfo(
                    short_id=commit.hexsha[:7],
                    summary=commit.summary if isinstance(commit.summary, str) else commit.summary.decode("utf-8", "replace"),
                    author=commit.author.name or "",
                    committed_at=commit.committed_datetime
                )
                for commit in repo.iter_commits(rev_range, max_count=max_count)
            ]
        except (GitCommandError, ValueError) as e:
            self.logger.debug(f"Could not list commits for {rev_range}: {e}")
            return []
