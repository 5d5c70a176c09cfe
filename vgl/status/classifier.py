"""
Four-way partition of workspace paths.

Every path reported live by git or recorded in the context lands in exactly
one of Tracked, Untracked, Undecided or Ignored. Precedence, first match wins:

1. paths inside a nested repository, ``.git`` and the context file itself are
   excluded; nested repository roots are Ignored and flagged as repositories;
2. recorded untracked decisions are Untracked;
3. HEAD, index and worktree changes, recorded tracked decisions and working
   rename targets are Tracked;
4. git-ignored paths are Ignored;
5. remaining git-untracked paths are Undecided.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from ..context.models import RepoContext
from ..context.nested import is_inside_nested
from ..vcs.models import VcsStatus


logger = logging.getLogger('vgl.status.classifier')


class FileCategory(Enum):
    TRACKED = "tracked"
    UNTRACKED = "untracked"
    UNDECIDED = "undecided"
    IGNORED = "ignored"


@dataclass
class FileClassification:
    """Exclusive mapping from path to category, plus the nested repository roots."""
    categories: Dict[str, FileCategory] = field(default_factory=dict)
    nested_roots: Set[str] = field(default_factory=set)

    def category_of(self, path: str) -> Optional[FileCategory]:
        return self.categories.get(path)

    def paths(self, category: FileCategory) -> List[str]:
        return sorted(path for path, value in self.categories.items() if value is category)

    @property
    def tracked(self) -> List[str]:
        return self.paths(FileCategory.TRACKED)

    @property
    def untracked(self) -> List[str]:
        return self.paths(FileCategory.UNTRACKED)

    @property
    def undecided(self) -> List[str]:
        return self.paths(FileCategory.UNDECIDED)

    @property
    def ignored(self) -> List[str]:
        return self.paths(FileCategory.IGNORED)

    def is_repository(self, path: str) -> bool:
        return path in self.nested_roots

    def display_name(self, path: str) -> str:
        return f"{path} (repo)" if self.is_repository(path) else path

    def counts(self) -> Dict[FileCategory, int]:
        totals = {category: 0 for category in FileCategory}
        for value in self.categories.values():
            totals[value] += 1
        return totals

    def filtered(self, keep) -> "FileClassification":
        """Copy keeping only paths for which ``keep(path)`` is true."""
        return FileClassification(
            categories={path: value for path, value in self.categories.items() if keep(path)},
            nested_roots={path for path in self.nested_roots if keep(path)}
        )


def _excluded(path: str, nested_roots: Iterable[str], context_file_name: str) -> bool:
    if path == ".git" or path.startswith(".git/"):
        return True
    if path == context_file_name:
        return True
    return is_inside_nested(path, nested_roots)


def classify(status: VcsStatus, head_paths: Iterable[str], context: RepoContext,
             nested_roots: Iterable[str], context_file_name: str = ".vgl",
             rename_targets: Iterable[str] = (), rename_sources: Iterable[str] = ()) -> FileClassification:
    """
    Compute the partition for one working tree.

    Sources of working-tree renames are represented by their rename entry and
    left out of the partition; their targets stay tracked.
    """
    nested = sorted(set(nested_roots))
    moved_away = set(rename_sources) - set(rename_targets)
    tracked_sources = (set(head_paths) | status.live_tracked | context.tracked_paths
                       | set(rename_targets))

    universe = (tracked_sources | context.untracked_paths | status.ignored | status.untracked)

    classification = FileClassification(nested_roots=set(nested))
    for root in nested:
        classification.categories[root] = FileCategory.IGNORED

    for path in universe:
        if path in moved_away or _excluded(path, nested, context_file_name):
            continue
        if path in context.untracked_paths:
            category = FileCategory.UNTRACKED
        elif path in tracked_sources:
            category = FileCategory.TRACKED
        elif path in status.ignored:
            category = FileCategory.IGNORED
        else:
            category = FileCategory.UNDECIDED
        classification.categories[path] = category

    logger.debug(f"Classified {len(classification.categories)} paths ({len(nested)} nested repositories)")
    return classification


def refresh_undecided(context: RepoContext, classification: FileClassification) -> bool:
    """Rewrite the context's undecided list from a live classification; returns True when it changed."""
    live = set(classification.undecided)
    if live == context.undecided_paths:
        return False
    context.set_undecided(live)
    return True
