"""
Rename unification across the committed and working comparisons.

Each comparison is processed on its own:

1. natively detected renames and copies are accepted and their endpoints are
   removed from the remaining added/deleted entries;
2. with ``order`` pairing, the remaining added and deleted entries are sorted
   by path and paired one-to-one, each pair becoming a synthetic rename.

The renamed sets of the two comparisons are then unioned without merging: a
path renamed in history and again in the working tree yields two entries.
Order pairing is known to mispair unrelated adds and deletes that happen to
line up; ``none`` disables it.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Set

from ..vcs.models import ChangeEntry, ChangeKind


logger = logging.getLogger('vgl.status.renames')

PAIRING_ORDER = "order"
PAIRING_NONE = "none"

COMMITTED = "committed"
WORKING = "working"
INCOMING = "incoming"


@dataclass(frozen=True)
class ComparisonResult:
    """Unified entries of one comparison context."""
    name: str
    entries: tuple = ()

    def _of(self, kind: ChangeKind) -> List[ChangeEntry]:
        return [entry for entry in self.entries if entry.kind is kind]

    @property
    def added(self) -> List[ChangeEntry]:
        return self._of(ChangeKind.ADDED)

    @property
    def modified(self) -> List[ChangeEntry]:
        return self._of(ChangeKind.MODIFIED)

    @property
    def deleted(self) -> List[ChangeEntry]:
        return self._of(ChangeKind.DELETED)

    @property
    def renamed(self) -> List[ChangeEntry]:
        return self._of(ChangeKind.RENAMED)

    @property
    def rename_targets(self) -> Set[str]:
        return {entry.path for entry in self.renamed}

    @property
    def rename_sources(self) -> Set[str]:
        return {entry.source_path for entry in self.renamed if entry.source_path and not entry.is_copy}

    def paths(self) -> Set[str]:
        return {entry.path for entry in self.entries}

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class RenameReport:
    """Both unified comparisons and the union of their renames."""
    committed: ComparisonResult = field(default_factory=lambda: ComparisonResult(COMMITTED))
    working: ComparisonResult = field(default_factory=lambda: ComparisonResult(WORKING))

    @property
    def renamed(self) -> List[ChangeEntry]:
        return self.committed.renamed + self.working.renamed


def _sort_key(entry: ChangeEntry):
    return (entry.path, entry.kind.value, entry.source_path or "")


def unify_comparison(entries: Iterable[ChangeEntry], context_name: str = WORKING,
                     pairing: str = PAIRING_ORDER) -> ComparisonResult:
    """Apply native and heuristic rename detection to one comparison."""
    if pairing not in (PAIRING_ORDER, PAIRING_NONE):
        raise ValueError(f"Unknown rename pairing: {pairing}")

    unique: List[ChangeEntry] = []
    seen: Set[str] = set()
    for entry in entries:
        if entry.path in seen:
            continue
        seen.add(entry.path)
        unique.append(entry)

    renamed = [entry for entry in unique if entry.kind is ChangeKind.RENAMED]
    endpoints: Set[str] = set()
    for entry in renamed:
        endpoints.add(entry.path)
        # a copy leaves its source in place
        if entry.source_path and not entry.is_copy:
            endpoints.add(entry.source_path)

    added = sorted((e for e in unique if e.kind is ChangeKind.ADDED and e.path not in endpoints),
                   key=lambda e: e.path)
    deleted = sorted((e for e in unique if e.kind is ChangeKind.DELETED and e.path not in endpoints),
                     key=lambda e: e.path)
    modified = [e for e in unique if e.kind is ChangeKind.MODIFIED and e.path not in endpoints]

    if pairing == PAIRING_ORDER and added and deleted:
        pairs = min(len(added), len(deleted))
        for new, old in zip(added[:pairs], deleted[:pairs]):
            logger.debug(f"[{context_name}] pairing {old.path} -> {new.path}")
            renamed.append(ChangeEntry(path=new.path, kind=ChangeKind.RENAMED, source_path=old.path))
        added = added[pairs:]
        deleted = deleted[pairs:]

    result = sorted(added + deleted + modified + renamed, key=_sort_key)
    return ComparisonResult(name=context_name, entries=tuple(result))


def unify_renames(committed: Iterable[ChangeEntry], working: Iterable[ChangeEntry],
                  pairing: str = PAIRING_ORDER) -> RenameReport:
    """Unify both comparisons; the renamed union keeps one entry per context."""
    return RenameReport(
        committed=unify_comparison(committed, COMMITTED, pairing),
        working=unify_comparison(working, WORKING, pairing)
    )
