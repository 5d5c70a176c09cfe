"""Data structures exchanged with the version-control collaborator."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional


class ChangeKind(Enum):
    """Kind of change a path underwent within one comparison."""
    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"


@dataclass(frozen=True)
class ChangeEntry:
    """A single path change inside one comparison context."""
    path: str
    kind: ChangeKind
    source_path: Optional[str] = None
    is_copy: bool = False

    @property
    def letter(self) -> str:
        if self.kind is ChangeKind.RENAMED and self.is_copy:
            return "C"
        return self.kind.value

    def describe(self) -> str:
        if self.kind is ChangeKind.RENAMED and self.source_path:
            return f"{self.letter} {self.source_path} -> {self.path}"
        return f"{self.letter} {self.path}"


@dataclass(frozen=True)
class VcsStatus:
    """Raw path sets reported by the VCS for one working tree."""
    added: FrozenSet[str] = frozenset()
    changed: FrozenSet[str] = frozenset()
    modified: FrozenSet[str] = frozenset()
    removed: FrozenSet[str] = frozenset()
    missing: FrozenSet[str] = frozenset()
    untracked: FrozenSet[str] = frozenset()
    ignored: FrozenSet[str] = frozenset()
    conflicting: FrozenSet[str] = frozenset()

    @property
    def live_tracked(self) -> FrozenSet[str]:
        """Paths the VCS knows about through the index."""
        return self.added | self.changed | self.modified | self.removed | self.missing | self.conflicting

    def has_changes(self) -> bool:
        return bool(self.live_tracked or self.untracked)


@dataclass(frozen=True)
class TrackingCounts:
    """Ahead/behind counts between a local branch and its remote counterpart."""
    ahead: int
    behind: int


@dataclass(frozen=True)
class CommitInfo:
    """Short description of one commit."""
    short_id: str
    summary: str
    author: str = ""
    committed_at: Optional[datetime] = field(default=None, compare=False)

    def describe(self) -> str:
        return f"{self.short_id} {self.summary}"

    def log_line(self) -> str:
        """``id  date  summary  (author)`` in local time."""
        stamp = self.committed_at.astimezone().strftime("%Y-%m-%d %H:%M") if self.committed_at else ""
        author = f"  ({self.author})" if self.author else ""
        return f"{self.short_id}  {stamp}  {self.summary}{author}"
