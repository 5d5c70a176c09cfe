"""Repository context: where a command acts and what the user decided about files."""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, Optional, Set


def _normalize_paths(paths: Iterable[str]) -> Set[str]:
    cleaned = set()
    for path in paths:
        value = str(path).replace("\\", "/")
        while value.startswith("./"):
            value = value[2:]
        value = value.rstrip("/")
        if value.strip():
            cleaned.add(value)
    return cleaned


@dataclass
class RepoContext:
    """
    Persisted per-repository record.

    Invariants, kept by the mutators below:
    tracked and untracked never overlap, and undecided never overlaps either.
    The alternate context is the previous location used by ``jump``; it never
    carries an alternate of its own.
    """
    local_root: Path
    local_branch: str = "main"
    remote_url: Optional[str] = None
    remote_branch: Optional[str] = None
    tracked_paths: Set[str] = field(default_factory=set)
    untracked_paths: Set[str] = field(default_factory=set)
    undecided_paths: Set[str] = field(default_factory=set)
    alternate: Optional["RepoContext"] = None

    @property
    def has_remote(self) -> bool:
        return bool(self.remote_url and self.remote_url.strip())

    @property
    def decided_paths(self) -> Set[str]:
        return self.tracked_paths | self.untracked_paths

    def mark_tracked(self, paths: Iterable[str]) -> Set[str]:
        """Record paths as tracked; returns the paths that were not tracked before."""
        incoming = _normalize_paths(paths)
        newly = incoming - self.tracked_paths
        self.tracked_paths |= incoming
        self.untracked_paths -= incoming
        self.undecided_paths -= incoming
        return newly

    def mark_untracked(self, paths: Iterable[str]) -> Set[str]:
        """Record paths as untracked; returns the paths that were not untracked before."""
        incoming = _normalize_paths(paths)
        newly = incoming - self.untracked_paths
        self.untracked_paths |= incoming
        self.tracked_paths -= incoming
        self.undecided_paths -= incoming
        return newly

    def forget(self, paths: Iterable[str]) -> None:
        """Drop every decision about the given paths."""
        gone = _normalize_paths(paths)
        self.tracked_paths -= gone
        self.untracked_paths -= gone
        self.undecided_paths -= gone

    def set_undecided(self, paths: Iterable[str]) -> None:
        self.undecided_paths = _normalize_paths(paths) - self.decided_paths

    def normalize(self) -> "RepoContext":
        """Repair invariant violations in place (tracked wins over untracked)."""
        self.tracked_paths = _normalize_paths(self.tracked_paths)
        self.untracked_paths = _normalize_paths(self.untracked_paths) - self.tracked_paths
        self.undecided_paths = _normalize_paths(self.undecided_paths) - self.decided_paths
        if self.alternate is not None:
            self.alternate.alternate = None
            self.alternate.normalize()
        return self

    def check_invariants(self) -> bool:
        return (not (self.tracked_paths & self.untracked_paths)
                and not (self.undecided_paths & self.decided_paths)
                and (self.alternate is None or (self.alternate.alternate is None
                                                and self.alternate.check_invariants())))

    def location(self) -> "RepoContext":
        """Copy of this context without its alternate."""
        return replace(self,
                       tracked_paths=set(self.tracked_paths),
                       untracked_paths=set(self.untracked_paths),
                       undecided_paths=set(self.undecided_paths),
                       alternate=None)

    def same_location(self, other: Optional["RepoContext"]) -> bool:
        if other is None:
            return False
        return (Path(self.local_root) == Path(other.local_root)
                and self.local_branch == other.local_branch
                and (self.remote_url or None) == (other.remote_url or None)
                and (self.remote_branch or None) == (other.remote_branch or None))

    def remember_as_alternate(self) -> None:
        """Store the current location as the jump target before moving."""
        self.alternate = self.location()

    def swap_alternate(self) -> None:
        """Exchange the current location with the alternate one."""
        if self.alternate is None:
            raise ValueError("No alternate context to swap with")
        previous = self.location()
        target = self.alternate
        self.local_root = target.local_root
        self.local_branch = target.local_branch
        self.remote_url = target.remote_url
        self.remote_branch = target.remote_branch
        self.tracked_paths = set(target.tracked_paths)
        self.untracked_paths = set(target.untracked_paths)
        self.undecided_paths = set(target.undecided_paths)
        self.alternate = previous
