"""Local/remote synchronization state."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from git import Repo

from ..context.models import RepoContext
from ..vcs.models import TrackingCounts
from ..vcs.parsing import parse_left_right_count
from ..vcs.provider import GitStatusProvider


logger = logging.getLogger('vgl.status.sync_state')


class SyncKind(Enum):
    """Enumeration of possible synchronization states."""
    LOCAL_ONLY = "local_only"                      # No remote configured
    NO_COMMITS = "no_commits"                      # Unborn local branch
    REMOTE_BRANCH_MISSING = "remote_branch_missing"
    IN_SYNC = "in_sync"
    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"
    ERROR = "error"


@dataclass(frozen=True)
class SyncState:
    kind: SyncKind
    ahead: int = 0
    behind: int = 0
    error: Optional[str] = None

    def describe(self) -> str:
        if self.kind is SyncKind.LOCAL_ONLY:
            return "(local only)"
        if self.kind is SyncKind.NO_COMMITS:
            return "(no commits)"
        if self.kind is SyncKind.REMOTE_BRANCH_MISSING:
            return "(remote branch missing)"
        if self.kind is SyncKind.IN_SYNC:
            return "(in sync)"
        if self.kind is SyncKind.AHEAD:
            return f"(ahead {self.ahead})"
        if self.kind is SyncKind.BEHIND:
            return f"(behind {self.behind})"
        if self.kind is SyncKind.DIVERGED:
            return f"(diverged: ahead {self.ahead}, behind {self.behind})"
        return f"(status unavailable: {self.error or 'unknown error'})"


def decide_sync_state(has_remote: bool, head_id: Optional[str], remote_id: Optional[str],
                      counts: Optional[TrackingCounts]) -> SyncState:
    """
    Pure decision over already-gathered inputs.

    Raises ValueError when the ids differ but no counts are available; the
    caller recomputes counts or reports an error.
    """
    if not has_remote:
        return SyncState(SyncKind.LOCAL_ONLY)
    if not head_id:
        return SyncState(SyncKind.NO_COMMITS)
    if not remote_id:
        return SyncState(SyncKind.REMOTE_BRANCH_MISSING)
    if head_id == remote_id:
        return SyncState(SyncKind.IN_SYNC)
    if counts is None:
        raise ValueError("Ahead/behind counts unavailable")

    ahead, behind = counts.ahead, counts.behind
    if ahead > 0 and behind == 0:
        return SyncState(SyncKind.AHEAD, ahead=ahead)
    if ahead == 0 and behind > 0:
        return SyncState(SyncKind.BEHIND, behind=behind)
    if ahead > 0 and behind > 0:
        return SyncState(SyncKind.DIVERGED, ahead=ahead, behind=behind)
    # Different ids with no commits between them: same content, treat as in sync
    return SyncState(SyncKind.IN_SYNC)


def remote_branch_for(context: RepoContext) -> str:
    return context.remote_branch or context.local_branch


def compute_sync_state(provider: GitStatusProvider, repo: Repo, context: RepoContext,
                       fetch: bool = True) -> SyncState:
    """Gather inputs from git and decide; never raises."""
    try:
        if not context.has_remote:
            return SyncState(SyncKind.LOCAL_ONLY)

        if fetch and not provider.fetch(repo):
            logger.debug("Fetch failed, continuing with local remote-tracking refs")

        head_id = provider.resolve_ref(repo, "HEAD")
        remote_ref = provider.remote_ref(remote_branch_for(context))
        remote_id = provider.resolve_ref(repo, remote_ref) if head_id else None

        counts = None
        if head_id and remote_id and head_id != remote_id:
            counts = provider.tracking_status(repo, "HEAD", remote_ref)
            if counts is None:
                ahead, behind = parse_left_right_count(
                    repo.git.rev_list("--left-right", "--count", f"{head_id}...{remote_id}")
                )
                counts = TrackingCounts(ahead=ahead, behind=behind)

        return decide_sync_state(context.has_remote, head_id, remote_id, counts)
    except Exception as e:
        logger.debug(f"Sync state unavailable: {e}")
        message = str(e).strip().splitlines()[0] if str(e).strip() else type(e).__name__
        return SyncState(SyncKind.ERROR, error=message)
