"""Version-control collaborator used by vgl."""

from .models import ChangeEntry, ChangeKind, CommitInfo, TrackingCounts, VcsStatus
from .provider import EMPTY_TREE_SHA, GitStatusProvider, find_vcs_root

__all__ = [
    'ChangeEntry',
    'ChangeKind',
    'CommitInfo',
    'TrackingCounts',
    'VcsStatus',
    'EMPTY_TREE_SHA',
    'GitStatusProvider',
    'find_vcs_root'
]
