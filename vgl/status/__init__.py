"""Workspace state reconciliation: classification, renames, sync state and summaries."""

from .classifier import FileCategory, FileClassification, classify, refresh_undecided
from .formatter import SummaryFormatter, Verbosity, render_context_state, render_status, truncate_middle
from .renames import ComparisonResult, RenameReport, unify_comparison, unify_renames
from .service import StatusReport, build_status_report, path_matcher
from .sync_state import SyncKind, SyncState, compute_sync_state, decide_sync_state

__all__ = [
    'FileCategory',
    'FileClassification',
    'classify',
    'refresh_undecided',
    'ComparisonResult',
    'RenameReport',
    'unify_comparison',
    'unify_renames',
    'SyncKind',
    'SyncState',
    'compute_sync_state',
    'decide_sync_state',
    'StatusReport',
    'build_status_report',
    'path_matcher',
    'SummaryFormatter',
    'Verbosity',
    'render_status',
    'render_context_state',
    'truncate_middle'
]
