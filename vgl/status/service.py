"""Orchestration of one status computation over a resolved context."""

import fnmatch
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from ..config import Config
from ..context.models import RepoContext
from ..context.nested import find_nested_repositories, is_inside_nested
from ..vcs.models import ChangeEntry, ChangeKind, CommitInfo
from ..vcs.provider import GitStatusProvider
from .classifier import FileCategory, FileClassification, classify, refresh_undecided
from .renames import INCOMING, ComparisonResult, RenameReport, unify_comparison, unify_renames
from .sync_state import SyncKind, SyncState, compute_sync_state, remote_branch_for


logger = logging.getLogger('vgl.status.service')


@dataclass
class StatusReport:
    """Everything the summary formatter renders."""
    context: RepoContext
    classification: FileClassification
    renames: RenameReport
    sync: SyncState
    incoming: ComparisonResult = field(default_factory=lambda: ComparisonResult(INCOMING))
    commits_to_push: List[CommitInfo] = field(default_factory=list)
    commits_to_pull: List[CommitInfo] = field(default_factory=list)
    local_branches: List[str] = field(default_factory=list)
    remote_branches: List[str] = field(default_factory=list)
    undecided_changed: bool = False

    @property
    def files_to_commit(self) -> List[ChangeEntry]:
        return list(self.renames.working.entries)

    @property
    def files_to_push(self) -> List[ChangeEntry]:
        return list(self.renames.committed.entries)

    @property
    def files_to_merge(self) -> List[ChangeEntry]:
        return list(self.incoming.entries)


def path_matcher(filters: Sequence[str]) -> Optional[Callable[[str], bool]]:
    """Build a predicate from glob or exact path filters; None means no filtering."""
    patterns = [f.strip().replace("\\", "/").rstrip("/") for f in filters if f and f.strip()]
    patterns = [p[2:] if p.startswith("./") else p for p in patterns]
    if not patterns:
        return None

    def matches(path: str) -> bool:
        for pattern in patterns:
            if path == pattern or path.startswith(pattern + "/"):
                return True
            if fnmatch.fnmatchcase(path, pattern):
                return True
        return False

    return matches


def _keep_entry(entry: ChangeEntry, keep: Callable[[str], bool]) -> bool:
    return keep(entry.path) or bool(entry.source_path and keep(entry.source_path))


def _filter_comparison(result: ComparisonResult, keep: Callable[[str], bool]) -> ComparisonResult:
    return ComparisonResult(result.name, tuple(e for e in result.entries if _keep_entry(e, keep)))


def _visible(entries: Iterable[ChangeEntry], nested: List[str], context_file_name: str) -> List[ChangeEntry]:
    visible = []
    for entry in entries:
        if entry.path == context_file_name or is_inside_nested(entry.path, nested):
            continue
        visible.append(entry)
    return visible


def without_undecided_additions(result: ComparisonResult, classification: FileClassification) -> ComparisonResult:
    """
    Drop additions of paths that are still undecided.

    Undecided files only take part in rename matching; until the user tracks
    them they are not changes to commit.
    """
    kept = tuple(entry for entry in result.entries
                 if not (entry.kind is ChangeKind.ADDED
                         and classification.category_of(entry.path) is FileCategory.UNDECIDED))
    return ComparisonResult(result.name, kept)


def build_status_report(provider: GitStatusProvider, context: RepoContext, config: Config,
                        fetch: Optional[bool] = None, filters: Sequence[str] = (),
                        with_branches: bool = False) -> StatusReport:
    """
    Compute classification, renames, sync state and commit lists for ``context``.

    The context's undecided list is refreshed in place; persisting it is up
    to the caller.
    """
    fetch = config.fetch_on_status if fetch is None else fetch
    root = context.local_root

    with provider.open_repository(root) as repo:
        status = provider.status(repo)
        has_commits = provider.has_commits(repo)
        head_paths = provider.head_tree_paths(repo)
        nested = find_nested_repositories(root)

        first_pass = classify(status, head_paths, context, nested, config.context_file_name)

        working_entries = provider.diff_tree_to_working_tree(
            repo, "HEAD" if has_commits else None, extra_added=first_pass.undecided
        )
        working_entries = _visible(working_entries, nested, config.context_file_name)

        sync = compute_sync_state(provider, repo, context, fetch=fetch)

        committed_entries: List[ChangeEntry] = []
        incoming_entries: List[ChangeEntry] = []
        commits_to_push: List[CommitInfo] = []
        commits_to_pull: List[CommitInfo] = []
        if context.has_remote and has_commits:
            remote_ref = provider.remote_ref(remote_branch_for(context))
            remote_id = provider.resolve_ref(repo, remote_ref)
            if remote_id:
                # both directions are measured from the common ancestor
                base_id = provider.merge_base(repo, remote_id, "HEAD")
                committed_entries = _visible(provider.diff_trees(repo, base_id, "HEAD"),
                                             nested, config.context_file_name)
                incoming_entries = _visible(provider.diff_trees(repo, base_id, remote_id),
                                            nested, config.context_file_name)
                commits_to_push = provider.list_commits(repo, f"{remote_id}..HEAD")
                commits_to_pull = provider.list_commits(repo, f"HEAD..{remote_id}")
            elif sync.kind is SyncKind.REMOTE_BRANCH_MISSING:
                commits_to_push = provider.list_commits(repo, "HEAD")

        renames = unify_renames(committed_entries, working_entries, config.rename_pairing)
        incoming = unify_comparison(incoming_entries, INCOMING, config.rename_pairing)
        classification = classify(status, head_paths, context, nested, config.context_file_name,
                                  rename_targets=renames.working.rename_targets,
                                  rename_sources=renames.working.rename_sources)
        renames = RenameReport(committed=renames.committed,
                               working=without_undecided_additions(renames.working, classification))

        local_branches: List[str] = []
        remote_branches: List[str] = []
        if with_branches:
            local_branches = provider.local_branches(repo)
            if context.has_remote:
                remote_branches = provider.remote_branches(repo)

    undecided_changed = refresh_undecided(context, classification)

    keep = path_matcher(filters)
    if keep is not None:
        classification = classification.filtered(keep)
        renames = RenameReport(committed=_filter_comparison(renames.committed, keep),
                               working=_filter_comparison(renames.working, keep))
        incoming = _filter_comparison(incoming, keep)

    logger.debug(
        f"Status for {root}: {len(renames.working)} working entries, "
        f"{len(renames.committed)} committed entries, sync {sync.kind.value}"
    )
    return StatusReport(
        context=context,
        classification=classification,
        renames=renames,
        sync=sync,
        incoming=incoming,
        commits_to_push=commits_to_push,
        commits_to_pull=commits_to_pull,
        local_branches=local_branches,
        remote_branches=remote_branches,
        undecided_changed=undecided_changed
    )
