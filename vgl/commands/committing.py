"""``commit``, ``diff`` and ``log``."""

import logging
from typing import List, Optional, Sequence

from git import GitCommandError

from ..errors import ValidationError, VcsOperationError, summarize_git_error
from ..status.classifier import FileCategory
from ..status.renames import unify_comparison
from ..status.service import path_matcher, without_undecided_additions
from ..status.sync_state import remote_branch_for
from ..vcs.models import ChangeEntry, ChangeKind
from ..vcs.parsing import parse_name_status
from .utils import CommandResult, create_command_result
from .workspace import Workspace


logger = logging.getLogger('vgl.commands.committing')


def _paths_to_stage(entries: Sequence[ChangeEntry], category_of) -> List[str]:
    """Working tree changes that belong in the next commit."""
    staged = set()
    for entry in entries:
        category = category_of(entry.path)
        if entry.kind in (ChangeKind.ADDED, ChangeKind.MODIFIED):
            if category is FileCategory.TRACKED:
                staged.add(entry.path)
        elif entry.kind is ChangeKind.DELETED:
            if category is not FileCategory.UNTRACKED:
                staged.add(entry.path)
        elif entry.kind is ChangeKind.RENAMED:
            if category is FileCategory.TRACKED:
                staged.add(entry.path)
                if entry.source_path and not entry.is_copy:
                    staged.add(entry.source_path)
    return sorted(staged)


def commit(workspace: Workspace, message: str, amend: bool = False) -> CommandResult:
    """Stage tracked changes (including working tree renames) and commit them."""
    context = workspace.require_repository()
    if not message or not message.strip():
        raise ValidationError("Missing commit message", "MISSING_MESSAGE")

    report = workspace.status_report(fetch=False)
    entries = report.renames.working.entries
    paths = _paths_to_stage(entries, report.classification.category_of)

    with workspace.repository() as repo:
        if paths:
            present = [p for p in paths if (workspace.root / p).exists()]
            indexed = set(repo.git.ls_files("-z", "--", *paths).split("\0")) - {""}
            stageable = sorted(set(present) | (set(paths) & indexed))
            if stageable:
                repo.git.add("-A", "--", *stageable)

        staged = repo.git.diff("--cached", "--name-only")
        if not staged.strip() and not amend:
            return create_command_result(False, "Nothing to commit", "commit",
                                         error_code="NOTHING_TO_COMMIT")

        args = ["-q", "-m", message]
        if amend:
            args.insert(0, "--amend")
        try:
            repo.git.commit(*args)
        except GitCommandError as e:
            raise VcsOperationError(f"Commit failed: {summarize_git_error(e)}", "COMMIT_FAILED") from e

        head = repo.head.commit
        summary = f"[{context.local_branch} {head.hexsha[:7]}] {message.strip().splitlines()[0]}"

    tracked_now = [entry.path for entry in entries
                   if entry.kind is ChangeKind.RENAMED and entry.path in paths]
    if context.mark_tracked(tracked_now):
        workspace.mark_dirty()
    workspace.save_context()

    lines = [summary]
    lines.extend(f"  {entry.describe()}" for entry in entries if entry.path in paths)
    logger.info(f"Committed {len(paths)} paths", extra={'operation': 'commit'})
    return create_command_result(True, summary, "commit", lines=lines)


def diff(workspace: Workspace, paths: Sequence[str] = (), staged_only: bool = False,
         local_branch: Optional[str] = None, remote: bool = False) -> CommandResult:
    """Rename-unified summary followed by the unified diff text."""
    context = workspace.require_repository()
    provider = workspace.provider
    relative = [workspace.relative(p) for p in paths]
    keep = path_matcher(relative)

    undecided: List[str] = []
    classification = None
    if not (local_branch or remote or staged_only):
        classification = workspace.status_report(fetch=False).classification
        undecided = classification.undecided

    with workspace.repository() as repo:
        has_commits = provider.has_commits(repo)
        head = ["HEAD"] if has_commits else []

        if local_branch or remote:
            if remote:
                provider.fetch(repo)
                base = provider.remote_ref(remote_branch_for(context))
            else:
                base = local_branch
            base_id = provider.resolve_ref(repo, base)
            if base_id is None:
                raise ValidationError(f"Unknown branch: {base}", "BRANCH_NOT_FOUND")
            if not has_commits:
                raise ValidationError("No commits yet", "NO_COMMITS")
            entries = provider.diff_trees(repo, base_id, "HEAD")
            text = repo.git.diff(base_id, "HEAD", "--", *relative)
        elif staged_only:
            entries = parse_name_status(repo.git.diff("--name-status", "-z", "-M", "-C", "--cached", *head, "--"))
            text = repo.git.diff("--cached", *head, "--", *relative)
        else:
            entries = provider.diff_tree_to_working_tree(repo, "HEAD" if has_commits else None,
                                                         extra_added=undecided)
            text = repo.git.diff(*(head or ["--cached"]), "--", *relative)

    unified = unify_comparison(entries, pairing=workspace.config.rename_pairing)
    if classification is not None:
        unified = without_undecided_additions(unified, classification)
    shown = [entry for entry in unified.entries
             if keep is None or keep(entry.path) or (entry.source_path and keep(entry.source_path))]

    lines = [entry.describe() for entry in shown]
    if text.strip():
        lines.append("")
        lines.extend(text.splitlines())
    if not lines:
        lines = ["No differences"]
    return create_command_result(True, f"{len(shown)} changed path(s)", "diff", lines=lines)


def log(workspace: Workspace, max_count: Optional[int] = None) -> CommandResult:
    """History of the current branch, newest first."""
    workspace.require_repository()
    if max_count is not None and max_count < 1:
        raise ValidationError("The commit limit must be a positive number", "INVALID_ARGUMENT")

    provider = workspace.provider
    with workspace.repository() as repo:
        if not provider.has_commits(repo):
            return create_command_result(True, "No commits yet", "log", lines=["No commits yet."])
        commits = provider.list_commits(repo, "HEAD", max_count=max_count)

    return create_command_result(True, f"{len(commits)} commit(s)", "log",
                                 lines=[commit.log_line() for commit in commits])
