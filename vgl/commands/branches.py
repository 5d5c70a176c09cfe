"""Branch and location verbs: ``switch``, ``jump``, ``merge``, ``abort``, ``split`` and ``delete``."""

import logging
from pathlib import Path
from typing import List, Optional

from git import Repo, GitCommandError

from ..context.models import RepoContext
from ..context.store import ContextStore
from ..errors import RepositoryNotFoundError, ValidationError, VcsOperationError, summarize_git_error
from ..status.formatter import render_context_state
from ..vcs.branch_utils import (
    check_local_branch_exists,
    check_merge_in_progress,
    check_remote_branch_exists,
    get_current_local_branch,
    list_local_branches,
)
from ..vcs.remote_utils import configure_remote
from .utils import CommandResult, create_command_result
from .workspace import Workspace


logger = logging.getLogger('vgl.commands.branches')


def _has_uncommitted_changes(workspace: Workspace, repo: Repo) -> bool:
    status = workspace.provider.status(repo)
    return bool(status.live_tracked)


def _checkout(repo: Repo, branch: str) -> None:
    try:
        repo.git.checkout(branch)
    except GitCommandError as e:
        raise VcsOperationError(f"Could not switch to '{branch}': {summarize_git_error(e)}",
                                "CHECKOUT_FAILED") from e


def _missing_branch(branch: str, root: Path, available: List[str]) -> ValidationError:
    listed = ", ".join(available) if available else "(none)"
    return ValidationError(
        f"Branch '{branch}' does not exist in: {root}\nAvailable branches: {listed}",
        "BRANCH_NOT_FOUND",
        {'branch': branch, 'available': available}
    )


def _state_lines(workspace: Workspace, context: RepoContext) -> List[str]:
    return render_context_state(context, max_path=workspace.config.max_display_path)


def switch(workspace: Workspace, local_dir: Optional[str] = None, local_branch: Optional[str] = None,
           remote_url: Optional[str] = None, remote_branch: Optional[str] = None) -> CommandResult:
    """Change the active context; the previous location becomes the jump context."""
    context = workspace.context
    switching_local = local_dir is not None or local_branch is not None
    switching_remote = remote_url is not None or remote_branch is not None
    if not switching_local and not switching_remote:
        raise ValidationError("Specify at least one of -lr, -lb, -rr or -rb", "MISSING_ARGUMENT")

    previous = context.location()
    diagnostics = []

    if switching_local:
        target = Path(local_dir) if local_dir else Path(context.local_root)
        if not target.is_absolute():
            target = workspace.start_dir / target
        target = target.resolve()
        if not (target / ".git").exists():
            raise RepositoryNotFoundError(
                target, f"No git repository found at: {target}\nCreate one with: vgl create {target}")

        changing_dir = target != Path(context.local_root).resolve()
        with Repo(str(target)) as repo:
            branches = list_local_branches(repo)
            current = get_current_local_branch(repo)
            branch = local_branch or (current if changing_dir else context.local_branch) \
                or workspace.config.default_branch
            if branches and branch not in branches:
                raise _missing_branch(branch, target, branches)
            if branches and branch != current:
                if _has_uncommitted_changes(workspace, repo):
                    diagnostics.append("Warning: uncommitted changes are carried along to the new branch")
                _checkout(repo, branch)

        if changing_dir:
            # decisions belong to the target repository's own record
            other = ContextStore(target, workspace.config.context_file_name, workspace.config.default_branch)
            target_context = other.load() if other.exists() else RepoContext(local_root=target)
            context.tracked_paths = set(target_context.tracked_paths)
            context.untracked_paths = set(target_context.untracked_paths)
            context.undecided_paths = set(target_context.undecided_paths)
            if not switching_remote:
                context.remote_url = target_context.remote_url
                context.remote_branch = target_context.remote_branch
        context.local_root = target
        context.local_branch = branch

    if switching_remote:
        url = remote_url if remote_url is not None else context.remote_url
        if not url or not url.strip():
            raise ValidationError("No remote configured; use -rr URL", "NO_REMOTE")
        if remote_url:
            with workspace.repository() as repo:
                configure_remote(repo, url, workspace.config.remote_name)
        context.remote_url = url.strip()
        context.remote_branch = remote_branch or context.remote_branch or context.local_branch

    context.alternate = previous
    workspace.mark_dirty()
    workspace.save_context()

    lines = [f"Switched to: {context.local_root} on branch '{context.local_branch}'"]
    if switching_remote:
        lines.append(f"Remote: {context.remote_url} on branch '{context.remote_branch}'")
    lines.extend(_state_lines(workspace, context))
    logger.info(f"Switched context to {context.local_root}:{context.local_branch}", extra={'operation': 'switch'})
    return create_command_result(True, lines[0], "switch", lines=lines, diagnostics=diagnostics)


def jump(workspace: Workspace) -> CommandResult:
    """Swap the current and jump contexts."""
    context = workspace.context
    alternate = context.alternate
    if alternate is None:
        raise ValidationError("No jump context recorded; use vgl switch first", "NO_JUMP_CONTEXT")

    target = Path(alternate.local_root)
    if not (target / ".git").exists():
        raise ValidationError(f"Jump context is stale: no repository at {target}", "STALE_JUMP_CONTEXT")

    with Repo(str(target)) as repo:
        branches = list_local_branches(repo)
        if branches and alternate.local_branch not in branches:
            raise ValidationError(
                f"Jump context is stale: branch '{alternate.local_branch}' no longer exists in {target}",
                "STALE_JUMP_CONTEXT"
            )
        if branches and get_current_local_branch(repo) != alternate.local_branch:
            _checkout(repo, alternate.local_branch)

    context.swap_alternate()
    workspace.mark_dirty()
    workspace.save_context()

    lines = [f"Jumped to: {context.local_root} on branch '{context.local_branch}'"]
    lines.extend(_state_lines(workspace, context))
    return create_command_result(True, lines[0], "jump", lines=lines)


def _merge(repo: Repo, source: str, target: str) -> str:
    try:
        output = repo.git.merge("--no-edit", source)
    except GitCommandError as e:
        raise VcsOperationError(
            f"Merge of '{source}' into '{target}' failed: {summarize_git_error(e)}",
            "MERGE_FAILED"
        ) from e
    if "Already up to date" in output:
        return "Already up to date."
    if "Fast-forward" in output:
        return "Fast-forward merge successful."
    return "Merge successful."


def merge(workspace: Workspace, from_branch: Optional[str] = None,
          into_branch: Optional[str] = None) -> CommandResult:
    """Merge another branch into the current one (--from) or the current one into another (--into)."""
    context = workspace.require_repository()
    if (from_branch is None) == (into_branch is None):
        raise ValidationError("Specify exactly one of --from BRANCH or --into BRANCH", "MISSING_ARGUMENT")

    with workspace.repository() as repo:
        current = get_current_local_branch(repo) or context.local_branch
        other = from_branch or into_branch
        if not check_local_branch_exists(repo, other):
            raise _missing_branch(other, workspace.root, list_local_branches(repo))
        if other == current:
            raise ValidationError(f"Cannot merge branch '{other}' into itself", "SAME_BRANCH")
        if _has_uncommitted_changes(workspace, repo):
            raise ValidationError("You have uncommitted changes; commit them before merging",
                                  "UNCOMMITTED_CHANGES")

        if from_branch:
            outcome = _merge(repo, from_branch, current)
            message = f"Merged '{from_branch}' into '{current}'"
        else:
            _checkout(repo, into_branch)
            try:
                outcome = _merge(repo, current, into_branch)
            except VcsOperationError as e:
                if check_merge_in_progress(repo):
                    raise VcsOperationError(
                        f"{e.message}; now on branch '{into_branch}' with a merge in progress, "
                        "resolve the conflicts and commit or run vgl abort",
                        e.error_code
                    ) from e
                _checkout(repo, current)
                raise
            _checkout(repo, current)
            message = f"Merged '{current}' into '{into_branch}'"

    logger.info(message, extra={'operation': 'merge'})
    return create_command_result(True, message, "merge", lines=[message, outcome])


def split(workspace: Workspace, into: Optional[str] = None, source: Optional[str] = None) -> CommandResult:
    """Create a branch from the current one (or from ``source``) and switch to it."""
    context = workspace.require_repository()
    if not into:
        raise ValidationError("Specify the new branch with --into BRANCH", "MISSING_ARGUMENT")

    with workspace.repository() as repo:
        if check_local_branch_exists(repo, into):
            notice = f"Branch '{into}' already exists; use vgl switch -lb {into}"
            return create_command_result(True, notice, "split", lines=[notice],
                                         error_code="BRANCH_EXISTS")
        if source is not None and not check_local_branch_exists(repo, source):
            raise _missing_branch(source, workspace.root, list_local_branches(repo))

        diagnostics = []
        if _has_uncommitted_changes(workspace, repo):
            diagnostics.append("Warning: uncommitted changes are carried along to the new branch")

        args = ["-b", into] + ([source] if source else [])
        try:
            repo.git.checkout(*args)
        except GitCommandError as e:
            raise VcsOperationError(f"Could not create branch '{into}': {summarize_git_error(e)}",
                                    "BRANCH_CREATE_FAILED") from e

    context.remember_as_alternate()
    context.local_branch = into
    workspace.mark_dirty()
    workspace.save_context()

    message = f"Created and switched to branch '{into}'" + (f" from '{source}'" if source else "")
    return create_command_result(True, message, "split",
                                 lines=[message] + _state_lines(workspace, context),
                                 diagnostics=diagnostics)


def delete(workspace: Workspace, local_branch: Optional[str] = None,
           remote_branch: Optional[str] = None) -> CommandResult:
    """Delete a local branch (never the current one) or a branch on the remote."""
    context = workspace.require_repository()
    if (local_branch is None) == (remote_branch is None):
        raise ValidationError("Specify exactly one of -lb BRANCH or -rb BRANCH", "MISSING_ARGUMENT")

    remote_name = workspace.config.remote_name
    with workspace.repository() as repo:
        if local_branch:
            current = get_current_local_branch(repo) or context.local_branch
            if local_branch == current:
                raise ValidationError(f"Cannot delete the current branch '{local_branch}'", "CURRENT_BRANCH")
            if not check_local_branch_exists(repo, local_branch):
                raise _missing_branch(local_branch, workspace.root, list_local_branches(repo))
            try:
                repo.git.branch("-D", local_branch)
            except GitCommandError as e:
                raise VcsOperationError(f"Could not delete '{local_branch}': {summarize_git_error(e)}",
                                        "BRANCH_DELETE_FAILED") from e
            message = f"Deleted local branch '{local_branch}'"
        else:
            if not context.has_remote:
                raise ValidationError("No remote configured; use vgl switch -rr URL", "NO_REMOTE")
            workspace.provider.fetch(repo)
            if not check_remote_branch_exists(repo, remote_name, remote_branch):
                raise ValidationError(f"Remote branch '{remote_branch}' does not exist", "BRANCH_NOT_FOUND")
            try:
                repo.git.push(remote_name, "--delete", remote_branch)
            except GitCommandError as e:
                raise VcsOperationError(f"Could not delete remote branch '{remote_branch}': "
                                        f"{summarize_git_error(e)}", "BRANCH_DELETE_FAILED") from e
            message = f"Deleted remote branch '{remote_branch}'"

    logger.info(message, extra={'operation': 'delete'})
    return create_command_result(True, message, "delete", lines=[message])


def abort(workspace: Workspace) -> CommandResult:
    """Abandon a merge that stopped on conflicts."""
    workspace.require_repository()
    with workspace.repository() as repo:
        if not check_merge_in_progress(repo):
            return create_command_result(True, "No merge in progress.", "abort",
                                         lines=["No merge in progress."])
        try:
            repo.git.merge("--abort")
        except GitCommandError as e:
            raise VcsOperationError(f"Could not abort the merge: {summarize_git_error(e)}",
                                    "ABORT_FAILED") from e

    logger.info("Merge aborted", extra={'operation': 'abort'})
    return create_command_result(True, "Merge aborted.", "abort", lines=["Merge aborted."])
