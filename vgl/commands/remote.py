"""Remote synchronization verbs: ``push``, ``pull``, ``sync`` and ``checkin``."""

import logging
import re
from typing import Optional

from git import Repo, GitCommandError

from ..context.models import RepoContext
from ..errors import ValidationError, VcsOperationError, summarize_git_error
from ..status.sync_state import remote_branch_for
from ..vcs.remote_utils import configure_remote
from .utils import CommandResult, create_command_result
from .workspace import Workspace


logger = logging.getLogger('vgl.commands.remote')

# https, scp-like and ssh forms of a GitHub remote
_GITHUB_REMOTE = re.compile(r"github\.com[:/](?P<name>[^/]+/[^/]+?)(?:\.git)?/?$")


def _require_remote(context: RepoContext) -> None:
    if not context.has_remote:
        raise ValidationError("No remote configured; use vgl switch -rr URL", "NO_REMOTE")


def _prepare(workspace: Workspace, repo: Repo, context: RepoContext) -> None:
    """Make sure the git remote matches the context before talking to it."""
    configure_remote(repo, context.remote_url, workspace.config.remote_name)
    if not workspace.provider.has_commits(repo):
        raise ValidationError("No commits yet; commit before synchronizing", "NO_COMMITS")


def _push(workspace: Workspace, repo: Repo, context: RepoContext) -> str:
    remote_name = workspace.config.remote_name
    remote_branch = remote_branch_for(context)
    refspec = f"{context.local_branch}:{remote_branch}"
    logger.info(f"Pushing {refspec} to {remote_name}", extra={'operation': 'push'})
    try:
        repo.git.push("--set-upstream", remote_name, refspec)
    except GitCommandError as e:
        raise VcsOperationError(f"Push failed: {summarize_git_error(e)}", "PUSH_FAILED") from e

    if context.remote_branch != remote_branch:
        context.remote_branch = remote_branch
        workspace.mark_dirty()
    return f"Pushed '{context.local_branch}' to {context.remote_url} :: {remote_branch}"


def _pull(workspace: Workspace, repo: Repo, context: RepoContext) -> str:
    provider = workspace.provider
    remote_branch = remote_branch_for(context)
    if not provider.fetch(repo):
        raise VcsOperationError(f"Could not fetch from {context.remote_url}", "FETCH_FAILED")

    remote_ref = provider.remote_ref(remote_branch)
    if provider.resolve_ref(repo, remote_ref) is None:
        return f"Remote branch '{remote_branch}' does not exist yet; nothing to pull"

    logger.info(f"Merging {remote_ref}", extra={'operation': 'pull'})
    try:
        output = repo.git.merge("--no-edit", remote_ref)
    except GitCommandError as e:
        raise VcsOperationError(f"Pull failed: {summarize_git_error(e)}", "MERGE_FAILED") from e
    if "Already up to date" in output:
        return "Already up to date."
    return f"Pulled {context.remote_url} :: {remote_branch} into '{context.local_branch}'"


def push(workspace: Workspace) -> CommandResult:
    """Push the current branch to the remote branch, setting upstream tracking."""
    context = workspace.require_repository()
    _require_remote(context)
    with workspace.repository() as repo:
        _prepare(workspace, repo, context)
        message = _push(workspace, repo, context)
    workspace.save_context()
    return create_command_result(True, message, "push", lines=[message])


def pull(workspace: Workspace) -> CommandResult:
    """Fetch the remote and merge the remote branch into the current branch."""
    context = workspace.require_repository()
    _require_remote(context)
    with workspace.repository() as repo:
        configure_remote(repo, context.remote_url, workspace.config.remote_name)
        message = _pull(workspace, repo, context)
    return create_command_result(True, message, "pull", lines=[message])


def sync(workspace: Workspace) -> CommandResult:
    """Pull, then push."""
    context = workspace.require_repository()
    _require_remote(context)
    with workspace.repository() as repo:
        _prepare(workspace, repo, context)
        pulled = _pull(workspace, repo, context)
        pushed = _push(workspace, repo, context)
    workspace.save_context()
    return create_command_result(True, pushed, "sync", lines=[pulled, pushed])


def github_compare_url(remote_url: str, base: str, head: str) -> Optional[str]:
    """Pull request page comparing ``head`` with ``base``; None for non-GitHub remotes."""
    match = _GITHUB_REMOTE.search(remote_url.strip())
    if not match:
        return None
    return f"https://github.com/{match.group('name')}/compare/{base}...{head}?expand=1"


def checkin(workspace: Workspace, draft: bool = False, final: bool = False) -> CommandResult:
    """Point at the pull request page for the remote branch."""
    if draft == final:
        raise ValidationError("Specify exactly one of -draft or -final", "MISSING_ARGUMENT")
    context = workspace.require_repository()
    _require_remote(context)

    head = remote_branch_for(context)
    url = github_compare_url(context.remote_url, workspace.config.default_branch, head)
    if url is None:
        message = "Remote is not GitHub; open a pull request in your provider."
    else:
        kind = "draft pull request" if draft else "pull request"
        message = f"Open your {kind}: {url}"
    return create_command_result(True, message, "checkin", lines=[message])
