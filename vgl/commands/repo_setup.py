"""
Repository creation for vgl: ``create``, ``checkout`` and ``copy``.

Each of these ends with a fresh context file beside the new repository and a
``.gitignore`` that keeps the context file out of version control.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from git import Repo, GitCommandError

from ..config import Config
from ..context.models import RepoContext
from ..context.store import ContextStore
from ..errors import ValidationError, VcsOperationError, summarize_git_error
from ..status.formatter import render_context_state
from ..vcs.branch_utils import check_local_branch_exists, get_current_local_branch
from ..vcs.provider import find_vcs_root
from .utils import CommandResult, create_command_result


logger = logging.getLogger('vgl.commands.repo_setup')


def ensure_gitignore(root: Path, context_file_name: str = ".vgl") -> bool:
    """
    Make sure ``.gitignore`` in ``root`` lists the context file.

    Returns:
        True when the file was created or changed
    """
    gitignore_path = Path(root) / ".gitignore"
    try:
        if not gitignore_path.exists():
            gitignore_path.write_text(f"# vgl context\n{context_file_name}\n", encoding="utf-8")
            logger.info("Created initial .gitignore file")
            return True

        content = gitignore_path.read_text(encoding="utf-8", errors="replace")
        entries = {line.strip() for line in content.splitlines()}
        if context_file_name in entries or f"/{context_file_name}" in entries:
            return False
        if content and not content.endswith("\n"):
            content += "\n"
        gitignore_path.write_text(content + f"{context_file_name}\n", encoding="utf-8")
        logger.info(f"Added {context_file_name} to .gitignore")
        return True
    except OSError as e:
        logger.warning(f"Could not update .gitignore file: {e}")
        return False


def _confirm_nested(config: Config, target: Path, operation: str,
                    confirm: Optional[Callable[[str], bool]], interactive: bool) -> None:
    """Refuse (or ask) when ``target`` would sit inside another repository."""
    enclosing = find_vcs_root(target.parent, config.ceiling_dir)
    if enclosing is None:
        return
    question = f"{target} is inside the repository at {enclosing}. Continue?"
    if interactive and confirm is not None and confirm(question):
        return
    raise ValidationError(
        f"Cannot {operation} inside another repository: {enclosing}",
        "NESTED_REPOSITORY",
        {'target': str(target), 'enclosing': str(enclosing)}
    )


def _is_empty_dir(path: Path) -> bool:
    return path.is_dir() and not any(path.iterdir())


def _write_context(config: Config, context: RepoContext) -> ContextStore:
    store = ContextStore(context.local_root, config.context_file_name, config.default_branch)
    store.save(context)
    return store


def create_repository(config: Config, target_dir: Path, branch: Optional[str] = None,
                      confirm: Optional[Callable[[str], bool]] = None,
                      interactive: bool = False) -> CommandResult:
    """
    Create a repository at ``target_dir``, or a new branch in an existing one.

    Args:
        config: vgl configuration
        target_dir: Directory for the repository (created when missing)
        branch: Initial branch name, or the branch to create in an existing repository
        confirm: Prompt callable used when the target sits inside another repository
        interactive: Whether prompting is allowed

    Returns:
        CommandResult describing the outcome
    """
    target = Path(target_dir).resolve()

    if (target / ".git").exists():
        if not branch:
            return create_command_result(False, f"Repository already exists: {target}", "create",
                                         error_code="REPOSITORY_EXISTS")
        return _create_branch(config, target, branch)

    _confirm_nested(config, target, "create a repository", confirm, interactive)

    branch = branch or config.default_branch
    logger.info(f"Initializing repository at {target} on branch '{branch}'")
    target.mkdir(parents=True, exist_ok=True)
    repo = Repo.init(str(target))
    try:
        repo.git.symbolic_ref("HEAD", f"refs/heads/{branch}")
    finally:
        repo.close()

    ensure_gitignore(target, config.context_file_name)
    context = RepoContext(local_root=target, local_branch=branch)
    _write_context(config, context)

    return create_command_result(
        True,
        f"Created repository at {target} on branch '{branch}'",
        "create",
        lines=[f"Created repository at {target} on branch '{branch}'"]
    )


def _create_branch(config: Config, root: Path, branch: str) -> CommandResult:
    with Repo(str(root)) as repo:
        if check_local_branch_exists(repo, branch):
            return create_command_result(False, f"Branch '{branch}' already exists", "create",
                                         error_code="BRANCH_EXISTS")
        try:
            repo.git.checkout("-b", branch)
        except GitCommandError as e:
            raise VcsOperationError(f"Could not create branch '{branch}': {summarize_git_error(e)}",
                                    "BRANCH_CREATE_FAILED") from e

    store = ContextStore(root, config.context_file_name, config.default_branch)
    context = store.load()
    context.remember_as_alternate()
    context.local_root = root
    context.local_branch = branch
    store.save(context)
    return create_command_result(True, f"Created branch '{branch}'", "create",
                                 lines=[f"Created branch '{branch}' in {root}"])


def _default_clone_dir(url: str, base: Path) -> Path:
    name = url.rstrip("/").replace("\\", "/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    if name.endswith(".git"):
        name = name[:-4]
    if not name:
        raise ValidationError(f"Cannot derive a directory name from: {url}", "MISSING_DIRECTORY")
    return base / name


def checkout_repository(config: Config, url: str, start_dir: Path, target_dir: Optional[Path] = None,
                        branch: Optional[str] = None) -> CommandResult:
    """Clone ``url`` and record the remote in a fresh context."""
    if not url or not url.strip():
        raise ValidationError("Missing repository URL", "MISSING_URL")

    base = Path(start_dir).resolve()
    target = Path(target_dir) if target_dir else _default_clone_dir(url, base)
    if not target.is_absolute():
        target = base / target
    target = target.resolve()

    if target.exists() and not _is_empty_dir(target):
        return create_command_result(False, f"Target directory is not empty: {target}", "checkout",
                                     error_code="DIRECTORY_NOT_EMPTY")

    logger.info(f"Cloning {url} into {target}")
    clone_args = {'branch': branch} if branch else {}
    try:
        repo = Repo.clone_from(url, str(target), **clone_args)
    except GitCommandError as e:
        raise VcsOperationError(f"Clone failed: {summarize_git_error(e)}", "CLONE_FAILED") from e

    try:
        local_branch = get_current_local_branch(repo) or branch or config.default_branch
    finally:
        repo.close()

    context = RepoContext(local_root=target, local_branch=local_branch,
                          remote_url=url, remote_branch=branch or local_branch)
    _write_context(config, context)
    return create_command_result(
        True,
        f"Checked out {url} into {target}",
        "checkout",
        lines=[f"Checked out {url} into {target}"] + render_context_state(context, max_path=config.max_display_path)
    )


def copy_repository(config: Config, source: RepoContext, target_dir: Path, start_dir: Path,
                    branch: Optional[str] = None,
                    confirm: Optional[Callable[[str], bool]] = None,
                    interactive: bool = False) -> CommandResult:
    """Clone the current repository into a local directory; history is never rewritten."""
    target = Path(target_dir)
    if not target.is_absolute():
        target = Path(start_dir).resolve() / target
    target = target.resolve()

    if target.exists() and not _is_empty_dir(target):
        return create_command_result(False, f"Target directory is not empty: {target}", "copy",
                                     error_code="DIRECTORY_NOT_EMPTY")
    _confirm_nested(config, target, "copy a repository", confirm, interactive)

    branch = branch or source.local_branch
    logger.info(f"Copying {source.local_root} ({branch}) into {target}")
    try:
        repo = Repo.clone_from(str(source.local_root), str(target), branch=branch)
        repo.close()
    except GitCommandError as e:
        raise VcsOperationError(f"Copy failed: {summarize_git_error(e)}", "COPY_FAILED") from e

    ensure_gitignore(target, config.context_file_name)
    context = RepoContext(local_root=target, local_branch=branch)
    _write_context(config, context)
    return create_command_result(
        True,
        f"Copied repository into {target}",
        "copy",
        lines=["Copied repository."] + render_context_state(context, max_path=config.max_display_path)
    )
