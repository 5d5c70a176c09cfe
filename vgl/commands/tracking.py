"""Tracking decisions: ``track``, ``untrack`` and ``restore``."""

import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterable, List, Sequence, Set

from git import Repo

from ..context.nested import is_inside_nested
from ..errors import ValidationError
from .utils import CommandResult, create_command_result
from .workspace import Workspace


logger = logging.getLogger('vgl.commands.tracking')

_GLOB_CHARS = set("*?[")


def _is_glob(pattern: str) -> bool:
    return any(ch in _GLOB_CHARS for ch in pattern)


def _walk_files(root: Path, relative_dir: str, nested: List[str]) -> List[str]:
    """Files beneath a directory, skipping ``.git`` and nested repositories."""
    found = []
    start = root / relative_dir if relative_dir else root
    for dirpath, dirnames, filenames in os.walk(start):
        current = Path(dirpath)
        rel_dir = current.relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir
        dirnames[:] = sorted(
            name for name in dirnames
            if name != ".git" and not is_inside_nested(f"{rel_dir}/{name}".lstrip("/"), nested)
        )
        for name in filenames:
            found.append(f"{rel_dir}/{name}".lstrip("/"))
    return found


def expand_paths(workspace: Workspace, patterns: Sequence[str], known: Iterable[str] = ()) -> List[str]:
    """
    Expand command line patterns into repository-relative file paths.

    Globs match against the working tree and against ``known`` paths (so
    deleted files can still be named); directories expand to the files they
    contain. ``.git``, the context file and git-ignored paths are skipped.
    """
    root = workspace.root
    nested = workspace.nested_roots()
    known = sorted(set(known))
    matched: Set[str] = set()

    for pattern in patterns:
        relative = workspace.relative(pattern)
        if relative in (".", ""):
            matched.update(_walk_files(root, "", nested))
            continue

        if _is_glob(relative):
            for candidate in root.glob(relative):
                rel = candidate.relative_to(root).as_posix()
                if candidate.is_dir():
                    if not is_inside_nested(rel, nested):
                        matched.update(_walk_files(root, rel, nested))
                else:
                    matched.add(rel)
            matched.update(path for path in known if fnmatch.fnmatchcase(path, relative))
            continue

        target = root / relative
        if target.is_dir():
            matched.update(_walk_files(root, relative, nested))
        elif target.exists() or relative in known:
            matched.add(relative)
        else:
            prefix = relative.rstrip("/") + "/"
            under = [path for path in known if path.startswith(prefix)]
            if under:
                matched.update(under)
            else:
                logger.debug(f"Pattern matched nothing: {pattern}")

    context_file = workspace.config.context_file_name
    matched = {
        path for path in matched
        if path != context_file
        and not path.startswith(".git/")
        and not is_inside_nested(path, nested)
    }
    return sorted(matched - _ignored(workspace, matched))


def _ignored(workspace: Workspace, paths: Set[str]) -> Set[str]:
    if not paths:
        return set()
    try:
        with workspace.repository() as repo:
            return {path.replace("\\", "/").rstrip("/") for path in repo.ignored(*sorted(paths))}
    except Exception as e:
        logger.debug(f"Could not check ignored paths: {e}")
        return set()


def _in_index(repo: Repo, paths: Sequence[str]) -> List[str]:
    if not paths:
        return []
    output = repo.git.ls_files("-z", "--", *paths)
    return sorted({p for p in output.split("\0") if p})


def _requested_relative(workspace: Workspace, patterns: Sequence[str]) -> List[str]:
    return [workspace.relative(pattern) for pattern in patterns]


def track(workspace: Workspace, patterns: Sequence[str], all_undecided: bool = False) -> CommandResult:
    """Stage paths and record them as tracked."""
    context = workspace.require_repository()
    if not patterns and not all_undecided:
        raise ValidationError("Specify files to track, or use --all", "MISSING_PATHS")

    if all_undecided:
        paths = workspace.status_report(fetch=False).classification.undecided
    else:
        workspace.reject_nested(_requested_relative(workspace, patterns), "track")
        paths = expand_paths(workspace, patterns, known=context.undecided_paths | context.untracked_paths)

    if not paths:
        return create_command_result(False, "No files matched", "track", error_code="NO_MATCH")

    with workspace.repository() as repo:
        present = [path for path in paths if (workspace.root / path).exists()]
        if present:
            repo.git.add("--", *present)

    newly = context.mark_tracked(paths)
    workspace.mark_dirty()
    workspace.save_context()

    lines = [f"Tracking: {path}" for path in sorted(newly)]
    already = sorted(set(paths) - newly)
    lines.extend(f"Already tracked: {path}" for path in already)
    logger.info(f"Tracked {len(newly)} paths", extra={'operation': 'track'})
    return create_command_result(True, f"Tracking {len(paths)} file(s)", "track", lines=lines)


def untrack(workspace: Workspace, patterns: Sequence[str], all_undecided: bool = False) -> CommandResult:
    """Record paths as untracked and remove them from the index (the files stay on disk)."""
    context = workspace.require_repository()
    if not patterns and not all_undecided:
        raise ValidationError("Specify files to untrack, or use --all", "MISSING_PATHS")

    with workspace.repository() as repo:
        head_paths = workspace.provider.head_tree_paths(repo)

    if all_undecided:
        paths = workspace.status_report(fetch=False).classification.undecided
    else:
        workspace.reject_nested(_requested_relative(workspace, patterns), "untrack")
        paths = expand_paths(workspace, patterns,
                             known=context.tracked_paths | context.undecided_paths | head_paths)

    if not paths:
        return create_command_result(False, "No files matched", "untrack", error_code="NO_MATCH")

    with workspace.repository() as repo:
        indexed = _in_index(repo, paths)
        if indexed:
            repo.git.rm("--cached", "-q", "--", *indexed)

    newly = context.mark_untracked(paths)
    workspace.mark_dirty()
    workspace.save_context()

    lines = [f"Untracking: {path}" for path in sorted(newly)]
    lines.extend(f"Already untracked: {path}" for path in sorted(set(paths) - newly))
    logger.info(f"Untracked {len(newly)} paths", extra={'operation': 'untrack'})
    return create_command_result(True, f"Untracking {len(paths)} file(s)", "untrack", lines=lines)


def restore(workspace: Workspace, patterns: Sequence[str], all_changes: bool = False) -> CommandResult:
    """Discard working tree changes of tracked paths, restoring them from HEAD."""
    workspace.require_repository()
    if not patterns and not all_changes:
        raise ValidationError("Specify files to restore, or use --all", "MISSING_PATHS")
    if patterns:
        workspace.reject_nested(_requested_relative(workspace, patterns), "restore")

    with workspace.repository() as repo:
        provider = workspace.provider
        if not provider.has_commits(repo):
            return create_command_result(False, "Nothing to restore: no commits yet", "restore",
                                         error_code="NO_COMMITS")
        head_paths = provider.head_tree_paths(repo)
        status = provider.status(repo)

    changed = head_paths & (status.changed | status.modified | status.removed | status.missing
                            | status.conflicting)
    if all_changes:
        paths = sorted(changed)
    else:
        requested = expand_paths(workspace, patterns, known=head_paths)
        paths = [path for path in requested if path in head_paths]
        skipped = sorted(set(requested) - head_paths)
        for path in skipped:
            logger.debug(f"Not restoring {path}: not in the last commit")

    if not paths:
        return create_command_result(True, "Nothing to restore", "restore", lines=["Nothing to restore"])

    with workspace.repository() as repo:
        repo.git.checkout("HEAD", "--", *paths)

    logger.info(f"Restored {len(paths)} paths", extra={'operation': 'restore'})
    return create_command_result(True, f"Restored {len(paths)} file(s)", "restore",
                                 lines=[f"Restored: {path}" for path in paths])
