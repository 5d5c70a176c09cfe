"""Branch utilities for vgl using GitPython."""

import logging
from pathlib import Path
from typing import List, Optional

from git import Repo, GitCommandError


logger = logging.getLogger('vgl.vcs.branch_utils')


def check_local_branch_exists(repo: Repo, branch_name: str) -> bool:
    """Check if a branch exists in the local repository."""
    try:
        return branch_name in [head.name for head in repo.heads]
    except Exception as e:
        logger.debug(f"Error checking local branch existence for '{branch_name}': {e}")
        return False


def check_remote_branch_exists(repo: Repo, remote_name: str, branch_name: str) -> bool:
    """Check if a remote-tracking ref exists locally (no network access)."""
    try:
        remote = repo.remote(remote_name)
        return f'{remote_name}/{branch_name}' in [ref.name for ref in remote.refs]
    except (ValueError, GitCommandError) as e:
        logger.debug(f"Remote '{remote_name}' unavailable while checking '{branch_name}': {e}")
        return False
    except Exception as e:
        logger.debug(f"Error checking remote branch existence for '{branch_name}': {e}")
        return False


def get_current_local_branch(repo: Repo) -> Optional[str]:
    """Get the current local branch name, or None when HEAD is detached."""
    try:
        if repo.head.is_detached:
            return None
        return repo.active_branch.name
    except (TypeError, ValueError) as e:
        logger.debug(f"Error getting current local branch: {e}")
        return None


def list_local_branches(repo: Repo) -> List[str]:
    """Names of all local branches, sorted."""
    try:
        return sorted(head.name for head in repo.heads)
    except Exception as e:
        logger.debug(f"Error listing local branches: {e}")
        return []


def list_remote_branches(repo: Repo, remote_name: str) -> List[str]:
    """Short names of the remote-tracking branches of one remote, sorted."""
    try:
        remote = repo.remote(remote_name)
        prefix = f"{remote_name}/"
        names = []
        for ref in remote.refs:
            short = ref.name[len(prefix):] if ref.name.startswith(prefix) else ref.name
            if short != "HEAD":
                names.append(short)
        return sorted(names)
    except Exception as e:
        logger.debug(f"Error listing remote branches for '{remote_name}': {e}")
        return []


def get_upstream_branch(repo: Repo, branch_name: str) -> Optional[str]:
    """Return the remote branch name tracked by a local branch, if any."""
    try:
        for head in repo.heads:
            if head.name == branch_name:
                tracking = head.tracking_branch()
                if tracking is None:
                    return None
                return tracking.remote_head
        return None
    except Exception as e:
        logger.debug(f"Error checking upstream tracking for {branch_name}: {e}")
        return None


def check_merge_in_progress(repo: Repo) -> bool:
    """True while a merge stopped on conflicts is waiting to be concluded."""
    return (Path(repo.git_dir) / "MERGE_HEAD").exists()
