"""Remote repository utilities for vgl."""

import logging
from typing import Optional

from git import Repo, GitCommandError


logger = logging.getLogger('vgl.vcs.remote_utils')


def get_remote_url(repo: Repo, remote_name: str = "origin") -> Optional[str]:
    """Return the first URL configured for a remote, or None."""
    try:
        remote = repo.remote(remote_name)
        urls = list(remote.urls)
        return urls[0] if urls else None
    except (ValueError, GitCommandError):
        return None
    except Exception as e:
        logger.debug(f"Error reading URL of remote '{remote_name}': {e}")
        return None


def configure_remote(repo: Repo, remote_url: str, remote_name: str = "origin") -> None:
    """Point a remote at a URL, creating the remote when needed."""
    current = get_remote_url(repo, remote_name)
    if current == remote_url:
        logger.debug(f"Remote '{remote_name}' already points at {remote_url}")
        return
    if current is None:
        logger.info(f"Adding remote '{remote_name}': {remote_url}")
        repo.create_remote(remote_name, remote_url)
    else:
        logger.info(f"Updating remote '{remote_name}' from {current} to {remote_url}")
        repo.remote(remote_name).set_url(remote_url)


def fetch_remote(repo: Repo, remote_name: str = "origin") -> bool:
    """
    Fetch from a remote, best effort.

    Returns False instead of raising when the remote is missing or the
    network operation fails; callers degrade to "no remote data".
    """
    try:
        remote = repo.remote(remote_name)
    except ValueError:
        logger.debug(f"Remote '{remote_name}' not configured, skipping fetch")
        return False

    try:
        remote.fetch()
        logger.debug(f"Fetched from remote '{remote_name}'")
        return True
    except GitCommandError as e:
        logger.debug(f"Fetch from '{remote_name}' failed: {e}")
        return False
    except Exception as e:
        logger.debug(f"Unexpected error fetching from '{remote_name}': {e}")
        return False
