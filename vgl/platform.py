"""Path and terminal helpers that differ between operating systems."""

import os
import sys
import platform
from pathlib import Path
from typing import Optional, Dict, Any, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .config import Config


def is_windows() -> bool:
    return platform.system().lower() == "windows"


def normalize_path(path: Union[str, Path]) -> Path:
    """Expand '~' and resolve a path to an absolute one."""
    return Path(path).expanduser().resolve()


def to_repo_relative(root: Path, path: Union[str, Path]) -> str:
    """Express a path relative to a repository root using '/' separators."""
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = Path(root) / candidate
    rel = os.path.relpath(os.path.normpath(str(candidate)), os.path.normpath(str(root)))
    return rel.replace("\\", "/")


def get_platform_specific_defaults() -> Dict[str, Any]:
    """
    Configuration defaults for the running platform.

    Returns:
        Dictionary keyed by Config field name
    """
    defaults = {
        'log_level': "WARNING",
        'default_branch': "main",
        'max_display_path': 35,
    }
    if is_windows():
        # drive prefixes need the extra room
        defaults['max_display_path'] = 40
    return defaults


def is_interactive(config: Optional["Config"] = None) -> bool:
    """
    Return True when the current process may prompt the user.

    Forced non-interactive mode (VGL_NONINTERACTIVE) wins over TTY detection.
    """
    if config is not None and config.non_interactive:
        return False
    try:
        return sys.stdin is not None and sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False
