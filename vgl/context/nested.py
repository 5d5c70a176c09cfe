"""Discovery of independent repositories nested inside a working tree."""

import logging
import os
from pathlib import Path
from typing import Iterable, List


logger = logging.getLogger('vgl.context.nested')


def find_nested_repositories(root: Path) -> List[str]:
    """
    Return repository-relative directories beneath ``root`` that hold their own ``.git``.

    The walk skips ``.git`` directories and does not descend into a nested
    repository once found.
    """
    root = Path(root)
    nested: List[str] = []

    def on_error(error: OSError) -> None:
        logger.debug(f"Skipping unreadable directory during nested scan: {error}")

    for dirpath, dirnames, _ in os.walk(root, onerror=on_error):
        current = Path(dirpath)
        if ".git" in dirnames:
            dirnames.remove(".git")

        kept = []
        for name in sorted(dirnames):
            candidate = current / name
            if (candidate / ".git").exists():
                nested.append(candidate.relative_to(root).as_posix())
            elif not candidate.is_symlink():
                kept.append(name)
        dirnames[:] = kept

    return sorted(nested)


def is_inside_nested(path: str, nested_roots: Iterable[str]) -> bool:
    """True when ``path`` equals a nested root or lies beneath one."""
    path = path.strip("/")
    for nested_root in nested_roots:
        nested_root = nested_root.strip("/")
        if path == nested_root or path.startswith(nested_root + "/"):
            return True
    return False


def nested_targets(paths: Iterable[str], nested_roots: Iterable[str]) -> List[str]:
    """The subset of ``paths`` that refers to something inside a nested repository."""
    roots = list(nested_roots)
    return sorted({path for path in paths if is_inside_nested(path, roots)})
