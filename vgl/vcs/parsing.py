"""Parsers for git's machine-readable output formats."""

import logging
from typing import Dict, List, Set

from .models import ChangeEntry, ChangeKind, VcsStatus


logger = logging.getLogger('vgl.vcs.parsing')


def _clean_path(path: str) -> str:
    return path.replace("\\", "/").rstrip("/")


def parse_porcelain_status(output: str) -> VcsStatus:
    """
    Parse `git status --porcelain -z --no-renames` output into a VcsStatus.

    XY codes map onto the index/worktree sets the rest of vgl consumes:
    X=A added, X=M/T changed, X=D removed, Y=M/T modified, Y=D missing,
    unmerged pairs conflicting, ``??`` untracked and ``!!`` ignored.
    """
    sets: Dict[str, Set[str]] = {
        'added': set(), 'changed': set(), 'modified': set(), 'removed': set(),
        'missing': set(), 'untracked': set(), 'ignored': set(), 'conflicting': set()
    }
    if not output:
        return VcsStatus()

    records = output.split("\0")
    i = 0
    while i < len(records):
        record = records[i]
        i += 1
        if len(record) < 4:
            continue
        x, y, path = record[0], record[1], _clean_path(record[3:])
        if not path:
            continue

        if x == "R" or x == "C":
            # Rename records carry the source path as a separate field
            i += 1

        if x == "?" and y == "?":
            sets['untracked'].add(path)
            continue
        if x == "!" and y == "!":
            sets['ignored'].add(path)
            continue
        if x == "U" or y == "U" or (x == "A" and y == "A") or (x == "D" and y == "D"):
            sets['conflicting'].add(path)
            continue

        if x == "A":
            sets['added'].add(path)
        elif x in ("M", "T", "R", "C"):
            sets['changed'].add(path)
        elif x == "D":
            sets['removed'].add(path)

        if y in ("M", "T"):
            sets['modified'].add(path)
        elif y == "D":
            sets['missing'].add(path)

    return VcsStatus(**{name: frozenset(values) for name, values in sets.items()})


def parse_name_status(output: str) -> List[ChangeEntry]:
    """
    Parse `git diff --name-status -z` output into change entries.

    Renames and copies (``R<score>``/``C<score>``) carry two paths: the source
    followed by the destination.
    """
    entries: List[ChangeEntry] = []
    if not output:
        return entries

    tokens = output.split("\0")
    i = 0
    while i < len(tokens):
        status = tokens[i].strip()
        i += 1
        if not status:
            continue
        code = status[0]

        if code in ("R", "C"):
            if i + 1 >= len(tokens):
                logger.debug(f"Truncated rename record in diff output: {status}")
                break
            source, target = _clean_path(tokens[i]), _clean_path(tokens[i + 1])
            i += 2
            entries.append(ChangeEntry(path=target, kind=ChangeKind.RENAMED,
                                       source_path=source, is_copy=(code == "C")))
            continue

        if i >= len(tokens):
            logger.debug(f"Truncated record in diff output: {status}")
            break
        path = _clean_path(tokens[i])
        i += 1

        if code == "A":
            entries.append(ChangeEntry(path=path, kind=ChangeKind.ADDED))
        elif code == "D":
            entries.append(ChangeEntry(path=path, kind=ChangeKind.DELETED))
        elif code in ("M", "T", "U"):
            entries.append(ChangeEntry(path=path, kind=ChangeKind.MODIFIED))
        else:
            logger.debug(f"Skipping unsupported diff status {status!r} for {path}")

    return entries


def parse_ls_tree(output: str) -> Dict[str, str]:
    """Parse `git ls-tree -r -z` output into a path -> blob id mapping."""
    blobs: Dict[str, str] = {}
    if not output:
        return blobs
    for record in output.split("\0"):
        if not record or "\t" not in record:
            continue
        meta, path = record.split("\t", 1)
        parts = meta.split()
        if len(parts) == 3 and parts[1] == "blob":
            blobs[_clean_path(path)] = parts[2]
    return blobs


def parse_left_right_count(output: str):
    """Parse `git rev-list --left-right --count A...B` into (left, right)."""
    parts = (output or "").split()
    if len(parts) != 2:
        raise ValueError(f"Unexpected rev-list count output: {output!r}")
    return int(parts[0]), int(parts[1])
