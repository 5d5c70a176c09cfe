"""
Persistence for RepoContext records.

The on-disk format is newline-delimited ``key=value``. All parsing and
defaulting lives in :func:`loads_context` and all formatting in
:func:`dumps_context`; nothing else reads or writes the file.

Defaulting rules:

* an absent key, a blank value and an unparseable line all mean "unset";
* ``local.branch`` unset -> the default branch;
* ``local.dir`` unset -> the directory holding the file;
* file lists are comma separated; blank items are dropped;
* the alternate (jump) context exists when ``jump.local.dir`` or
  ``jump.local.branch`` is set.
"""

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .models import RepoContext


logger = logging.getLogger('vgl.context.store')

HEADER = "VGL Configuration"

LOCATION_KEYS = ("local.dir", "local.branch", "remote.url", "remote.branch")
FILE_LIST_KEYS = ("tracked.files", "untracked.files", "undecided.files")
JUMP_PREFIX = "jump."

KNOWN_KEYS = LOCATION_KEYS + FILE_LIST_KEYS + tuple(JUMP_PREFIX + key for key in LOCATION_KEYS + FILE_LIST_KEYS)

# Older records append a display suffix to the directory
_DISPLAY_SUFFIX = " :: "


def _unescape(value: str) -> str:
    out = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\" and i + 1 < len(value):
            nxt = value[i + 1]
            out.append({"n": "\n", "t": "\t"}.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n")


def parse_records(text: str) -> Dict[str, str]:
    """Split raw text into key/value records; malformed lines are skipped."""
    records: Dict[str, str] = {}
    for number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#") or line.startswith("!"):
            continue
        if "=" not in line:
            logger.debug(f"Skipping malformed context line {number}: {raw_line!r}")
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            logger.debug(f"Skipping context line {number} with empty key")
            continue
        if key not in KNOWN_KEYS:
            logger.debug(f"Ignoring unknown context key {key!r}")
            continue
        if key.endswith(FILE_LIST_KEYS):
            # path names may begin or end with spaces
            records[key] = _unescape(raw_line.split("=", 1)[1].rstrip("\r"))
        else:
            records[key] = _unescape(value.strip())
    return records


def _value(records: Dict[str, str], key: str) -> Optional[str]:
    value = records.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _paths(records: Dict[str, str], key: str) -> List[str]:
    value = records.get(key)
    if not value:
        return []
    return [item.replace("\\", "/") for item in value.split(",") if item.strip()]


def _directory(value: Optional[str]) -> Optional[Path]:
    if value is None:
        return None
    if _DISPLAY_SUFFIX in value:
        value = value.split(_DISPLAY_SUFFIX, 1)[0].strip()
    if not value or "\0" in value:
        return None
    try:
        return Path(value).expanduser()
    except (TypeError, ValueError):
        return None


def _context_from(records: Dict[str, str], prefix: str, default_root: Path,
                  default_branch: str) -> RepoContext:
    context = RepoContext(
        local_root=_directory(_value(records, prefix + "local.dir")) or default_root,
        local_branch=_value(records, prefix + "local.branch") or default_branch,
        remote_url=_value(records, prefix + "remote.url"),
        remote_branch=_value(records, prefix + "remote.branch"),
    )
    context.tracked_paths = set(_paths(records, prefix + "tracked.files"))
    context.untracked_paths = set(_paths(records, prefix + "untracked.files"))
    context.undecided_paths = set(_paths(records, prefix + "undecided.files"))
    if context.remote_url is None:
        context.remote_branch = None
    return context


def loads_context(text: str, default_root: Path, default_branch: str = "main") -> RepoContext:
    """Deserialize a context record. Never raises: bad content yields defaults."""
    try:
        records = parse_records(text or "")
        context = _context_from(records, "", default_root, default_branch)
        if _value(records, "jump.local.dir") or _value(records, "jump.local.branch"):
            context.alternate = _context_from(records, JUMP_PREFIX, context.local_root, default_branch)
        return context.normalize()
    except Exception as e:
        logger.debug(f"Unreadable context content, using defaults: {e}")
        return RepoContext(local_root=default_root, local_branch=default_branch)


def _location_lines(context: RepoContext, prefix: str) -> List[Tuple[str, str]]:
    lines = [
        (prefix + "local.dir", str(context.local_root)),
        (prefix + "local.branch", context.local_branch),
    ]
    if context.has_remote:
        lines.append((prefix + "remote.url", context.remote_url.strip()))
        if context.remote_branch:
            lines.append((prefix + "remote.branch", context.remote_branch))
    for key, paths in ((prefix + "tracked.files", context.tracked_paths),
                       (prefix + "untracked.files", context.untracked_paths),
                       (prefix + "undecided.files", context.undecided_paths)):
        if paths:
            lines.append((key, ",".join(sorted(paths))))
    return lines


def dumps_context(context: RepoContext, timestamp: Optional[datetime] = None) -> str:
    """Serialize a context record."""
    stamp = (timestamp or datetime.now()).replace(microsecond=0).isoformat()
    lines = [f"# {HEADER}", f"# {stamp}"]
    pairs = _location_lines(context, "")
    if context.alternate is not None:
        pairs.extend(_location_lines(context.alternate, JUMP_PREFIX))
    lines.extend(f"{key}={_escape(value)}" for key, value in pairs)
    return "\n".join(lines) + "\n"


class ContextStore:
    """The context file of one repository root."""

    def __init__(self, root: Path, file_name: str = ".vgl", default_branch: str = "main"):
        self.root = Path(root)
        self.file_name = file_name
        self.default_branch = default_branch
        self.logger = logging.getLogger('vgl.context.store')
        self._loaded: Optional[RepoContext] = None
        self.repaired_root = False

    @property
    def path(self) -> Path:
        return self.root / self.file_name

    def exists(self) -> bool:
        return self.path.is_file()

    def read_text(self) -> Optional[str]:
        """Raw file content, or None when missing or unreadable."""
        try:
            return self.path.read_bytes().decode("utf-8", errors="replace")
        except FileNotFoundError:
            return None
        except OSError as e:
            self.logger.debug(f"Could not read context file {self.path}: {e}")
            return None

    def load(self) -> RepoContext:
        """Load the record once; later calls return the same object."""
        if self._loaded is not None:
            return self._loaded

        text = self.read_text()
        context = loads_context(text or "", self.root, self.default_branch)
        recorded_root = self._absolute(context.local_root)
        # local.dir may name another repository (switch -lr) but it must still be one
        if _resolved(recorded_root) == _resolved(self.root) or not (recorded_root / ".git").exists():
            if _resolved(recorded_root) != _resolved(self.root):
                self.logger.debug(f"Context records missing repository {recorded_root}, using {self.root}")
                self.repaired_root = True
            recorded_root = self.root
        context.local_root = _resolved(recorded_root)
        # a stale jump location is reported by jump itself
        if context.alternate is not None:
            context.alternate.local_root = _resolved(self._absolute(context.alternate.local_root))
        self._loaded = context
        return context

    def _absolute(self, path: Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.root / path

    def save(self, context: RepoContext) -> None:
        """Rewrite the file in one step (temporary file then rename)."""
        context.normalize()
        content = dumps_context(context)
        self.root.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(dir=str(self.root), prefix=self.file_name + ".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
                handle.write(content)
            os.replace(temp_name, self.path)
        except Exception:
            try:
                os.unlink(temp_name)
            except OSError:
                pass
            raise
        self._loaded = context
        self.logger.debug(f"Saved context to {self.path}")

    def delete(self) -> bool:
        """Remove the file; returns False when it could not be removed."""
        try:
            self.path.unlink()
            self._loaded = None
            return True
        except FileNotFoundError:
            return True
        except OSError as e:
            self.logger.warning(f"Failed to delete context file {self.path}: {e}")
            return False


def _resolved(path: Path) -> Path:
    try:
        return Path(path).expanduser().resolve()
    except (OSError, RuntimeError):
        return Path(path)
