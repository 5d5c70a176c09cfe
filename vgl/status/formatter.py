"""
Rendering of status reports and context state.

Every count printed in a compact line is computed from the same list that the
detailed section prints, so counts and listed entries always agree.
"""

from enum import IntEnum
from pathlib import Path
from typing import Iterable, List, Optional

from ..context.models import RepoContext
from ..vcs.models import ChangeEntry, ChangeKind, CommitInfo
from .classifier import FileCategory
from .service import StatusReport


NONE = "(none)"
SAME = "(same)"
SEPARATOR = " :: "
INDENT = "  "

LABEL_WIDTH = 8


class Verbosity(IntEnum):
    DEFAULT = 0
    ELEVATED = 1
    FULL = 2

    @classmethod
    def from_count(cls, count: int) -> "Verbosity":
        return cls(max(0, min(int(count), cls.FULL)))


def truncate_middle(text: str, max_length: int) -> str:
    """Shorten ``text`` by replacing its middle with ``...``."""
    if max_length < 5 or len(text) <= max_length:
        return text
    left = (max_length - 3) // 2
    right = max_length - 3 - left
    return text[:left] + "..." + text[len(text) - right:]


def _label(name: str) -> str:
    return name.ljust(LABEL_WIDTH)


def _section(title: str, items: Iterable[str]) -> List[str]:
    lines = [f"-- {title}:"]
    items = list(items)
    if not items:
        lines.append(INDENT + NONE)
    else:
        lines.extend(INDENT + item for item in items)
    return lines


def _count(entries: List[ChangeEntry], kind: ChangeKind) -> int:
    return sum(1 for entry in entries if entry.kind is kind)


class SummaryFormatter:
    """Builds the output lines of the ``status`` verb."""

    def __init__(self, verbosity: Verbosity = Verbosity.DEFAULT, max_path: int = 35):
        self.verbosity = Verbosity(verbosity)
        self.max_path = max_path

    def _display(self, text: str) -> str:
        if self.verbosity is Verbosity.DEFAULT:
            return truncate_middle(text, self.max_path)
        return text

    def render(self, report: StatusReport) -> List[str]:
        lines: List[str] = []
        lines.extend(self.local_lines(report))
        lines.extend(self.remote_lines(report))
        lines.extend(self.commit_lines(report))
        lines.extend(self.file_lines(report))
        return lines

    def local_lines(self, report: StatusReport) -> List[str]:
        context = report.context
        lines = [f"{_label('LOCAL')}{self._display(str(context.local_root))}{SEPARATOR}{context.local_branch}"]
        if self.verbosity is Verbosity.FULL:
            lines.append(f"{INDENT}-- Branches:")
            branches = report.local_branches or [context.local_branch]
            for branch in branches:
                marker = "*" if branch == context.local_branch else " "
                lines.append(f"{INDENT}{marker} {branch}")
        return lines

    def remote_lines(self, report: StatusReport) -> List[str]:
        context = report.context
        if context.has_remote:
            url = self._display(context.remote_url)
            branch = context.remote_branch or context.local_branch
        else:
            url, branch = NONE, NONE
        lines = [f"{_label('REMOTE')}{url}{SEPARATOR}{branch} {report.sync.describe()}"]
        if self.verbosity is Verbosity.FULL and context.has_remote:
            lines.append(f"{INDENT}-- Branches:")
            remote_branches = report.remote_branches or [branch]
            for name in remote_branches:
                marker = "*" if name == branch or name.endswith("/" + branch) else " "
                lines.append(f"{INDENT}{marker} {name}")
        return lines

    def commit_lines(self, report: StatusReport) -> List[str]:
        to_commit = report.files_to_commit
        lines = [
            f"{_label('COMMITS')}{len(to_commit)} to Commit, "
            f"{len(report.commits_to_push)} to Push, {len(report.commits_to_pull)} to Pull"
        ]
        if self.verbosity >= Verbosity.ELEVATED:
            lines.extend(_section("Files to Commit", (self._entry(e) for e in to_commit)))
            lines.extend(_section("Files to Push", (self._entry(e) for e in report.files_to_push)))
            lines.extend(_section("Files to Merge", (self._entry(e) for e in report.files_to_merge)))
            lines.extend(_section("Commits to Push", (self._commit(c) for c in report.commits_to_push)))
            lines.extend(_section("Commits to Pull", (self._commit(c) for c in report.commits_to_pull)))
        return lines

    def file_lines(self, report: StatusReport) -> List[str]:
        entries = report.files_to_commit
        classification = report.classification
        counts = {
            FileCategory.UNDECIDED: classification.undecided,
            FileCategory.TRACKED: classification.tracked,
            FileCategory.UNTRACKED: classification.untracked,
            FileCategory.IGNORED: classification.ignored,
        }
        lines = [
            f"{_label('FILES')}{_count(entries, ChangeKind.ADDED)} Added, "
            f"{_count(entries, ChangeKind.MODIFIED)} Modified, "
            f"{_count(entries, ChangeKind.RENAMED)} Renamed, "
            f"{_count(entries, ChangeKind.DELETED)} Deleted",
            f"{' ' * LABEL_WIDTH}{len(counts[FileCategory.UNDECIDED])} Undecided, "
            f"{len(counts[FileCategory.TRACKED])} Tracked, "
            f"{len(counts[FileCategory.UNTRACKED])} Untracked, "
            f"{len(counts[FileCategory.IGNORED])} Ignored",
        ]
        if self.verbosity is Verbosity.FULL:
            lines.extend(_section("Undecided Files", counts[FileCategory.UNDECIDED]))
            lines.extend(_section("Tracked Files", counts[FileCategory.TRACKED]))
            lines.extend(_section("Untracked Files", counts[FileCategory.UNTRACKED]))
            lines.extend(_section("Ignored Files", (classification.display_name(path)
                                                    for path in counts[FileCategory.IGNORED])))
        return lines

    def _entry(self, entry: ChangeEntry) -> str:
        if entry.kind is ChangeKind.RENAMED and entry.source_path:
            return f"{entry.letter} {entry.source_path} -> {entry.path}"
        return f"{entry.letter} {entry.path}"

    def _commit(self, commit: CommitInfo) -> str:
        return commit.describe()


def render_status(report: StatusReport, verbosity: Verbosity = Verbosity.DEFAULT,
                  max_path: int = 35) -> List[str]:
    return SummaryFormatter(verbosity, max_path).render(report)


def render_context_state(context: RepoContext, verbose: bool = False, max_path: int = 35) -> List[str]:
    """
    LOCAL and REMOTE lines for the current context with the jump context beneath.

    The jump entries show ``(same)`` when they match the current value and
    ``(none)`` when unset. Separators are aligned across the four lines.
    """
    def shown(value: Optional[str]) -> str:
        if not value:
            return NONE
        return value if verbose else truncate_middle(value, max_path)

    alternate = context.alternate
    local_dir = shown(str(context.local_root))
    remote_url = shown(context.remote_url) if context.has_remote else NONE

    jump_dir = NONE
    jump_branch = NONE
    jump_remote = NONE
    jump_remote_branch = NONE
    if alternate is not None:
        if Path(alternate.local_root) == Path(context.local_root):
            jump_dir = SAME
        else:
            jump_dir = shown(str(alternate.local_root))
        jump_branch = alternate.local_branch or NONE
        if alternate.has_remote:
            jump_remote = SAME if alternate.remote_url == context.remote_url else shown(alternate.remote_url)
            jump_remote_branch = alternate.remote_branch or alternate.local_branch

    remote_branch = (context.remote_branch or context.local_branch) if context.has_remote else NONE
    width = max(len(local_dir), len(jump_dir), len(remote_url), len(jump_remote))

    return [
        f"{_label('LOCAL')}{local_dir.ljust(width)}{SEPARATOR}{context.local_branch}",
        f"{' ' * LABEL_WIDTH}{jump_dir.ljust(width)}{SEPARATOR}{jump_branch}",
        f"{_label('REMOTE')}{remote_url.ljust(width)}{SEPARATOR}{remote_branch}",
        f"{' ' * LABEL_WIDTH}{jump_remote.ljust(width)}{SEPARATOR}{jump_remote_branch}",
    ]
