"""
Per-invocation workspace session.

A command resolves its context once through :class:`ContextResolver`, passes
the resulting RepoContext explicitly to everything it calls, and persists the
context at most once when it is done.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

from git import Repo

from ..config import Config
from ..context.models import RepoContext
from ..context.nested import find_nested_repositories, nested_targets
from ..context.resolver import ContextResolution, ContextResolver, ResolutionKind
from ..context.store import ContextStore
from ..errors import NestedRepositoryError, RepositoryNotFoundError
from ..platform import to_repo_relative
from ..status.service import StatusReport, build_status_report
from ..vcs.provider import GitStatusProvider


class Workspace:
    """The resolved context of one command invocation plus its collaborators."""

    def __init__(self, config: Config, resolution: ContextResolution, start_dir: Path,
                 provider: Optional[GitStatusProvider] = None):
        self.config = config
        self.resolution = resolution
        self.start_dir = Path(start_dir).resolve()
        self.provider = provider or GitStatusProvider(config.remote_name)
        self.logger = logging.getLogger('vgl.commands.workspace')
        self._dirty = False
        self._saved = False
        self._refreshed = False

    @classmethod
    def open(cls, config: Config, start_dir: Path, override: Optional[Path] = None,
             provider: Optional[GitStatusProvider] = None,
             confirm: Optional[Callable[[str], bool]] = None,
             interactive: Optional[bool] = None) -> "Workspace":
        provider = provider or GitStatusProvider(config.remote_name)
        resolver = ContextResolver(config, provider, confirm=confirm, interactive=interactive)
        resolution = resolver.resolve(start_dir, override)
        return cls(config, resolution, start_dir, provider)

    @property
    def found(self) -> bool:
        return self.resolution.found

    @property
    def context(self) -> RepoContext:
        return self.resolution.require(self.start_dir)

    @property
    def root(self) -> Path:
        return Path(self.context.local_root)

    @property
    def diagnostics(self) -> List[str]:
        return list(self.resolution.diagnostics)

    def require_repository(self) -> RepoContext:
        """Return the context or raise the "no repository found" error."""
        context = self.context
        if not (Path(context.local_root) / ".git").exists():
            raise RepositoryNotFoundError(context.local_root)
        return context

    @contextmanager
    def repository(self) -> Iterator[Repo]:
        """Open the repository of the current context for the duration of a block."""
        self.require_repository()
        with self.provider.open_repository(self.root) as repo:
            yield repo

    def nested_roots(self) -> List[str]:
        return find_nested_repositories(self.root)

    def reject_nested(self, paths: Sequence[str], operation: str) -> None:
        """Raise NestedRepositoryError when any path lies inside a nested repository."""
        offending = nested_targets(paths, self.nested_roots())
        if offending:
            raise NestedRepositoryError(offending, operation)

    def relative(self, path) -> str:
        """Repository-relative form of a path given on the command line."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.start_dir / candidate
            # the active context may point at a repository other than the current directory
            if to_repo_relative(self.root, candidate).startswith("../"):
                candidate = self.root / path
        return to_repo_relative(self.root, candidate)

    def status_report(self, fetch: Optional[bool] = None, filters: Sequence[str] = (),
                      with_branches: bool = False) -> StatusReport:
        report = build_status_report(self.provider, self.require_repository(), self.config,
                                     fetch=fetch, filters=filters, with_branches=with_branches)
        if report.undecided_changed:
            self._refreshed = True
        return report

    def mark_dirty(self) -> None:
        self._dirty = True

    def _declined_creation(self) -> bool:
        return self.resolution.kind is ResolutionKind.CREATED_CONTEXT and not self.resolution.created

    @property
    def store(self) -> ContextStore:
        if self.resolution.store is not None:
            return self.resolution.store
        return ContextStore(self.root, self.config.context_file_name, self.config.default_branch)

    def save_context(self, force: bool = False) -> bool:
        """Persist the context once, when it was changed during this invocation."""
        if self._saved:
            return False
        # a refreshed undecided list alone never creates a file the user declined
        if not (self._dirty or force or (self._refreshed and not self._declined_creation())):
            return False
        self.store.save(self.context)
        self._saved = True
        self.logger.debug(f"Persisted context to {self.store.path}")
        return True
