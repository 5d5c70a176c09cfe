"""
Resolution of the repository context a command acts on.

Precedence, applied once per invocation:

1. an explicit directory override;
2. a context file found by walking upward from the start directory, never
   past the nearest VCS root or the configured ceiling;
3. defaults (root = nearest VCS root, branch = the default branch).

Every failure inside resolution degrades to defaults; only the total absence
of a VCS root yields ``ResolutionKind.NONE``.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from ..config import Config
from ..errors import RepositoryNotFoundError
from ..platform import is_interactive
from ..vcs.provider import GitStatusProvider, find_vcs_root
from .models import RepoContext
from .store import ContextStore


class ResolutionKind(Enum):
    """How the effective context was obtained."""
    EXPLICIT = "explicit"
    FOUND_BOTH = "found_both"
    CREATED_CONTEXT = "created_context"
    DEFAULTS = "defaults"
    NONE = "none"


@dataclass
class ContextResolution:
    """Outcome of a resolution, including any repair performed on the way."""
    context: Optional[RepoContext]
    kind: ResolutionKind
    vcs_root: Optional[Path] = None
    context_file: Optional[Path] = None
    created: bool = False
    removed_orphan: bool = False
    interactive: bool = False
    message: str = ""
    diagnostics: List[str] = field(default_factory=list)
    store: Optional[ContextStore] = None

    @property
    def found(self) -> bool:
        return self.kind is not ResolutionKind.NONE and self.context is not None

    def require(self, search_path: Path) -> RepoContext:
        """The resolved context, or RepositoryNotFoundError when there is none."""
        if not self.found:
            raise RepositoryNotFoundError(search_path)
        return self.context


class ContextResolver:
    """Determines the effective root, branch and remote for one invocation."""

    def __init__(self, config: Config, provider: Optional[GitStatusProvider] = None,
                 confirm: Optional[Callable[[str], bool]] = None,
                 interactive: Optional[bool] = None):
        self.config = config
        self.provider = provider or GitStatusProvider(config.remote_name)
        self.confirm = confirm
        self.interactive = is_interactive(config) if interactive is None else interactive
        self.logger = logging.getLogger('vgl.context.resolver')

    def _ask(self, question: str) -> bool:
        if not self.interactive or self.confirm is None:
            return False
        try:
            return bool(self.confirm(question))
        except Exception as e:
            self.logger.debug(f"Confirmation prompt failed, treating as declined: {e}")
            return False

    def _store(self, root: Path) -> ContextStore:
        return ContextStore(root, self.config.context_file_name, self.config.default_branch)

    def find_context_file(self, start: Path, vcs_root: Optional[Path]) -> Optional[Path]:
        """Walk upward for the context file, stopping at the VCS root or the ceiling."""
        ceiling = Path(self.config.ceiling_dir).resolve() if self.config.ceiling_dir else None
        current = Path(start).resolve()
        while True:
            candidate = self.config.context_file(current)
            if candidate.is_file():
                return candidate
            if vcs_root is not None and current == vcs_root:
                return None
            if ceiling is not None and current == ceiling:
                return None
            parent = current.parent
            if parent == current:
                return None
            current = parent

    def resolve(self, start_dir: Path, override: Optional[Path] = None) -> ContextResolution:
        """Resolve the context for a command started in ``start_dir``."""
        start = Path(start_dir).resolve()
        try:
            if override is not None:
                return self._resolve_explicit(start, Path(override))
            return self._resolve_search(start)
        except Exception as e:
            self.logger.warning(f"Context resolution failed, using defaults: {e}",
                                extra={'operation': 'resolve_context'})
            vcs_root = find_vcs_root(start, self.config.ceiling_dir)
            if vcs_root is None:
                return ContextResolution(None, ResolutionKind.NONE, interactive=self.interactive,
                                         message=f"No git repository found in: {start}")
            return ContextResolution(
                RepoContext(local_root=vcs_root, local_branch=self.config.default_branch),
                ResolutionKind.DEFAULTS,
                vcs_root=vcs_root,
                context_file=self.config.context_file(vcs_root),
                interactive=self.interactive,
                store=self._store(vcs_root)
            )

    def _resolve_explicit(self, start: Path, override: Path) -> ContextResolution:
        target = override if override.is_absolute() else start / override
        target = target.resolve()
        if not target.is_dir():
            return ContextResolution(None, ResolutionKind.NONE, interactive=self.interactive,
                                     message=f"Directory does not exist: {target}")

        vcs_root = target if (target / ".git").exists() else find_vcs_root(target, self.config.ceiling_dir)
        if vcs_root is None:
            return ContextResolution(None, ResolutionKind.NONE, interactive=self.interactive,
                                     message=f"No git repository found in: {target}")

        resolution = self._load_or_create(vcs_root)
        resolution.kind = ResolutionKind.EXPLICIT
        return resolution

    def _resolve_search(self, start: Path) -> ContextResolution:
        vcs_root = find_vcs_root(start, self.config.ceiling_dir)
        context_file = self.find_context_file(start, vcs_root)
        diagnostics: List[str] = []
        removed_orphan = False

        if context_file is not None and not (context_file.parent / ".git").exists():
            removed_orphan = self._handle_orphan(context_file, diagnostics)

        if vcs_root is None:
            return ContextResolution(None, ResolutionKind.NONE,
                                     removed_orphan=removed_orphan,
                                     interactive=self.interactive,
                                     message=f"No git repository found in: {start}",
                                     diagnostics=diagnostics)

        resolution = self._load_or_create(vcs_root)
        resolution.removed_orphan = removed_orphan
        resolution.diagnostics[:0] = diagnostics
        return resolution

    def _handle_orphan(self, context_file: Path, diagnostics: List[str]) -> bool:
        """Offer to delete (interactive) or delete (non-interactive) a context file with no repository."""
        store = self._store(context_file.parent)
        if self.interactive:
            if not self._ask(f"Found {context_file} but no git repository beside it. Delete it?"):
                diagnostics.append(f"Keeping orphaned context file: {context_file}")
                return False
        if store.delete():
            self.logger.info(f"Removed orphaned context file {context_file}",
                             extra={'operation': 'remove_orphan'})
            diagnostics.append(f"Removed orphaned context file: {context_file}")
            return True
        diagnostics.append(f"Could not remove orphaned context file: {context_file}")
        return False

    def _load_or_create(self, vcs_root: Path) -> ContextResolution:
        store = self._store(vcs_root)
        if store.exists():
            context = store.load()
            diagnostics = []
            if store.repaired_root:
                diagnostics.append(f"Context file recorded a directory that is no longer a repository, using {vcs_root}")
            return ContextResolution(context, ResolutionKind.FOUND_BOTH, vcs_root=vcs_root,
                                     context_file=store.path, interactive=self.interactive,
                                     diagnostics=diagnostics, store=store)
        return self._create_missing(vcs_root, store)

    def fabricate(self, vcs_root: Path) -> RepoContext:
        """Build a context from the live repository state."""
        with self.provider.open_repository(vcs_root) as repo:
            branch = self.provider.current_branch(repo) or self.config.default_branch
            remote_url = self.provider.remote_url(repo)
            remote_branch = self.provider.upstream_branch(repo, branch) if remote_url else None
        return RepoContext(local_root=vcs_root, local_branch=branch,
                           remote_url=remote_url, remote_branch=remote_branch)

    def _create_missing(self, vcs_root: Path, store: ContextStore) -> ContextResolution:
        try:
            context = self.fabricate(vcs_root)
        except Exception as e:
            self.logger.debug(f"Could not read live repository state at {vcs_root}: {e}")
            return ContextResolution(
                RepoContext(local_root=vcs_root, local_branch=self.config.default_branch),
                ResolutionKind.DEFAULTS, vcs_root=vcs_root, context_file=store.path,
                interactive=self.interactive, store=store)

        diagnostics = []
        created = False
        if not self.interactive or self._ask(f"No {self.config.context_file_name} context in {vcs_root}. Create one?"):
            try:
                store.save(context)
                created = True
                diagnostics.append(f"Created context file: {store.path}")
                self.logger.info(f"Created context file {store.path}", extra={'operation': 'create_context'})
            except OSError as e:
                self.logger.debug(f"Could not write context file {store.path}: {e}")
                diagnostics.append(f"Could not write context file: {store.path}")

        return ContextResolution(context, ResolutionKind.CREATED_CONTEXT, vcs_root=vcs_root,
                                 context_file=store.path, created=created,
                                 interactive=self.interactive, diagnostics=diagnostics,
                                 store=store)
