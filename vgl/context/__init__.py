"""Repository context: persistence, resolution and nested-repository discovery."""

from .models import RepoContext
from .nested import find_nested_repositories, is_inside_nested, nested_targets
from .resolver import ContextResolution, ContextResolver, ResolutionKind
from .store import ContextStore, dumps_context, loads_context

__all__ = [
    'RepoContext',
    'ContextStore',
    'dumps_context',
    'loads_context',
    'ContextResolution',
    'ContextResolver',
    'ResolutionKind',
    'find_nested_repositories',
    'is_inside_nested',
    'nested_targets'
]
