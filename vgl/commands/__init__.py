"""Command handlers behind the vgl verbs."""

from .branches import abort, delete, jump, merge, split, switch
from .committing import commit, diff, log
from .remote import checkin, pull, push, sync
from .repo_setup import checkout_repository, copy_repository, create_repository, ensure_gitignore
from .status import status
from .tracking import expand_paths, restore, track, untrack
from .utils import CommandResult, create_command_result
from .workspace import Workspace

__all__ = [
    'CommandResult',
    'create_command_result',
    'Workspace',
    'create_repository',
    'checkout_repository',
    'copy_repository',
    'ensure_gitignore',
    'track',
    'untrack',
    'restore',
    'expand_paths',
    'commit',
    'diff',
    'log',
    'status',
    'switch',
    'jump',
    'merge',
    'abort',
    'split',
    'delete',
    'push',
    'pull',
    'sync',
    'checkin'
]
