"""The ``status`` verb."""

import logging
from typing import Sequence

from ..status.formatter import Verbosity, render_status
from .utils import CommandResult, create_command_result
from .workspace import Workspace


logger = logging.getLogger('vgl.commands.status')


def status(workspace: Workspace, verbosity: int = 0, paths: Sequence[str] = ()) -> CommandResult:
    """Render the workspace summary; a changed undecided list is persisted."""
    workspace.require_repository()
    level = Verbosity.from_count(verbosity)
    filters = [workspace.relative(p) for p in paths]

    report = workspace.status_report(filters=filters, with_branches=level is Verbosity.FULL)
    lines = render_status(report, level, workspace.config.max_display_path)
    workspace.save_context()

    logger.debug(f"Rendered status at verbosity {level.name}", extra={'operation': 'status'})
    return create_command_result(True, f"{len(report.files_to_commit)} to commit", "status", lines=lines)
