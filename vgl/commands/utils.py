"""Utility classes and functions shared by the command handlers."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class CommandResult:
    """Result of one vgl command."""
    success: bool
    message: str
    operation: str
    error_code: Optional[str] = None
    lines: List[str] = field(default_factory=list)
    diagnostics: List[str] = field(default_factory=list)


def create_command_result(
    success: bool,
    message: str,
    operation: str,
    error_code: Optional[str] = None,
    lines: Optional[List[str]] = None,
    diagnostics: Optional[List[str]] = None
) -> CommandResult:
    """
    Helper function to create CommandResult instances.

    Args:
        success: Whether the command succeeded
        message: One-line description of the outcome
        operation: Name of the command that was performed
        error_code: Optional error code for failed commands
        lines: Output lines for stdout
        diagnostics: Extra notices for stderr (context repair and the like)

    Returns:
        CommandResult instance with all fields populated
    """
    return CommandResult(
        success=success,
        message=message,
        operation=operation,
        error_code=error_code,
        lines=list(lines or []),
        diagnostics=list(diagnostics or [])
    )
