"""Error handling framework for the vgl command line."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional

from git import GitCommandError


EXIT_SUCCESS = 0
EXIT_USER_ERROR = 1
EXIT_INTERNAL_ERROR = 2


class ErrorCategory(Enum):
    """Categories of errors for structured error handling."""
    REPOSITORY = "repository"
    VALIDATION = "validation"
    NESTED_REPOSITORY = "nested_repository"
    VCS = "vcs"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


class VglError(Exception):
    """Base class for user-facing errors raised by vgl commands."""

    category = ErrorCategory.VALIDATION
    exit_code = EXIT_USER_ERROR

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR", context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}


class RepositoryNotFoundError(VglError):
    """No repository could be resolved for a command that needs one."""

    category = ErrorCategory.REPOSITORY

    def __init__(self, search_path, message: Optional[str] = None):
        text = message or (
            f"No git repository found in: {search_path}\n"
            "Initialize a repository with: vgl create"
        )
        super().__init__(text, "NO_REPOSITORY", {'search_path': str(search_path)})


class ValidationError(VglError):
    """Invalid arguments or a request that cannot be satisfied."""

    category = ErrorCategory.VALIDATION


class NestedRepositoryError(VglError):
    """A request targeted a path inside a nested repository."""

    category = ErrorCategory.NESTED_REPOSITORY

    def __init__(self, paths, operation: str):
        listed = " ".join(sorted(paths))
        super().__init__(
            f"Cannot {operation} paths inside a nested repository: {listed}",
            "NESTED_REPOSITORY_PATH",
            {'paths': sorted(paths), 'operation': operation}
        )


class VcsOperationError(VglError):
    """The underlying git operation failed."""

    category = ErrorCategory.VCS


@dataclass
class ErrorResponse:
    """Standardized error response format for command failures."""
    error: str
    error_code: str
    message: str
    timestamp: str
    category: str
    exit_code: int
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert error response to dictionary format."""
        result = {
            "error": self.error,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp,
            "category": self.category,
            "exit_code": self.exit_code
        }
        if self.context:
            result["context"] = self.context
        return result

    @property
    def diagnostic(self) -> str:
        """Single diagnostic line shown to the user."""
        first_line = self.message.splitlines()[0] if self.message else self.error
        return f"Error: {first_line}"


def summarize_git_error(error: GitCommandError) -> str:
    """Reduce a GitCommandError to git's own stderr message."""
    stderr = (error.stderr or "").strip()
    for prefix in ("stderr:", "'"):
        if stderr.startswith(prefix):
            stderr = stderr[len(prefix):].strip()
    stderr = stderr.strip("'").strip()
    if stderr:
        lines = [line.strip() for line in stderr.splitlines() if line.strip()]
        for line in lines:
            if line.lower().startswith(("fatal:", "error:")):
                return line.split(":", 1)[1].strip()
        return lines[0]
    return str(error)


class ErrorHandler:
    """Maps exceptions raised by commands onto diagnostics and exit codes."""

    def __init__(self):
        self.logger = logging.getLogger('vgl.error_handler')

    def handle(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle any exception raised while running a command."""
        context = dict(context or {})

        if isinstance(error, VglError):
            context.update(error.context)
            response = ErrorResponse(
                error="Command failed",
                error_code=error.error_code,
                message=error.message,
                timestamp=datetime.now().isoformat(),
                category=error.category.value,
                exit_code=error.exit_code,
                context=context
            )
            self.logger.info(
                f"Command error: {error.message}",
                extra={'operation': 'command_error', 'error_code': error.error_code}
            )
            return response

        if isinstance(error, GitCommandError):
            message = summarize_git_error(error)
            self.logger.info(
                f"Git command failed: {message}",
                extra={'operation': 'git_error', 'error_code': "GIT_COMMAND_ERROR"}
            )
            return ErrorResponse(
                error="Git operation failed",
                error_code="GIT_COMMAND_ERROR",
                message=message,
                timestamp=datetime.now().isoformat(),
                category=ErrorCategory.VCS.value,
                exit_code=EXIT_USER_ERROR,
                context=context
            )

        if isinstance(error, ValueError) and str(error).startswith("Configuration error"):
            return self.handle_configuration_error(error, context)

        self.logger.error(
            f"Unexpected error: {error}",
            extra={'operation': 'internal_error', 'error_code': "INTERNAL_ERROR"}
        )
        # tracebacks only at debug level
        self.logger.debug("Unexpected error details", exc_info=error)
        return ErrorResponse(
            error="Internal error",
            error_code="INTERNAL_ERROR",
            message=f"Internal error: {error}",
            timestamp=datetime.now().isoformat(),
            category=ErrorCategory.SYSTEM.value,
            exit_code=EXIT_INTERNAL_ERROR,
            context=context
        )

    def handle_usage_error(self, message: str) -> ErrorResponse:
        """Handle command line usage errors (unknown or ambiguous flags)."""
        self.logger.debug(f"Usage error: {message}", extra={'operation': 'usage_error'})
        return ErrorResponse(
            error="Usage error",
            error_code="USAGE_ERROR",
            message=message,
            timestamp=datetime.now().isoformat(),
            category=ErrorCategory.VALIDATION.value,
            exit_code=EXIT_USER_ERROR
        )

    def handle_configuration_error(self, error: Exception, context: Dict[str, Any] = None) -> ErrorResponse:
        """Handle configuration loading errors."""
        self.logger.warning(f"Configuration error: {error}", extra={'operation': 'configuration_error'})
        return ErrorResponse(
            error="Configuration error",
            error_code="CONFIGURATION_ERROR",
            message=str(error),
            timestamp=datetime.now().isoformat(),
            category=ErrorCategory.CONFIGURATION.value,
            exit_code=EXIT_USER_ERROR,
            context=context
        )


# Initialize global error handler
error_handler = ErrorHandler()
