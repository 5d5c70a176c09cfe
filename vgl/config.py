"""Configuration management for the vgl command line."""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, List

from dotenv import load_dotenv

from .platform import get_platform_specific_defaults, normalize_path

load_dotenv()  # Load .env file if it exists


VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_RENAME_PAIRINGS = ["order", "none"]


@dataclass
class Config:
    """Configuration class for vgl with validation and defaults."""

    # Logging
    log_level: str = "WARNING"

    # Repository defaults
    default_branch: str = "main"
    remote_name: str = "origin"
    context_file_name: str = ".vgl"

    # Upward search never escapes past this directory
    ceiling_dir: Optional[Path] = None

    # Behaviour
    non_interactive: bool = False
    fetch_on_status: bool = True
    rename_pairing: str = "order"

    # Output
    max_display_path: int = 35

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.ceiling_dir, str):
            self.ceiling_dir = Path(self.ceiling_dir) if self.ceiling_dir.strip() else None

        if self.ceiling_dir is not None:
            self.ceiling_dir = normalize_path(self.ceiling_dir)

        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}")

        if not self.default_branch or not self.default_branch.strip():
            raise ValueError("default_branch must not be blank")

        if not self.remote_name or not self.remote_name.strip():
            raise ValueError("remote_name must not be blank")

        if not self.context_file_name or "/" in self.context_file_name or "\\" in self.context_file_name:
            raise ValueError(f"Invalid context file name: {self.context_file_name!r}")

        if self.rename_pairing not in VALID_RENAME_PAIRINGS:
            raise ValueError(f"Invalid rename pairing: {self.rename_pairing}. Must be one of {VALID_RENAME_PAIRINGS}")

        if self.max_display_path < 10:
            raise ValueError("max_display_path must be at least 10")

    def context_file(self, root: Path) -> Path:
        """Location of the context file for a repository root."""
        return Path(root) / self.context_file_name


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def load_configuration() -> Config:
    """Load configuration from environment variables with platform-specific defaults."""
    try:
        platform_defaults = get_platform_specific_defaults()

        return Config(
            log_level=os.getenv("VGL_LOG_LEVEL", platform_defaults['log_level']).upper(),
            default_branch=os.getenv("VGL_DEFAULT_BRANCH", platform_defaults['default_branch']),
            remote_name=os.getenv("VGL_REMOTE_NAME", "origin"),
            context_file_name=os.getenv("VGL_CONTEXT_FILE", ".vgl"),
            ceiling_dir=os.getenv("VGL_CEILING_DIRECTORY") or None,
            non_interactive=_env_flag("VGL_NONINTERACTIVE", "false"),
            fetch_on_status=_env_flag("VGL_FETCH_ON_STATUS", "true"),
            rename_pairing=os.getenv("VGL_RENAME_PAIRING", "order").strip().lower(),
            max_display_path=int(os.getenv("VGL_MAX_DISPLAY_PATH", str(platform_defaults['max_display_path'])))
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return any warnings."""
    warnings = []

    if config.ceiling_dir is not None and not config.ceiling_dir.exists():
        warnings.append(f"WARNING: Ceiling directory does not exist: {config.ceiling_dir}")

    if config.rename_pairing == "none":
        logging.getLogger('vgl.config').debug("Order-based rename pairing disabled")

    return warnings
