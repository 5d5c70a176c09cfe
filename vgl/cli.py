"""
Command line entry point for vgl.

Every verb resolves its workspace once, calls the matching handler in
``vgl.commands`` and maps the outcome onto the process exit code:
0 on success, 1 for user errors and 2 for unexpected failures.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import click
from rich.console import Console

from . import __version__
from . import commands
from .commands.utils import CommandResult
from .commands.workspace import Workspace
from .config import Config, load_configuration, validate_configuration
from .errors import EXIT_SUCCESS, EXIT_USER_ERROR, ErrorResponse, error_handler
from .platform import is_interactive


console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

logger = logging.getLogger('vgl.cli')


def setup_logging(config: Config) -> None:
    """Setup logging with structured records written to stderr."""
    class StructuredFormatter(logging.Formatter):
        def format(self, record):
            # Add structured data if available
            if hasattr(record, 'operation') and not getattr(record, '_vgl_tagged', False):
                record.msg = f"[{record.operation}] {record.msg}"
                record._vgl_tagged = True
            return super().format(record)

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    loggers = [
        'vgl.config',
        'vgl.context',
        'vgl.vcs',
        'vgl.status',
        'vgl.commands',
        'vgl.cli',
        'vgl.error_handler'
    ]

    formatter = StructuredFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    for logger_name in loggers:
        named = logging.getLogger(logger_name)
        named.setLevel(getattr(logging, config.log_level))

        if not named.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)
            named.addHandler(handler)
            named.propagate = False


class CliState:
    """Per-invocation settings shared by every verb."""

    def __init__(self, config: Config, start_dir: Path, override: Optional[Path] = None):
        self.config = config
        self.start_dir = start_dir
        self.override = override

    def confirm(self, question: str) -> bool:
        return click.confirm(question, default=False, err=True)

    @property
    def interactive(self) -> bool:
        return is_interactive(self.config)

    def workspace(self) -> Workspace:
        workspace = Workspace.open(self.config, self.start_dir, override=self.override,
                                   confirm=self.confirm, interactive=self.interactive)
        for line in workspace.diagnostics:
            err_console.print(line, markup=False, soft_wrap=True)
        return workspace


def _emit(result: CommandResult) -> int:
    for line in result.diagnostics:
        err_console.print(line, markup=False, soft_wrap=True)
    if not result.success:
        err_console.print(f"Error: {result.message}", markup=False, soft_wrap=True)
        return EXIT_USER_ERROR
    for line in result.lines:
        console.print(line, markup=False, soft_wrap=True)
    return EXIT_SUCCESS


def _report(response: ErrorResponse) -> int:
    err_console.print(response.diagnostic, markup=False, soft_wrap=True)
    return response.exit_code


pass_state = click.make_pass_decorator(CliState)


@click.group()
@click.version_option(version=__version__, prog_name="vgl")
@click.option("-C", "--directory", type=click.Path(file_okay=False), default=None,
              help="Run as if vgl was started in DIRECTORY.")
@click.pass_context
def cli(ctx: click.Context, directory: Optional[str]):
    """vgl - version control with explicit tracking decisions."""
    config = load_configuration()
    setup_logging(config)
    for warning in validate_configuration(config):
        logger.warning(warning)

    start_dir = Path(directory).resolve() if directory else Path.cwd()
    ctx.obj = CliState(config, start_dir, Path(directory) if directory else None)


@cli.command()
@click.argument("path", required=False, type=click.Path(file_okay=False))
@click.option("-b", "--branch", default=None, help="Initial branch, or a new branch in an existing repository.")
@pass_state
def create(state: CliState, path: Optional[str], branch: Optional[str]) -> int:
    """Create a repository (or a new branch in an existing one)."""
    target = Path(path) if path else state.start_dir
    if not target.is_absolute():
        target = state.start_dir / target
    return _emit(commands.create_repository(state.config, target, branch=branch,
                                            confirm=state.confirm, interactive=state.interactive))


@cli.command()
@click.argument("url")
@click.argument("directory", required=False, type=click.Path(file_okay=False))
@click.option("-b", "--branch", default=None, help="Branch to check out.")
@pass_state
def checkout(state: CliState, url: str, directory: Optional[str], branch: Optional[str]) -> int:
    """Clone a remote repository and record it as the remote context."""
    target = Path(directory) if directory else None
    return _emit(commands.checkout_repository(state.config, url, state.start_dir, target, branch=branch))


@cli.command()
@click.option("--into", "into", required=True, type=click.Path(file_okay=False), help="Destination directory.")
@click.option("-b", "--branch", default=None, help="Branch to copy (default: the current one).")
@pass_state
def copy(state: CliState, into: str, branch: Optional[str]) -> int:
    """Copy the current repository into another local directory."""
    workspace = state.workspace()
    source = workspace.require_repository()
    return _emit(commands.copy_repository(state.config, source, Path(into), state.start_dir, branch=branch,
                                          confirm=state.confirm, interactive=state.interactive))


@cli.command()
@click.argument("paths", nargs=-1)
@click.option("--all", "all_undecided", is_flag=True, help="Track every undecided file.")
@pass_state
def track(state: CliState, paths: Sequence[str], all_undecided: bool) -> int:
    """Start tracking files."""
    return _emit(commands.track(state.workspace(), paths, all_undecided=all_undecided))


@cli.command()
@click.argument("paths", nargs=-1)
@click.option("--all", "all_undecided", is_flag=True, help="Untrack every undecided file.")
@pass_state
def untrack(state: CliState, paths: Sequence[str], all_undecided: bool) -> int:
    """Stop tracking files; they stay on disk."""
    return _emit(commands.untrack(state.workspace(), paths, all_undecided=all_undecided))


@cli.command()
@click.argument("paths", nargs=-1)
@click.option("--all", "all_changes", is_flag=True, help="Restore every changed tracked file.")
@pass_state
def restore(state: CliState, paths: Sequence[str], all_changes: bool) -> int:
    """Discard working tree changes of tracked files."""
    return _emit(commands.restore(state.workspace(), paths, all_changes=all_changes))


@cli.command()
@click.argument("message", required=False)
@click.option("--amend", is_flag=True, help="Replace the last commit.")
@pass_state
def commit(state: CliState, message: Optional[str], amend: bool) -> int:
    """Commit tracked changes."""
    return _emit(commands.commit(state.workspace(), message or "", amend=amend))


@cli.command()
@click.argument("paths", nargs=-1)
@click.option("--staged-only", is_flag=True, help="Only show staged changes.")
@click.option("-lb", "--local-branch", "local_branch", default=None, help="Compare HEAD with a local branch.")
@click.option("-rb", "--remote-branch", "remote", is_flag=True, help="Compare HEAD with the remote branch.")
@pass_state
def diff(state: CliState, paths: Sequence[str], staged_only: bool, local_branch: Optional[str],
         remote: bool) -> int:
    """Show the renames summary and the diff."""
    return _emit(commands.diff(state.workspace(), paths, staged_only=staged_only,
                               local_branch=local_branch, remote=remote))


@cli.command()
@click.option("-n", "--max-count", "max_count", type=int, default=None, help="Show at most N commits.")
@pass_state
def log(state: CliState, max_count: Optional[int]) -> int:
    """Show the history of the current branch."""
    return _emit(commands.log(state.workspace(), max_count=max_count))


@cli.command()
@click.argument("paths", nargs=-1)
@click.option("-v", "--verbose", "verbosity", count=True, help="-v lists files and commits, -vv lists everything.")
@pass_state
def status(state: CliState, paths: Sequence[str], verbosity: int) -> int:
    """Summarize the local, remote and file state."""
    return _emit(commands.status(state.workspace(), verbosity=verbosity, paths=paths))


@cli.command()
@click.option("-lr", "--local-repo", "local_dir", default=None, help="Local repository directory.")
@click.option("-lb", "--local-branch", "local_branch", default=None, help="Local branch.")
@click.option("-rr", "--remote-repo", "remote_url", default=None, help="Remote repository URL.")
@click.option("-rb", "--remote-branch", "remote_branch", default=None, help="Remote branch.")
@pass_state
def switch(state: CliState, local_dir: Optional[str], local_branch: Optional[str],
           remote_url: Optional[str], remote_branch: Optional[str]) -> int:
    """Change the active context."""
    return _emit(commands.switch(state.workspace(), local_dir=local_dir, local_branch=local_branch,
                                 remote_url=remote_url, remote_branch=remote_branch))


@cli.command()
@pass_state
def jump(state: CliState) -> int:
    """Swap the current and jump contexts."""
    return _emit(commands.jump(state.workspace()))


@cli.command()
@click.option("--from", "from_branch", default=None, help="Merge BRANCH into the current branch.")
@click.option("--into", "into_branch", default=None, help="Merge the current branch into BRANCH.")
@pass_state
def merge(state: CliState, from_branch: Optional[str], into_branch: Optional[str]) -> int:
    """Merge branches."""
    return _emit(commands.merge(state.workspace(), from_branch=from_branch, into_branch=into_branch))


@cli.command()
@pass_state
def abort(state: CliState) -> int:
    """Abandon a merge that stopped on conflicts."""
    return _emit(commands.abort(state.workspace()))


@cli.command()
@click.option("--into", "into", default=None, help="Name of the new branch.")
@click.option("--from", "source", default=None, help="Branch to start from (default: the current one).")
@pass_state
def split(state: CliState, into: Optional[str], source: Optional[str]) -> int:
    """Create a branch and switch to it."""
    return _emit(commands.split(state.workspace(), into=into, source=source))


@cli.command()
@click.option("-lb", "--local-branch", "local_branch", default=None, help="Local branch to delete.")
@click.option("-rb", "--remote-branch", "remote_branch", default=None, help="Remote branch to delete.")
@pass_state
def delete(state: CliState, local_branch: Optional[str], remote_branch: Optional[str]) -> int:
    """Delete a local or remote branch."""
    return _emit(commands.delete(state.workspace(), local_branch=local_branch, remote_branch=remote_branch))


@cli.command()
@pass_state
def push(state: CliState) -> int:
    """Push the current branch to the remote."""
    return _emit(commands.push(state.workspace()))


@cli.command()
@pass_state
def pull(state: CliState) -> int:
    """Fetch and merge the remote branch."""
    return _emit(commands.pull(state.workspace()))


@cli.command()
@pass_state
def sync(state: CliState) -> int:
    """Pull, then push."""
    return _emit(commands.sync(state.workspace()))


@cli.command()
@click.option("-draft", "--draft", "draft", is_flag=True, help="The pull request is a draft.")
@click.option("-final", "--final", "final", is_flag=True, help="The pull request is ready for review.")
@pass_state
def checkin(state: CliState, draft: bool, final: bool) -> int:
    """Show where to open a pull request for the remote branch."""
    return _emit(commands.checkin(state.workspace(), draft=draft, final=final))


def main(argv: Optional[List[str]] = None) -> int:
    """Run vgl and return the process exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        result = cli.main(args=args, prog_name="vgl", standalone_mode=False)
    except click.exceptions.Abort:
        err_console.print("Aborted.", markup=False)
        return EXIT_USER_ERROR
    except click.ClickException as e:
        return _report(error_handler.handle_usage_error(e.format_message()))
    except Exception as e:
        return _report(error_handler.handle(e, {'argv': args}))

    if isinstance(result, int):
        return result
    return EXIT_SUCCESS


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
