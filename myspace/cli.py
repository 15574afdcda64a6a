"""Command-line interface for myspace."""

import sys
import traceback
from functools import wraps
from pathlib import Path
from typing import Optional

import click
import structlog
from rich.console import Console

from . import __version__
from .config import get_config
from .core.async_wrappers import SyncContainerManager as ContainerManager
from .core.project import Project
from .exceptions import MyspaceError, ToolInvocationError
from .utils.logging import setup_logging

console = Console()
logger = structlog.get_logger()


def workflow(f):
    """Decorator building the container manager and reporting myspace errors."""
    @click.pass_context
    @wraps(f)
    def wrapper(ctx, *args, **kwargs):
        debug = ctx.obj.get('DEBUG', False)
        try:
            manager = ContainerManager(ctx.obj['PROJECT'], ctx.obj['CONFIG'])
            manager.check_dependencies()
            return f(manager, *args, **kwargs)
        except KeyboardInterrupt:
            sys.exit(130)
        except MyspaceError as e:
            console.print(f"❌ {e}", markup=False)
            if debug:
                console.print(traceback.format_exc(), markup=False, highlight=False)
            logger.debug("Workflow failed", error=str(e), error_type=type(e).__name__)
            if isinstance(e, ToolInvocationError) and e.returncode and e.returncode > 0:
                sys.exit(e.returncode)
            sys.exit(1)
    return wrapper


@click.group(context_settings={'token_normalize_func': lambda token: token.lower()})
@click.version_option(version=__version__, prog_name="myspace")
@click.option('--debug', is_flag=True, help='Show debug logs and tracebacks on error')
@click.argument('workspace_folder', type=click.Path(file_okay=False, path_type=Path))
@click.pass_context
def cli(ctx, debug: bool, workspace_folder: Path) -> None:
    """Development container with a persistent VS Code web UI.

    WORKSPACE_FOLDER: Project folder containing a devcontainer configuration

    Example: myspace ~/src/app up
    """
    config = get_config()
    setup_logging("DEBUG" if debug else config.log_level, config.log_format)

    ctx.ensure_object(dict)
    ctx.obj['DEBUG'] = debug
    ctx.obj['CONFIG'] = config
    ctx.obj['PROJECT'] = Project(workspace_folder=workspace_folder)


@cli.command()
@workflow
def up(manager: ContainerManager) -> None:
    """Create the devcontainer and install the VS Code server."""
    manager.setup_container()
    console.print("")
    console.print("💡 To open the web UI:")
    console.print(f"   myspace {manager.project.workspace_folder} local")


@cli.command()
@workflow
def tunnel(manager: ContainerManager) -> None:
    """Run a VS Code remote tunnel from the devcontainer."""
    manager.run_tunnel()


@cli.command()
@click.argument('forward_port', type=click.IntRange(1, 65535), required=False)
@workflow
def local(manager: ContainerManager, forward_port: Optional[int]) -> None:
    """Serve the VS Code web UI.

    FORWARD_PORT: Optional port relayed to the web UI for access from other hosts

    Example: myspace ~/src/app local 8080
    """
    manager.run_web_ui(forward_port)


@cli.command()
@workflow
def extensions(manager: ContainerManager) -> None:
    """Install the configured VS Code extensions."""
    count = manager.install_extensions()
    console.print(f"✅ Installed {count} extension(s)")


cli.add_command(extensions, name='ext')


@cli.command()
@workflow
def unregister(manager: ContainerManager) -> None:
    """Unregister the VS Code remote tunnel."""
    manager.unregister_tunnel()


@cli.command()
@workflow
def bash(manager: ContainerManager) -> None:
    """Open a shell in the devcontainer."""
    manager.exec_shell()


def main() -> None:
    """Entry point for the myspace command."""
    cli(obj={})


if __name__ == '__main__':
    main()
