"""Async DevContainer CLI wrapper utilities."""

import asyncio
import json
import shlex
from typing import IO, Any, Dict, List, Optional, Sequence, Union

import structlog
from pydantic import ValidationError
from rich.console import Console

from ..config import MyspaceConfig
from ..core.models import ToolConfiguration
from ..core.project import Project
from ..exceptions import (
    ConfigurationUnavailableError,
    DependencyNotFoundError,
    ToolInvocationError,
)

logger = structlog.get_logger()
trace_console = Console(stderr=True)

# None inherits the parent's stream, like asyncio.create_subprocess_exec.
StreamSpec = Union[None, int, IO[Any]]


async def write_stdin(process: asyncio.subprocess.Process, data: bytes) -> None:
    """Write data to a child's stdin and close it, even if the write fails.

    Args:
        process: Process spawned with ``stdin=PIPE``
        data: Bytes to send
    """
    stdin = process.stdin
    if stdin is None:
        raise ValueError("Process was not spawned with stdin=PIPE")
    try:
        stdin.write(data)
        await stdin.drain()
    finally:
        stdin.close()


async def wait_for_process(process: asyncio.subprocess.Process, description: str) -> None:
    """Wait for a process and raise if it exited non-zero.

    Raises:
        ToolInvocationError: If the exit code is non-zero
    """
    returncode = await process.wait()
    if returncode != 0:
        raise ToolInvocationError(
            f"{description} failed (exit code {returncode})", returncode=returncode
        )


async def wait_for_stdout(process: asyncio.subprocess.Process, description: str) -> str:
    """Collect a process's piped stdout, then wait for it to exit.

    Returns:
        Decoded stdout

    Raises:
        ToolInvocationError: If the exit code is non-zero
    """
    stdout, _ = await process.communicate()
    if process.returncode != 0:
        raise ToolInvocationError(
            f"{description} failed (exit code {process.returncode})",
            returncode=process.returncode,
        )
    return stdout.decode("utf-8", errors="replace") if stdout else ""


class DirectStdin:
    """Feed stdin straight to the devcontainer CLI process."""

    async def spawn(
        self,
        argv: Sequence[str],
        stdout: StreamSpec = None,
        stderr: StreamSpec = None,
    ) -> asyncio.subprocess.Process:
        return await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=stdout,
            stderr=stderr,
        )


class ShellPipeStdin:
    """Feed stdin through ``sh -c "cat | <argv>"``.

    For runtimes where a freshly spawned child cannot read ``/dev/stdin``
    written by the parent; the intermediary ``cat`` gives it a real pipe.
    """

    def __init__(self, shell: str = "sh") -> None:
        self.shell = shell

    async def spawn(
        self,
        argv: Sequence[str],
        stdout: StreamSpec = None,
        stderr: StreamSpec = None,
    ) -> asyncio.subprocess.Process:
        command = "cat | " + " ".join(shlex.quote(arg) for arg in argv)
        return await asyncio.create_subprocess_exec(
            self.shell, "-c", command,
            stdin=asyncio.subprocess.PIPE,
            stdout=stdout,
            stderr=stderr,
        )


STDIN_STRATEGIES = {
    "direct": DirectStdin,
    "shell": ShellPipeStdin,
}


class AsyncDevContainerCLI:
    """Async wrapper for DevContainer CLI operations."""

    def __init__(self, config: MyspaceConfig, stdin_strategy: Optional[Any] = None) -> None:
        """Initialize the DevContainer CLI wrapper.

        Args:
            config: Resolved configuration; the executable is taken from it once
            stdin_strategy: Override for ``config.stdin_mode``
        """
        self.config = config
        self.executable = config.get_devcontainer_argv()
        self.stdin_strategy = stdin_strategy or STDIN_STRATEGIES[config.stdin_mode]()

    def _cli_args(self, command: str, project: Project, args: Sequence[str] = ()) -> List[str]:
        cli_args = [command, *project.workspace_args(), *args]
        trace_console.print(
            "+", "devcontainer", *cli_args,
            style="dim", markup=False, highlight=False, soft_wrap=True,
        )
        logger.debug("Invoking devcontainer CLI", command=command, args=cli_args)
        return cli_args

    async def _spawn(self, cli_args: Sequence[str], **kwargs: Any) -> asyncio.subprocess.Process:
        argv = [*self.executable, *cli_args]
        try:
            return await asyncio.create_subprocess_exec(*argv, **kwargs)
        except OSError as e:
            raise ToolInvocationError(f"DevContainer CLI execution failed: {e}")

    async def check_devcontainer_cli(self) -> bool:
        """Check if devcontainer CLI is available.

        Returns:
            True if available

        Raises:
            DependencyNotFoundError: If devcontainer CLI is not found
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *self.executable, "--version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
            await process.communicate()
        except OSError:
            raise DependencyNotFoundError(
                "DevContainer CLI not found. Install with: npm install -g @devcontainers/cli"
            )

        if process.returncode != 0:
            raise DependencyNotFoundError(
                "DevContainer CLI not found. Install with: npm install -g @devcontainers/cli"
            )
        return True

    async def up(self, project: Project, override_config: Dict[str, Any]) -> None:
        """Create or start the devcontainer for a project.

        Args:
            project: Target project
            override_config: Document merged into the project's configuration

        Raises:
            ToolInvocationError: If the CLI cannot be spawned or exits non-zero
        """
        cli_args = self._cli_args("up", project, ["--override-config", "/dev/stdin"])
        argv = [*self.executable, *cli_args]
        try:
            process = await self.stdin_strategy.spawn(argv)
        except OSError as e:
            raise ToolInvocationError(f"DevContainer CLI execution failed: {e}")

        payload = json.dumps(override_config) + "\n"
        try:
            await write_stdin(process, payload.encode("utf-8"))
        except (BrokenPipeError, ConnectionResetError) as e:
            # The child exited before reading; its exit code says why.
            logger.warning("Override config was not fully written", error=str(e))
        await wait_for_process(process, "DevContainer up")

    async def exec(
        self,
        project: Project,
        args: Sequence[str],
        stdin: StreamSpec = None,
        stdout: StreamSpec = None,
        stderr: StreamSpec = None,
        detached: bool = False,
    ) -> asyncio.subprocess.Process:
        """Start a command inside the project's running devcontainer.

        Streams are inherited by default; pass ``asyncio.subprocess.PIPE`` to
        capture or ``asyncio.subprocess.DEVNULL`` to ignore.

        Args:
            project: Target project
            args: Command and arguments to run in the container
            stdin: stdin routing
            stdout: stdout routing
            stderr: stderr routing
            detached: Start the child in its own session

        Returns:
            The spawned process; the caller waits on it

        Raises:
            ToolInvocationError: If the CLI cannot be spawned
        """
        cli_args = self._cli_args("exec", project, args)
        return await self._spawn(
            cli_args,
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
            start_new_session=detached,
        )

    async def read_configuration(self, project: Project) -> ToolConfiguration:
        """Read the resolved devcontainer configuration for a project.

        Raises:
            ConfigurationUnavailableError: If the CLI printed nothing or garbage
            ToolInvocationError: If the CLI fails
        """
        cli_args = self._cli_args("read-configuration", project)
        process = await self._spawn(
            cli_args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
        )
        stdout, _ = await process.communicate()
        text = stdout.decode("utf-8", errors="replace") if stdout else ""
        if not text.strip():
            raise ConfigurationUnavailableError(
                "unable to read dev container configuration; does this folder have one?"
            )
        if process.returncode != 0:
            raise ToolInvocationError(
                f"DevContainer read-configuration failed (exit code {process.returncode})",
                returncode=process.returncode,
            )
        try:
            return ToolConfiguration.model_validate_json(text)
        except ValidationError as e:
            raise ConfigurationUnavailableError(
                f"dev container configuration is not valid JSON: {e}"
            )
