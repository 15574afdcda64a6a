"""Container lifecycle workflows."""

import asyncio
import json
from typing import Optional

import structlog
from rich.console import Console

from ..config import MyspaceConfig
from ..exceptions import (
    ConfigurationUnavailableError,
    DependencyNotFoundError,
    StateNotFoundError,
    ToolInvocationError,
)
from ..utils.devcontainer import (
    AsyncDevContainerCLI,
    wait_for_process,
    wait_for_stdout,
    write_stdin,
)
from ..utils.jsonc import load_devcontainer_json
from .models import PersistentState
from .ports import allocate_app_port
from .project import Project
from .proxy import ForwardingProxy
from .state import PersistentStateStore

console = Console()
logger = structlog.get_logger()


class ContainerManager:
    """Runs the myspace workflows against one project's devcontainer."""

    def __init__(
        self,
        project: Project,
        config: MyspaceConfig,
        devcontainer: Optional[AsyncDevContainerCLI] = None,
        state_store: Optional[PersistentStateStore] = None,
    ) -> None:
        """Initialize container manager.

        Args:
            project: Project to operate on
            config: Configuration instance
            devcontainer: CLI wrapper (built from config when omitted)
            state_store: State store (built on top of ``devcontainer`` when omitted)
        """
        self.project = project
        self.config = config
        self.devcontainer = devcontainer or AsyncDevContainerCLI(config)
        self.state = state_store or PersistentStateStore(self.devcontainer, config)

    async def _exec_sh(self, script: str, description: str) -> None:
        process = await self.devcontainer.exec(self.project, ["sh", "-c", script])
        await wait_for_process(process, description)

    async def _existing_app_port(self) -> Optional[int]:
        """App port persisted in an existing container, if there is one.

        The container keeps the port it was created with, so a repeated
        ``up`` must publish and persist the same one.
        """
        try:
            state = await self.state.read(self.project)
        except (StateNotFoundError, ToolInvocationError) as e:
            logger.debug("No existing container state", project=self.project.name, error=str(e))
            return None
        logger.info("Reusing app port", project=self.project.name, app_port=state.app_port)
        return state.app_port

    async def setup_container(self) -> int:
        """Create or restart the container and run first-time setup.

        A container created by an earlier run keeps its persisted app port;
        otherwise a new one is allocated and persisted.

        Returns:
            The app port assigned to the container
        """
        tool_config = await self.devcontainer.read_configuration(self.project)
        config_file = tool_config.config_file
        if config_file is None:
            raise ConfigurationUnavailableError(
                "dev container configuration does not name its config file"
            )
        try:
            override = load_devcontainer_json(config_file)
        except (OSError, ValueError) as e:
            raise ConfigurationUnavailableError(f"unable to load {config_file}: {e}")

        app_port = await self._existing_app_port()
        reused = app_port is not None
        if app_port is None:
            app_port = allocate_app_port()
            logger.info("Allocated app port", project=self.project.name, app_port=app_port)

        console.print(f"🚀 Starting devcontainer for: {self.project.name}")
        await self.devcontainer.up(self.project, {**override, "appPort": app_port})

        if not reused:
            await self.state.write(self.project, PersistentState(app_port=app_port))

        console.print("   📥 Downloading VS Code CLI...")
        await self._exec_sh(
            f"cd {self.config.persist_dir} && curl -L {self.config.vscode_cli_url} | tar xz",
            "Downloading VS Code CLI",
        )

        console.print("   ⚙️  Installing VS Code machine settings...")
        await self._exec_sh(
            f"mkdir -p {self.config.vscode_settings_dir}/",
            "Creating VS Code settings directory",
        )
        process = await self.devcontainer.exec(
            self.project,
            ["sh", "-c", f"cat >{self.config.vscode_settings_dir}/settings.json"],
            stdin=asyncio.subprocess.PIPE,
        )
        await write_stdin(process, json.dumps(tool_config.settings).encode("utf-8"))
        await wait_for_process(process, "Writing VS Code settings")

        console.print(f"   ✅ Ready: {self.project.name} (app port {app_port})")
        return app_port

    async def run_tunnel(self) -> None:
        """Run a VS Code remote tunnel from the container."""
        await self._exec_sh(f"{self.config.persist_dir}/code tunnel", "VS Code tunnel")

    async def unregister_tunnel(self) -> None:
        """Remove this container's VS Code tunnel registration."""
        await self._exec_sh(
            f"{self.config.persist_dir}/code tunnel unregister", "VS Code tunnel unregister"
        )

    async def run_web_ui(self, forward_port: Optional[int] = None) -> None:
        """Serve the VS Code web UI on the persisted app port.

        Args:
            forward_port: If given, also relay this port to the app port, for
                access from other hosts
        """
        state = await self.state.read(self.project)
        app_port = state.app_port

        proxy = None
        if forward_port is not None:
            # The app port is only published on localhost.
            proxy = ForwardingProxy(forward_port, app_port)
            await proxy.start()
            console.print(
                f"** Forwarding on port {forward_port} for access away from localhost. **"
            )

        try:
            # TODO: run with a connection token once it works through the port proxy.
            await self._exec_sh(
                f"{self.config.persist_dir}/code serve-web --host :: --port {app_port} "
                "--without-connection-token",
                "VS Code serve-web",
            )
        finally:
            if proxy is not None:
                await proxy.close()

    async def install_extensions(self) -> int:
        """Install the configured VS Code extensions into the server.

        Returns:
            Number of extensions installed

        Raises:
            DependencyNotFoundError: If no code-server binary exists yet
        """
        tool_config = await self.devcontainer.read_configuration(self.project)
        extensions = tool_config.extensions
        if not extensions:
            console.print("   No extensions configured")
            return 0

        search_root = self.config.code_server_search_root
        process = await self.devcontainer.exec(
            self.project,
            ["sh", "-c", f"find {search_root} -name code-server 2>/dev/null || true"],
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
        )
        found = (await wait_for_stdout(process, "Locating code-server")).strip()
        if not found:
            raise DependencyNotFoundError(
                "code-server binary not found; have you connected from a browser yet?"
            )
        code_server = found.splitlines()[0]

        for extension in extensions:
            console.print(f"   📦 Installing extension: {extension}")
            process = await self.devcontainer.exec(
                self.project, [code_server, "--install-extension", extension]
            )
            await wait_for_process(process, f"Installing {extension}")
        return len(extensions)

    async def exec_shell(self) -> None:
        """Open an interactive shell in the container."""
        process = await self.devcontainer.exec(self.project, [self.config.shell])
        await wait_for_process(process, "Shell")
