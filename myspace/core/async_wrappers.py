"""Sync wrappers so the CLI can drive the async workflows."""

import asyncio
from typing import Optional

from ..config import MyspaceConfig
from .container import ContainerManager
from .project import Project


def run_async(coro):
    """Run an async coroutine in a sync context."""
    return asyncio.run(coro)


class SyncContainerManager:
    """Sync wrapper for ContainerManager."""

    def __init__(self, project: Project, config: MyspaceConfig) -> None:
        self.async_manager = ContainerManager(project, config)
        self.project = project
        self.config = config

    def check_dependencies(self) -> bool:
        """Check that the devcontainer CLI is installed."""
        return run_async(self.async_manager.devcontainer.check_devcontainer_cli())

    def setup_container(self) -> int:
        """Create the container and run first-time setup."""
        return run_async(self.async_manager.setup_container())

    def run_tunnel(self) -> None:
        """Run a VS Code remote tunnel."""
        return run_async(self.async_manager.run_tunnel())

    def unregister_tunnel(self) -> None:
        """Remove the tunnel registration."""
        return run_async(self.async_manager.unregister_tunnel())

    def run_web_ui(self, forward_port: Optional[int] = None) -> None:
        """Serve the VS Code web UI."""
        return run_async(self.async_manager.run_web_ui(forward_port))

    def install_extensions(self) -> int:
        """Install configured VS Code extensions."""
        return run_async(self.async_manager.install_extensions())

    def exec_shell(self) -> None:
        """Open an interactive shell."""
        return run_async(self.async_manager.exec_shell())
