"""Configuration management for myspace."""

import shlex
from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MyspaceConfig(BaseSettings):
    """Configuration for myspace.

    Every field can be overridden with a ``MYSPACE_``-prefixed environment
    variable, e.g. ``MYSPACE_DEVCONTAINER_COMMAND``.
    """

    # External tool
    devcontainer_command: str = Field(
        default="devcontainer",
        description="Command used to run the devcontainer CLI (shell-split)"
    )
    stdin_mode: Literal["direct", "shell"] = Field(
        default="direct",
        description="How override config is fed to 'devcontainer up' (direct|shell)"
    )

    # In-container paths
    persist_dir: str = Field(
        default="~/.myspace",
        description="Directory inside the container holding persistent state"
    )
    persist_file: str = Field(default="persist.json", description="Persistent state file name")
    vscode_cli_url: str = Field(
        default="https://update.code.visualstudio.com/latest/cli-linux-x64/stable",
        description="Download URL for the VS Code CLI tarball"
    )
    vscode_settings_dir: str = Field(
        default="~/.vscode-server/data/Machine",
        description="Directory for machine-level VS Code settings inside the container"
    )
    code_server_search_root: str = Field(
        default="~/.vscode",
        description="Directory searched for the code-server binary"
    )
    shell: str = Field(default="bash", description="Shell started by the 'bash' action")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Logging format (json|console)"
    )

    model_config = SettingsConfigDict(
        env_prefix="MYSPACE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
    )

    def get_devcontainer_argv(self) -> List[str]:
        """Get the devcontainer command as an argument vector."""
        argv = shlex.split(self.devcontainer_command)
        if not argv:
            return ["devcontainer"]
        return argv

    @property
    def persist_path(self) -> str:
        """Path of the persistent state file inside the container."""
        return f"{self.persist_dir}/{self.persist_file}"


@lru_cache()
def get_config() -> MyspaceConfig:
    """Get the myspace configuration."""
    return MyspaceConfig()
