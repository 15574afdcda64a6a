"""Persistent state stored inside the devcontainer."""

import asyncio
import json

import structlog
from pydantic import ValidationError

from ..config import MyspaceConfig
from ..exceptions import StateNotFoundError
from ..utils.devcontainer import (
    AsyncDevContainerCLI,
    wait_for_process,
    wait_for_stdout,
    write_stdin,
)
from .models import PersistentState
from .project import Project

logger = structlog.get_logger()


class PersistentStateStore:
    """Reads and writes a small JSON document in the container.

    The container has no storage API, so all I/O goes through
    ``devcontainer exec``. There is no locking: state is written once by
    ``up`` and only read afterwards.
    """

    def __init__(self, devcontainer: AsyncDevContainerCLI, config: MyspaceConfig) -> None:
        self.devcontainer = devcontainer
        self.config = config

    async def ensure_directory(self, project: Project) -> None:
        """Create the persist directory in the container if absent."""
        process = await self.devcontainer.exec(
            project, ["sh", "-c", f"mkdir -p {self.config.persist_dir}"]
        )
        await wait_for_process(process, "Creating persist directory")

    async def write(self, project: Project, state: PersistentState) -> None:
        """Write state to the persist file, replacing any previous content."""
        await self.ensure_directory(project)
        process = await self.devcontainer.exec(
            project,
            ["sh", "-c", f"cat >{self.config.persist_path}"],
            stdin=asyncio.subprocess.PIPE,
        )
        await write_stdin(process, state.to_json().encode("utf-8"))
        await wait_for_process(process, "Writing persistent state")
        logger.info("Persistent state written", project=project.name, app_port=state.app_port)

    async def read(self, project: Project) -> PersistentState:
        """Read state from the persist file.

        Raises:
            StateNotFoundError: If the file is missing or malformed
            ToolInvocationError: If the container cannot be reached
        """
        path = self.config.persist_path
        process = await self.devcontainer.exec(
            project,
            ["sh", "-c", f"if [ -f {path} ]; then cat {path}; fi"],
            stdout=asyncio.subprocess.PIPE,
        )
        text = await wait_for_stdout(process, "Reading persistent state")
        if not text.strip():
            raise StateNotFoundError(
                f"no persistent state at {path}; run 'myspace <project> up' first"
            )
        try:
            return PersistentState.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as e:
            raise StateNotFoundError(f"persistent state at {path} is malformed: {e}")
