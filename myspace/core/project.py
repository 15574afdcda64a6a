"""Project identity."""

from pathlib import Path
from typing import List, Union

from pydantic import BaseModel, ConfigDict, field_validator


class Project(BaseModel):
    """Identifies the project folder a devcontainer is created for."""

    model_config = ConfigDict(frozen=True)

    workspace_folder: Path

    @field_validator("workspace_folder", mode="before")
    @classmethod
    def _absolute_path(cls, value: Union[str, Path]) -> Path:
        return Path(value).expanduser().absolute()

    @property
    def name(self) -> str:
        """Folder name of the project."""
        return self.workspace_folder.name

    def workspace_args(self) -> List[str]:
        """Arguments selecting this project on the devcontainer CLI."""
        return ["--workspace-folder", str(self.workspace_folder)]
