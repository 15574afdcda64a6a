"""Models for devcontainer configuration and persisted container state."""

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Lenient(BaseModel):
    """Base for partially typed documents; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ConfigFilePath(_Lenient):
    """URI-like reference to the devcontainer.json file."""
    fs_path: Optional[str] = Field(default=None, alias="fsPath")
    path: Optional[str] = None
    scheme: str = "file"


class VSCodeCustomizations(_Lenient):
    """VS Code section of the devcontainer customizations."""
    settings: Dict[str, Any] = Field(default_factory=dict)
    extensions: List[str] = Field(default_factory=list)


class Customizations(_Lenient):
    """Tool-specific customizations."""
    vscode: VSCodeCustomizations = Field(default_factory=VSCodeCustomizations)


class ResolvedConfiguration(_Lenient):
    """The resolved devcontainer configuration."""
    config_file_path: Optional[ConfigFilePath] = Field(default=None, alias="configFilePath")
    customizations: Customizations = Field(default_factory=Customizations)


class ToolConfiguration(_Lenient):
    """Output of ``devcontainer read-configuration``.

    Only the fields myspace consults are typed; everything else in the
    document is dropped.
    """
    configuration: ResolvedConfiguration = Field(default_factory=ResolvedConfiguration)

    @property
    def settings(self) -> Dict[str, Any]:
        """VS Code settings to install as machine settings."""
        return self.configuration.customizations.vscode.settings

    @property
    def extensions(self) -> List[str]:
        """VS Code extensions to install."""
        return self.configuration.customizations.vscode.extensions

    @property
    def config_file(self) -> Optional[Path]:
        """Local path of the raw devcontainer.json, if reported."""
        ref = self.configuration.config_file_path
        if ref is None:
            return None
        raw = ref.fs_path or ref.path
        return Path(raw) if raw else None


class PersistentState(BaseModel):
    """State that outlives a single myspace invocation."""

    model_config = ConfigDict(populate_by_name=True)

    app_port: int = Field(alias="appPort", ge=1, le=65535)

    def to_json(self) -> str:
        """Serialize using the on-disk key names."""
        return self.model_dump_json(by_alias=True)
