"""Exceptions raised by myspace."""

from typing import Optional


class MyspaceError(Exception):
    """Base exception for myspace errors."""


class ToolInvocationError(MyspaceError):
    """The devcontainer CLI could not be spawned or exited non-zero."""

    def __init__(self, message: str, returncode: Optional[int] = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class ConfigurationUnavailableError(MyspaceError):
    """No devcontainer configuration could be read for the project."""


class StateNotFoundError(MyspaceError):
    """The persisted container state is missing or malformed."""


class DependencyNotFoundError(MyspaceError):
    """A required binary could not be located."""


class ForwardPortUnavailableError(MyspaceError):
    """The forwarding proxy could not listen on the requested port."""
