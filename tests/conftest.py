"""Shared pytest fixtures for myspace tests."""

import json
import logging
from pathlib import Path
from types import SimpleNamespace

import pytest
import structlog
from click.testing import CliRunner

from myspace.config import MyspaceConfig, get_config
from myspace.core.project import Project

# Stand-in for the devcontainer CLI. "exec" runs the command on the host
# with HOME pointing into tmp_path, so "~" paths land in the test directory.
FAKE_DEVCONTAINER = r"""#!/bin/sh
cmd="$1"
shift
if [ "$cmd" = "--version" ]; then
    echo "0.0.0-test"
    exit 0
fi
if [ "$1" != "--workspace-folder" ]; then
    echo "missing --workspace-folder" >&2
    exit 2
fi
folder="$2"
shift 2
echo "$cmd $folder $*" >> "$FAKE_DEVCONTAINER_LOG"
case "$cmd" in
    up)
        [ "$1" = "--override-config" ] || exit 2
        cat "$2" > "$FAKE_DEVCONTAINER_OVERRIDE"
        exit "${FAKE_DEVCONTAINER_UP_EXIT:-0}"
        ;;
    exec)
        PATH="$FAKE_BIN:$PATH"
        export PATH
        exec "$@"
        ;;
    read-configuration)
        if [ -f "$FAKE_DEVCONTAINER_CONFIG" ]; then
            cat "$FAKE_DEVCONTAINER_CONFIG"
        fi
        ;;
    *)
        exit 2
        ;;
esac
"""

# "curl | tar xz" replacements: tar drops a fake VS Code CLI into the cwd.
FAKE_CURL = """#!/bin/sh
echo "curl $*" >> "$FAKE_CODE_LOG"
"""

FAKE_TAR = """#!/bin/sh
cat > /dev/null
cat > code <<'SCRIPT'
#!/bin/sh
echo "code $*" >> "$FAKE_CODE_LOG"
SCRIPT
chmod +x code
"""

FAKE_CODE_SERVER = """#!/bin/sh
echo "code-server $*" >> "$FAKE_CODE_LOG"
"""


@pytest.fixture(autouse=True)
def reset_caches():
    """Reset cached config and logging setup between tests."""
    get_config.cache_clear()
    yield
    get_config.cache_clear()
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


def _write_executable(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    path.chmod(0o755)
    return path


@pytest.fixture
def fake_devcontainer(tmp_path, monkeypatch):
    """Install the fake devcontainer CLI and point HOME at a temp directory."""
    home = tmp_path / "home"
    home.mkdir()
    fake_bin = tmp_path / "bin"
    script = _write_executable(fake_bin / "devcontainer", FAKE_DEVCONTAINER)
    _write_executable(fake_bin / "curl", FAKE_CURL)
    _write_executable(fake_bin / "tar", FAKE_TAR)

    env = SimpleNamespace(
        home=home,
        script=script,
        log=tmp_path / "devcontainer.log",
        override=tmp_path / "override.json",
        config=tmp_path / "read-configuration.json",
        code_log=tmp_path / "code.log",
    )
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("FAKE_BIN", str(fake_bin))
    monkeypatch.setenv("FAKE_DEVCONTAINER_LOG", str(env.log))
    monkeypatch.setenv("FAKE_DEVCONTAINER_OVERRIDE", str(env.override))
    monkeypatch.setenv("FAKE_DEVCONTAINER_CONFIG", str(env.config))
    monkeypatch.setenv("FAKE_CODE_LOG", str(env.code_log))

    def set_configuration(document):
        env.config.write_text(json.dumps(document))

    def install_code_server():
        return _write_executable(home / ".vscode" / "cli" / "bin" / "code-server", FAKE_CODE_SERVER)

    def invocations():
        if not env.log.exists():
            return []
        return env.log.read_text().splitlines()

    def code_invocations():
        if not env.code_log.exists():
            return []
        return env.code_log.read_text().splitlines()

    env.set_configuration = set_configuration
    env.install_code_server = install_code_server
    env.invocations = invocations
    env.code_invocations = code_invocations
    return env


@pytest.fixture
def config(fake_devcontainer):
    """Configuration pointing at the fake devcontainer CLI."""
    return MyspaceConfig(
        devcontainer_command=f"sh {fake_devcontainer.script}",
        vscode_cli_url="https://example.invalid/cli",
    )


@pytest.fixture
def temp_project(tmp_path):
    """Create a project folder with a commented devcontainer.json."""
    project_path = tmp_path / "test-project"
    devcontainer_dir = project_path / ".devcontainer"
    devcontainer_dir.mkdir(parents=True)
    (devcontainer_dir / "devcontainer.json").write_text("""{
    // Base image
    "name": "Test Project",
    "image": "mcr.microsoft.com/devcontainers/base:ubuntu", // pinned later
    "features": {
        "ghcr.io/devcontainers/features/node:1": {}
    },
    "customizations": {
        "vscode": {
            "settings": {"editor.tabSize": 2},
            "extensions": ["ms-python.python", "esbenp.prettier-vscode"]
        }
    }
}
""")
    return project_path


@pytest.fixture
def project(temp_project):
    """Project identity for the temp project."""
    return Project(workspace_folder=temp_project)


@pytest.fixture
def tool_configuration(temp_project):
    """read-configuration output for the temp project."""
    config_file = temp_project / ".devcontainer" / "devcontainer.json"
    return {
        "configuration": {
            "name": "Test Project",
            "image": "mcr.microsoft.com/devcontainers/base:ubuntu",
            "configFilePath": {
                "$mid": 1,
                "fsPath": str(config_file),
                "path": str(config_file),
                "scheme": "file",
            },
            "customizations": {
                "vscode": {
                    "settings": {"editor.tabSize": 2},
                    "extensions": ["ms-python.python", "esbenp.prettier-vscode"],
                }
            },
        },
        "workspace": {"workspaceFolder": "/workspaces/test-project"},
    }


@pytest.fixture
def cli_runner():
    """Create a Click CLI runner for testing CLI commands."""
    return CliRunner()
