"""Settings for the Axe language server manager.

Settings live under the ``axe.lsp`` namespace of a JSON settings file::

    {
        "axe.lsp": {
            "serverPath": "/opt/axe/bin/axels",
            "stdlibPath": "/opt/axe/std"
        }
    }

A few values can also be overridden from the environment, which takes
precedence over the file.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import click
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from axelsp import __version__
from axelsp.errors import ConfigurationError

APP_NAME = "axelsp"
SETTINGS_NAMESPACE = "axe.lsp"
DEFAULT_RELEASE_URL = "https://api.github.com/repos/axelang/axels/releases/latest"

# Environment variable -> settings alias
ENV_OVERRIDES: Dict[str, str] = {
    "AXE_LSP_SERVER_PATH": "serverPath",
    "AXE_LSP_STDLIB_PATH": "stdlibPath",
}

logger = logging.getLogger("axelsp.config")


class Settings(BaseModel):
    """Read-only settings of the ``axe.lsp`` namespace."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    server_path: str = Field(default="", alias="serverPath")
    stdlib_path: str = Field(default="", alias="stdlibPath")
    storage_path: str = Field(default="", alias="storagePath")
    release_url: str = Field(default=DEFAULT_RELEASE_URL, alias="releaseUrl")
    user_agent: str = Field(default=f"axelsp/{__version__}", alias="userAgent")
    max_redirects: int = Field(default=10, alias="maxRedirects", ge=0)
    handshake_timeout: float = Field(default=30.0, alias="handshakeTimeout", gt=0)

    def server_args(self) -> List[str]:
        """Build the launch arguments for the server process.

        Returns:
            ``["--stdlib", <path>]`` when a stdlib path is configured, else an
            empty list.
        """
        if self.stdlib_path:
            return ["--stdlib", self.stdlib_path]
        return []

    def storage_dir(self) -> Path:
        """Get the directory the downloaded server is cached in."""
        if self.storage_path:
            return Path(self.storage_path).expanduser()
        return Path(click.get_app_dir(APP_NAME))


def default_settings_file() -> Path:
    """Get the default location of the settings file."""
    return Path(click.get_app_dir(APP_NAME)) / "settings.json"


def load_settings(
    path: Optional[os.PathLike] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from a JSON file and the environment.

    Args:
        path: Settings file to read. Defaults to ``settings.json`` in the
            application directory. A missing file yields default settings.
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        The validated settings.

    Raises:
        ConfigurationError: If the file is not valid JSON or a value does not
            validate.
    """
    settings_file = Path(path) if path is not None else default_settings_file()
    environ = os.environ if environ is None else environ

    values: Dict[str, Any] = {}
    if settings_file.is_file():
        logger.debug(f"Reading settings from {settings_file}")
        try:
            document = json.loads(settings_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read settings file {settings_file}: {e}") from e

        section = document.get(SETTINGS_NAMESPACE, {}) if isinstance(document, dict) else None
        if not isinstance(section, dict):
            raise ConfigurationError(
                f"Settings file {settings_file} must hold a '{SETTINGS_NAMESPACE}' object"
            )
        values.update(section)

    for variable, alias in ENV_OVERRIDES.items():
        if environ.get(variable):
            values[alias] = environ[variable]

    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid '{SETTINGS_NAMESPACE}' settings: {e}") from e
