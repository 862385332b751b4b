"""
Local CLI settings: where the flow service lives and how to log in.

Settings are layered, lowest to highest precedence:
1. Built-in defaults (localhost:8112, no TLS, no credentials)
2. config.yaml, searched in ~/.mirror_cli, the current directory,
   then /etc/mirror_cli
3. Environment variables with the MIRROR_CLI_ prefix, e.g.
   MIRROR_CLI_PEERDB_HOST=peerdb.internal
4. Explicit overrides from the caller (command-line flags)

`config set` and `config init` always write the full record to
~/.mirror_cli/config.yaml.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, EnvSettingsSource, SettingsConfigDict

from mirror_cli.errors import FileAccessError, ParseError

ENV_PREFIX = "MIRROR_CLI_"
SETTINGS_FILENAME = "config.yaml"
SYSTEM_SETTINGS_DIR = Path("/etc/mirror_cli")


def user_settings_dir() -> Path:
    """Per-user settings directory (~/.mirror_cli)."""
    return Path.home() / ".mirror_cli"


def settings_search_path() -> list[Path]:
    """Directories searched for config.yaml, in order."""
    return [user_settings_dir(), Path.cwd(), SYSTEM_SETTINGS_DIR]


class Settings(BaseSettings):
    """
    Connection settings for the flow service.

    Field names match the keys of config.yaml.
    """

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")

    peerdb_host: str = "localhost"
    peerdb_port: int = 8112
    tls: bool = False
    username: str = ""
    password: str = ""

    @property
    def address(self) -> str:
        """host:port of the flow service."""
        return f"{self.peerdb_host}:{self.peerdb_port}"

    @property
    def base_url(self) -> str:
        scheme = "https" if self.tls else "http"
        return f"{scheme}://{self.address}"


def find_settings_file() -> Path | None:
    """Return the first config.yaml on the search path, if any."""
    for directory in settings_search_path():
        candidate = directory / SETTINGS_FILENAME
        if candidate.is_file():
            return candidate
    return None


def read_settings_file(path: Path) -> dict[str, Any]:
    """
    Read raw settings values from a YAML file.

    Raises:
        FileAccessError: If the file cannot be read.
        ParseError: If it is not a YAML mapping.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FileAccessError(path, str(e)) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(path, f"invalid YAML: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(path, f"expected a mapping, got {type(data).__name__}")
    return data


def load_settings(config_file: Path | None = None, **overrides: Any) -> Settings:
    """
    Load settings with defaults < file < environment < overrides.

    Args:
        config_file: Explicit settings file. When None the search path is
            used and a missing file is not an error.
        **overrides: Field values that win over everything else. None
            values are ignored so unset flags can be passed straight through.

    Returns:
        The merged Settings.

    Raises:
        FileAccessError: If an explicit config_file does not exist.
        ParseError: If the settings file is malformed or holds bad values.
    """
    if config_file is not None:
        if not config_file.is_file():
            raise FileAccessError(config_file, "settings file not found")
        path: Path | None = config_file
    else:
        path = find_settings_file()

    file_values = read_settings_file(path) if path else {}
    env_values = EnvSettingsSource(Settings)()
    explicit = {k: v for k, v in overrides.items() if v is not None}

    try:
        return Settings(**{**file_values, **env_values, **explicit})
    except PydanticValidationError as e:
        source = path or Path(f"${ENV_PREFIX}*")
        raise ParseError(source, str(e)) from e


def save_settings(settings: Settings, directory: Path | None = None) -> Path:
    """
    Write the full settings record to <directory>/config.yaml.

    Args:
        settings: Settings to persist.
        directory: Target directory. Defaults to ~/.mirror_cli.

    Returns:
        Path of the written file.

    Raises:
        FileAccessError: If the directory or file cannot be written.
    """
    directory = directory or user_settings_dir()
    path = directory / SETTINGS_FILENAME
    try:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_text(
            yaml.safe_dump(settings.model_dump(), sort_keys=False),
            encoding="utf-8",
        )
    except OSError as e:
        raise FileAccessError(path, str(e)) from e
    return path
