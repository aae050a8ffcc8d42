from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ArchiverError

DEFAULT_PAGE_SIZE = 10
# GitHub GraphQL caps connection page sizes at 100 nodes.
MAX_PAGE_SIZE = 100

# Environment variable -> (section, field). A section of None is top level.
ENVIRONMENT_SETTINGS: Dict[str, Tuple[Optional[str], str]] = {
    "ORG_USERNAME": ("github", "username"),
    "ORG_TOKEN": ("github", "token"),
    "ORG_NAME": ("github", "organization"),
    "PAGE_SIZE": ("github", "page_size"),
    "DRIVE_ID": ("drive", "drive_id"),
    "DRIVE_FOLDER_ID": ("drive", "folder_id"),
    "GOOGLE_CREDENTIALS_FILE": ("drive", "credentials_file"),
    "GOOGLE_TOKEN_FILE": ("drive", "token_file"),
    "WORK_DIR": (None, "work_dir"),
    "LOG_LEVEL": (None, "log_level"),
}

REQUIRED_SETTINGS = ("ORG_USERNAME", "ORG_TOKEN", "ORG_NAME")


class ConfigurationError(ArchiverError):
    """Raised when the archiver configuration is missing or invalid."""


# --- GitHub ------------------------------------------------------------------


class GitHubSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    token: str = Field(repr=False)
    organization: str
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @property
    def credentials(self) -> Tuple[str, str]:
        return self.username, self.token


# --- Google Drive ------------------------------------------------------------


class DriveSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    drive_id: Optional[str] = Field(default=None, description="Shared drive id; My Drive when unset.")
    folder_id: Optional[str] = Field(default=None, description="Parent folder id; drive root when unset.")
    credentials_file: Path = Path("credentials.json")
    token_file: Path = Path("token.json")

    @field_validator("credentials_file", "token_file")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return value.expanduser()


# --- Root --------------------------------------------------------------------


class ArchiverConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    github: GitHubSettings
    drive: DriveSettings = DriveSettings()
    work_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
    log_level: str = "INFO"

    @field_validator("work_dir")
    @classmethod
    def _expand_work_dir(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.upper()


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
) -> ArchiverConfig:
    """Build the run configuration.

    Values from the optional YAML file act as defaults; non-empty environment
    variables override them.
    """
    if environ is None:
        environ = os.environ

    raw = _read_config_file(config_path) if config_path else {}

    for env_name, (section, key) in ENVIRONMENT_SETTINGS.items():
        value = environ.get(env_name)
        if not value:
            continue
        target = raw.setdefault(section, {}) if section else raw
        if not isinstance(target, dict):
            raise ConfigurationError(f"Configuration section '{section}' must be a mapping")
        target[key] = value

    missing = [name for name in REQUIRED_SETTINGS if not _lookup(raw, *ENVIRONMENT_SETTINGS[name])]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    try:
        return ArchiverConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


def _read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return raw


def _lookup(raw: Dict[str, Any], section: Optional[str], key: str) -> Any:
    container = raw.get(section) if section else raw
    if not isinstance(container, dict):
        return None
    return container.get(key)
