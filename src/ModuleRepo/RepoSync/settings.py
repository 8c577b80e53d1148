# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.RepoSync.settings",
#   "purpose": "Pydantic settings models and file/env/override loading for registry sync",
#   "sections": [
#     {"id": "models", "name": "Settings Models", "anchor": "MOD", "kind": "api"},
#     {"id": "loading", "name": "load_settings", "anchor": "function-load-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Settings for the registry sync engine.

Three-level composition, later levels winning:

1. **File** (YAML or JSON) passed as ``path``
2. **Environment**: ``MODREPO_`` prefixed variables, ``__`` for nesting
   (``MODREPO_ENDPOINTS__PRIMARY_URL=https://mirror.example/`` →
   ``endpoints.primary_url``)
3. **Overrides**: a mapping supplied programmatically (CLI flags, tests)

Environment values are parsed as JSON when possible, so
``MODREPO_WORKERS=8`` yields an integer.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, ClassVar, Dict, Literal, Optional

import platformdirs
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "APP_NAME",
    "ENV_PREFIX",
    "PRIMARY_REPO_URL",
    "BACKUP_REPO_URL",
    "EndpointConfig",
    "HttpClientConfig",
    "StorageConfig",
    "RepoSyncSettings",
    "load_settings",
]

APP_NAME = "modulerepo"
ENV_PREFIX = "MODREPO_"

PRIMARY_REPO_URL = "https://modules.lsposed.org/"
BACKUP_REPO_URL = "https://cdn.jsdelivr.net/gh/Xposed-Modules-Repo/modules@gh-pages/"


class EndpointConfig(BaseModel):
    """Base URLs of the two interchangeable registry mirrors."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    primary_url: str = Field(default=PRIMARY_REPO_URL, description="Primary registry base URL")
    backup_url: str = Field(default=BACKUP_REPO_URL, description="Backup mirror base URL")

    @field_validator("primary_url", "backup_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("Endpoint URLs must use http or https")
        if not v.endswith("/"):
            v += "/"
        return v


class HttpClientConfig(BaseModel):
    """Configuration for the shared HTTP client."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    user_agent: str = Field(default="ModuleRepo/RepoSync", description="User-Agent string")
    timeout_connect_s: float = Field(default=10.0, description="Connection timeout in seconds")
    timeout_read_s: float = Field(default=30.0, description="Read timeout in seconds")
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")
    max_connections: int = Field(default=10, description="Connection pool size")

    @field_validator("timeout_connect_s", "timeout_read_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be > 0")
        return v

    @field_validator("max_connections")
    @classmethod
    def validate_max_connections(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_connections must be >= 1")
        return v


class StorageConfig(BaseModel):
    """Where the last-good catalog payload is written."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    storage_dir: Optional[Path] = Field(
        default=None, description="Base storage directory (platform data dir if unset)"
    )
    snapshot_filename: str = Field(default="repo.json", description="Snapshot file name")

    @field_validator("snapshot_filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError("snapshot_filename must be a plain file name")
        return v

    def resolved_storage_dir(self) -> Path:
        if self.storage_dir is not None:
            return self.storage_dir.expanduser()
        return Path(platformdirs.user_data_dir(APP_NAME))

    def snapshot_path(self) -> Path:
        return self.resolved_storage_dir() / self.snapshot_filename


class RepoSyncSettings(BaseModel):
    """Top-level settings for the registry sync engine."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    endpoints: EndpointConfig = Field(default_factory=EndpointConfig)
    http: HttpClientConfig = Field(default_factory=HttpClientConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    workers: int = Field(default=4, description="Worker threads for fetches and callbacks")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_dir: Optional[Path] = Field(default=None, description="JSON log directory")

    @field_validator("workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("workers must be >= 1")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    def resolved_log_dir(self) -> Path:
        if self.log_dir is not None:
            return self.log_dir.expanduser()
        return Path(platformdirs.user_log_dir(APP_NAME))

    def config_hash(self) -> str:
        """Stable hash of the normalised settings, used to tag log records."""
        payload = json.dumps(self.model_dump(mode="json"), sort_keys=True)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _read_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    suffix = path.suffix.lower()
    try:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        elif suffix == ".json":
            data = json.loads(text)
        else:
            raise ConfigurationError(f"Unsupported file format: {suffix}. Use .yaml or .json")
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Invalid config in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _assign_nested(data: Dict[str, Any], dotted_key: str, value: Any) -> None:
    keys = dotted_key.split(".")
    current = data
    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value


def _coerce_env_value(value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError:
        return value


def _merge_env_overrides(
    data: Dict[str, Any], env: Mapping[str, str], env_prefix: str
) -> Dict[str, Any]:
    for env_key, env_value in env.items():
        if not env_key.startswith(env_prefix):
            continue
        dotted_key = env_key[len(env_prefix) :].lower().replace("__", ".")
        coerced = _coerce_env_value(env_value)
        _assign_nested(data, dotted_key, coerced)
        _LOGGER.debug("Environment override: %s -> %s = %r", env_key, dotted_key, coerced)
    return data


def _merge_overrides(data: Dict[str, Any], overrides: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if not overrides:
        return data
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(data.get(key), dict):
            data[key] = _merge_overrides(data[key], value)
        else:
            data[key] = value
    return data


def load_settings(
    path: Optional[Path] = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
    env_prefix: str = ENV_PREFIX,
) -> RepoSyncSettings:
    """Load :class:`RepoSyncSettings` with file < environment < overrides precedence.

    Args:
        path: Optional YAML/JSON settings file.
        overrides: Programmatic overrides; nested mappings merge recursively.
        env: Environment to read (defaults to ``os.environ``).
        env_prefix: Prefix selecting relevant environment variables.

    Raises:
        ConfigurationError: If the file cannot be read or the result is invalid.
    """

    data: Dict[str, Any] = {}
    if path is not None:
        data = _read_file(Path(path))
        _LOGGER.info("Loaded settings from %s", path)

    data = _merge_env_overrides(data, os.environ if env is None else env, env_prefix)
    data = _merge_overrides(data, overrides)

    try:
        settings = RepoSyncSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid registry sync settings: {e}") from e
    _LOGGER.debug("Settings validated", extra={"config_hash": settings.config_hash()[:8]})
    return settings
