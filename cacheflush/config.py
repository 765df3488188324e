from __future__ import annotations
from pathlib import Path
from typing import Any, Optional
import logging
import os
import re

import yaml
from pydantic import ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigInvalid
from .flush.policy import FlushPolicy

logger = logging.getLogger("cacheflush.config")

DEFAULT_CONFIG_FILE = "cacheflush.yaml"

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

# YAML keys as users write them -> Settings fields
YAML_KEYS = {
    "LogFile": "log_file",
    "DebugLogging": "debug_logging",
    "OwnerUID": "owner_uid",
    "OwnerGID": "owner_gid",
    "BackingPool": "backing_pool",
    "CacheDrives": "cache_drives",
    "OverrideDirectories": "override_directories",
    "ForceFreeSpace": "force_free_space",
    "MinimumAge": "minimum_age",
    "CurrentAccessThreshold": "current_access_threshold",
    "FlushPolicy": "flush_policy",
    "ClearEmptyDirs": "clear_empty_dirs",
    "SkipMove": "skip_move",
    "Force": "force",
    "PushoverEnabled": "pushover_enabled",
    "PushoverAppKey": "pushover_app_key",
    "PushoverUserKey": "pushover_user_key",
}


def _resolve_env_vars(value: Any) -> Any:
    if isinstance(value, str):
        return _ENV_PATTERN.sub(
            lambda m: os.environ.get(m.group(1), m.group(0)), value
        )
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(v) for v in value]
    return value


def _translate_keys(data: dict[str, Any]) -> dict[str, Any]:
    translated: dict[str, Any] = {}
    for key, value in data.items():
        field = YAML_KEYS.get(key)
        if field is None:
            logger.warning("Ignoring unknown config key: %s", key)
            continue
        if value is not None:
            translated[field] = value
    return translated


def _format_validation_error(exc: ValidationError) -> str:
    fields = {v: k for k, v in YAML_KEYS.items()}
    problems = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        name = fields.get(str(err["loc"][0]), loc) if err["loc"] else loc
        problems.append(f"{name}: {err['msg']}")
    return "; ".join(problems)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CACHEFLUSH_", extra="ignore")

    # Log settings
    log_file: str
    debug_logging: bool = False

    # Permission settings
    owner_uid: int = os.getuid()
    owner_gid: int = os.getgid()

    # Path settings
    backing_pool: str
    cache_drives: list[str]
    override_directories: list[str] = []

    # Behavior settings
    force_free_space: str = ""
    minimum_age: str = ""
    current_access_threshold: str = ""
    flush_policy: FlushPolicy
    clear_empty_dirs: bool = False
    skip_move: bool = False
    force: bool = False

    # Pushover settings
    pushover_enabled: bool = False
    pushover_app_key: str = ""
    pushover_user_key: str = ""

    @field_validator("log_file", "backing_pool")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("backing_pool")
    @classmethod
    def _normalize_pool(cls, value: str) -> str:
        # Destinations are built by textual prefix replacement, so roots must
        # not carry trailing or doubled separators.
        return os.path.normpath(value)

    @field_validator("cache_drives")
    @classmethod
    def _at_least_one_drive(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("at least one cache drive is required")
        return [os.path.normpath(drive) for drive in value]

    @field_validator("owner_uid", "owner_gid")
    @classmethod
    def _uint32(cls, value: int) -> int:
        if not 0 <= value < 2**32:
            raise ValueError("must be an unsigned 32-bit id")
        return value

    @model_validator(mode="after")
    def _check_pushover_keys(self) -> "Settings":
        if self.pushover_enabled:
            if not self.pushover_app_key:
                logger.warning("Pushover enabled but AppKey not provided, disabling pushover")
                self.pushover_enabled = False
            elif not self.pushover_user_key:
                logger.warning("Pushover enabled but UserKey not provided, disabling pushover")
                self.pushover_enabled = False
        return self

    @classmethod
    def from_yaml(cls, path: str = DEFAULT_CONFIG_FILE) -> "Settings":
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigInvalid(f"Failed to load config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigInvalid(f"Failed to parse config file {path}: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigInvalid(f"Config file {path} must contain a mapping")
        data = _translate_keys(_resolve_env_vars(data))
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigInvalid(f"Invalid config {path}: {_format_validation_error(e)}") from e

    def validate_paths(self) -> None:
        if not Path(self.backing_pool).is_dir():
            raise ConfigInvalid(f"Backing pool: {self.backing_pool} does not exist")
        for drive in self.cache_drives:
            if not Path(drive).is_dir():
                raise ConfigInvalid(f"Cache drive: {drive} does not exist or is inaccessible")


def load_settings(path: Optional[str] = None) -> Settings:
    """Load and validate settings, falling back to ./cacheflush.yaml."""
    if path:
        if not Path(path).exists():
            raise ConfigInvalid(f"Config file: {path} does not exist")
    else:
        logger.debug("No config file specified, checking for %s", DEFAULT_CONFIG_FILE)
        if not Path(DEFAULT_CONFIG_FILE).exists():
            raise ConfigInvalid(
                f"No config file provided and {DEFAULT_CONFIG_FILE} not found in working directory"
            )
        path = DEFAULT_CONFIG_FILE
    settings = Settings.from_yaml(path)
    settings.validate_paths()
    return settings
