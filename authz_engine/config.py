"""
Configuration for the Authorization Model Engine.

Settings are resolved once per run from defaults, an optional YAML or JSON
config file, GVA_* environment variables and explicit overrides (in that
order of precedence, lowest first), then passed explicitly to the session
and the components built on top of it.
"""

import logging
import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "GVA_"
DEFAULT_CONFIG_NAME = "gva.json"


class Settings(BaseModel):
    """
    Ambient settings read by the session and every connector.

    Every field also accepts the key used by existing gva.json files and
    GVA_* variables (baseurl, pw, validtls, ...).
    """
    model_config = ConfigDict(populate_by_name=True)

    base_url: str = Field("", validation_alias=AliasChoices("base_url", "baseurl"),
                          description="Platform base URL; falls back to the CLI profile")
    user: str = ""
    password: str = Field("", validation_alias=AliasChoices("password", "pw"))
    client_id: str = Field("sas.cli", validation_alias=AliasChoices("client_id", "clientid"))
    client_secret: str = Field("", validation_alias=AliasChoices("client_secret", "clientsecret"))
    cas_server: str = Field("cas-shared-default", validation_alias=AliasChoices("cas_server", "casserver"))
    response_limit: int = Field(1000, gt=0, validation_alias=AliasChoices("response_limit", "responselimit"))
    valid_tls: bool = Field(True, validation_alias=AliasChoices("valid_tls", "validtls"))
    log_level: str = Field("INFO", validation_alias=AliasChoices("log_level", "loglevel"))
    log_file: str = Field(default_factory=lambda: f"gva-{date.today().isoformat()}.log",
                          validation_alias=AliasChoices("log_file", "logfile"))
    profile: str = "Default"
    home: Path = Field(default_factory=Path.home)

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARN", "WARNING", "ERROR", "FATAL", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def sas_dir(self) -> Path:
        """Directory holding the sas-admin CLI config and credentials files."""
        return self.home / ".sas"


def _setting_names() -> Dict[str, str]:
    """Map every accepted key, field name or alias, to its field name."""
    names = {}
    for name, field in Settings.model_fields.items():
        names[name] = name
        if isinstance(field.validation_alias, AliasChoices):
            for choice in field.validation_alias.choices:
                names[str(choice)] = name
    return names


def _read_config_file(path: Path) -> Dict[str, Any]:
    """Read a YAML or JSON config file (YAML is a superset of JSON)."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    names = _setting_names()
    values = {}
    for key, value in data.items():
        key = str(key).lower()
        values[names.get(key, key)] = value
    return values


def _read_environment() -> Dict[str, Any]:
    """Collect GVA_* environment variables, keyed by setting name."""
    names = _setting_names()
    values = {}
    for key, value in os.environ.items():
        if key.startswith(ENV_PREFIX):
            name = key[len(ENV_PREFIX):].lower()
            if name in names:
                values[names[name]] = value
    return values


def load_settings(config_path: Optional[Union[str, Path]] = None, **overrides: Any) -> Settings:
    """
    Resolve the run settings.

    Args:
        config_path: Explicit config file. If None, ~/.sas/gva.json is used
                     when it exists.
        **overrides: Values that take precedence over file and environment
                     (None values are ignored).

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: If the file is unreadable or a value is invalid
    """
    values: Dict[str, Any] = {}

    home = overrides.get("home") or Path.home()
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")
    else:
        path = Path(home) / ".sas" / DEFAULT_CONFIG_NAME

    if path.exists():
        values.update(_read_config_file(path))
        logger.info(f"Using config file {path}")
    else:
        logger.debug(f"No config file at {path}, using defaults")

    values.update(_read_environment())
    values.update({k: v for k, v in overrides.items() if v is not None})

    unknown = sorted(set(values) - set(Settings.model_fields))
    if unknown:
        logger.warning(f"Ignoring unknown settings: {', '.join(unknown)}")
        for key in unknown:
            values.pop(key)

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e
