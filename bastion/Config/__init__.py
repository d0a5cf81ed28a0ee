"""
Bastion settings.

Each setting in CONFIG_SCHEMA is resolved once, from the first source that
defines it:

1. the process environment (a ``.env`` file is merged in first but never
   overrides variables that are already set)
2. ``config.json``
3. the schema default

The resolved values are treated as fixed for the lifetime of the process;
``reload()`` builds a fresh manager when tests or tooling need one.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from bastion.shared.gate import GateLogger
from bastion.GuardGate.models import GatewayConfig
from bastion.Config.schema import (
    CONFIG_SCHEMA,
    ConfigCategory,
    ConfigField,
    ConfigType,
    gateway_fields,
    get_schema_by_key,
)

_log = GateLogger.get("Config")

PROJECT_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = PROJECT_ROOT / ".env"
CONFIG_JSON = PROJECT_ROOT / "data" / "config.json"

SOURCE_ENV = "env"
SOURCE_JSON = "json"
SOURCE_DEFAULT = "default"


def _read_json_settings(path: Path) -> Dict[str, Any]:
    """Settings from config.json; a missing or broken file contributes nothing."""
    if not path.is_file():
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        _log.warning(f"Ignoring unreadable config file {path}: {e}")
        return {}

    if not isinstance(data, dict):
        _log.warning(f"Ignoring config file {path}: expected a JSON object")
        return {}
    return data


class ConfigManager:
    """Resolved Bastion settings plus the source each one came from."""

    def __init__(
        self,
        env_file: Optional[Union[str, Path]] = None,
        config_json: Optional[Union[str, Path]] = None,
    ):
        self.env_file = Path(env_file or os.environ.get("BASTION_ENV_FILE") or ENV_FILE)
        self.config_json = Path(config_json or os.environ.get("BASTION_CONFIG_JSON") or CONFIG_JSON)
        self._values: Dict[str, Any] = {}
        self._sources: Dict[str, str] = {}
        self._resolve()

    def _resolve(self) -> None:
        load_dotenv(self.env_file)
        from_file = _read_json_settings(self.config_json)

        for field in CONFIG_SCHEMA:
            if field.env_var in os.environ:
                raw, source = os.environ[field.env_var], SOURCE_ENV
            elif field.key in from_file:
                raw, source = from_file[field.key], SOURCE_JSON
            else:
                raw, source = field.default, SOURCE_DEFAULT

            self._values[field.key] = field.convert(raw)
            self._sources[field.key] = source

        overridden = sorted(k for k, s in self._sources.items() if s != SOURCE_DEFAULT)
        if overridden:
            _log.debug(f"Settings overridden: {', '.join(overridden)}")

    def get(self, key: str, default: Any = None) -> Any:
        value = self._values.get(key)
        return default if value is None else value

    def source_of(self, key: str) -> Optional[str]:
        """Where a setting came from: "env", "json" or "default" (None if unknown)."""
        return self._sources.get(key)

    def get_all(self) -> Dict[str, Any]:
        return dict(self._values)

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Check every setting, then the assembled GatewayConfig.

        Returns:
            (is_valid, list of error messages)
        """
        errors = [
            problem
            for problem in (field.check(self._values.get(field.key)) for field in CONFIG_SCHEMA)
            if problem
        ]

        # Range checks belong to the pydantic model; only run them on
        # values that already have the right type.
        if not errors:
            try:
                self.to_gateway_config()
            except PydanticValidationError as e:
                errors.extend(
                    f"Invalid value for {'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                    for err in e.errors()
                )

        return not errors, errors

    def to_gateway_config(self) -> GatewayConfig:
        """
        Build the GatewayConfig from the resolved settings.

        Raises:
            pydantic.ValidationError: If a value is out of range
        """
        kwargs = {}
        for field in gateway_fields():
            value = self._values.get(field.key)
            if value is None:
                continue
            if field.config_type == ConfigType.PATH:
                value = os.path.expanduser(value)
            kwargs[field.gateway_field] = value
        return GatewayConfig(**kwargs)


_manager: Optional[ConfigManager] = None


def get_manager() -> ConfigManager:
    """The process-wide manager, created on first use."""
    global _manager
    if _manager is None:
        _manager = ConfigManager()
    return _manager


def reload() -> ConfigManager:
    """Re-read every source and replace the process-wide manager."""
    global _manager
    _manager = ConfigManager()
    return _manager


def get(key: str, default: Any = None) -> Any:
    return get_manager().get(key, default)


def load_gateway_config() -> GatewayConfig:
    return get_manager().to_gateway_config()


__all__ = [
    "ConfigManager",
    "ConfigField",
    "ConfigType",
    "ConfigCategory",
    "CONFIG_SCHEMA",
    "get_manager",
    "reload",
    "get",
    "load_gateway_config",
    "get_schema_by_key",
]
