"""
Config system - Layered configuration with validation.

Sources, later overriding earlier:
1. Config files (YAML or JSON; a ``faultline:`` section is used when present)
2. ``.env`` file (FAULTLINE_* keys)
3. Environment variables (FAULTLINE_* prefix)
4. Manual overrides

The merged mapping is turned into a validated :class:`FaultlineConfig`.
Unknown keys are rejected, naming every one of them.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import dotenv_values

from .faults.actions import TerminalAction, resolve_action, resolve_custom_actions
from .faults.classification import ClassificationPolicy
from .faults.codes import DEFAULT_BACKGROUND_MASK, DEFAULT_IGNORE_MASK, parse_mask
from .faults.core import Mode
from .faults.errors import ConfigurationError


logger = logging.getLogger("faultline.config")

DEFAULT_LOG_FILE = "errors.txt"

# Accepted spellings -> canonical field name
_KEY_ALIASES: Dict[str, str] = {
    "ignoreMask": "ignore_mask",
    "backgroundMask": "background_mask",
    "logDestinationBackground": "log_destination_background",
    "logDestinationTerminal": "log_destination_terminal",
    "developmentAction": "development_action",
    "productionAction": "production_action",
    "customActions": "custom_actions",
    "extraLogData": "extra_log_data",
    "logDirectory": "log_directory",
    "logFile": "log_file",
    # Names used by earlier releases
    "errors_minor": "ignore_mask",
    "errors_major": "background_mask",
    "termination_mode": "mode",
    "log_data": "extra_log_data",
    "terminal_action_development": "development_action",
    "terminal_action_production": "production_action",
}

_MODE_NUMBERS = {
    0: Mode.DEVELOPMENT,
    1: Mode.PRODUCTION,
    2: Mode.SILENT,
    3: Mode.CUSTOM,
}


@dataclass
class FaultlineConfig:
    """
    Validated configuration surface.

    Attributes:
        ignore_mask: Codes recorded but never logged on their own
        background_mask: Codes logged without halting
        mode: Terminal procedure variant
        log_destination_background: File for background-only logs
        log_destination_terminal: File for terminal logs
        development_action: Replaces the development presentation
        production_action: Replaces the production notice
        custom_actions: CUSTOM mode actions keyed by "major"/"fatal"
        extra_log_data: Extra data written with every log record
        timestamp: Fixed log timestamp (None = time of write)
    """
    ignore_mask: int = DEFAULT_IGNORE_MASK
    background_mask: int = DEFAULT_BACKGROUND_MASK
    mode: Mode = Mode.DEVELOPMENT
    log_destination_background: Optional[str] = None
    log_destination_terminal: Optional[str] = None
    development_action: Optional[TerminalAction] = None
    production_action: Optional[TerminalAction] = None
    custom_actions: Dict[str, TerminalAction] = field(default_factory=dict)
    extra_log_data: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[str] = None

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]] = None, **kwargs: Any) -> FaultlineConfig:
        """
        Build and validate a config from a parameter mapping.

        ``log_directory`` (+ optional ``log_file``, default ``errors.txt``)
        is shorthand for pointing both destinations at one file.

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        if data is not None and not isinstance(data, dict):
            raise ConfigurationError("Parameters must be a mapping")
        params: Dict[str, Any] = {}
        for key, value in {**(data or {}), **kwargs}.items():
            params[_KEY_ALIASES.get(key, key)] = value

        known = set(cls.field_names()) | {"log_directory", "log_file"}
        invalid = [key for key in params if key not in known]
        if invalid:
            raise ConfigurationError(
                f"Invalid keys ({', '.join(invalid)}) submitted",
                keys=invalid,
            )

        directory = params.pop("log_directory", None)
        log_file = params.pop("log_file", None)
        if directory is not None or log_file is not None:
            if directory is None:
                raise ConfigurationError("log_file requires log_directory", key="log_file")
            shared = str(Path(str(directory)) / str(log_file or DEFAULT_LOG_FILE))
            params.setdefault("log_destination_background", shared)
            params.setdefault("log_destination_terminal", shared)

        config = cls()
        for key, value in params.items():
            setattr(config, key, value)
        return config.validate()

    def validate(self) -> FaultlineConfig:
        """Normalise every field in place; raise ConfigurationError on bad values."""
        self.ignore_mask = parse_mask(self.ignore_mask, key="ignore_mask")
        self.background_mask = parse_mask(self.background_mask, key="background_mask")
        ClassificationPolicy(self.ignore_mask, self.background_mask)

        self.mode = self._parse_mode(self.mode)

        background = self.log_destination_background
        terminal = self.log_destination_terminal
        if not background and not terminal:
            raise ConfigurationError(
                "A log destination is required (log_destination_terminal, "
                "log_destination_background or log_directory)",
                key="log_destination_terminal",
            )
        self.log_destination_background = str(background or terminal)
        self.log_destination_terminal = str(terminal or background)

        self.development_action = resolve_action(self.development_action, key="development_action")
        self.production_action = resolve_action(self.production_action, key="production_action")
        self.custom_actions = resolve_custom_actions(self.custom_actions)

        if self.extra_log_data is None:
            self.extra_log_data = {}
        if not isinstance(self.extra_log_data, dict):
            raise ConfigurationError("extra_log_data must be a mapping", key="extra_log_data")
        self.extra_log_data = dict(self.extra_log_data)

        if self.timestamp is not None:
            self.timestamp = str(self.timestamp)
        return self

    @staticmethod
    def _parse_mode(value: Any) -> Mode:
        if isinstance(value, int) and not isinstance(value, bool) and value in _MODE_NUMBERS:
            return _MODE_NUMBERS[value]
        try:
            return Mode.parse(value)
        except ValueError:
            raise ConfigurationError(
                f"Invalid termination mode submitted: {value!r} "
                f"(choose from {', '.join(m.value for m in Mode)})",
                key="mode",
            ) from None

    def with_overrides(self, **changes: Any) -> FaultlineConfig:
        return replace(self, **changes).validate()

    def to_dict(self) -> dict:
        """Summary suitable for display; actions are shown by name."""
        return {
            "ignore_mask": self.ignore_mask,
            "background_mask": self.background_mask,
            "mode": self.mode.value,
            "log_destination_background": self.log_destination_background,
            "log_destination_terminal": self.log_destination_terminal,
            "development_action": getattr(self.development_action, "name", None),
            "production_action": getattr(self.production_action, "name", None),
            "custom_actions": {k: a.name for k, a in self.custom_actions.items()},
            "extra_log_data": dict(self.extra_log_data),
            "timestamp": self.timestamp,
        }


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files
    """

    def __init__(self, env_prefix: str = "FAULTLINE_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}
        self.sources: list[str] = []

    @classmethod
    def load(
        cls,
        paths: Optional[list[str]] = None,
        env_prefix: str = "FAULTLINE_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        use_environ: bool = True,
    ) -> ConfigLoader:
        """
        Load configuration from multiple sources with proper merge strategy.

        Args:
            paths: Config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            overrides: Manual overrides (highest precedence)
            use_environ: Read ``os.environ`` as a source

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        for pattern in paths or []:
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        if use_environ:
            loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)
            loader.sources.append("overrides")

        return loader

    def _load_from_files(self, pattern: str):
        """Load config from JSON or YAML files."""
        from glob import glob

        matches = sorted(glob(pattern))
        if not matches:
            raise ConfigurationError(f"Config file not found: {pattern}")

        for path_str in matches:
            path = Path(path_str)
            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            else:
                raise ConfigurationError(f"Unsupported config file type: {path}")
            self.sources.append(str(path))

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
        self._merge_section(data, path)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml

        with open(path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if data:
            self._merge_section(data, path)

    def _merge_section(self, data: Any, path: Path):
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        section = data.get("faultline", data)
        if not isinstance(section, dict):
            raise ConfigurationError(f"'faultline' section of {path} must be a mapping")
        self._merge_dict(self.config_data, section)

    def _load_env_file(self, path: str):
        """Load config from .env file."""
        env_path = Path(path)
        if not env_path.exists():
            logger.debug(f".env file {path} not found, skipping")
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)
        self.sources.append(str(env_path))

    def _load_from_env(self):
        """Load config from environment variables."""
        found = False
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)
                found = True
        if found:
            self.sources.append("environment")

    def _set_nested(self, key: str, value: str):
        """Convert FAULTLINE_EXTRA_LOG_DATA__HOST to nested dict."""
        key = key[len(self.env_prefix):]

        # Double underscore separates nesting levels
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if part not in current or not isinstance(current[part], dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        # Number
        try:
            return int(value)
        except ValueError:
            pass

        # Boolean
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        # JSON
        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def to_config(self) -> FaultlineConfig:
        """Validate the merged data into a FaultlineConfig."""
        return FaultlineConfig.from_mapping(self.to_dict())

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()
