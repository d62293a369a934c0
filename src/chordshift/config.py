"""Converter configuration.

Settings come from an optional YAML file; command-line options override
file values.

Example ``chordshift.yaml``::

    target_format: chordpro
    recovery_level: permissive
    default_key: G
    save_results: true
    storage_dir: ~/.chordshift
    log_level: INFO
"""

import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .chords.keys import is_valid_key
from .exceptions import ConfigError
from .models import Dialect
from .recovery import RECOVERY_LEVELS

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ConverterConfig:
    target_format: str = Dialect.CHORDPRO.value
    recovery_level: str = "moderate"
    default_key: str | None = None
    save_results: bool = False
    storage_dir: str = ".chordshift"
    log_level: str = "WARNING"

    def __post_init__(self):
        try:
            self.target_format = Dialect.from_id(self.target_format).value
        except (ValueError, AttributeError) as exc:
            raise ConfigError(f"Unknown target_format: {self.target_format!r}") from exc
        if self.recovery_level not in RECOVERY_LEVELS:
            raise ConfigError(
                f"recovery_level must be one of {', '.join(RECOVERY_LEVELS)}, got {self.recovery_level!r}"
            )
        if self.default_key is not None and not is_valid_key(str(self.default_key)):
            raise ConfigError(f"Invalid default_key: {self.default_key!r}")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {self.log_level!r}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Read a YAML mapping from *path*.

    Raises ConfigError if the file is missing or does not hold a mapping.
    """
    path = Path(path).expanduser()
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def dict_to_config(data: dict[str, Any]) -> ConverterConfig:
    known = {f.name for f in fields(ConverterConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
    return ConverterConfig(**{k: v for k, v in data.items() if k in known})


def load_config(path: str | Path | None = None) -> ConverterConfig:
    """Return the config from *path*, or the defaults when *path* is None."""
    if path is None:
        return ConverterConfig()
    config = dict_to_config(load_yaml_config(path))
    logger.debug("Loaded config from %s", path)
    return config


def merge_overrides(config: ConverterConfig, **overrides: Any) -> ConverterConfig:
    """Return a copy of *config* with every non-None override applied."""
    changes = {k: v for k, v in overrides.items() if v is not None}
    return replace(config, **changes) if changes else config
