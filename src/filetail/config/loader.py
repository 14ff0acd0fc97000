"""Settings file loading.

Handles:
- YAML file parsing
- Cascading system, user, project and explicit settings files
- Environment variable overrides
- Conversion from dict to the typed config dataclasses
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from filetail.config.paths import get_config_paths
from filetail.config.schema import LinesConfig, LoggingConfig, Settings, TailConfig
from filetail.errors import ConfigError

_log = logging.getLogger("filetail.config")

_KNOWN_SECTIONS = {"tail", "lines", "logging"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning an empty dict if missing or unreadable.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML mapping, or empty dict on error.
    """
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def env_overrides() -> dict[str, Any]:
    """Settings taken from the environment (highest priority).

    FILETAIL_LOG sets the log file; FILETAIL_POLL_INTERVAL the poll interval.
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("FILETAIL_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    interval = os.environ.get("FILETAIL_POLL_INTERVAL")
    if interval:
        try:
            overrides.setdefault("tail", {})["poll_interval"] = float(interval)
        except ValueError:
            _log.warning("Ignoring non-numeric FILETAIL_POLL_INTERVAL=%r", interval)

    return overrides


def merge_settings(*layers: dict[str, Any]) -> dict[str, Any]:
    """Fold settings layers together, later layers winning.

    Mappings merge key by key, any other value (lists included) is
    replaced wholesale, and a None never replaces an existing value.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        merged = _merge_two(merged, layer or {})
    return merged


def _merge_two(base: dict[str, Any], top: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in top.items():
        if value is None:
            continue
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _merge_two(current, value)
        else:
            result[key] = value
    return result


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' section must be a mapping")
    return section


def _build(cls: type, values: dict[str, Any], section: str) -> Any:
    names = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(values) - names)
    if unknown:
        _log.warning("Ignoring unknown %s settings: %s", section, ", ".join(unknown))
    kwargs = {k: v for k, v in values.items() if k in names}
    try:
        return cls(**kwargs)
    except TypeError as e:
        raise ConfigError(f"invalid {section} settings: {e}") from e


def dict_to_settings(data: dict[str, Any]) -> Settings:
    """Convert a merged settings dict to typed Settings.

    Raises:
        ConfigError: If a section or value is invalid.
    """
    tail_data = _section(data, "tail")
    lines_data = _section(data, "lines")
    log_data = _section(data, "logging")

    tail = _build(TailConfig, tail_data, "tail")
    # Line tails inherit every tail option
    lines = _build(LinesConfig, {**tail_data, **lines_data}, "lines")
    logging_config = _build(LoggingConfig, log_data, "logging")

    extra = {k: v for k, v in data.items() if k not in _KNOWN_SECTIONS}

    return Settings(tail=tail, lines=lines, logging=logging_config, extra=extra)


def load_settings(
    project_root: str | Path | None = None,
    config_file: str | Path | None = None,
) -> Settings:
    """Load and merge settings from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. ``config_file`` if given
    3. Project settings ($project_root/.filetail/config.yaml)
    4. User settings (~/.config/filetail/ or %APPDATA%)
    5. System settings (/etc/filetail/ or %PROGRAMDATA%)

    Raises:
        ConfigError: If ``config_file`` does not exist or values are invalid.
    """
    layers: list[dict[str, Any]] = []

    for path in get_config_paths(project_root):
        data = load_yaml_file(path)
        if data:
            _log.debug("Loaded settings from %s", path)
            layers.append(data)

    if config_file is not None:
        explicit = Path(config_file)
        if not explicit.exists():
            raise ConfigError(f"Settings file not found: {explicit}")
        layers.append(load_yaml_file(explicit))

    layers.append(env_overrides())

    return dict_to_settings(merge_settings(*layers))
