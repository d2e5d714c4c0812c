# glue_core/config.py
"""
@file config.py
@brief Session-scoped timeout, retry and watcher configuration.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping, Optional

import yaml

from .exceptions import ConfigError
from .timings import TIMEOUT_FIELDS, WATCH_FIELDS, build_preset_values, list_presets


@dataclass(frozen=True)
class TimeoutSettings:
    """Bound and poll interval for one kind of interaction."""
    timeout: float
    interval: float
    retry_count: Optional[int] = None

    def with_overrides(self, **changes: Any) -> TimeoutSettings:
        """Copy with the non-None ``changes`` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _setting(name: str, value: Any, base: Optional[TimeoutSettings] = None) -> TimeoutSettings:
    """Coerce a mapping (partial when ``base`` is given) into TimeoutSettings."""
    if isinstance(value, TimeoutSettings):
        return value
    if not isinstance(value, Mapping):
        raise ConfigError(f"Invalid timeout setting for {name}: {value!r}")
    unknown = set(value) - {"timeout", "interval", "retry_count"}
    if unknown:
        raise ConfigError(f"{name}: unknown keys {sorted(unknown)}")
    try:
        if base is not None:
            return base.with_overrides(
                timeout=None if value.get("timeout") is None else float(value["timeout"]),
                interval=None if value.get("interval") is None else float(value["interval"]),
                retry_count=value.get("retry_count"),
            )
        return TimeoutSettings(
            timeout=float(value["timeout"]),
            interval=float(value["interval"]),
            retry_count=value.get("retry_count"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid timeout setting for {name}: {value!r}") from e


def _seconds(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e


class GlueConfig:
    """
    Timing configuration for one glue session.

    Deterministic precedence is applied by ``build_from``:
      base defaults -> preset -> overrides

    Instances are owned by the session that uses them; there is no process
    wide default to mutate.
    """

    element_wait: TimeoutSettings
    enabled_wait: TimeoutSettings
    click_action: TimeoutSettings
    set_text_action: TimeoutSettings
    get_text_action: TimeoutSettings
    unlock_retry: TimeoutSettings
    dismiss_loop: TimeoutSettings
    watch_interval: float
    inactivity_threshold: float

    def __init__(self, preset: Optional[str] = None):
        self.preset = (preset or "default").lower()
        try:
            values = build_preset_values(self.preset)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        for name in TIMEOUT_FIELDS:
            setattr(self, name, _setting(name, values[name]))
        for name in WATCH_FIELDS:
            setattr(self, name, _seconds(name, values[name]))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {name: asdict(getattr(self, name)) for name in TIMEOUT_FIELDS}
        data.update({name: getattr(self, name) for name in WATCH_FIELDS})
        return data

    def clone(self) -> GlueConfig:
        clone = GlueConfig(self.preset)
        apply_overrides(clone, self.to_dict())
        return clone

    @classmethod
    def build_from(
        cls,
        *,
        preset: str = "default",
        overrides: Optional[Dict[str, Any]] = None,
    ) -> GlueConfig:
        """Build a deterministic session-scope config snapshot."""
        cfg = cls(preset)
        if overrides:
            apply_overrides(cfg, overrides)
        return cfg

    @classmethod
    def from_yaml(
        cls,
        path: str,
        overrides: Optional[Dict[str, Any]] = None,
        preset: Optional[str] = None,
    ) -> GlueConfig:
        """
        Load a config file of the form::

            preset: ci
            timings:
              watch_interval: 0.25
              element_wait: {timeout: 5}

        Explicit ``overrides`` win over the file's ``timings`` section and an
        explicit ``preset`` replaces the file's one.
        """
        data = load_yaml_mapping(path)
        unknown = set(data.keys()) - {"preset", "timings"}
        if unknown:
            raise ConfigError(f"{path}: unknown config keys: {sorted(unknown)}")
        timings = data.get("timings") or {}
        if not isinstance(timings, dict):
            raise ConfigError(f"{path}: 'timings' must be a mapping")
        cfg = cls.build_from(preset=preset or str(data.get("preset", "default")), overrides=timings)
        if overrides:
            apply_overrides(cfg, overrides)
        return cfg


def load_yaml_mapping(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise ConfigError(f"Config YAML not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: YAML must be a mapping at root.")
    return data


def apply_overrides(config: GlueConfig, overrides: Dict[str, Any]) -> None:
    """Apply partial overrides in place; unknown fields are an error."""
    for key, value in overrides.items():
        if key in TIMEOUT_FIELDS:
            setattr(config, key, _setting(key, value, base=getattr(config, key)))
        elif key in WATCH_FIELDS:
            setattr(config, key, _seconds(key, value))
        else:
            raise ConfigError(f"Unknown GlueConfig field: {key}")


def available_presets() -> Dict[str, Dict[str, Any]]:
    return list_presets()
