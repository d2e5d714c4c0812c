# glue_core/timings.py
"""
@file timings.py
@brief Time configuration presets and defaults for the glue engine.
"""

from __future__ import annotations
from copy import deepcopy
from typing import Any, Dict


TIMEOUT_FIELDS: Dict[str, Dict[str, Any]] = {
    "element_wait": {"timeout": 10.0, "interval": 0.2},
    "enabled_wait": {"timeout": 10.0, "interval": 0.2},
    "click_action": {"timeout": 10.0, "interval": 0.2, "retry_count": 3},
    "set_text_action": {"timeout": 10.0, "interval": 0.2, "retry_count": 3},
    "get_text_action": {"timeout": 10.0, "interval": 0.2, "retry_count": 2},
    "unlock_retry": {"timeout": 10.0, "interval": 0.5, "retry_count": 2},
    "dismiss_loop": {"timeout": 30.0, "interval": 0.2},
}

# Liveness watcher cadence, in seconds.
WATCH_FIELDS: Dict[str, float] = {
    "watch_interval": 0.5,
    "inactivity_threshold": 30.0,
}

PRESET_OVERRIDES: Dict[str, Dict[str, Any]] = {
    "fast": {
        "element_wait": {"timeout": 5.0, "interval": 0.1},
        "enabled_wait": {"timeout": 5.0, "interval": 0.1},
        "click_action": {"timeout": 5.0, "interval": 0.1, "retry_count": 2},
        "set_text_action": {"timeout": 5.0, "interval": 0.1, "retry_count": 2},
        "dismiss_loop": {"timeout": 15.0, "interval": 0.1},
        "watch_interval": 0.25,
        "inactivity_threshold": 15.0,
    },
    "slow": {
        "element_wait": {"timeout": 20.0, "interval": 0.3},
        "enabled_wait": {"timeout": 20.0, "interval": 0.3},
        "click_action": {"timeout": 20.0, "interval": 0.3, "retry_count": 4},
        "set_text_action": {"timeout": 20.0, "interval": 0.3, "retry_count": 4},
        "unlock_retry": {"timeout": 20.0, "interval": 1.0, "retry_count": 3},
        "dismiss_loop": {"timeout": 60.0, "interval": 0.3},
        "watch_interval": 1.0,
        "inactivity_threshold": 45.0,
    },
    "ci": {
        "element_wait": {"timeout": 30.0, "interval": 0.5},
        "enabled_wait": {"timeout": 30.0, "interval": 0.5},
        "click_action": {"timeout": 30.0, "interval": 0.5, "retry_count": 5},
        "set_text_action": {"timeout": 30.0, "interval": 0.5, "retry_count": 5},
        "unlock_retry": {"timeout": 30.0, "interval": 1.0, "retry_count": 3},
        "dismiss_loop": {"timeout": 90.0, "interval": 0.5},
        "watch_interval": 1.0,
        "inactivity_threshold": 60.0,
    },
}


def list_presets() -> Dict[str, Dict[str, Any]]:
    return {"default": {}, **PRESET_OVERRIDES}


def build_preset_values(preset: str) -> Dict[str, Any]:
    preset_key = (preset or "default").lower()
    values: Dict[str, Any] = {}
    values.update(deepcopy(TIMEOUT_FIELDS))
    values.update(deepcopy(WATCH_FIELDS))

    if preset_key == "default":
        return values

    overrides = PRESET_OVERRIDES.get(preset_key)
    if overrides is None:
        raise ValueError(f"Unknown timing preset: {preset}")

    for key, value in overrides.items():
        if key in TIMEOUT_FIELDS:
            base = deepcopy(values[key])
            base.update(value)
            values[key] = base
        else:
            values[key] = value

    return values
