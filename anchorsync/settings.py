"""Load and validate the humanization settings record."""

import json
import os
import re
from dataclasses import asdict, fields, replace
from enum import Enum

from anchorsync.errors import InputError
from anchorsync.models import BreathIntensity, Settings, WaitDuration

_PERCENT_FIELDS = ("stutter_rate", "filler_rate", "volume_variation", "speed_variation")
_BOOL_FIELDS = ("asymmetry", "ambient_sounds")
_ENUM_FIELDS = {"wait_duration": WaitDuration, "breath_intensity": BreathIntensity}


def _snake(key: str) -> str:
    """stutterRate → stutter_rate; snake_case passes through."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _coerce(name: str, value):
    if name in _PERCENT_FIELDS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InputError(f"Setting '{name}' must be a number, got {value!r}")
        if not 0 <= value <= 100:
            raise InputError(f"Setting '{name}' must be between 0 and 100, got {value}")
        return value
    if name in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise InputError(f"Setting '{name}' must be true or false, got {value!r}")
        return value
    enum_cls = _ENUM_FIELDS[name]
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise InputError(f"Setting '{name}' must be one of: {choices}")


def parse_settings(data: dict, base: Settings | None = None) -> Settings:
    """Build Settings from a dict with camelCase or snake_case keys.

    Keys not given keep their value from base (defaults when base is None).
    """
    known = {f.name for f in fields(Settings)}
    values = {}
    for key, value in data.items():
        name = _snake(key)
        if name not in known:
            raise InputError(f"Unknown setting: {key}")
        values[name] = _coerce(name, value)
    return replace(base or Settings(), **values)


def load_settings(path: str | None = None, overrides: dict | None = None) -> Settings:
    """Read settings from a JSON file, then apply overrides."""
    settings = Settings()
    if path:
        if not os.path.exists(path):
            raise InputError(f"Settings file not found: {path}")
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise InputError(f"Malformed settings file {path}: {e}")
        if not isinstance(data, dict):
            raise InputError(f"Settings file {path} must contain a JSON object")
        settings = parse_settings(data, settings)
    if overrides:
        settings = parse_settings(overrides, settings)
    return settings


def settings_to_dict(settings: Settings) -> dict:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in asdict(settings).items()}
