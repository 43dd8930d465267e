"""
Settings - layered defaults for makers and the reference host.

Merge order (later overrides earlier):
1. Dataclass defaults
2. YAML settings file
3. ``.env`` file (prefixed keys only)
4. Environment variables (``RESTHAT_*`` prefix)
5. Manual overrides
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import dotenv_values

from .faults import SettingsFault


@dataclass(frozen=True)
class HatSettings:
    """
    Process-level defaults.

    Attributes:
        username: Default basic-auth username for protected actions
        password: Default basic-auth password (plain text or an argon2 hash)
        realm: Basic-auth realm
        format_routes: Also register ``<path>.:format`` routes
        default_format: Format used when a request names none; None keeps
            natural results
        log_level: Level passed to logging when serving
    """

    username: str = "username"
    password: str = "password"
    realm: str = "The App"
    format_routes: bool = True
    default_format: Optional[str] = None
    log_level: str = "info"

    @classmethod
    def load(
        cls,
        path: Optional[str] = None,
        env_file: Optional[str] = None,
        env_prefix: str = "RESTHAT_",
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "HatSettings":
        """
        Load settings from every source.

        Args:
            path: YAML file; a missing file is ignored
            env_file: ``.env`` file; a missing file is ignored
            env_prefix: Prefix for environment variables and ``.env`` keys
            overrides: Manual overrides (highest precedence)
        """
        data: Dict[str, Any] = {}

        if path and Path(path).exists():
            with open(path) as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise SettingsFault(path, "settings file must contain a mapping")
            data.update(loaded)

        if env_file and Path(env_file).exists():
            data.update(_prefixed(dotenv_values(env_file), env_prefix))

        data.update(_prefixed(os.environ, env_prefix))

        if overrides:
            data.update(overrides)

        return cls().merge(data)

    def merge(self, data: Mapping[str, Any]) -> "HatSettings":
        """Return a copy with known keys from ``data`` applied and coerced."""
        known = {f.name: f for f in fields(self)}
        changes: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            changes[key] = _coerce(key, value, getattr(self, key))
        return replace(self, **changes)


def _prefixed(source: Mapping[str, Optional[str]], prefix: str) -> Dict[str, Any]:
    """Keep ``PREFIX_KEY`` entries as ``key``."""
    return {
        key[len(prefix):].lower(): _parse_value(value)
        for key, value in source.items()
        if key.startswith(prefix) and value is not None
    }


def _parse_value(value: str) -> Any:
    """Parse string value to appropriate type."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    if value.startswith(("{", "[")):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass
    return value


def _coerce(key: str, value: Any, current: Any) -> Any:
    if isinstance(current, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("1", "true", "yes", "on"):
            return True
        if isinstance(value, str) and value.lower() in ("0", "false", "no", "off"):
            return False
        raise SettingsFault(key, f"expected a boolean, got {value!r}")
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise SettingsFault(key, f"expected a scalar, got {type(value).__name__}")
    return str(value)
