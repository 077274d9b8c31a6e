"""
load the client settings from config.yaml, then let the environment (.env included) win
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Tuple

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

# environment variable -> nested key path
ENV_OVERRIDES: Dict[str, Tuple[str, ...]] = {
    'API_URL': ('api', 'base_url'),
    'API_TIMEOUT': ('api', 'timeout'),
    'REFRESH_PATH': ('refresh', 'path'),
    'REFRESH_TIMEOUT': ('refresh', 'timeout'),
    'SESSION_STORE_PATH': ('session', 'store_path'),
    'LOG_LEVEL': ('logging', 'level'),
    'LOG_FORMAT': ('logging', 'format'),
}


def coerce_env_value(value: str):
    """Turn "true"/"false", integers and floats into Python values; leave the rest as text."""
    lowered = value.lower()
    if lowered in ('true', 'false'):
        return lowered == 'true'
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value


class Config:
    """Client settings: bundled YAML defaults overridden by environment variables."""

    def __init__(self, config_path: str = None, environ: Dict[str, str] = None):
        """
        Args:
            config_path: YAML file to read; defaults to the config.yaml next to this module
            environ: mapping to read overrides from; defaults to os.environ
        """
        self.config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
        self._environ = os.environ if environ is None else environ
        self._config = self._read_yaml()
        self._merge_environment()
        self._validate()

    def _read_yaml(self) -> Dict[str, Any]:
        try:
            with open(self.config_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")
        return data

    def _merge_environment(self):
        for env_var, key_path in ENV_OVERRIDES.items():
            raw = self._environ.get(env_var)
            if raw is None:
                continue
            section = self._config
            for key in key_path[:-1]:
                if not isinstance(section.get(key), dict):
                    section[key] = {}
                section = section[key]
            section[key_path[-1]] = coerce_env_value(raw)

    def _validate(self):
        for key_path in (('api', 'timeout'), ('refresh', 'timeout')):
            value = self.get(*key_path)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ValueError(f"{'.'.join(key_path)} must be a positive number of seconds, got {value!r}")

    def get(self, *keys, default=None):
        """Walk nested sections, e.g. ``get('refresh', 'timeout')``; `default` when any key is missing."""
        current = self._config
        for key in keys:
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
        return current

    @property
    def api(self) -> Dict[str, Any]:
        return self.get('api', default={})

    @property
    def refresh(self) -> Dict[str, Any]:
        return self.get('refresh', default={})

    @property
    def session(self) -> Dict[str, Any]:
        return self.get('session', default={})

    @property
    def logging(self) -> Dict[str, Any]:
        """Logging section (level and json/console format)."""
        return self.get('logging', default={})
