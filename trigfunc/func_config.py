"""
Configuration for the expression linter.

Settings come from an optional YAML file; missing keys keep their defaults.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .func_locator import DEFAULT_MAX_ERROR_LEN

# Longest parameter value shown in a diagnostic, in characters
VALUE_DISPLAY_MAX = 32


class ConfigError(Exception):
    """Raised when a configuration file cannot be used."""


@dataclass
class LintConfig:
    max_error_len: int = DEFAULT_MAX_ERROR_LEN
    warn_unnecessary_quotes: bool = True
    warn_trailing_spaces: bool = True
    comment_prefix: str = '#'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LintConfig':
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"unknown configuration key(s): {', '.join(unknown)}")

        config = cls()
        for key, value in data.items():
            expected = type(getattr(config, key))
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                raise ConfigError(
                    f"'{key}' must be {expected.__name__}, got {type(value).__name__}"
                )
            setattr(config, key, value)

        if config.max_error_len < 1:
            raise ConfigError("'max_error_len' must be positive")
        return config


def load_config(path: Optional[Path] = None) -> LintConfig:
    """Load lint settings from a YAML file, or the defaults when path is None."""
    if path is None:
        return LintConfig()

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"config file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: {e}") from None

    if data is None:
        return LintConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    return LintConfig.from_dict(data)
