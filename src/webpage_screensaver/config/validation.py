"""
Configuration validation for the web page screensaver.
"""

from pathlib import Path
from typing import Dict, Any

from ..exceptions import ConfigError


# Valid sections and their keys; dict marks a section with dynamic subsections
VALID_STRUCTURE: Dict[str, Any] = {
    'screensaver': {
        'close_on_activity': bool,
        'multi_screen': str,
        'grace_period_seconds': (int, float),
    },
    'screens': dict,  # Dynamic: [screens.<n>] and [screens.default]
    'browser': {
        'executable': str,
        'host': str,
        'base_port': int,
        'user_data_dir': str,
        'extra_args': list,
        'startup_timeout': int,
        'launch': bool,
    },
    'logging': {
        'level': str,
        'verbose': bool,
        'audit_file': str,
    },
    'notifications': {
        'enabled': bool,
        'timeout_ms': int,
        'urgency': str,
        'notify_on_end': bool,
    },
}

SCREEN_KEYS = {'urls', 'randomize', 'rotation_interval', 'close_on_activity'}


def _type_name(expected: Any) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def validate_toml_structure(config_dict: Dict[str, Any], config_file: Path) -> None:
    """
    Validate TOML structure before creating dataclasses.

    Checks for unknown sections and keys, providing helpful error messages.
    Values inside [screens.<n>] are only checked for unknown keys here; their
    types are validated when a session reads them, so one broken screen does
    not stop the others.

    Args:
        config_dict: Loaded TOML configuration dictionary
        config_file: Path to config file for error messages

    Raises:
        ConfigError: If structure validation fails
    """
    for section in config_dict:
        if section not in VALID_STRUCTURE:
            raise ConfigError(
                f"Unknown config section '{section}' in {config_file}. "
                f"Valid sections: {list(VALID_STRUCTURE.keys())}"
            )

    for section_name, section_config in config_dict.items():
        if not isinstance(section_config, dict):
            raise ConfigError(
                f"Section '{section_name}' must be a dictionary in {config_file}"
            )

        valid_keys = VALID_STRUCTURE[section_name]

        if valid_keys == dict:
            _validate_screen_sections(section_config, config_file)
            continue

        for key, value in section_config.items():
            if key not in valid_keys:
                raise ConfigError(
                    f"Unknown key '{key}' in section '{section_name}' in {config_file}. "
                    f"Valid keys: {list(valid_keys.keys())}"
                )

            # bool is a subclass of int, reject it explicitly for numeric keys
            expected_type = valid_keys[key]
            if isinstance(value, bool) and expected_type is not bool:
                raise ConfigError(
                    f"Key '{section_name}.{key}' must be of type {_type_name(expected_type)} "
                    f"in {config_file}, got bool"
                )
            if not isinstance(value, expected_type):
                raise ConfigError(
                    f"Key '{section_name}.{key}' must be of type {_type_name(expected_type)} "
                    f"in {config_file}, got {type(value).__name__}"
                )


def _validate_screen_sections(screens: Dict[str, Any], config_file: Path) -> None:
    """Check [screens.<n>] names and keys."""
    for name, screen in screens.items():
        if name != "default" and not name.isdigit():
            raise ConfigError(
                f"Invalid screen section 'screens.{name}' in {config_file}. "
                "Use a screen number (e.g. [screens.0]) or [screens.default]."
            )
        if not isinstance(screen, dict):
            raise ConfigError(
                f"Section 'screens.{name}' must be a dictionary in {config_file}"
            )
        for key in screen:
            if key not in SCREEN_KEYS:
                raise ConfigError(
                    f"Unknown key '{key}' in section 'screens.{name}' in {config_file}. "
                    f"Valid keys: {sorted(SCREEN_KEYS)}"
                )
