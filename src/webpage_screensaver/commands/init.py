"""Configuration commands."""

import logging
from pathlib import Path
from typing import Optional

from ..config import Config
from ..exceptions import ConfigError
from ..security import mask_for_audit, validate_list


def init_config(config_file: Optional[Path] = None) -> Path:
    """
    Write the default config if none exists and report its location.

    Returns:
        Path of the config file
    """
    config_file = config_file or Config.get_config_file()

    if Config.write_default(config_file):
        print(f"Configuration written to {config_file}")
    else:
        print(f"Configuration already exists at {config_file}")
    print("Edit it to set the pages shown on each screen.")

    return config_file


def validate_config(config: Config) -> None:
    """Validate configuration and report issues."""
    logger = logging.getLogger(__name__)
    errors = []
    warnings = []

    print("Validating configuration...")
    print(f"  Config file: {config.config_file}")

    print("\nChecking screens...")
    for screen in config.get_effective_screens():
        try:
            prefs = config.get_screen_preferences(screen.screen_number)
            print(f"  ✓ Screen {screen.screen_number}: {len(prefs.urls)} URLs, "
                  f"every {prefs.rotation_interval}s")
        except ConfigError as e:
            errors.append(f"Screen {screen.screen_number}: {e}")
            print(f"  ✗ Screen {screen.screen_number}: {e}")

    print("\nChecking URLs...")
    for name in sorted(config.screen_sections):
        try:
            prefs = config.get_section_preferences(name)
        except ConfigError as e:
            errors.append(str(e))
            print(f"  ✗ [screens.{name}]: {e}")
            continue

        valid, removed = validate_list(prefs.urls)
        if not valid:
            warnings.append(f"[screens.{name}] has no valid URLs, its screen will stay blank")
        for url in valid:
            print(f"  ✓ [screens.{name}] {mask_for_audit(url)}")
        for url, reason in removed:
            errors.append(f"[screens.{name}] {mask_for_audit(url)}: {reason}")
            print(f"  ✗ [screens.{name}] {mask_for_audit(url)}: {reason}")

    print(f"\nValidation complete")
    print(f"Errors: {len(errors)}")
    print(f"Warnings: {len(warnings)}")

    if warnings:
        print("\nWarnings:")
        for warning in warnings:
            print(f"  ⚠ {warning}")

    if errors:
        logger.debug(f"Validation errors: {errors}")
        print(f"\nConfiguration validation FAILED with {len(errors)} errors")
        raise SystemExit(1)
    else:
        print("\nConfiguration validation PASSED")
