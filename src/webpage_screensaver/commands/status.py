"""Status command.

JSON output is meant for status bars and scripts.
"""

import json
from typing import Any, Dict, List

from ..config import Config
from ..exceptions import ConfigError
from ..security import is_local_url, validate_list


def _get_screens_status(config: Config) -> List[Dict[str, Any]]:
    """Per-screen geometry and preferences."""
    effective = {s.screen_number for s in config.get_effective_screens()}
    screens = []

    for screen in config.screens:
        bounds = screen.bounds
        info: Dict[str, Any] = {
            "screen": screen.screen_number,
            "name": screen.name,
            "primary": screen.is_primary,
            "bounds": [bounds.x, bounds.y, bounds.width, bounds.height],
            "active": screen.screen_number in effective,
            "debug_port": config.browser.port_for(screen.screen_number),
        }
        try:
            prefs = config.get_screen_preferences(screen.screen_number)
            valid, removed = validate_list(prefs.urls)
            info.update({
                "urls": len(prefs.urls),
                "valid_urls": len(valid),
                "rejected_urls": len(removed),
                "local_urls": sum(1 for url in valid if is_local_url(url)),
                "randomize": prefs.randomize,
                "rotation_interval": prefs.rotation_interval,
                "close_on_activity": prefs.close_on_activity,
            })
        except ConfigError as e:
            info["error"] = str(e)
        screens.append(info)

    return screens


def get_status_json(config: Config) -> Dict[str, Any]:
    """Get full status as JSON-serializable dict."""
    return {
        "config_file": str(config.config_file or Config.get_config_file()),
        "config_exists": bool(config.config_file and config.config_file.exists()),
        "multi_screen": config.screensaver.multi_screen,
        "close_on_activity": config.close_on_activity,
        "grace_period_seconds": config.screensaver.grace_period_seconds,
        "browser": config.browser.executable,
        "screens": _get_screens_status(config),
    }


def show_status(config: Config, json_output: bool = False) -> None:
    """
    Display current configuration and status.

    Args:
        config: Config instance
        json_output: If True, output JSON instead of human-readable text
    """
    status = get_status_json(config)

    if json_output:
        print(json.dumps(status, indent=2))
        return

    print("Web Page Screensaver Status")
    print("=" * 40)

    print(f"\nConfiguration")
    exists = "" if status["config_exists"] else " (not created, using defaults)"
    print(f"  Config file:  {status['config_file']}{exists}")
    print(f"  Multi-screen: {status['multi_screen']}")
    print(f"  Close on activity: {'yes' if status['close_on_activity'] else 'no'}")
    print(f"  Browser:      {status['browser']}")

    print(f"\nScreens")
    for info in status["screens"]:
        active = "✓" if info["active"] else "✗"
        primary = " (primary)" if info["primary"] else ""
        x, y, width, height = info["bounds"]
        label = f"{info['screen']}" + (f" [{info['name']}]" if info["name"] else "")
        print(f"  {active} Screen {label}{primary}: {width}x{height}+{x}+{y}")

        if "error" in info:
            print(f"      ERROR: {info['error']}")
            continue

        order = "random" if info["randomize"] else "in order"
        print(f"      {info['valid_urls']}/{info['urls']} URLs valid, {order}, "
              f"every {info['rotation_interval']}s")
        if info["rejected_urls"]:
            print(f"      {info['rejected_urls']} URLs will be skipped, run 'validate' for details")
