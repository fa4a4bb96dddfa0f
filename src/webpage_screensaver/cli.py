"""
Command-line interface for the web page screensaver.

Usage:
    webpage-screensaver [command] [options]

Commands:
    run       Show the screensaver until the user ends it (default)
    config    Write the default config and show where it lives
    preview   Preview in a settings dialog (unsupported, exits immediately)
    validate  Check the config and every configured URL
    status    Show configuration and screens

Screensaver hosts may also pass /s, /c[:hwnd] or /p[:hwnd] as the first
argument; these map to run, config and preview.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import Config
from .exceptions import (
    ScreensaverError,
    ConfigError,
    ConfigValidationError,
    EngineInitError,
    RenderingError,
)
from .commands import (
    run_screensaver,
    show_status,
    init_config,
    validate_config,
)
from .notifications import NotificationSender
from .security import AUDIT_LOGGER_NAME

HOST_ALIASES = {
    "/s": "run",
    "/c": "config",
    "/p": "preview",
}


def setup_logging(level: str = "INFO", audit_file: Optional[Path] = None) -> None:
    """Configure logging, with URL audit lines optionally copied to a file."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    if audit_file:
        audit_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(audit_file, encoding="utf-8")
        # Audit entries carry their own UTC timestamp
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler.setLevel(logging.INFO)
        logging.getLogger(AUDIT_LOGGER_NAME).addHandler(handler)


def translate_host_args(argv: List[str]) -> List[str]:
    """Map screensaver host switches like /s or /P:1234 to commands."""
    if not argv:
        return argv
    switch = argv[0].lower().split(":", 1)[0]
    if switch not in HOST_ALIASES:
        return argv
    rest = argv[1:]
    # The parent window handle may also follow as a separate argument
    if rest and rest[0].isdigit():
        rest = rest[1:]
    return [HOST_ALIASES[switch]] + rest


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webpage-screensaver",
        description="Kiosk screensaver that rotates through web pages on every screen"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        help="Path to config file"
    )
    parser.add_argument(
        "--screen",
        type=int,
        help="Run a single session on this screen number"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("run", help="Run the screensaver (default)")
    subparsers.add_parser("config", help="Write default config and show its location")
    subparsers.add_parser("preview", help="Preview mode (unsupported)")
    subparsers.add_parser("validate", help="Validate configuration and URLs")
    status_parser = subparsers.add_parser("status", help="Show status")
    status_parser.add_argument(
        "--json",
        action="store_true",
        help="Output status as JSON"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(translate_host_args(argv))

    logger = logging.getLogger(__name__)
    command = args.command or "run"
    config: Optional[Config] = None

    # Nothing to draw into a host's preview window
    if command == "preview":
        return 0

    try:
        if command == "config":
            setup_logging("DEBUG" if args.verbose else "INFO")
            init_config(args.config)
            return 0

        config = Config.load(config_file=args.config)

        level = "DEBUG" if args.verbose or config.logging.verbose else config.logging.level
        setup_logging(level, config.logging.get_audit_file())

        if command == "run":
            run_screensaver(config, screen_number=args.screen)
        elif command == "validate":
            validate_config(config)
        elif command == "status":
            show_status(config, json_output=args.json)
        else:
            parser.print_help()
            return 1

        return 0

    # Handle specific error types with appropriate exit codes and messages
    except KeyboardInterrupt:
        print("\nCancelled by user", file=sys.stderr)
        return 130

    except ConfigValidationError as e:
        print(f"\n❌ Configuration Validation Error: {e}", file=sys.stderr)
        print("\nRun 'webpage-screensaver validate' for detailed diagnostics.", file=sys.stderr)
        return 78  # EX_CONFIG

    except ConfigError as e:
        print(f"\n❌ Configuration Error: {e}", file=sys.stderr)
        return 78  # EX_CONFIG

    except EngineInitError as e:
        print(f"\n❌ Cannot Start Browser\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        print("\nCheck [browser] executable in config.toml.", file=sys.stderr)
        return 69  # EX_UNAVAILABLE

    except RenderingError as e:
        print(f"\n❌ Browser Error: {e}", file=sys.stderr)
        return 69  # EX_UNAVAILABLE

    except ScreensaverError as e:
        # Catch-all for any other screensaver errors
        print(f"\n❌ Error: {e}", file=sys.stderr)
        logger.error(str(e))
        if args.verbose:
            raise
        return 1

    except Exception as e:
        # Unexpected errors are logged in full and shown before exiting
        logger.exception(f"Unexpected error: {type(e).__name__}: {e}")
        print(f"\n❌ Unexpected Error: {type(e).__name__}: {e}", file=sys.stderr)
        notifier = NotificationSender(config.notifications if config else None)
        notifier.notify_error(f"Unexpected error: {type(e).__name__}", str(e))
        if args.verbose:
            raise
        return 1


if __name__ == "__main__":
    sys.exit(main())
