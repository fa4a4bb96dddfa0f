"""
Screen enumeration from Wayland compositors.

Each connected output becomes a ScreenDescriptor with its position on the
desktop and a primary flag. Screen numbers follow the desktop layout
(left to right, then top to bottom), so [screens.0] is always the leftmost
output.
"""

import json
import logging
import re
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from .exceptions import (
    MonitorDetectionError,
    CompositorNotFoundError,
    CompositorCommunicationError,
    NoMonitorsDetectedError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    """Screen area in desktop coordinates."""
    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class ScreenDescriptor:
    """Detected screen. Immutable for the lifetime of the process."""
    screen_number: int
    bounds: Rect
    is_primary: bool = False
    name: Optional[str] = None  # Compositor output name (e.g., "DP-1")

    def __repr__(self) -> str:
        primary = ", primary" if self.is_primary else ""
        return (
            f"Screen({self.screen_number}, {self.name}, "
            f"{self.bounds.width}x{self.bounds.height}+{self.bounds.x}+{self.bounds.y}{primary})"
        )


DEFAULT_SCREEN = ScreenDescriptor(
    screen_number=0,
    bounds=Rect(0, 0, 1920, 1080),
    is_primary=True,
)


@dataclass
class _Output:
    """Raw output as reported by a compositor, before numbering."""
    name: str
    bounds: Rect
    focused: bool = False


def number_outputs(outputs: List[_Output]) -> List[ScreenDescriptor]:
    """
    Assign screen numbers and pick exactly one primary screen.

    The focused output is primary; without one, screen 0 is.
    """
    ordered = sorted(outputs, key=lambda o: (o.bounds.x, o.bounds.y, o.name))
    primary_index = next((i for i, o in enumerate(ordered) if o.focused), 0)
    return [
        ScreenDescriptor(
            screen_number=i,
            bounds=o.bounds,
            is_primary=(i == primary_index),
            name=o.name,
        )
        for i, o in enumerate(ordered)
    ]


class MonitorDetector:
    """
    Detect screens from Wayland compositors.

    Supports niri, sway and hyprland.
    """

    def __init__(self) -> None:
        self._cache: Optional[List[ScreenDescriptor]] = None
        self._compositor: Optional[str] = None

    def detect(self, force_refresh: bool = False) -> List[ScreenDescriptor]:
        """
        Detect connected screens from the compositor.

        Results are cached until force_refresh=True.

        Args:
            force_refresh: Force re-detection even if cached

        Returns:
            List of ScreenDescriptor objects, numbered by layout

        Raises:
            MonitorDetectionError: If compositor not running or detection fails
        """
        if self._cache is not None and not force_refresh:
            logger.debug("Using cached screen detection results")
            return self._cache

        compositor = self._detect_compositor()
        self._compositor = compositor

        if compositor == "niri":
            outputs = self._detect_niri()
        elif compositor == "sway":
            outputs = self._detect_sway()
        elif compositor == "hyprland":
            outputs = self._detect_hyprland()
        else:
            raise MonitorDetectionError(
                f"Unsupported compositor: {compositor}. "
                "Supported: niri, sway, hyprland"
            )

        screens = number_outputs(outputs)
        self._cache = screens
        logger.info(f"Detected {len(screens)} screens via {compositor}")
        return screens

    def invalidate_cache(self) -> None:
        """Clear cached detection results."""
        self._cache = None

    @property
    def compositor(self) -> Optional[str]:
        """Get detected compositor name."""
        return self._compositor

    def _detect_compositor(self) -> str:
        """Detect which compositor is running."""
        if self._is_running("niri"):
            return "niri"

        if self._is_running("sway"):
            return "sway"

        if self._is_running("hyprland") or self._is_running("Hyprland"):
            return "hyprland"

        raise CompositorNotFoundError(
            "Could not detect screens: No supported compositor running.\n"
            "Supported compositors: niri, sway, hyprland."
        )

    def _is_running(self, process_name: str) -> bool:
        """Check if a process is running."""
        try:
            result = subprocess.run(
                ["pgrep", "-x", process_name],
                capture_output=True,
                timeout=5,
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return False

    def _run_ipc(self, cmd: List[str], compositor: str) -> str:
        """Run a compositor IPC command and return its stdout."""
        cmd_str = " ".join(cmd)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=10,
            )
        except subprocess.TimeoutExpired as e:
            raise CompositorCommunicationError(
                f"Timeout detecting screens from {compositor} after {e.timeout}s.\n"
                f"'{cmd_str}' took too long to respond."
            ) from e
        except FileNotFoundError as e:
            raise CompositorNotFoundError(
                f"Could not find '{cmd[0]}' command.\n"
                f"Make sure {compositor} is installed and in PATH."
            ) from e

        if result.returncode != 0:
            error_msg = result.stderr.strip() or "Unknown error"
            raise CompositorCommunicationError(
                f"Failed to detect screens from {compositor}: {error_msg}\n"
                f"Make sure {compositor} is running and '{cmd_str}' works."
            )
        return result.stdout

    def _detect_niri(self) -> List[_Output]:
        return self._parse_niri_output(self._run_ipc(["niri", "msg", "outputs"], "niri"))

    def _parse_niri_output(self, output: str) -> List[_Output]:
        """
        Parse niri msg outputs format.

        Example output:
        Output "HP Inc. OMEN by HP 27 CNK724200N" (DP-1)
          Current mode: 2560x1440 @ 59.951 Hz
          Logical position: 0, 0
          Logical size: 2327x1309

        niri has no notion of a focused output in this listing, so the
        first output in layout order becomes primary.
        """
        outputs = []

        output_pattern = re.compile(r'Output "([^"]*)" \((\S+)\)')
        mode_pattern = re.compile(r'Current mode: (\d+)x(\d+)')
        position_pattern = re.compile(r'Logical position: (-?\d+), (-?\d+)')
        logical_pattern = re.compile(r'Logical size: (\d+)x(\d+)')

        for section in output.split("Output "):
            if not section.strip():
                continue

            section = "Output " + section

            output_match = output_pattern.search(section)
            mode_match = mode_pattern.search(section)
            if not (output_match and mode_match):
                # Disabled outputs have no current mode
                continue

            size_match = logical_pattern.search(section) or mode_match
            position_match = position_pattern.search(section)
            x, y = (int(position_match.group(1)), int(position_match.group(2))) if position_match else (0, 0)

            outputs.append(_Output(
                name=output_match.group(2),
                bounds=Rect(x, y, int(size_match.group(1)), int(size_match.group(2))),
            ))

        if not outputs:
            raise NoMonitorsDetectedError(
                "No screens detected from niri output.\n"
                "Make sure at least one monitor is connected."
            )

        return outputs

    def _detect_sway(self) -> List[_Output]:
        return self._parse_sway_output(self._run_ipc(["swaymsg", "-t", "get_outputs"], "sway"))

    def _parse_sway_output(self, output: str) -> List[_Output]:
        """
        Parse swaymsg -t get_outputs JSON format.

        Example output:
        [
          {
            "name": "DP-1",
            "active": true,
            "focused": true,
            "rect": {"x": 0, "y": 0, "width": 2327, "height": 1309}
          }
        ]
        """
        try:
            outputs_data = json.loads(output)
        except json.JSONDecodeError as e:
            raise CompositorCommunicationError(
                f"Failed to parse sway JSON output: {e}\n"
                "The compositor returned invalid JSON. This may indicate a version mismatch."
            ) from e

        outputs = []
        for output_info in outputs_data:
            if not output_info.get("active", True):
                continue

            name = output_info.get("name")
            rect = output_info.get("rect") or {}
            if not name or not rect.get("width") or not rect.get("height"):
                continue

            outputs.append(_Output(
                name=name,
                bounds=Rect(rect.get("x", 0), rect.get("y", 0), rect["width"], rect["height"]),
                focused=bool(output_info.get("focused", False)),
            ))

        if not outputs:
            raise NoMonitorsDetectedError(
                "No screens detected from sway output.\n"
                "Make sure at least one monitor is connected."
            )

        return outputs

    def _detect_hyprland(self) -> List[_Output]:
        return self._parse_hyprland_output(self._run_ipc(["hyprctl", "monitors", "-j"], "hyprland"))

    def _parse_hyprland_output(self, output: str) -> List[_Output]:
        """
        Parse hyprctl monitors -j JSON format.

        Example output:
        [
          {
            "name": "DP-1",
            "width": 2560,
            "height": 1440,
            "x": 0,
            "y": 0,
            "scale": 1.1,
            "focused": true
          }
        ]
        """
        try:
            monitors_data = json.loads(output)
        except json.JSONDecodeError as e:
            raise CompositorCommunicationError(
                f"Failed to parse hyprland JSON output: {e}\n"
                "The compositor returned invalid JSON. This may indicate a version mismatch."
            ) from e

        outputs = []
        for monitor_info in monitors_data:
            name = monitor_info.get("name")
            width = monitor_info.get("width", 0)
            height = monitor_info.get("height", 0)
            if not name or not width or not height:
                continue

            # Window placement uses logical pixels
            scale = monitor_info.get("scale") or 1.0
            outputs.append(_Output(
                name=name,
                bounds=Rect(
                    monitor_info.get("x", 0),
                    monitor_info.get("y", 0),
                    round(width / scale),
                    round(height / scale),
                ),
                focused=bool(monitor_info.get("focused", False)),
            ))

        if not outputs:
            raise NoMonitorsDetectedError(
                "No screens detected from hyprland output.\n"
                "Make sure at least one monitor is connected."
            )

        return outputs


# Global detector instance for caching
_detector: Optional[MonitorDetector] = None


def get_detector() -> MonitorDetector:
    """Get or create the global screen detector."""
    global _detector
    if _detector is None:
        _detector = MonitorDetector()
    return _detector


def detect_screens(force_refresh: bool = False) -> List[ScreenDescriptor]:
    """
    Convenience function to detect screens.

    Args:
        force_refresh: Force re-detection

    Returns:
        List of detected ScreenDescriptor objects
    """
    return get_detector().detect(force_refresh)
