"""
Step definitions for screen detection feature.

Covers compositor parsing, layout numbering, primary selection,
error reporting and the detection cache.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest
from pytest_bdd import scenarios, given, when, then, parsers

from webpage_screensaver.exceptions import MonitorDetectionError
from webpage_screensaver.monitor_detection import (
    MonitorDetector,
    Rect,
    _Output,
    number_outputs,
)

# Load all scenarios from the feature file
scenarios("../features/monitor_detection.feature")


NIRI_OUTPUT = """
Output "HP Inc. OMEN by HP 27 CNK724200N" (DP-1)
  Current mode: 2560x1440 @ 59.951 Hz
  Logical position: 0, 0
  Logical size: 2327x1309

Output "LG Electronics LG Ultra HD 0x00064468" (HDMI-A-1)
  Current mode: 2560x1440 @ 59.951 Hz
  Logical position: 2327, 0
  Logical size: 2560x1440
"""

NIRI_DISABLED_OUTPUT = NIRI_OUTPUT + """
Output "LG Electronics LG IPS FULLHD 0x01010101" (HDMI-A-2)
  Disabled
"""

SWAY_OUTPUT = """[
  {
    "name": "DP-1",
    "make": "HP Inc.",
    "active": true,
    "focused": false,
    "rect": {"x": 0, "y": 0, "width": 2327, "height": 1309}
  },
  {
    "name": "HDMI-A-1",
    "make": "LG Electronics",
    "active": true,
    "focused": true,
    "rect": {"x": 2327, "y": 0, "width": 1920, "height": 1080}
  },
  {
    "name": "HDMI-A-2",
    "active": false,
    "rect": {"x": 0, "y": 0, "width": 0, "height": 0}
  }
]"""

HYPRLAND_OUTPUT = """[
  {
    "name": "DP-1",
    "description": "HP Inc. OMEN by HP 27",
    "width": 2560,
    "height": 1440,
    "x": 0,
    "y": 0,
    "scale": 1.1,
    "focused": false
  },
  {
    "name": "HDMI-A-1",
    "description": "LG Electronics LG Ultra HD",
    "width": 3840,
    "height": 2160,
    "x": 2327,
    "y": 0,
    "scale": 1.0,
    "focused": false
  }
]"""

MOCK_OUTPUTS = {
    "niri": NIRI_OUTPUT,
    "sway": SWAY_OUTPUT,
    "hyprland": HYPRLAND_OUTPUT,
}


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def compositor_context():
    """Context for compositor-related state."""
    return {
        "compositor": None,
        "mock_output": None,
        "outputs": [],
        "screens": [],
        "error": None,
        "error_condition": None,
        "detector": MonitorDetector(),
        "ipc": None,
    }


def describe(screen) -> str:
    bounds = screen.bounds
    return f"{bounds.width}x{bounds.height}+{bounds.x}+{bounds.y}"


# ============================================================================
# Given Steps
# ============================================================================

@given(parsers.parse('the compositor is "{compositor}"'))
def given_compositor(compositor_context, compositor):
    """Set the compositor type and its mocked IPC output."""
    compositor_context["compositor"] = compositor
    compositor_context["mock_output"] = MOCK_OUTPUTS[compositor]


@given(parsers.parse('the compositor is "{compositor}" with a disabled output'))
def given_compositor_with_disabled(compositor_context, compositor):
    compositor_context["compositor"] = compositor
    compositor_context["mock_output"] = NIRI_DISABLED_OUTPUT


@given(parsers.parse('outputs reported in the order "{layout}"'))
def given_outputs(compositor_context, layout):
    """Build raw outputs from NAME@X,Y entries."""
    outputs = []
    for entry in layout.split():
        name, position = entry.split("@")
        x, y = (int(v) for v in position.split(","))
        outputs.append(_Output(name=name, bounds=Rect(x, y, 1920, 1080)))
    compositor_context["outputs"] = outputs


@given("no compositor is running")
def given_no_compositor(compositor_context):
    compositor_context["error_condition"] = "no_compositor"


@given(parsers.parse('the compositor command will fail with "{error_message}"'))
def given_command_fails(compositor_context, error_message):
    compositor_context["error_condition"] = "command_fail"
    compositor_context["error_message"] = error_message


@given("the compositor command will timeout")
def given_command_timeout(compositor_context):
    compositor_context["error_condition"] = "timeout"


@given("the compositor returns empty output")
def given_empty_output(compositor_context):
    compositor_context["error_condition"] = "empty_output"


# ============================================================================
# When Steps
# ============================================================================

@when("I run monitor detection")
def when_run_detection(compositor_context):
    """Parse the mocked output with the compositor's real parser."""
    detector = compositor_context["detector"]
    compositor = compositor_context["compositor"]
    parser = getattr(detector, f"_parse_{compositor}_output")

    compositor_context["screens"] = number_outputs(parser(compositor_context["mock_output"]))


@when("I number the outputs")
def when_number_outputs(compositor_context):
    compositor_context["screens"] = number_outputs(compositor_context["outputs"])


@when("I run monitor detection through the compositor")
def when_detect_via_compositor(compositor_context):
    """Run full detection with the IPC call mocked and counted."""
    detector = compositor_context["detector"]
    if compositor_context["ipc"] is None:
        compositor_context["ipc"] = MagicMock(return_value=compositor_context["mock_output"])

    with patch.object(detector, "_detect_compositor", return_value=compositor_context["compositor"]), \
         patch.object(detector, "_run_ipc", compositor_context["ipc"]):
        compositor_context["screens"] = detector.detect()


@when("I invalidate the cache")
def when_invalidate_cache(compositor_context):
    compositor_context["detector"].invalidate_cache()


@when("I attempt monitor detection")
def when_attempt_detection(compositor_context):
    """Attempt detection, capturing any errors."""
    detector = compositor_context["detector"]
    error_condition = compositor_context["error_condition"]

    try:
        if error_condition == "no_compositor":
            with patch.object(detector, "_is_running", return_value=False):
                detector.detect()

        elif error_condition == "command_fail":
            mock_result = MagicMock()
            mock_result.returncode = 1
            mock_result.stderr = compositor_context["error_message"]
            mock_result.stdout = ""

            with patch.object(detector, "_detect_compositor", return_value="niri"), \
                 patch("subprocess.run", return_value=mock_result):
                detector.detect()

        elif error_condition == "timeout":
            with patch.object(detector, "_detect_compositor", return_value="niri"), \
                 patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="niri", timeout=10)):
                detector.detect()

        elif error_condition == "empty_output":
            with patch.object(detector, "_detect_compositor", return_value="niri"), \
                 patch.object(detector, "_run_ipc", return_value=""):
                detector.detect()

    except MonitorDetectionError as e:
        compositor_context["error"] = e


# ============================================================================
# Then Steps
# ============================================================================

@then(parsers.parse("I should detect {count:d} screens"))
def then_detect_n_screens(compositor_context, count):
    screens = compositor_context["screens"]
    assert len(screens) == count, f"Expected {count} screens, got {screens}"


@then(parsers.parse('screen {number:d} should be "{name}" at "{geometry}"'))
def then_screen_geometry(compositor_context, number, name, geometry):
    screen = compositor_context["screens"][number]
    assert screen.screen_number == number
    assert screen.name == name
    assert describe(screen) == geometry


@then("exactly one screen should be primary")
def then_one_primary(compositor_context):
    primaries = [s for s in compositor_context["screens"] if s.is_primary]
    assert len(primaries) == 1, f"Expected one primary screen, got {primaries}"


@then(parsers.parse("screen {number:d} should be primary"))
def then_screen_primary(compositor_context, number):
    for screen in compositor_context["screens"]:
        assert screen.is_primary == (screen.screen_number == number)


@then(parsers.parse('the screen order should be "{names}"'))
def then_screen_order(compositor_context, names):
    assert [s.name for s in compositor_context["screens"]] == names.split()


@then(parsers.parse('I should get an error containing "{expected_text}"'))
def then_error_contains(compositor_context, expected_text):
    error = compositor_context["error"]
    assert error is not None, "Expected an error but none was raised"
    assert expected_text in str(error), f"Expected '{expected_text}' in error: {error}"


@then("the error should list supported compositors")
def then_error_lists_compositors(compositor_context):
    error_str = str(compositor_context["error"])
    for compositor in ("niri", "sway", "hyprland"):
        assert compositor in error_str, f"Error should list {compositor}: {error_str}"


@then(parsers.parse("the compositor should have been queried {count:d} time"))
@then(parsers.parse("the compositor should have been queried {count:d} times"))
def then_queried(compositor_context, count):
    assert compositor_context["ipc"].call_count == count
