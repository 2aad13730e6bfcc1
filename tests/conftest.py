"""
Shared fixtures for TestAdvisor tests.

Builds registries in tmp_path with run directories holding a
test-result.json and PNG screenshots generated with Pillow.
"""

import json
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

from testadvisor.config import TestAdvisorConfig
from testadvisor.registry import Registry


WHITE = (255, 255, 255)
RED = (255, 0, 0)
BLUE = (0, 0, 255)
BLACK = (0, 0, 0)


def make_png(path, size=(100, 100), color=WHITE, blocks=()):
    """
    Write a PNG filled with ``color`` and solid ``blocks``

    Args:
        path: Output file
        size: (width, height)
        color: Background color
        blocks: ((min_x, min_y, max_x, max_y), color) pairs, corners inclusive
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGB", size, color)
    draw = ImageDraw.Draw(img)
    for box, block_color in blocks:
        draw.rectangle(box, fill=block_color)
    img.save(path, "PNG")
    return path


def instant(second, minute=36):
    """ISO instant on a fixed day, used for event and suite times"""
    return f"2021-05-25T03:{minute:02d}:{second:02d}.420563Z"


def event(second, level="INFO", name="SELENIUM", value="", screenshot=None,
          recorder=None, cmd="", cmd_param="", locator=""):
    """Raw recorder event as it appears in test-result.json"""
    return {
        "eventSource": name,
        "eventContent": value,
        "eventLevel": level,
        "eventTime": instant(second),
        "screenshotPath": screenshot,
        "screenshotRecordNumber": recorder,
        "seleniumCmd": cmd,
        "seleniumCmdParam": cmd_param,
        "seleniumLocator": locator,
    }


def make_case(name, events, status="PASS", is_configuration=False):
    """Raw recorder test case"""
    return {
        "testName": name,
        "startTime": instant(0),
        "endTime": instant(59),
        "testStatus": status,
        "isConfiguration": is_configuration,
        "eventList": events,
    }


def write_run(root, run_id, cases, suite_name="suite1", version="1.0.1", info="build-42"):
    """Create a run directory with its test-result.json"""
    run_dir = Path(root) / run_id
    run_dir.mkdir(parents=True, exist_ok=True)
    result = {
        "testSuiteName": suite_name,
        "testsSuiteInfo": info,
        "version": version,
        "testSuiteStartTime": instant(0, minute=30),
        "testSuiteEndTime": instant(0, minute=40),
        "testCaseExecutionList": cases,
    }
    (run_dir / "test-result.json").write_text(json.dumps(result, indent=2), encoding="utf-8")
    return run_dir


def screenshot_run(root, run_id, case_name, steps, size=(100, 100)):
    """
    Create a run whose test case has one screenshot event per step

    Args:
        steps: (locator, blocks) pairs; each becomes a "click" screenshot
            event with a PNG drawn from ``blocks``
    """
    run_dir = Path(root) / run_id
    events = []
    for index, (locator, blocks) in enumerate(steps):
        relative = f"screenshots/{index + 1}.png"
        make_png(run_dir / relative, size=size, blocks=blocks)
        events.append(event(
            10 + index,
            screenshot=relative,
            recorder=index + 1,
            cmd="click",
            locator=locator,
        ))
    return write_run(root, run_id, [make_case(case_name, events)])


@pytest.fixture
def registry_root(tmp_path):
    return tmp_path / "registry"


@pytest.fixture
def registry(registry_root):
    return Registry(registry_root)


@pytest.fixture
def comparison_config():
    return TestAdvisorConfig(screenshot_comparison=True)
