"""
Default result adapter

Reads the ``test-result.json`` document written by the TestAdvisor recorder
library:

    {
      "testSuiteName": "...", "testsSuiteInfo": "...", "version": "...",
      "testSuiteStartTime": "...", "testSuiteEndTime": "...",
      "testCaseExecutionList": [
        {
          "testName": "...", "testStatus": "...", "isConfiguration": false,
          "startTime": "...", "endTime": "...",
          "eventList": [
            {
              "eventSource": "...", "eventContent": "...", "eventLevel": "...",
              "eventTime": "...", "screenshotPath": "...",
              "screenshotRecordNumber": 1, "seleniumCmd": "...",
              "seleniumCmdParam": "...", "seleniumLocator": "..."
            }
          ]
        }
      ]
    }
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from testadvisor.adapters.base import ResultSource, TestAdvisorAdapter
from testadvisor.models.test_run import TestCase, TestEvent, TestRun
from testadvisor.utils.errors import AdapterError
from testadvisor.utils.logger import get_logger
from testadvisor.utils.timestamps import parse_instant

logger = get_logger("adapter")


class TestResultAdapter(TestAdvisorAdapter):
    """Adapter for the canonical TestAdvisor ``test-result.json``"""
    __test__ = False

    def __init__(self,
                 base_dir: Optional[Union[str, Path]] = None,
                 include_configuration: bool = False):
        """
        Args:
            base_dir: Directory that relative screenshot paths are resolved
                against, normally the run directory
            include_configuration: Keep setup/teardown methods the recorder
                flags with ``isConfiguration``
        """
        self.base_dir = Path(base_dir) if base_dir is not None else None
        self.include_configuration = include_configuration

    def process(self, source: ResultSource) -> TestRun:
        data = self._load(source)
        if not isinstance(data, dict):
            raise AdapterError(
                "Test result must be a JSON object",
                component="adapter",
                context={"type": type(data).__name__},
            )

        try:
            test_run = self._test_run_from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            raise AdapterError(
                f"Invalid test result: {e}",
                component="adapter",
            ) from e

        logger.debug(
            f"Adapted test run '{test_run.test_suite_name}' "
            f"with {len(test_run.test_cases)} test cases"
        )
        return test_run

    def _load(self, source: ResultSource) -> Any:
        try:
            if hasattr(source, "read"):
                source = source.read()
            if isinstance(source, bytes):
                source = source.decode("utf-8")
            return json.loads(source)
        except (UnicodeDecodeError, json.JSONDecodeError, OSError) as e:
            raise AdapterError(
                f"Unable to read test result: {e}",
                component="adapter",
            ) from e

    def _test_run_from_dict(self, data: Dict[str, Any]) -> TestRun:
        test_cases = []
        for case_data in data.get("testCaseExecutionList") or []:
            if case_data.get("isConfiguration") and not self.include_configuration:
                continue
            test_cases.append(self._test_case_from_dict(case_data))

        return TestRun(
            test_suite_name=_text(data.get("testSuiteName")),
            test_suite_start_time=parse_instant(data.get("testSuiteStartTime")),
            test_suite_end_time=parse_instant(data.get("testSuiteEndTime")),
            version=_text(data.get("version")),
            test_suite_info=_text(data.get("testsSuiteInfo")),
            test_cases=test_cases,
        )

    def _test_case_from_dict(self, data: Dict[str, Any]) -> TestCase:
        name = _text(data.get("testName"))
        if not name:
            raise ValueError("test case without testName")

        return TestCase(
            name=name,
            start_time=parse_instant(data.get("startTime")),
            end_time=parse_instant(data.get("endTime")),
            status=_text(data.get("testStatus")),
            is_configuration=bool(data.get("isConfiguration", False)),
            events=[self._test_event_from_dict(e) for e in data.get("eventList") or []],
        )

    def _test_event_from_dict(self, data: Dict[str, Any]) -> TestEvent:
        time = parse_instant(data.get("eventTime"))
        if time is None:
            raise ValueError("event without eventTime")

        recorder_number = data.get("screenshotRecordNumber")
        return TestEvent(
            name=_text(data.get("eventSource")),
            value=_text(data.get("eventContent")),
            level=_text(data.get("eventLevel")).upper(),
            time=time,
            screenshot_path=self._resolve_screenshot(data.get("screenshotPath")),
            screenshot_recorder_number=int(recorder_number) if recorder_number is not None else None,
            cmd=_text(data.get("seleniumCmd")),
            cmd_param=_text(data.get("seleniumCmdParam")),
            locator=_text(data.get("seleniumLocator")),
        )

    def _resolve_screenshot(self, path: Optional[str]) -> Optional[str]:
        if not path:
            return None
        screenshot = Path(path)
        if self.base_dir is not None and not screenshot.is_absolute():
            screenshot = self.base_dir / screenshot
        return str(screenshot)


def _text(value: Any) -> str:
    return "" if value is None else str(value)
