"""
Test run signal document

The canonical on-disk representation written to ``test-signal.json`` in each
processed run directory. Keys are camelCase, instants are ISO-8601 strings in
UTC with nine fractional digits, rectangles are ``{minX, minY, maxX, maxY}``
records.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, List, Optional, Union
from uuid import UUID

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from testadvisor.models.rectangle import Rectangle
from testadvisor.utils.timestamps import format_instant, parse_instant


Instant = Annotated[
    Optional[datetime],
    BeforeValidator(parse_instant),
    PlainSerializer(format_instant, return_type=str, when_used="json-unless-none"),
]


class TestStatus(str, Enum):
    """
    Test case outcome

    Member order matters: status mapping picks the first member whose name
    occurs in the raw status, so more specific names must come first.
    """
    __test__ = False

    PASS = "PASS"
    FAIL = "FAIL"
    SKIP = "SKIP"


def map_status(raw: Optional[str], exact: bool = False) -> Optional[TestStatus]:
    """
    Map a free-form recorder status onto TestStatus

    Args:
        raw: Status as recorded, e.g. "Test failed with error"
        exact: Require the whole status to equal a member name

    Returns:
        First matching member, or None when nothing matches
    """
    if not raw:
        return None
    search = raw.strip().upper()
    for status in TestStatus:
        name = status.name.upper()
        if (search == name) if exact else (name in search):
            return status
    return None


class _SignalModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class TestSignal(_SignalModel):
    """A reportable event of a test execution"""
    __test__ = False

    signal_name: str = ""
    signal_value: str = ""
    signal_time: Instant = None
    screenshot_recorder_number: Optional[int] = None
    selenium_cmd: str = ""
    locator_hash: str = ""
    # Visual difference fields, only set for screenshot mismatches
    screenshot_diff_ratio: Optional[int] = Field(default=None, ge=0, le=10000)
    baseline_screenshot_recorder_number: Optional[int] = Field(
        default=None,
        serialization_alias="baselineScreenshotRecorderNumber",
        validation_alias=AliasChoices(
            "baselineScreenshotRecorderNumber",
            "baselinScreenshotRecorderNumber",
            "baseline_screenshot_recorder_number",
        ),
    )
    screenshot_diff_areas: List[Rectangle] = Field(default_factory=list)
    previous_signal_time: Instant = None


class TestExecution(_SignalModel):
    """Signals and baseline linkage for one test case"""
    __test__ = False

    test_case_name: str = ""
    start_time: Instant = None
    end_time: Instant = None
    status: Optional[TestStatus] = None
    baseline_build_id: Optional[str] = None
    baseline_build_id_start_time: Instant = None
    baseline_salesforce_build_id: Optional[str] = None
    similarity: int = Field(default=0, ge=0, le=100)
    test_signals: List[TestSignal] = Field(default_factory=list)


class TestRunSignal(_SignalModel):
    """
    Signal document for one test run

    Instants are held as datetimes, so recorder times keep microsecond
    precision: digits below the microsecond are dropped on read and written
    back as zeros.
    """
    __test__ = False

    client_registry_guid: Optional[UUID] = None
    client_build_id: str = ""
    client_cli_version: str = ""
    client_library_version: str = ""
    sandbox_instance: str = ""
    sandbox_org_id: str = ""
    sandbox_org_name: str = ""
    test_suite_name: str = ""
    build_start_time: Instant = None
    build_end_time: Instant = None
    test_run_id: str = ""
    test_executions: List[TestExecution] = Field(default_factory=list)

    def to_json(self) -> str:
        """Pretty-printed JSON with camelCase keys"""
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_json(cls, content: Union[str, bytes]) -> "TestRunSignal":
        return cls.model_validate_json(content)


def dump_run_signal(signal: TestRunSignal, path: Union[str, Path]) -> Path:
    """Write ``signal`` to ``path`` as UTF-8 JSON, replacing any previous file"""
    path = Path(path)
    path.write_text(signal.to_json(), encoding="utf-8")
    return path


def load_run_signal(path: Union[str, Path]) -> TestRunSignal:
    """Read a signal document from ``path``"""
    return TestRunSignal.from_json(Path(path).read_bytes())
