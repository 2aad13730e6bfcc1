"""Building TestSignal records from recorded events."""

import base64
import hashlib
from typing import List, Optional, Sequence

from testadvisor.config import TestAdvisorConfig
from testadvisor.models.signal import TestSignal
from testadvisor.models.test_run import TestEvent
from testadvisor.utils.logger import get_logger

logger = get_logger("signals")


def locator_hash(locator: Optional[str]) -> str:
    """
    Base64-encoded MD5 digest of the locator's UTF-8 bytes

    Empty for an empty locator, and empty (with a warning) when MD5 is not
    available, e.g. on FIPS-restricted builds.
    """
    if not locator:
        return ""
    try:
        digest = hashlib.md5(locator.encode("utf-8")).digest()
    except ValueError as e:
        logger.warning(f"MD5 unavailable, locator hash left empty: {e}")
        return ""
    return base64.b64encode(digest).decode("ascii")


def signal_from_event(event: TestEvent) -> TestSignal:
    """Signal carrying the identifying fields of ``event``"""
    return TestSignal(
        signal_name=event.name,
        signal_value=event.value,
        signal_time=event.time,
        screenshot_recorder_number=event.screenshot_recorder_number,
        selenium_cmd=event.cmd,
        locator_hash=locator_hash(event.locator),
    )


def extract_level_signals(events: Sequence[TestEvent], config: TestAdvisorConfig) -> List[TestSignal]:
    """Signals for the events at or above the configured level, in time order"""
    return [
        signal_from_event(event)
        for event in sorted(events, key=lambda e: e.time)
        if config.emits_level(event.level)
    ]
