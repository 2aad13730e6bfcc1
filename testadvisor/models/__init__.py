"""Run model (adapter output) and signal document (processor output)."""

from testadvisor.models.rectangle import Rectangle
from testadvisor.models.signal import (
    TestExecution,
    TestRunSignal,
    TestSignal,
    TestStatus,
    dump_run_signal,
    load_run_signal,
    map_status,
)
from testadvisor.models.test_run import TestCase, TestEvent, TestRun

__all__ = [
    "Rectangle",
    "TestCase",
    "TestEvent",
    "TestExecution",
    "TestRun",
    "TestRunSignal",
    "TestSignal",
    "TestStatus",
    "dump_run_signal",
    "load_run_signal",
    "map_status",
]
