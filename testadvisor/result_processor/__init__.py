"""Baseline alignment and signal extraction."""

from testadvisor.result_processor.processor import (
    COMPARE_RESULT_SUFFIX,
    IGNORED_AREAS_SUFFIX,
    ProcessingSummary,
    Processor,
)
from testadvisor.result_processor.signals import extract_level_signals, locator_hash, signal_from_event
from testadvisor.result_processor.steps import align_steps, is_same_step, reduce_steps, similarity

__all__ = [
    "COMPARE_RESULT_SUFFIX",
    "IGNORED_AREAS_SUFFIX",
    "ProcessingSummary",
    "Processor",
    "align_steps",
    "extract_level_signals",
    "is_same_step",
    "locator_hash",
    "reduce_steps",
    "signal_from_event",
    "similarity",
]
