"""
Test step reduction and alignment

A step is an event that produced a screenshot. Consecutive screenshots of
the same browser command on the same locator collapse into one step. Steps
of a current test case are aligned against the steps of its baseline with a
single-pass, monotone, greedy matcher.
"""

import os
from typing import Callable, List, Optional, Sequence, Tuple

from testadvisor.models.test_run import TestEvent


def is_same_step(event: Optional[TestEvent], other: Optional[TestEvent]) -> bool:
    """
    Whether two screenshot events are the same step

    Steps are keyed by browser command and locator; the command parameter is
    not part of the key. A missing event is never the same as anything.
    """
    if event is None or other is None:
        return False
    return event.cmd == other.cmd and event.locator == other.locator


def reduce_steps(events: Sequence[TestEvent]) -> List[TestEvent]:
    """
    Reduce time-sorted events to the step sequence

    Keeps events with a screenshot, dropping each one that is the same step
    as the previously kept step. Reducing a reduced list returns it unchanged.
    """
    steps: List[TestEvent] = []
    previous = None
    for event in events:
        if not event.is_step_candidate or is_same_step(event, previous):
            continue
        steps.append(event)
        previous = event
    return steps


def screenshot_exists(path: Optional[str]) -> bool:
    """Whether ``path`` names a readable file"""
    return bool(path) and os.path.isfile(path) and os.access(path, os.R_OK)


def align_steps(
    current_steps: Sequence[TestEvent],
    baseline_steps: Sequence[TestEvent],
    exists: Callable[[Optional[str]], bool] = screenshot_exists
) -> List[Tuple[int, int]]:
    """
    Match current steps to baseline steps

    For each current step, the baseline cursor advances past baseline steps
    that are not the same step. The first same step found is a match when
    both screenshots exist, and the cursor moves past it. Baseline may hold
    extra steps; the cursor never moves back.

    Args:
        current_steps: Reduced steps of the current test case
        baseline_steps: Reduced steps of the baseline test case
        exists: Screenshot existence check

    Returns:
        ``(current_index, baseline_index)`` pairs, increasing in both indices
    """
    matches: List[Tuple[int, int]] = []
    j = 0
    for i, current in enumerate(current_steps):
        while j < len(baseline_steps) and not is_same_step(current, baseline_steps[j]):
            j += 1

        if (j < len(baseline_steps)
                and exists(current.screenshot_path)
                and exists(baseline_steps[j].screenshot_path)):
            matches.append((i, j))
            j += 1
    return matches


def similarity(matched: int, total: int) -> int:
    """Percentage of matched current steps, 0 when there are no steps"""
    if total <= 0:
        return 0
    return (100 * matched) // total
