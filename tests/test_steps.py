"""
Tests for step reduction and alignment

Covers:
- Collapsing consecutive screenshots of the same command and locator
- Monotone greedy alignment with extra baseline steps
- Unmatched steps when screenshots are missing
- Similarity scoring
"""

from datetime import datetime, timedelta, timezone

from testadvisor.models.test_run import TestEvent
from testadvisor.result_processor.steps import (
    align_steps,
    is_same_step,
    reduce_steps,
    similarity,
)

T0 = datetime(2021, 5, 25, 3, 36, tzinfo=timezone.utc)


def step(second, cmd="click", locator="#a", screenshot="shot.png", cmd_param=""):
    return TestEvent(
        name="SELENIUM",
        value="",
        level="INFO",
        time=T0 + timedelta(seconds=second),
        screenshot_path=screenshot,
        cmd=cmd,
        cmd_param=cmd_param,
        locator=locator,
    )


def always(path):
    return True


class TestStepReduction:
    """Test reduce_steps"""

    def test_drops_events_without_screenshot(self):
        """Only events with a screenshot become steps"""
        events = [step(1, screenshot=None), step(2, locator="#b"), step(3, screenshot="")]

        steps = reduce_steps(events)

        assert steps == [events[1]]

    def test_collapses_repeated_steps(self):
        """Consecutive screenshots of the same command and locator are one step"""
        events = [
            step(1, locator="#a"),
            step(2, locator="#a"),
            step(3, locator="#b"),
            step(4, locator="#a"),
        ]

        steps = reduce_steps(events)

        assert steps == [events[0], events[2], events[3]]

    def test_command_parameter_is_not_part_of_the_key(self):
        """Typing different text into the same field is still the same step"""
        events = [
            step(1, cmd="sendKeys", cmd_param="abc"),
            step(2, cmd="sendKeys", cmd_param="xyz"),
        ]

        assert reduce_steps(events) == [events[0]]

    def test_reduction_is_idempotent(self):
        """Reducing a reduced step list returns it unchanged"""
        events = [
            step(1, locator="#a"),
            step(2, locator="#a"),
            step(3, locator="#b", screenshot=None),
            step(4, locator="#c"),
            step(5, locator="#c", cmd="sendKeys"),
        ]

        once = reduce_steps(events)

        assert reduce_steps(once) == once

    def test_missing_event_is_never_the_same_step(self):
        """None compares unequal to any step"""
        assert not is_same_step(None, step(1))
        assert not is_same_step(step(1), None)


class TestStepAlignment:
    """Test align_steps"""

    def test_identical_sequences_match_pairwise(self):
        """Identical step lists align index to index"""
        current = [step(1, locator="#a"), step(2, locator="#b")]
        baseline = [step(1, locator="#a"), step(2, locator="#b")]

        assert align_steps(current, baseline, exists=always) == [(0, 0), (1, 1)]

    def test_extra_leading_baseline_step_is_skipped(self):
        """Baseline [A, B, C] against current [B, C] matches 0-1 and 1-2"""
        baseline = [step(1, locator="A"), step(2, locator="B"), step(3, locator="C")]
        current = [step(1, locator="B"), step(2, locator="C")]

        matches = align_steps(current, baseline, exists=always)

        assert matches == [(0, 1), (1, 2)]
        assert similarity(len(matches), len(current)) == 100

    def test_alignment_never_moves_back(self):
        """A current step found only before the cursor stays unmatched"""
        baseline = [step(1, locator="A"), step(2, locator="B")]
        current = [step(1, locator="B"), step(2, locator="A")]

        matches = align_steps(current, baseline, exists=always)

        assert matches == [(0, 1)]

    def test_alignment_is_monotone(self):
        """Matched baseline indices increase with current indices"""
        baseline = [step(i, locator=name) for i, name in enumerate("ABACBDC")]
        current = [step(i, locator=name) for i, name in enumerate("ABCD")]

        matches = align_steps(current, baseline, exists=always)

        baseline_indices = [j for _, j in matches]
        assert baseline_indices == sorted(set(baseline_indices))
        for i, j in matches:
            assert is_same_step(current[i], baseline[j])

    def test_earliest_baseline_match_wins(self):
        """A repeated baseline step matches at its first occurrence"""
        baseline = [step(1, locator="A"), step(2, locator="B"), step(3, locator="A")]
        current = [step(1, locator="A")]

        assert align_steps(current, baseline, exists=always) == [(0, 0)]

    def test_missing_screenshot_leaves_step_unmatched(self, tmp_path):
        """Steps whose screenshot file does not exist are not matched"""
        present = tmp_path / "present.png"
        present.write_bytes(b"png")

        baseline = [step(1, locator="A", screenshot=str(present)),
                    step(2, locator="B", screenshot=str(present))]
        current = [step(1, locator="A", screenshot=str(tmp_path / "gone.png")),
                   step(2, locator="B", screenshot=str(present))]

        matches = align_steps(current, baseline)

        assert matches == [(1, 1)]
        assert similarity(len(matches), len(current)) == 50

    def test_empty_inputs(self):
        """No steps on either side gives no matches"""
        assert align_steps([], [step(1)], exists=always) == []
        assert align_steps([step(1)], [], exists=always) == []


class TestSimilarity:
    """Test similarity"""

    def test_zero_steps_scores_zero(self):
        """A test case without steps is not considered similar"""
        assert similarity(0, 0) == 0

    def test_truncates(self):
        """Percentages are integer-truncated"""
        assert similarity(2, 3) == 66
        assert similarity(1, 3) == 33
        assert similarity(3, 3) == 100
