"""
Result Processor Module for TestAdvisor

Turns the raw result of a test run into its signal document:

1. Adapt the raw result into a TestRun
2. For every test case, look up a baseline run in the registry
3. Without a baseline, keep the warning/error events as signals
4. With a baseline, align the current steps with the baseline steps, compare
   matched screenshots and report the differences

Screenshot comparison runs in two passes. The discovery pass compares the
current steps with the baseline's own baseline; differences found there are
volatile (clocks, session ids) and become the excluded areas of the current
steps. The scoring pass then compares the current steps with the baseline,
ignoring those areas.
"""

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from testadvisor.adapters.base import ResultSource, TestAdvisorAdapter
from testadvisor.adapters.result_adapter import TestResultAdapter
from testadvisor.adapters.visual.screenshot_comparator import ScreenshotComparator
from testadvisor.config import TestAdvisorConfig, load_config
from testadvisor.models.signal import TestExecution, TestRunSignal, TestSignal, map_status
from testadvisor.models.test_run import TestCase, TestEvent
from testadvisor.registry.registry import (
    PROPERTY_CLIENT_GUID,
    PROPERTY_SANDBOX_INSTANCE,
    PROPERTY_SANDBOX_ORG_ID,
    PROPERTY_SANDBOX_ORG_NAME,
    PROPERTY_TEST_SUITE_NAME,
    Registry,
)
from testadvisor.result_processor.signals import extract_level_signals, signal_from_event
from testadvisor.result_processor.steps import align_steps, reduce_steps, similarity
from testadvisor.utils.errors import ComparisonError, ProcessingError, TestAdvisorError
from testadvisor.utils.logger import get_logger
from testadvisor.version import __version__

logger = get_logger("processor")

COMPARE_RESULT_SUFFIX = ".compareresult.png"
IGNORED_AREAS_SUFFIX = ".ignoredareas.png"


@dataclass
class ProcessingSummary:
    """Outcome of processing several runs"""
    processed: List[Path] = field(default_factory=list)
    failed: Dict[Path, Exception] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed

    def to_dict(self):
        """Convert to dictionary for JSON serialization"""
        return {
            "processed": [str(path) for path in self.processed],
            "failed": {str(path): str(error) for path, error in self.failed.items()},
        }


class Processor:
    """
    Extracts test run signals with the registry as the source of baselines

    The configuration is a snapshot taken at construction. One processor
    handles one run at a time; the excluded areas assigned to current steps
    stay within the processing of their test case.
    """

    def __init__(
        self,
        registry: Registry,
        config: Optional[TestAdvisorConfig] = None,
        comparator: Optional[ScreenshotComparator] = None,
        adapter: Optional[TestAdvisorAdapter] = None
    ):
        """
        Args:
            registry: Registry holding the current and baseline runs
            config: Processing options (defaults to the registry's config)
            comparator: Screenshot comparator (defaults to one built from config)
            adapter: Adapter for current run results (defaults to the
                recorder's test-result.json adapter)
        """
        self.registry = registry
        self.config = config or load_config(registry.root)
        self.comparator = comparator or ScreenshotComparator(
            min_diff_area_size=self.config.screenshot_min_diff_area_size,
            min_diff_ratio=self.config.screenshot_min_diff_ratio,
        )
        self.adapter = adapter

    # ========================================================================
    # Runs
    # ========================================================================

    def new_run_signal(self, test_run_id: str) -> TestRunSignal:
        """Signal document seeded from the registry properties"""
        properties = self.registry.properties()

        guid = None
        raw_guid = properties.get(PROPERTY_CLIENT_GUID, "")
        if raw_guid:
            try:
                guid = uuid.UUID(raw_guid)
            except ValueError:
                logger.warning(f"Invalid {PROPERTY_CLIENT_GUID} in registry properties: {raw_guid!r}")

        return TestRunSignal(
            client_registry_guid=guid,
            client_cli_version=__version__,
            sandbox_instance=properties.get(PROPERTY_SANDBOX_INSTANCE, ""),
            sandbox_org_id=properties.get(PROPERTY_SANDBOX_ORG_ID, ""),
            sandbox_org_name=properties.get(PROPERTY_SANDBOX_ORG_NAME, ""),
            test_suite_name=properties.get(PROPERTY_TEST_SUITE_NAME, ""),
            test_run_id=test_run_id,
        )

    def process_run(self, run_path: Union[str, Path]) -> Path:
        """
        Process one run directory and save its signal document

        Returns:
            Path of the written test-signal.json

        Raises:
            ProcessingError: If the run has no test result
            AdapterError: If the test result cannot be adapted
        """
        run_path = Path(run_path)
        result_file = self.registry.test_result_file(run_path)
        if result_file is None:
            raise ProcessingError(
                f"No test result in {run_path}",
                component="processor",
                context={"run": str(run_path)},
            )

        logger.info(f"Processing test run {run_path.name}")
        signal = self.new_run_signal(self.registry.test_run_id(run_path))
        adapter = self.adapter or TestResultAdapter(base_dir=run_path)
        with open(result_file, "rb") as f:
            self.process(f, signal, adapter)

        return self.registry.save_run_signal(signal)

    def process_registry(self, force: bool = False) -> ProcessingSummary:
        """
        Process the registry's unprocessed runs, oldest first

        A failing run is logged and recorded in the summary; the other runs
        are still processed.

        Args:
            force: Reprocess every run, including processed ones
        """
        runs = self.registry.test_runs() if force else self.registry.unprocessed_runs()
        logger.info(f"Found {len(runs)} test runs to process")

        summary = ProcessingSummary()
        for run in runs:
            try:
                summary.processed.append(self.process_run(run))
            except (TestAdvisorError, OSError, ValueError) as e:
                logger.error(f"Failed to process test run {run.name}: {e}")
                summary.failed[run] = e
        return summary

    def process(
        self,
        source: ResultSource,
        run_signal: TestRunSignal,
        adapter: Optional[TestAdvisorAdapter] = None
    ) -> TestRunSignal:
        """
        Fill ``run_signal`` from a raw test result

        Args:
            source: Raw test result
            run_signal: Signal document identifying the run (its test run id
                locates the run in the registry)
            adapter: Adapter for the raw result

        Returns:
            ``run_signal``, completed

        Raises:
            AdapterError: If the raw result cannot be adapted
        """
        run_path = self.registry.run_path(run_signal.test_run_id)
        adapter = adapter or self.adapter or TestResultAdapter(base_dir=run_path)
        test_run = adapter.process(source)

        run_signal.build_start_time = test_run.test_suite_start_time
        run_signal.build_end_time = test_run.test_suite_end_time
        run_signal.client_library_version = test_run.version
        if not run_signal.test_suite_name:
            run_signal.test_suite_name = test_run.test_suite_name
        if not run_signal.client_build_id:
            run_signal.client_build_id = test_run.test_suite_info

        run_signal.test_executions = [
            self.process_test_case(run_path, test_case)
            for test_case in test_run.test_cases
        ]
        return run_signal

    # ========================================================================
    # Test cases
    # ========================================================================

    def process_test_case(self, run_path: Path, test_case: TestCase) -> TestExecution:
        """Execution record of one test case of the run at ``run_path``"""
        logger.info(f"Processing test case {test_case.name}")

        execution = TestExecution(
            test_case_name=test_case.name,
            start_time=test_case.start_time,
            end_time=test_case.end_time,
            status=map_status(test_case.status),
        )

        baseline = self.registry.baseline_for(run_path, test_case.name)
        if baseline is None:
            execution.test_signals = self.extract_test_signals(test_case)
            return execution

        execution.baseline_build_id = self.registry.test_run_id(baseline)
        execution.baseline_build_id_start_time = self.registry.test_run_start_time(baseline)
        execution.baseline_salesforce_build_id = self.registry.portal_record_id(baseline)

        baseline_case = self.registry.find_test_case(baseline, test_case.name)
        if self.config.screenshot_comparison:
            self.discover_excluded_areas(baseline, test_case)

        execution.similarity, execution.test_signals = self.compare_test_case_execution(
            baseline_case, test_case
        )
        return execution

    def extract_test_signals(self, test_case: TestCase) -> List[TestSignal]:
        """Signals of the events at or above the configured level"""
        return extract_level_signals(test_case.events, self.config)

    def discover_excluded_areas(self, baseline_run_path: Path, test_case: TestCase) -> int:
        """
        Assign volatile areas to the steps of ``test_case``

        Compares the current steps with the steps of the baseline's baseline
        and stores the differing rectangles as the excluded areas of each
        matched current step.

        Returns:
            Number of current steps that were compared
        """
        logger.info(f"Discovering excluded areas for test {test_case.name}")

        second_baseline = self.registry.baseline_for(baseline_run_path, test_case.name)
        second_case = self.registry.find_test_case(second_baseline, test_case.name)
        if second_case is None:
            logger.debug(f"No second baseline for {test_case.name}")
            return 0

        current_steps = reduce_steps(test_case.sorted_events())
        reference_steps = reduce_steps(second_case.sorted_events())

        compared = 0
        for i, j in align_steps(current_steps, reference_steps):
            current_step = current_steps[i]
            output_file = self._artifact_path(current_step, IGNORED_AREAS_SUFFIX)
            try:
                result = self.comparator.compare(
                    reference_steps[j].screenshot_path,
                    current_step.screenshot_path,
                    output_file,
                )
            except ComparisonError as e:
                logger.warning(f"Skipping excluded area discovery for {current_step.screenshot_path}: {e}")
                continue

            current_step.excluded_areas = list(result.rectangles)
            compared += 1

        return compared

    def compare_test_case_execution(
        self,
        baseline_case: Optional[TestCase],
        current_case: TestCase
    ) -> Tuple[int, List[TestSignal]]:
        """
        Compare a test case execution with its baseline execution

        Every current event at or above the signal level becomes a signal.
        Each current step matched to a baseline step is compared with it
        (when screenshot comparison is enabled) and a mismatch becomes a
        visual difference signal following the event's own signal.

        Returns:
            ``(similarity, signals)``: similarity is the percentage of current
            steps matched to a baseline step (0-100), signals are in event
            time order
        """
        current_events = current_case.sorted_events()
        baseline_events = baseline_case.sorted_events() if baseline_case is not None else []

        current_steps = reduce_steps(current_events)
        baseline_steps = reduce_steps(baseline_events)
        logger.info(f"baseline steps: {len(baseline_steps)}, current steps: {len(current_steps)}")

        matches = dict(align_steps(current_steps, baseline_steps))
        step_positions = {id(step): i for i, step in enumerate(current_steps)}

        signals: List[TestSignal] = []
        previous_step: Optional[TestEvent] = None
        for event in current_events:
            if self.config.emits_level(event.level):
                signals.append(signal_from_event(event))

            i = step_positions.get(id(event))
            if i is None or i not in matches:
                continue

            if self.config.screenshot_comparison:
                visual_signal = self._compare_step(baseline_steps[matches[i]], event, previous_step)
                if visual_signal is not None:
                    signals.append(visual_signal)
            previous_step = event

        return similarity(len(matches), len(current_steps)), signals

    def _compare_step(
        self,
        baseline_step: TestEvent,
        current_step: TestEvent,
        previous_step: Optional[TestEvent]
    ) -> Optional[TestSignal]:
        output_file = self._artifact_path(current_step, COMPARE_RESULT_SUFFIX)
        try:
            result = self.comparator.compare_masked(
                baseline_step.screenshot_path,
                current_step.screenshot_path,
                output_file,
                current_step.excluded_areas,
            )
        except ComparisonError as e:
            logger.warning(f"Skipping screenshot comparison for {current_step.screenshot_path}: {e}")
            return None

        if not result.is_mismatch:
            return None

        logger.info(f"Found diff from screenshot comparison, ratio: {result.difference_percent:.2f}%")
        signal = signal_from_event(current_step)
        signal.screenshot_diff_ratio = min(round(result.difference_percent * 100), 10000)
        signal.baseline_screenshot_recorder_number = baseline_step.screenshot_recorder_number
        if self.config.export_screenshot_diff_area:
            signal.screenshot_diff_areas = list(result.rectangles)
        signal.previous_signal_time = previous_step.time if previous_step is not None else None
        return signal

    def _artifact_path(self, step: TestEvent, suffix: str) -> Optional[Path]:
        if not self.config.export_screenshot_diff_image:
            return None
        screenshot = Path(step.screenshot_path)
        return screenshot.parent / (screenshot.name + suffix)
