"""
Registry Module for TestAdvisor

Manages the on-disk registry: one directory per test run named
``TestRun-YYYYMMDD-HHmmss`` directly under the registry root, plus the
registry properties file.

Inside a run directory:
- test-result.json   raw result, read through an adapter
- test-signal.json   derived signal document (present => processed)
- test-result.record upload receipt (present => uploaded)
- screenshots and derived *.compareresult.png / *.ignoredareas.png images
"""

import json
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from testadvisor.adapters.base import TestAdvisorAdapter
from testadvisor.adapters.result_adapter import TestResultAdapter
from testadvisor.models.signal import TestRunSignal, dump_run_signal, load_run_signal
from testadvisor.models.test_run import TestCase, TestRun
from testadvisor.registry.properties import read_properties, write_properties
from testadvisor.utils.errors import AdapterError, RegistryError
from testadvisor.utils.logger import get_logger

logger = get_logger("registry")

REGISTRY_ENV = "TESTADVISOR"
DEFAULT_REGISTRY_DIRNAME = ".testadvisor"
PROPERTIES_FILENAME = "testadvisor.properties"
TEST_RESULT_FILENAME = "test-result.json"
SIGNAL_FILENAME = "test-signal.json"
PORTAL_RECORD_FILENAME = "test-result.record"
TESTRUN_PREFIX = "TestRun-"
TESTRUN_TIME_FORMAT = "%Y%m%d-%H%M%S"
TESTRUN_ID_PATTERN = re.compile(r"TestRun-\d{8}-\d{6}")

PROPERTY_CLIENT_GUID = "ClientRegistryGuid"
PROPERTY_SANDBOX_INSTANCE = "SandboxInstance"
PROPERTY_SANDBOX_ORG_NAME = "SandboxOrgName"
PROPERTY_SANDBOX_ORG_ID = "SandboxOrgId"
PROPERTY_TEST_SUITE_NAME = "TestSuiteName"

DEFAULT_PROPERTIES = {
    PROPERTY_SANDBOX_INSTANCE: "",
    PROPERTY_SANDBOX_ORG_NAME: "",
    PROPERTY_SANDBOX_ORG_ID: "",
    PROPERTY_TEST_SUITE_NAME: "",
    "auth.url": "https://test.salesforce.com",
    "portal.clientid": "clientid",
    "portal.url": "",
    "portal.token.encrypted": "no",
    "portal.accesstoken": "",
    "portal.refreshtoken": "",
}

AdapterFactory = Callable[[Path], TestAdvisorAdapter]


def default_registry_root() -> Path:
    """Registry root from $TESTADVISOR, else ./.testadvisor"""
    env_root = os.environ.get(REGISTRY_ENV)
    if env_root:
        return Path(env_root)
    return (Path.cwd() / DEFAULT_REGISTRY_DIRNAME).absolute()


def extract_test_run_id(path: Union[str, Path]) -> Optional[str]:
    """Return the ``TestRun-YYYYMMDD-HHmmss`` part of ``path``, or None"""
    match = TESTRUN_ID_PATTERN.search(str(path))
    return match.group(0) if match else None


def new_test_run_id(now: Optional[datetime] = None) -> str:
    """Run id for the given (default: current) UTC time"""
    now = now or datetime.now(timezone.utc)
    return TESTRUN_PREFIX + now.strftime(TESTRUN_TIME_FORMAT)


class Registry:
    """
    TestAdvisor registry

    Lists test runs, locates baselines, and reads and writes per-run signal
    documents and registry properties. Two processors working on the same run
    directory is a configuration error; no locking is done.
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        adapter_factory: Optional[AdapterFactory] = None
    ):
        """
        Initialize the registry, creating it on first use

        Args:
            root: Registry root (defaults to $TESTADVISOR or ./.testadvisor)
            adapter_factory: Builds the adapter for a run directory
        """
        self.root = Path(root) if root is not None else default_registry_root()
        self.adapter_factory = adapter_factory or (lambda run_path: TestResultAdapter(base_dir=run_path))
        self._properties: Dict[str, str] = {}
        self._test_run_cache: Dict[Path, Tuple[float, TestRun]] = {}

        self._setup_registry()

    def _setup_registry(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RegistryError(
                f"Unable to create registry at {self.root}: {e}",
                component="registry",
            ) from e

        if not self.properties_file.exists():
            logger.info(f"Creating registry properties at {self.properties_file}")
            self._properties = dict(DEFAULT_PROPERTIES)
            self.save_properties()

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def properties_file(self) -> Path:
        return self.root / PROPERTIES_FILENAME

    def properties(self) -> Dict[str, str]:
        """Read the registry properties from disk"""
        self._properties = read_properties(self.properties_file)
        return dict(self._properties)

    def get_property(self, key: str, default: str = "") -> str:
        return self.properties().get(key, default)

    def save_property(self, key: str, value: str) -> None:
        """Set one property and persist the whole file"""
        self.properties()
        self._properties[key] = value
        self.save_properties()

    def save_properties(self) -> None:
        """Persist the properties, generating a client registry GUID if absent"""
        if not self._properties.get(PROPERTY_CLIENT_GUID):
            self._properties[PROPERTY_CLIENT_GUID] = str(uuid.uuid4())
        write_properties(self.properties_file, self._properties)

    # ========================================================================
    # Test run listing
    # ========================================================================

    def test_runs(self) -> List[Path]:
        """All run directories, oldest first"""
        runs = [
            path for path in self.root.iterdir()
            if path.is_dir() and TESTRUN_ID_PATTERN.fullmatch(path.name)
        ]
        return sorted(runs, key=lambda path: path.name)

    def unprocessed_runs(self) -> List[Path]:
        """Run directories without a signal file"""
        return [run for run in self.test_runs() if not (run / SIGNAL_FILENAME).exists()]

    def ready_to_upload_runs(self) -> List[Path]:
        """Signal files of runs that are processed but not uploaded"""
        return [
            run / SIGNAL_FILENAME for run in self.test_runs()
            if (run / SIGNAL_FILENAME).exists() and not (run / PORTAL_RECORD_FILENAME).exists()
        ]

    def test_run_id(self, path: Union[str, Path]) -> str:
        """
        Extract the run id from ``path``

        Falls back to an id built from the current UTC time when the path
        holds none.
        """
        return extract_test_run_id(path) or new_test_run_id()

    def run_path(self, test_run_id: str) -> Path:
        return self.root / test_run_id

    def test_result_file(self, run_path: Union[str, Path]) -> Optional[Path]:
        """The run's test-result.json, or None if it has none"""
        result_file = Path(run_path) / TEST_RESULT_FILENAME
        return result_file if result_file.is_file() else None

    # ========================================================================
    # Test run access
    # ========================================================================

    def load_test_run(self, run_path: Union[str, Path]) -> TestRun:
        """
        Adapt the run's test-result.json

        Results are cached per file modification time.

        Raises:
            RegistryError: If the run has no readable test result
            AdapterError: If the adapter rejects the test result
        """
        run_path = Path(run_path)
        result_file = self.test_result_file(run_path)
        if result_file is None:
            raise RegistryError(
                f"No {TEST_RESULT_FILENAME} in {run_path}",
                component="registry",
                context={"run": str(run_path)},
            )

        try:
            mtime = result_file.stat().st_mtime
            cached = self._test_run_cache.get(result_file)
            if cached is not None and cached[0] == mtime:
                return cached[1]

            with open(result_file, "rb") as f:
                test_run = self.adapter_factory(run_path).process(f)
        except OSError as e:
            raise RegistryError(
                f"Unable to read {result_file}: {e}",
                component="registry",
                context={"run": str(run_path)},
            ) from e

        self._test_run_cache[result_file] = (mtime, test_run)
        return test_run

    def find_test_case(self, run_path: Optional[Union[str, Path]], test_case_name: str) -> Optional[TestCase]:
        """The named test case of a run; None when the run or case cannot be found"""
        if run_path is None:
            return None
        try:
            test_run = self.load_test_run(run_path)
        except (RegistryError, AdapterError) as e:
            logger.warning(f"Skipping test run {run_path}: {e}")
            return None
        return test_run.find_test_case(test_case_name)

    def baseline_for(self, current_run_path: Union[str, Path], test_case_name: str) -> Optional[Path]:
        """
        Most recent run older than ``current_run_path`` that ran the test case

        Runs whose result is missing or unreadable are skipped.

        Args:
            current_run_path: Run the baseline is searched for
            test_case_name: Fully qualified test case name

        Returns:
            Baseline run directory, or None if there is none
        """
        current_id = extract_test_run_id(current_run_path)
        if current_id is None:
            logger.warning(f"No run id in {current_run_path}, no baseline available")
            return None

        for run in reversed(self.test_runs()):
            if run.name >= current_id:
                continue
            if self.find_test_case(run, test_case_name) is not None:
                logger.debug(f"Baseline for {test_case_name} in {current_id}: {run.name}")
                return run

        logger.debug(f"No baseline for {test_case_name} in {current_id}")
        return None

    def test_run_start_time(self, run_path: Optional[Union[str, Path]]) -> Optional[datetime]:
        """Suite start time of a run, or None"""
        if run_path is None:
            return None
        try:
            return self.load_test_run(run_path).test_suite_start_time
        except (RegistryError, AdapterError) as e:
            logger.warning(f"Unable to read start time of {run_path}: {e}")
            return None

    def portal_record_id(self, run_path: Optional[Union[str, Path]]) -> str:
        """``Id`` of the run's upload receipt; empty when missing or not JSON"""
        if run_path is None:
            return ""
        record = Path(run_path) / PORTAL_RECORD_FILENAME
        if not record.is_file():
            return ""
        try:
            data = json.loads(record.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug(f"Unreadable upload receipt {record}: {e}")
            return ""
        if not isinstance(data, dict):
            return ""
        return str(data.get("Id", ""))

    # ========================================================================
    # Signal documents
    # ========================================================================

    def save_run_signal(self, signal: TestRunSignal) -> Path:
        """Write the signal document into its run directory and return its path"""
        run_dir = self.run_path(signal.test_run_id)
        run_dir.mkdir(parents=True, exist_ok=True)
        path = dump_run_signal(signal, run_dir / SIGNAL_FILENAME)
        logger.info(f"Saved test run signal {path}")
        return path

    def load_run_signal(self, path: Union[str, Path]) -> TestRunSignal:
        """Read the signal document of the run containing ``path``"""
        path = Path(path)
        signal_file = path / SIGNAL_FILENAME if path.is_dir() else path.parent / SIGNAL_FILENAME
        return load_run_signal(signal_file)

    def save_portal_response(self, path: Union[str, Path], response: str) -> Path:
        """Store the upload receipt next to the run's signal file"""
        path = Path(path)
        run_dir = path if path.is_dir() else path.parent
        record = run_dir / PORTAL_RECORD_FILENAME
        record.write_text(response, encoding="utf-8")
        return record
