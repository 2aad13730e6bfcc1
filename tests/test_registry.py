"""
Tests for the TestAdvisor registry

Covers:
- Registry creation and properties
- Run id extraction
- Run listing (unprocessed, ready to upload)
- Baseline lookup
- Signal documents and upload receipts
"""

import json
import re
import uuid
from datetime import datetime, timezone

import pytest

from testadvisor.models import TestRunSignal
from testadvisor.registry import Registry
from testadvisor.registry.properties import read_properties, write_properties
from testadvisor.registry.registry import (
    DEFAULT_PROPERTIES,
    PROPERTY_CLIENT_GUID,
    extract_test_run_id,
    new_test_run_id,
)
from testadvisor.utils.errors import AdapterError, RegistryError

from conftest import event, make_case, write_run


class TestRegistrySetup:
    """Test registry creation and properties"""

    def test_creates_root_and_properties(self, registry_root):
        """The first use creates the directory and a properties file"""
        registry = Registry(registry_root)

        assert registry_root.is_dir()
        assert registry.properties_file.is_file()

        properties = registry.properties()
        for key in DEFAULT_PROPERTIES:
            assert key in properties
        assert uuid.UUID(properties[PROPERTY_CLIENT_GUID])

    def test_guid_is_stable(self, registry_root):
        """Reopening the registry keeps its GUID"""
        first = Registry(registry_root).get_property(PROPERTY_CLIENT_GUID)
        second = Registry(registry_root).get_property(PROPERTY_CLIENT_GUID)

        assert first == second

    def test_save_property_persists(self, registry_root):
        """Saved properties are visible to a new registry instance"""
        Registry(registry_root).save_property("SandboxOrgName", "bst")

        assert Registry(registry_root).get_property("SandboxOrgName") == "bst"

    def test_root_from_environment(self, tmp_path, monkeypatch):
        """$TESTADVISOR names the default registry root"""
        monkeypatch.setenv("TESTADVISOR", str(tmp_path / "env-registry"))

        registry = Registry()

        assert registry.root == tmp_path / "env-registry"


class TestPropertiesFile:
    """Test the properties file format"""

    def test_escaped_values_round_trip(self, tmp_path):
        """Separators, spaces and newlines survive a write and read"""
        path = tmp_path / "test.properties"
        values = {
            "auth.url": "https://test.salesforce.com",
            "key with space": " leading space",
            "multi": "line1\nline2",
            "unicode": "caf\u00e9",
        }

        write_properties(path, values)

        assert read_properties(path) == values
        assert "auth.url=https\\://test.salesforce.com" in path.read_text(encoding="utf-8")

    def test_reads_java_properties(self, tmp_path):
        """Comments, colon separators and continuations are understood"""
        path = tmp_path / "test.properties"
        path.write_text(
            "# comment\n"
            "! another comment\n"
            "\n"
            "a=1\n"
            "b : 2\n"
            "c = first \\\n"
            "    second\n"
            "d=\\u0041\n",
            encoding="utf-8",
        )

        assert read_properties(path) == {"a": "1", "b": "2", "c": "first second", "d": "A"}


class TestRunIds:
    """Test run id helpers"""

    def test_extract_from_path(self):
        """The id is found anywhere in the path"""
        path = "/home/user/.testadvisor/TestRun-20210525-033613/test-result.json"

        assert extract_test_run_id(path) == "TestRun-20210525-033613"

    def test_extract_without_id(self):
        """Paths without an id give None"""
        assert extract_test_run_id("/tmp/results") is None

    def test_new_id_format(self):
        """New ids follow TestRun-YYYYMMDD-HHmmss"""
        now = datetime(2021, 5, 25, 3, 36, 13, tzinfo=timezone.utc)

        assert new_test_run_id(now) == "TestRun-20210525-033613"

    def test_relative_path_ignores_working_directory(self, registry, tmp_path, monkeypatch):
        """The id comes from the path as given, not from the directory it is relative to"""
        workdir = tmp_path / "TestRun-20200101-000000"
        workdir.mkdir()
        monkeypatch.chdir(workdir)

        run_id = registry.test_run_id("TestRun-20210505-101010/test-result.json")

        assert run_id == "TestRun-20210505-101010"

    def test_relative_path_without_id_uses_clock(self, registry, tmp_path, monkeypatch):
        """A working directory named like a run is never used as the id"""
        workdir = tmp_path / "TestRun-20200101-000000"
        workdir.mkdir()
        monkeypatch.chdir(workdir)

        run_id = registry.test_run_id("results/test-result.json")

        assert re.fullmatch(r"TestRun-\d{8}-\d{6}", run_id)
        assert run_id != "TestRun-20200101-000000"

    def test_fallback_uses_current_time(self, registry, tmp_path):
        """A path without an id gets one from the clock"""
        run_id = registry.test_run_id(tmp_path / "results")

        assert re.fullmatch(r"TestRun-\d{8}-\d{6}", run_id)


class TestRunListing:
    """Test listing of runs"""

    def test_runs_sorted_oldest_first(self, registry, registry_root):
        """Only run directories are listed, oldest first"""
        write_run(registry_root, "TestRun-20210525-000000", [])
        write_run(registry_root, "TestRun-20210524-000000", [])
        (registry_root / "not-a-run").mkdir()

        assert [run.name for run in registry.test_runs()] == [
            "TestRun-20210524-000000",
            "TestRun-20210525-000000",
        ]

    def test_unprocessed_and_ready_runs(self, registry, registry_root):
        """Signal files mark runs processed, receipts mark them uploaded"""
        new = write_run(registry_root, "TestRun-20210523-000000", [])
        processed = write_run(registry_root, "TestRun-20210524-000000", [])
        uploaded = write_run(registry_root, "TestRun-20210525-000000", [])
        for run in (processed, uploaded):
            (run / "test-signal.json").write_text("{}", encoding="utf-8")
        (uploaded / "test-result.record").write_text('{"Id": "a0B"}', encoding="utf-8")

        assert registry.unprocessed_runs() == [new]
        assert registry.ready_to_upload_runs() == [processed / "test-signal.json"]


class TestTestRunAccess:
    """Test loading runs and finding baselines"""

    def test_load_test_run(self, registry, registry_root):
        """The run's result is adapted with screenshots resolved against it"""
        run = write_run(registry_root, "TestRun-20210525-000000", [
            make_case("t1", [event(1, screenshot="screenshots/1.png", cmd="click")]),
        ])

        test_run = registry.load_test_run(run)

        assert test_run.test_suite_name == "suite1"
        assert test_run.test_cases[0].events[0].screenshot_path == str(run / "screenshots" / "1.png")

    def test_load_missing_result(self, registry, registry_root):
        """A run without test-result.json cannot be loaded"""
        run = registry_root / "TestRun-20210525-000000"
        run.mkdir()

        with pytest.raises(RegistryError):
            registry.load_test_run(run)

    def test_load_invalid_result(self, registry, registry_root):
        """Invalid JSON is an adapter error"""
        run = registry_root / "TestRun-20210525-000000"
        run.mkdir()
        (run / "test-result.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(AdapterError):
            registry.load_test_run(run)

    def test_baseline_is_most_recent_older_run(self, registry, registry_root):
        """Newer runs and runs without the test case are skipped"""
        older = write_run(registry_root, "TestRun-20210521-000000", [make_case("t1", [])])
        write_run(registry_root, "TestRun-20210522-000000", [make_case("other", [])])
        current = write_run(registry_root, "TestRun-20210523-000000", [make_case("t1", [])])
        write_run(registry_root, "TestRun-20210524-000000", [make_case("t1", [])])

        assert registry.baseline_for(current, "t1") == older

    def test_baseline_skips_unreadable_runs(self, registry, registry_root):
        """A broken run is skipped in favor of an older one"""
        older = write_run(registry_root, "TestRun-20210521-000000", [make_case("t1", [])])
        broken = registry_root / "TestRun-20210522-000000"
        broken.mkdir()
        (broken / "test-result.json").write_text("[1, 2", encoding="utf-8")
        current = write_run(registry_root, "TestRun-20210523-000000", [make_case("t1", [])])

        assert registry.baseline_for(current, "t1") == older

    def test_no_baseline(self, registry, registry_root):
        """The oldest run has no baseline"""
        current = write_run(registry_root, "TestRun-20210521-000000", [make_case("t1", [])])

        assert registry.baseline_for(current, "t1") is None

    def test_find_test_case_without_run(self, registry):
        """No run means no test case"""
        assert registry.find_test_case(None, "t1") is None


class TestSignalDocuments:
    """Test signal documents and upload receipts"""

    def test_save_and_load_run_signal(self, registry, registry_root):
        """The signal is written into its run directory"""
        signal = TestRunSignal(test_run_id="TestRun-20210525-000000", test_suite_name="suite1")

        path = registry.save_run_signal(signal)

        assert path == registry_root / "TestRun-20210525-000000" / "test-signal.json"
        assert registry.load_run_signal(path.parent) == signal
        assert registry.load_run_signal(path) == signal

    def test_portal_record_id(self, registry, registry_root):
        """The receipt's Id is the portal build id"""
        run = write_run(registry_root, "TestRun-20210525-000000", [])
        registry.save_portal_response(run, json.dumps({"Id": "a0B5e000001"}))

        assert registry.portal_record_id(run) == "a0B5e000001"

    def test_portal_record_id_missing_or_invalid(self, registry, registry_root):
        """Missing or malformed receipts give an empty id"""
        run = write_run(registry_root, "TestRun-20210525-000000", [])
        assert registry.portal_record_id(run) == ""

        (run / "test-result.record").write_text("not json", encoding="utf-8")
        assert registry.portal_record_id(run) == ""
