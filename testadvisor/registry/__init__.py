"""File-system registry of test runs."""

from testadvisor.registry.registry import (
    PORTAL_RECORD_FILENAME,
    PROPERTIES_FILENAME,
    SIGNAL_FILENAME,
    TEST_RESULT_FILENAME,
    Registry,
    default_registry_root,
    extract_test_run_id,
    new_test_run_id,
)

__all__ = [
    "PORTAL_RECORD_FILENAME",
    "PROPERTIES_FILENAME",
    "SIGNAL_FILENAME",
    "TEST_RESULT_FILENAME",
    "Registry",
    "default_registry_root",
    "extract_test_run_id",
    "new_test_run_id",
]
