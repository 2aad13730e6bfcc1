"""Shared utilities: logging, error types and timestamp handling."""

from testadvisor.utils.errors import (
    TestAdvisorError,
    AdapterError,
    RegistryError,
    ProcessingError,
    ComparisonError,
    ConfigurationError,
    format_error_for_display,
)
from testadvisor.utils.logger import configure_logging, get_logger
from testadvisor.utils.timestamps import parse_instant, to_utc, utc_now

__all__ = [
    "TestAdvisorError",
    "AdapterError",
    "RegistryError",
    "ProcessingError",
    "ComparisonError",
    "ConfigurationError",
    "format_error_for_display",
    "configure_logging",
    "get_logger",
    "parse_instant",
    "to_utc",
    "utc_now",
]
