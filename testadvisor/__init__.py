"""
TestAdvisor client post-processor

Derives a test-run signal document from the artifacts of a browser test run:
test case outcomes, warning/error events and, against a baseline run,
step similarity and screenshot differences.
"""

from testadvisor.version import __version__
from testadvisor.config import TestAdvisorConfig, load_config
from testadvisor.registry import Registry
from testadvisor.result_processor import Processor

__all__ = [
    "__version__",
    "Processor",
    "Registry",
    "TestAdvisorConfig",
    "load_config",
]
