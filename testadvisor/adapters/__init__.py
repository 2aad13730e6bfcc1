"""Adapters turning raw run artifacts into the TestAdvisor model."""

from testadvisor.adapters.base import ResultSource, TestAdvisorAdapter
from testadvisor.adapters.result_adapter import TestResultAdapter

__all__ = ["ResultSource", "TestAdvisorAdapter", "TestResultAdapter"]
