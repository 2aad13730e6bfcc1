"""
Adapter interface

An adapter turns the raw result document of one test run into a TestRun.
"""

from abc import ABC, abstractmethod
from typing import BinaryIO, TextIO, Union

from testadvisor.models.test_run import TestRun


ResultSource = Union[bytes, str, BinaryIO, TextIO]


class TestAdvisorAdapter(ABC):
    """Converts a raw test result into the in-memory run model"""
    __test__ = False

    @abstractmethod
    def process(self, source: ResultSource) -> TestRun:
        """
        Adapt a raw result

        Args:
            source: Raw result as bytes, text, or an open file

        Returns:
            The adapted test run

        Raises:
            AdapterError: If the result cannot be read or interpreted
        """
