"""
TestAdvisor Error Types

Custom exception classes carrying the component that raised them and a
context dictionary, plus a formatter for user-facing display.
"""

from datetime import datetime
from typing import Optional, Dict, Any


class TestAdvisorError(Exception):
    """Base exception for all TestAdvisor errors"""

    def __init__(self,
                 message: str,
                 component: str = "unknown",
                 context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.component = component
        self.context = context or {}
        self.timestamp = datetime.now()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "component": self.component,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class AdapterError(TestAdvisorError):
    """Errors while adapting a raw test result into a test run"""
    pass


class RegistryError(TestAdvisorError):
    """Errors accessing the registry layout or its files"""
    pass


class ProcessingError(TestAdvisorError):
    """Errors during signal extraction for a test run"""
    pass


class ComparisonError(TestAdvisorError):
    """Errors during screenshot comparison"""
    pass


class ConfigurationError(TestAdvisorError):
    """Errors in configuration"""
    pass


def format_error_for_display(error: Exception) -> str:
    """Format an exception for user-friendly display"""
    lines = [
        f"Error: {type(error).__name__}",
        f"Message: {error}",
    ]

    if isinstance(error, TestAdvisorError):
        lines.append(f"Component: {error.component}")
        if error.context:
            lines.append("Context:")
            for key, value in error.context.items():
                lines.append(f"  {key}: {value}")

    return "\n".join(lines)


__all__ = [
    "TestAdvisorError",
    "AdapterError",
    "RegistryError",
    "ProcessingError",
    "ComparisonError",
    "ConfigurationError",
    "format_error_for_display",
]
