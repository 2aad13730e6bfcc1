"""Screenshot comparison for visual step differences."""

from testadvisor.adapters.visual.screenshot_comparator import (
    ComparisonResult,
    ComparisonState,
    ScreenshotComparator,
)

__all__ = ["ComparisonResult", "ComparisonState", "ScreenshotComparator"]
