"""
Screenshot Comparator - pixel comparison of step screenshots

This module is responsible for:
- Comparing a baseline and a current screenshot pixel by pixel
- Ignoring excluded areas (volatile regions such as clocks)
- Grouping differing pixels into rectangles
- Applying the minimum area / minimum ratio thresholds
- Writing an annotated result image
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from PIL import Image, ImageChops, ImageDraw, ImageFilter

from testadvisor.models.rectangle import Rectangle
from testadvisor.utils.errors import ComparisonError
from testadvisor.utils.logger import get_logger


PathLike = Union[str, Path]

MISMATCH_COLOR = "#FF0000"
EXCLUDED_COLOR = "#00FF00"


class ComparisonState(str, Enum):
    """Verdict of a screenshot comparison"""
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    SIZE_MISMATCH = "SIZE_MISMATCH"


@dataclass
class ComparisonResult:
    """Result of comparing two screenshots"""
    state: ComparisonState
    difference_percent: float
    rectangles: List[Rectangle] = field(default_factory=list)
    excluded_areas: List[Rectangle] = field(default_factory=list)
    output_file: Optional[str] = None

    @property
    def is_mismatch(self) -> bool:
        return self.state == ComparisonState.MISMATCH

    def to_dict(self):
        """Convert to dictionary for JSON serialization"""
        return {
            "state": self.state.value,
            "difference_percent": self.difference_percent,
            "rectangles": [r.model_dump(by_alias=True) for r in self.rectangles],
            "excluded_areas": [r.model_dump(by_alias=True) for r in self.excluded_areas],
            "output_file": self.output_file,
        }


class ScreenshotComparator:
    """
    Pixel comparison between two screenshots

    A pixel differs when any RGB channel differs by more than
    ``pixel_tolerance``. Two differing pixels in the same row or column at
    most ``rectangle_gap`` pixels apart (so with at most ``rectangle_gap - 1``
    unchanged pixels between them) are grouped into one rectangle; an even
    gap behaves like the next odd one. Rectangles smaller than
    ``min_diff_area_size`` pixels are dropped, and the verdict is MATCH when
    nothing is left or when less than ``min_diff_ratio`` percent of the image
    differs.
    """

    def __init__(
        self,
        min_diff_area_size: int = 20,
        min_diff_ratio: float = 1,
        pixel_tolerance: int = 0,
        rectangle_gap: int = 5,
        compression_level: int = 6
    ):
        """
        Initialize the comparator

        Args:
            min_diff_area_size: Minimum rectangle area in pixels
            min_diff_ratio: Minimum difference in percent (0-100)
            pixel_tolerance: Per-channel difference ignored (0-255)
            rectangle_gap: Largest row or column distance at which differences merge
            compression_level: PNG compression level for result images (0-9)
        """
        self.logger = get_logger("screenshot_comparator")
        self.min_diff_area_size = min_diff_area_size
        self.min_diff_ratio = min_diff_ratio
        self.pixel_tolerance = pixel_tolerance
        self.rectangle_gap = rectangle_gap
        self.compression_level = compression_level

    def compare(
        self,
        baseline_path: PathLike,
        current_path: PathLike,
        output_file: Optional[PathLike] = None
    ) -> ComparisonResult:
        """
        Compare two screenshots

        Args:
            baseline_path: Baseline screenshot
            current_path: Current screenshot
            output_file: Where to write the annotated result image, if anywhere

        Returns:
            ComparisonResult with state, rectangles and difference percent
        """
        return self.compare_masked(baseline_path, current_path, output_file, ())

    def compare_masked(
        self,
        baseline_path: PathLike,
        current_path: PathLike,
        output_file: Optional[PathLike],
        excluded_areas: Iterable[Rectangle]
    ) -> ComparisonResult:
        """
        Compare two screenshots ignoring pixels inside ``excluded_areas``

        Raises:
            ComparisonError: If either image cannot be read
        """
        excluded = list(excluded_areas or ())
        baseline_rgb = self._load(baseline_path)
        current_rgb = self._load(current_path)

        if baseline_rgb.size != current_rgb.size:
            self.logger.warning(
                f"Image size mismatch: baseline={baseline_rgb.size}, "
                f"current={current_rgb.size}"
            )
            result = ComparisonResult(
                state=ComparisonState.SIZE_MISMATCH,
                difference_percent=100.0,
                excluded_areas=excluded,
            )
            return self._finish(result, current_rgb, output_file)

        diff_mask = self._create_difference_mask(baseline_rgb, current_rgb, excluded)

        width, height = baseline_rgb.size
        total_pixels = width * height
        diff_pixels = diff_mask.histogram()[255]
        difference_percent = (diff_pixels / total_pixels) * 100 if total_pixels > 0 else 0.0

        rectangles = [
            rect for rect in self._find_changed_regions(diff_mask)
            if rect.area >= self.min_diff_area_size
        ]

        if not rectangles or difference_percent < self.min_diff_ratio:
            state = ComparisonState.MATCH
        else:
            state = ComparisonState.MISMATCH

        self.logger.debug(
            f"Compared {current_path} with {baseline_path}: state={state.value}, "
            f"difference={difference_percent:.2f}%, rectangles={len(rectangles)}"
        )

        result = ComparisonResult(
            state=state,
            difference_percent=difference_percent,
            rectangles=rectangles,
            excluded_areas=excluded,
        )
        return self._finish(result, current_rgb, output_file)

    def _load(self, path: PathLike) -> Image.Image:
        try:
            with Image.open(path) as img:
                img.load()
                return img.convert("RGB")
        except (OSError, ValueError) as e:
            raise ComparisonError(
                f"Failed to load image {path}: {e}",
                component="screenshot_comparator",
                context={"path": str(path)},
            ) from e

    def _create_difference_mask(
        self,
        baseline_img: Image.Image,
        current_img: Image.Image,
        excluded_areas: List[Rectangle]
    ) -> Image.Image:
        """
        Create an "L" mode mask where differing pixels are 255 and others 0

        Args:
            baseline_img: Baseline image (RGB mode)
            current_img: Current image (RGB mode)
            excluded_areas: Areas whose pixels never count as different

        Returns:
            Difference mask of the same size as the inputs
        """
        red, green, blue = ImageChops.difference(baseline_img, current_img).split()
        channel_max = ImageChops.lighter(ImageChops.lighter(red, green), blue)

        tolerance = self.pixel_tolerance
        mask = channel_max.point(lambda p: 255 if p > tolerance else 0)

        if excluded_areas:
            draw = ImageDraw.Draw(mask)
            for area in excluded_areas:
                draw.rectangle(area.as_box(), fill=0)

        return mask

    def _find_changed_regions(self, diff_mask: Image.Image) -> List[Rectangle]:
        """
        Group differing pixels into bounding rectangles

        The mask is dilated by ``rectangle_gap`` so that nearby differences
        touch, connected regions of the dilated mask are found with a flood
        fill, and each rectangle bounds the original differing pixels of one
        region.

        Args:
            diff_mask: Mask from ``_create_difference_mask``

        Returns:
            Rectangles ordered by their first pixel in row-major order
        """
        bbox = diff_mask.getbbox()
        if bbox is None:
            return []

        # Work on the changed area plus a margin wide enough for the dilation
        margin = self.rectangle_gap
        left = max(bbox[0] - margin, 0)
        top = max(bbox[1] - margin, 0)
        right = min(bbox[2] + margin, diff_mask.width)
        bottom = min(bbox[3] + margin, diff_mask.height)
        region = diff_mask.crop((left, top, right, bottom))

        if self.rectangle_gap > 0:
            dilated = region.filter(ImageFilter.MaxFilter(2 * (self.rectangle_gap // 2) + 1))
        else:
            dilated = region

        width, height = region.size
        original = region.tobytes()
        grown = bytearray(dilated.tobytes())
        rectangles = []

        position = grown.find(255)
        while position != -1:
            min_x = min_y = None
            max_x = max_y = -1
            stack = deque([position])
            grown[position] = 0

            while stack:
                index = stack.pop()
                y, x = divmod(index, width)

                if original[index]:
                    if min_x is None or x < min_x:
                        min_x = x
                    if min_y is None or y < min_y:
                        min_y = y
                    if x > max_x:
                        max_x = x
                    if y > max_y:
                        max_y = y

                # 4-connectivity on the dilated mask
                if x > 0 and grown[index - 1]:
                    grown[index - 1] = 0
                    stack.append(index - 1)
                if x < width - 1 and grown[index + 1]:
                    grown[index + 1] = 0
                    stack.append(index + 1)
                if y > 0 and grown[index - width]:
                    grown[index - width] = 0
                    stack.append(index - width)
                if y < height - 1 and grown[index + width]:
                    grown[index + width] = 0
                    stack.append(index + width)

            if min_x is not None:
                rectangles.append(Rectangle(
                    min_x=min_x + left,
                    min_y=min_y + top,
                    max_x=max_x + left,
                    max_y=max_y + top,
                ))

            position = grown.find(255, position + 1)

        return self._merge_overlapping(rectangles)

    def _merge_overlapping(self, rectangles: List[Rectangle]) -> List[Rectangle]:
        """Merge rectangles whose bounds overlap until none do"""
        merged = list(rectangles)
        changed = True
        while changed:
            changed = False
            for i in range(len(merged)):
                for j in range(i + 1, len(merged)):
                    if _overlaps(merged[i], merged[j]):
                        merged[i] = _union(merged[i], merged[j])
                        del merged[j]
                        changed = True
                        break
                if changed:
                    break
        return merged

    def _finish(
        self,
        result: ComparisonResult,
        current_img: Image.Image,
        output_file: Optional[PathLike]
    ) -> ComparisonResult:
        if output_file is not None:
            result.output_file = self._write_result_image(current_img, result, Path(output_file))
        return result

    def _write_result_image(
        self,
        current_img: Image.Image,
        result: ComparisonResult,
        output: Path
    ) -> str:
        """Outline mismatches in red and excluded areas in green on the current image"""
        annotated = current_img.copy()
        draw = ImageDraw.Draw(annotated)
        for area in result.excluded_areas:
            draw.rectangle(area.as_box(), outline=EXCLUDED_COLOR)
        for rect in result.rectangles:
            draw.rectangle(rect.as_box(), outline=MISMATCH_COLOR)

        output.parent.mkdir(parents=True, exist_ok=True)
        annotated.save(output, "PNG", compress_level=self.compression_level)
        self.logger.debug(f"Wrote comparison result image {output}")
        return str(output)


def _overlaps(a: Rectangle, b: Rectangle) -> bool:
    return not (a.max_x < b.min_x or b.max_x < a.min_x
                or a.max_y < b.min_y or b.max_y < a.min_y)


def _union(a: Rectangle, b: Rectangle) -> Rectangle:
    return Rectangle(
        min_x=min(a.min_x, b.min_x),
        min_y=min(a.min_y, b.min_y),
        max_x=max(a.max_x, b.max_x),
        max_y=max(a.max_y, b.max_y),
    )
