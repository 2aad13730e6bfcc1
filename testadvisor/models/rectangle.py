"""Pixel rectangle shared by the comparator, the engine and the signal document."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Rectangle(BaseModel):
    """
    Rectangle in integer pixel coordinates

    Both corners are inside the rectangle: a single pixel at (3, 4) is
    ``Rectangle(min_x=3, min_y=4, max_x=3, max_y=4)``. Serialized as
    ``{"minX": .., "minY": .., "maxX": .., "maxY": ..}``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    min_x: int
    min_y: int
    max_x: int
    max_y: int

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def area(self) -> int:
        return self.width * self.height

    def contains(self, x: int, y: int) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def as_box(self):
        """Corner tuple in the form ImageDraw.rectangle expects"""
        return (self.min_x, self.min_y, self.max_x, self.max_y)
