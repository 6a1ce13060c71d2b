"""Value types and basic measurements for points, lines, polygons and boxes.

Points cross the OpenCV boundary as numpy arrays; everything in this
module is a plain immutable value.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass

import cv2
import numpy as np

from docgrid.errors import DegeneratePolygonError


@dataclass(frozen=True)
class Point:
    """A 2-D point or vector, integral or floating."""

    x: float
    y: float

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def length(self) -> float:
        """Euclidean length of the point taken as a vector from the origin."""
        return math.sqrt(self.x * self.x + self.y * self.y)


@dataclass(frozen=True)
class Line:
    """A segment between two points."""

    p1: Point
    p2: Point

    def length(self) -> float:
        return (self.p2 - self.p1).length()


@dataclass(frozen=True)
class Box:
    """Axis-aligned rectangle, as returned by ``cv2.boundingRect``."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    @classmethod
    def from_contour(cls, contour: np.ndarray) -> "Box":
        x, y, w, h = cv2.boundingRect(contour)
        return cls(int(x), int(y), int(w), int(h))

    def shrink_towards_origin(self, delta: int) -> "Box":
        """Shift the box up-left by ``delta`` and shrink it by the same amount."""
        return Box(
            self.x - delta, self.y - delta, self.width - delta, self.height - delta
        )

    def clip(self, width: int, height: int) -> "Box | None":
        """Intersect the box with an image of the given size.

        Returns:
            The clipped box, or ``None`` when nothing of it lies inside.
        """
        x1, y1 = max(self.x, 0), max(self.y, 0)
        x2, y2 = min(self.right, width), min(self.bottom, height)
        if x2 <= x1 or y2 <= y1:
            return None
        return Box(x1, y1, x2 - x1, y2 - y1)


def points_from_array(array: np.ndarray) -> list[Point]:
    """Convert an OpenCV point array of shape (N, 1, 2) or (N, 2) to points."""
    flat = np.asarray(array).reshape(-1, 2)
    if np.issubdtype(flat.dtype, np.integer):
        return [Point(int(x), int(y)) for x, y in flat]
    return [Point(float(x), float(y)) for x, y in flat]


def points_to_array(points: Sequence[Point], dtype=np.float32) -> np.ndarray:
    """Convert points to an (N, 2) numpy array suitable for OpenCV."""
    return np.array([[p.x, p.y] for p in points], dtype=dtype)


def centroid(points: Sequence[Point]) -> Point:
    """Arithmetic mean of the vertices.

    The result is truncated towards zero when every coordinate is an integer.

    Raises:
        DegeneratePolygonError: If ``points`` is empty.
    """
    if not points:
        raise DegeneratePolygonError("Cannot compute the centroid of an empty polygon")

    count = len(points)
    sum_x = sum(p.x for p in points)
    sum_y = sum(p.y for p in points)
    if all(isinstance(p.x, int) and isinstance(p.y, int) for p in points):
        return Point(int(sum_x / count), int(sum_y / count))
    return Point(sum_x / count, sum_y / count)


def polygon_area(points: Sequence[Point], oriented: bool = False) -> float:
    """Area of the polygon through ``cv2.contourArea``.

    Args:
        points: Polygon vertices, implicitly closed.
        oriented: Return the signed area (sign gives the winding).
    """
    return float(cv2.contourArea(points_to_array(points), oriented))


def area_or_nan(polygon: np.ndarray) -> float:
    """Area of an OpenCV polygon, or NaN when it cannot be computed.

    NaN never compares greater than anything, so such a polygon is never
    picked as the largest candidate.
    """
    try:
        return float(cv2.contourArea(polygon))
    except cv2.error:
        return math.nan
