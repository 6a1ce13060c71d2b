"""Vertex ordering and corner role assignment for document quadrilaterals."""

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from docgrid.errors import DegeneratePolygonError

from .primitives import Line, Point, centroid, points_to_array, polygon_area

# Cross products below this are treated as collinear.
_COLLINEAR_EPSILON = 1e-6


def order_vertices(points: Sequence[Point]) -> list[Point]:
    """Sort polygon vertices by their angle around the centroid.

    Each vertex is translated into centroid-relative coordinates and keyed
    by ``acos(y / length)``. Vertices that coincide with the centroid are
    dropped. The angle ignores the sign of x, so mirror-image vertices share
    a key and keep their input order: the result is consistent for a given
    input but is not a guaranteed counter-clockwise winding.

    Args:
        points: Polygon vertices.

    Returns:
        The surviving vertices (untranslated), sorted by angle.

    Raises:
        DegeneratePolygonError: If no vertex lies away from the centroid.
    """
    center = centroid(points)

    keyed: list[tuple[float, Point]] = []
    for point in points:
        offset = point - center
        length = offset.length()
        if length == 0:
            continue
        cosine = min(1.0, max(-1.0, offset.y / length))
        keyed.append((math.acos(cosine), point))

    if not keyed:
        raise DegeneratePolygonError("All polygon vertices coincide with the centroid")

    keyed.sort(key=lambda item: item[0])
    return [point for _, point in keyed]


@dataclass(frozen=True)
class OrderedQuadrilateral:
    """A document boundary with named corners."""

    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point

    @classmethod
    def from_points(cls, points: Sequence[Point]) -> "OrderedQuadrilateral":
        """Assign corner roles from the geometry of four vertices.

        The two vertices with the smallest y form the top edge and the other
        two the bottom edge; within each edge the smaller x is the left
        corner. This holds for any document rotated by less than 45 degrees.

        Raises:
            DegeneratePolygonError: If ``points`` does not hold four vertices.
        """
        if len(points) != 4:
            raise DegeneratePolygonError(
                f"Expected 4 vertices for a quadrilateral, got {len(points)}"
            )

        by_y = sorted(points, key=lambda p: (p.y, p.x))
        top_left, top_right = sorted(by_y[:2], key=lambda p: p.x)
        bottom_left, bottom_right = sorted(by_y[2:], key=lambda p: p.x)
        return cls(top_left, top_right, bottom_right, bottom_left)

    @property
    def corners(self) -> tuple[Point, Point, Point, Point]:
        """Corners clockwise in image coordinates, starting top-left."""
        return (self.top_left, self.top_right, self.bottom_right, self.bottom_left)

    @property
    def top(self) -> Line:
        return Line(self.top_left, self.top_right)

    @property
    def right(self) -> Line:
        return Line(self.top_right, self.bottom_right)

    @property
    def bottom(self) -> Line:
        return Line(self.bottom_right, self.bottom_left)

    @property
    def left(self) -> Line:
        return Line(self.bottom_left, self.top_left)

    @property
    def area(self) -> float:
        return polygon_area(self.corners)

    def as_array(self) -> np.ndarray:
        """Corners as a float32 (4, 2) array in ``corners`` order."""
        return points_to_array(self.corners)

    def is_degenerate(self) -> bool:
        """True if two corners coincide or any three corners are collinear."""
        corners = self.corners
        if len(set(corners)) < 4:
            return True

        for skip in range(4):
            a, b, c = (corners[i] for i in range(4) if i != skip)
            cross = (b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x)
            if abs(cross) < _COLLINEAR_EPSILON:
                return True
        return False
