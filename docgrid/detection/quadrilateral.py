"""Document boundary detection on an edge map.

Every outer contour is replaced by its convex hull and simplified to a
polygon; the largest polygon with exactly four vertices is taken as the
document boundary.
"""

import math

import cv2
import numpy as np

from docgrid.errors import DegeneratePolygonError, NoQuadrilateralFoundError
from docgrid.geometry.ordering import OrderedQuadrilateral, order_vertices
from docgrid.geometry.primitives import area_or_nan, points_from_array
from docgrid.utils.config import DetectionConfig
from docgrid.utils.logger import get_logger

logger = get_logger(__name__)


class QuadrilateralDetector:
    """Finds the best 4-vertex polygon approximating a document boundary.

    Args:
        config: Detection configuration. Defaults are used when omitted.
    """

    def __init__(self, config: DetectionConfig | None = None) -> None:
        self.config = config or DetectionConfig()

    def find_candidates(self, edges: np.ndarray) -> list[np.ndarray]:
        """Simplify every outer contour and keep the 4-vertex polygons.

        Contours that OpenCV cannot process are skipped.

        Args:
            edges: Binary edge map (e.g. Canny output).

        Returns:
            Candidate polygons as (4, 1, 2) int32 arrays.
        """
        contours, _ = cv2.findContours(
            edges, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE
        )

        candidates: list[np.ndarray] = []
        for contour in contours:
            try:
                hull = cv2.convexHull(contour)
                epsilon = self.config.epsilon_ratio * cv2.arcLength(hull, True)
                polygon = cv2.approxPolyDP(hull, epsilon, True)
            except cv2.error as exc:
                logger.debug("Skipping contour that could not be simplified: %s", exc)
                continue
            if len(polygon) == 4:
                candidates.append(polygon)

        logger.debug(
            "Found %d quadrilateral candidates among %d contours",
            len(candidates),
            len(contours),
        )
        return candidates

    def detect(self, edges: np.ndarray) -> OrderedQuadrilateral:
        """Detect the document boundary.

        Candidates are tried from the largest area down; one whose vertices
        cannot be ordered is dropped in favour of the next.

        Args:
            edges: Binary edge map.

        Returns:
            The boundary with named corners.

        Raises:
            NoQuadrilateralFoundError: If no candidate survives.
        """
        scored: list[tuple[float, np.ndarray]] = []
        for polygon in self.find_candidates(edges):
            area = area_or_nan(polygon)
            if not math.isnan(area):
                scored.append((area, polygon))
        scored.sort(key=lambda item: item[0], reverse=True)

        for area, polygon in scored:
            try:
                ordered = order_vertices(points_from_array(polygon))
                quad = OrderedQuadrilateral.from_points(ordered)
            except DegeneratePolygonError as exc:
                logger.debug("Discarding degenerate candidate: %s", exc)
                continue

            logger.info(
                "Detected document boundary with area %.0f: %s",
                area,
                [(p.x, p.y) for p in quad.corners],
            )
            return quad

        raise NoQuadrilateralFoundError(
            "No contour of the edge map approximates a quadrilateral"
        )
