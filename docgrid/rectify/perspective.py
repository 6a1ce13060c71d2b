"""Perspective correction of a detected document boundary.

The quadrilateral is mapped onto an axis-aligned rectangle whose sides are
the longer of each pair of opposite edges.
"""

import cv2
import numpy as np

from docgrid.errors import SingularTransformError
from docgrid.geometry.ordering import OrderedQuadrilateral
from docgrid.utils.logger import get_logger

logger = get_logger(__name__)

_MIN_DETERMINANT = 1e-12


def target_size(quad: OrderedQuadrilateral) -> tuple[float, float]:
    """Width and height of the rectangle the quadrilateral is flattened to.

    Args:
        quad: Document boundary.

    Returns:
        Tuple of (max_width, max_height) in pixels, unrounded.
    """
    max_width = max(quad.top.length(), quad.bottom.length())
    max_height = max(quad.left.length(), quad.right.length())
    return max_width, max_height


class PerspectiveRectifier:
    """Computes and applies the homography that flattens a document.

    Args:
        interpolation: OpenCV interpolation flag used when resampling.
    """

    def __init__(self, interpolation: int = cv2.INTER_LINEAR) -> None:
        self.interpolation = interpolation

    def compute_transform(
        self, quad: OrderedQuadrilateral
    ) -> tuple[np.ndarray, tuple[int, int]]:
        """Estimate the homography from the quadrilateral to its rectangle.

        Source and destination corners are paired in the same
        top-left, top-right, bottom-right, bottom-left order.

        Args:
            quad: Document boundary.

        Returns:
            Tuple of (3x3 transform matrix, (width, height) of the output).

        Raises:
            SingularTransformError: If the corners are duplicate or collinear.
        """
        if quad.is_degenerate():
            raise SingularTransformError(
                f"Degenerate quadrilateral: {[(p.x, p.y) for p in quad.corners]}"
            )

        max_width, max_height = target_size(quad)
        if max_width < 2 or max_height < 2:
            raise SingularTransformError(
                f"Quadrilateral too small to rectify: {max_width:.1f}x{max_height:.1f}"
            )

        destination = np.array(
            [
                [0.0, 0.0],
                [max_width - 1, 0.0],
                [max_width - 1, max_height - 1],
                [0.0, max_height - 1],
            ],
            dtype=np.float32,
        )

        try:
            matrix = cv2.getPerspectiveTransform(
                quad.as_array(), destination, solveMethod=cv2.DECOMP_LU
            )
        except cv2.error as exc:
            raise SingularTransformError(
                f"Homography estimation failed: {exc}"
            ) from exc

        finite = bool(np.all(np.isfinite(matrix)))
        if not finite or abs(np.linalg.det(matrix)) < _MIN_DETERMINANT:
            raise SingularTransformError(
                "Homography estimation produced a singular matrix"
            )

        return matrix, (round(max_width), round(max_height))

    def rectify(self, image: np.ndarray, quad: OrderedQuadrilateral) -> np.ndarray:
        """Resample the document region of ``image`` into its rectangle.

        Args:
            image: Source image (any channel count).
            quad: Document boundary in ``image`` coordinates.

        Returns:
            The flattened document.

        Raises:
            SingularTransformError: If the quadrilateral is degenerate.
        """
        matrix, size = self.compute_transform(quad)
        rectified = cv2.warpPerspective(image, matrix, size, flags=self.interpolation)
        logger.info("Rectified document to %dx%d", size[0], size[1])
        return rectified
