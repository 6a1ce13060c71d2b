"""Table structure recovery from a rectified, binarized page.

Horizontal and vertical ruling lines are isolated with morphological
opening, the spaces between them are traced as contours, and the
resulting cell boxes are clustered into rows by their y position.
"""

from collections.abc import Iterator
from dataclasses import dataclass

import cv2
import numpy as np

from docgrid.errors import NoCellsFoundError
from docgrid.geometry.primitives import Box
from docgrid.preprocessing.binarize import binarize_otsu
from docgrid.utils.config import TableConfig
from docgrid.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Table:
    """Cell boxes of a ruled table, grouped into rows.

    Rows are ordered by the y of their first box and boxes within a row by
    ascending x. Rows may hold different numbers of boxes.
    """

    image: np.ndarray
    rows: list[list[Box]]

    @property
    def column_count(self) -> int:
        """Number of boxes in the widest row."""
        return max((len(row) for row in self.rows), default=0)

    @property
    def is_ragged(self) -> bool:
        return len({len(row) for row in self.rows}) > 1

    def boxes(self) -> Iterator[Box]:
        """Iterate over all boxes in row-major order."""
        for row in self.rows:
            yield from row


def cluster_rows(boxes: list[Box]) -> list[list[Box]]:
    """Group boxes into rows using half the mean box height as tolerance.

    Boxes are taken in ascending y. The first unconsumed box anchors a row
    and pulls in every following box whose y is within half the mean
    height below the anchor; each row is then sorted by x.

    Args:
        boxes: Cell boxes in any order.

    Returns:
        Rows of boxes.

    Raises:
        NoCellsFoundError: If ``boxes`` is empty.
    """
    if not boxes:
        raise NoCellsFoundError("No cell boxes detected in the table image")

    ordered = sorted(boxes, key=lambda b: b.y)
    mean_height = sum(b.height for b in ordered) / len(ordered)

    rows: list[list[Box]] = []
    start = 0
    while start < len(ordered):
        limit = ordered[start].y + mean_height / 2
        end = start + 1
        while end < len(ordered) and ordered[end].y <= limit:
            end += 1
        rows.append(sorted(ordered[start:end], key=lambda b: b.x))
        start = end

    logger.debug(
        "Clustered %d boxes into %d rows (mean height %.1f)",
        len(ordered),
        len(rows),
        mean_height,
    )
    return rows


def _nesting_depths(hierarchy: np.ndarray | None, count: int) -> list[int]:
    """Depth of each contour in a RETR_TREE hierarchy (0 for outermost)."""
    if hierarchy is None:
        return [0] * count

    parents = hierarchy.reshape(-1, 4)[:, 3]
    depths: list[int | None] = [None] * count

    for index in range(count):
        chain = []
        current = index
        while current != -1 and depths[current] is None:
            chain.append(current)
            current = int(parents[current])
        depth = -1 if current == -1 else depths[current]
        for node in reversed(chain):
            depth += 1
            depths[node] = depth

    return [d if d is not None else 0 for d in depths]


class TableStructureExtractor:
    """Derives row/column cell boxes from the ruling lines of a table.

    Args:
        config: Table configuration. Defaults are used when omitted.
    """

    def __init__(self, config: TableConfig | None = None) -> None:
        self.config = config or TableConfig()

    def isolate_lines(self, inverted: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Keep only horizontal and vertical rules of a foreground-white image.

        Args:
            inverted: Binary image with ruling lines as white foreground.

        Returns:
            Tuple of (horizontal_mask, vertical_mask).
        """
        height, width = inverted.shape[:2]
        horizontal_kernel = cv2.getStructuringElement(
            cv2.MORPH_RECT, (max(1, width // self.config.horizontal_divisor), 1)
        )
        vertical_kernel = cv2.getStructuringElement(
            cv2.MORPH_RECT, (1, max(1, height // self.config.vertical_divisor))
        )

        horizontal = cv2.morphologyEx(
            inverted,
            cv2.MORPH_OPEN,
            horizontal_kernel,
            iterations=self.config.line_iterations,
        )
        vertical = cv2.morphologyEx(
            inverted,
            cv2.MORPH_OPEN,
            vertical_kernel,
            iterations=self.config.line_iterations,
        )
        return horizontal, vertical

    def cell_mask(self, image: np.ndarray) -> np.ndarray:
        """Binary mask whose white regions are the spaces between rules.

        Args:
            image: Rectified page with dark rules on a light background.

        Returns:
            Binary mask with rules (and gaps at their crossings) in black.
        """
        inverted = cv2.bitwise_not(binarize_otsu(image))
        horizontal, vertical = self.isolate_lines(inverted)
        rules = cv2.addWeighted(vertical, 0.5, horizontal, 0.5, 0.0)

        size = self.config.gap_kernel_size
        gap_kernel = cv2.getStructuringElement(cv2.MORPH_CROSS, (size, size))
        closed = cv2.erode(
            cv2.bitwise_not(rules), gap_kernel, iterations=self.config.gap_iterations
        )

        _, mask = cv2.threshold(closed, 128, 255, cv2.THRESH_BINARY | cv2.THRESH_OTSU)
        return mask

    def find_boxes(self, mask: np.ndarray) -> list[Box]:
        """Bounding boxes of the traced regions of a cell mask.

        With ``skip_hole_contours`` the inner boundaries of regions are
        dropped, and regions larger than ``max_cell_area_ratio`` of the
        image (the page margin around the table) are dropped too.

        Args:
            mask: Output of :meth:`cell_mask`.

        Returns:
            Cell boxes in contour order.
        """
        contours, hierarchy = cv2.findContours(
            mask, cv2.RETR_TREE, cv2.CHAIN_APPROX_SIMPLE
        )
        height, width = mask.shape[:2]
        max_area = self.config.max_cell_area_ratio * width * height
        depths = _nesting_depths(hierarchy, len(contours))

        boxes: list[Box] = []
        for contour, depth in zip(contours, depths):
            if self.config.skip_hole_contours and depth % 2 == 1:
                continue
            try:
                box = Box.from_contour(contour)
            except cv2.error as exc:
                logger.debug("Skipping contour without bounding box: %s", exc)
                continue
            if box.area > max_area:
                continue
            boxes.append(box)

        logger.debug("Kept %d of %d contours as cells", len(boxes), len(contours))
        return boxes

    def extract(self, image: np.ndarray) -> Table:
        """Recover the table structure of a rectified page.

        Args:
            image: Rectified page with dark rules on a light background.

        Returns:
            The table, holding ``image`` and its rows of cell boxes.

        Raises:
            NoCellsFoundError: If no cell box is detected.
        """
        rows = cluster_rows(self.find_boxes(self.cell_mask(image)))
        table = Table(image=image, rows=rows)
        logger.info(
            "Extracted table with %d rows and up to %d columns%s",
            len(rows),
            table.column_count,
            " (ragged)" if table.is_ragged else "",
        )
        return table
