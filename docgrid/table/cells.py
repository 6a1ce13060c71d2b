"""Per-cell cropping, normalization and text recognition.

Selected cells of a :class:`~docgrid.table.structure.Table` are cropped from
the rectified page, upscaled, mended, re-binarized and trimmed of ruling
line fragments before being handed to an injected recognizer.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

import cv2
import numpy as np

from docgrid.errors import OCRError
from docgrid.geometry.primitives import Box
from docgrid.preprocessing.binarize import to_gray
from docgrid.utils.config import CellConfig
from docgrid.utils.logger import get_logger

from .structure import Table

logger = get_logger(__name__)


class CellRecognizer(Protocol):
    """Anything that turns a cell image into text."""

    def recognize(self, image: np.ndarray) -> str: ...


@dataclass(frozen=True)
class RecognizedCell:
    """A cell box with the text read from it (empty on OCR failure)."""

    box: Box
    text: str
    row: int
    column: int


@dataclass(frozen=True)
class _CellTarget:
    box: Box
    row: int
    column: int


class CellRegionExtractor:
    """Reads the text of selected table cells.

    Args:
        recognizer: OCR capability applied to each prepared cell image.
        config: Cell configuration. Defaults are used when omitted.
    """

    def __init__(
        self, recognizer: CellRecognizer, config: CellConfig | None = None
    ) -> None:
        self.recognizer = recognizer
        self.config = config or CellConfig()

    def select_cells(self, table: Table) -> list[list[_CellTarget]]:
        """Apply the row, column and size filters.

        A cell left of its column's reference x (the x of that column in the
        first row holding it, minus ``shrink_tolerance``) is shifted and
        shrunk by ``delta`` to keep the ruling line out of the crop.

        Args:
            table: Table whose cells are selected.

        Returns:
            Selected cells grouped per row; rows without a selected cell
            are omitted.
        """
        cfg = self.config
        reference_x: dict[int, int] = {}
        for row in table.rows:
            for column, box in enumerate(row):
                reference_x.setdefault(column, box.x - cfg.shrink_tolerance)

        selected: list[list[_CellTarget]] = []
        for row_index, row in enumerate(table.rows):
            if len(row) < cfg.min_row_columns:
                continue

            columns = cfg.columns if cfg.columns is not None else range(len(row))
            targets: list[_CellTarget] = []
            for column in columns:
                if column >= len(row):
                    continue
                box = row[column]
                if box.width <= cfg.min_cell_size or box.height <= cfg.min_cell_size:
                    continue
                if box.x < reference_x[column]:
                    box = box.shrink_towards_origin(cfg.delta)
                targets.append(_CellTarget(box, row_index, column))

            if targets:
                selected.append(targets)

        return selected

    def prepare_region(self, image: np.ndarray, box: Box) -> np.ndarray | None:
        """Crop and normalize one cell for recognition.

        Args:
            image: Rectified page the box refers to.
            box: Cell box in page coordinates.

        Returns:
            The prepared binary cell image, or ``None`` if nothing remains
            after clipping and trimming.
        """
        cfg = self.config
        height, width = image.shape[:2]
        clipped = box.clip(width, height)
        if clipped is None:
            return None

        region = to_gray(image)[
            clipped.y : clipped.bottom, clipped.x : clipped.right
        ]
        scaled = cv2.resize(
            region, (clipped.width * cfg.scale, clipped.height * cfg.scale)
        )

        kernel = cv2.getStructuringElement(
            cv2.MORPH_CROSS, (cfg.close_kernel_size, cfg.close_kernel_size)
        )
        closed = cv2.morphologyEx(scaled, cv2.MORPH_CLOSE, kernel)
        _, binary = cv2.threshold(closed, cfg.threshold, 255, cv2.THRESH_BINARY)

        margin = cfg.delta * cfg.scale
        rows, cols = binary.shape[:2]
        trimmed = binary[margin : rows - margin, margin : cols - margin]
        if trimmed.size == 0:
            return None
        return trimmed

    def _recognize(self, image: np.ndarray, target: _CellTarget) -> str:
        try:
            return self.recognizer.recognize(image)
        except OCRError as exc:
            logger.warning(
                "OCR failed for cell row=%d column=%d: %s",
                target.row,
                target.column,
                exc,
            )
            return ""

    def _extract_row(
        self, image: np.ndarray, targets: list[_CellTarget]
    ) -> list[RecognizedCell]:
        cells: list[RecognizedCell] = []
        for target in targets:
            region = self.prepare_region(image, target.box)
            if region is None:
                logger.debug(
                    "Skipping empty cell row=%d column=%d", target.row, target.column
                )
                continue
            text = self._recognize(region, target)
            cells.append(RecognizedCell(target.box, text, target.row, target.column))
        return cells

    def extract(self, table: Table) -> list[list[RecognizedCell]]:
        """Recognize the text of every selected cell, row by row.

        Rows are processed in parallel when ``workers`` is above one; the
        output keeps table row order either way.

        Args:
            table: Table to read.

        Returns:
            Row-major grid of recognized cells.
        """
        selected = self.select_cells(table)

        if self.config.workers > 1 and len(selected) > 1:
            max_workers = min(self.config.workers, len(selected))
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                grid = list(
                    executor.map(
                        lambda row: self._extract_row(table.image, row), selected
                    )
                )
        else:
            grid = [self._extract_row(table.image, row) for row in selected]

        grid = [row for row in grid if row]
        logger.info(
            "Recognized %d cells in %d rows",
            sum(len(row) for row in grid),
            len(grid),
        )
        return grid
