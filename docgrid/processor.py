"""End-to-end table recovery pipeline.

Combines edge-map preparation, boundary detection, perspective
correction, table structure extraction and optional cell OCR into a
single processing interface.
"""

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
from PIL import Image

from docgrid.detection.quadrilateral import QuadrilateralDetector
from docgrid.geometry.ordering import OrderedQuadrilateral
from docgrid.ocr.tesseract_engine import TesseractEngine
from docgrid.preprocessing.pipeline import postprocess_rectified, prepare_edge_map
from docgrid.rectify.perspective import PerspectiveRectifier
from docgrid.table.cells import CellRecognizer, CellRegionExtractor, RecognizedCell
from docgrid.table.structure import Table, TableStructureExtractor
from docgrid.utils.config import AppConfig
from docgrid.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class TableResult:
    """Everything recovered from one document photo."""

    source_file: str
    quadrilateral: OrderedQuadrilateral
    rectified: np.ndarray
    table: Table
    cells: list[list[RecognizedCell]] | None = None

    def text_grid(self) -> list[list[str]] | None:
        """Recognized text in row-major order, or ``None`` without OCR."""
        if self.cells is None:
            return None
        return [[cell.text for cell in row] for row in self.cells]

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable summary of the result."""
        height, width = self.rectified.shape[:2]
        result: dict[str, Any] = {
            "filename": self.source_file,
            "quadrilateral": {
                name: [point.x, point.y]
                for name, point in zip(
                    ("top_left", "top_right", "bottom_right", "bottom_left"),
                    self.quadrilateral.corners,
                )
            },
            "rectified_size": [width, height],
            "rows": [
                [[box.x, box.y, box.width, box.height] for box in row]
                for row in self.table.rows
            ],
        }
        if self.cells is not None:
            result["text"] = self.text_grid()
        return result


class TableDocumentProcessor:
    """Recovers the table grid of photographed documents.

    Args:
        config: Application configuration object.
        ocr_engine: Recognizer used for cell text. A Tesseract engine built
            from ``config.ocr`` is used when omitted. Ignored when cell
            extraction is disabled.
    """

    def __init__(
        self, config: AppConfig, ocr_engine: CellRecognizer | None = None
    ) -> None:
        self.config = config
        self.detector = QuadrilateralDetector(config.detection)
        self.rectifier = PerspectiveRectifier()
        self.table_extractor = TableStructureExtractor(config.table)
        self.cell_extractor: CellRegionExtractor | None = None
        if config.cells.enabled:
            engine = ocr_engine or TesseractEngine.from_config(config.ocr)
            self.cell_extractor = CellRegionExtractor(engine, config.cells)

    def process(self, image: np.ndarray, filename: str = "document") -> TableResult:
        """Run every stage on a decoded image.

        Args:
            image: Document photo (BGR or grayscale).
            filename: Display name for the source document.

        Returns:
            The recovered table.

        Raises:
            NoQuadrilateralFoundError: If no document boundary is found.
            SingularTransformError: If the boundary cannot be rectified.
            NoCellsFoundError: If the rectified page holds no cells.
        """
        logger.info("Processing document: %s", filename)
        prepared, edges = prepare_edge_map(image, self.config.preprocessing)
        quad = self.detector.detect(edges)
        rectified = self.rectifier.rectify(prepared, quad)
        binary = postprocess_rectified(rectified, self.config.postprocessing)
        table = self.table_extractor.extract(binary)

        cells = None
        if self.cell_extractor is not None:
            cells = self.cell_extractor.extract(table)

        return TableResult(
            source_file=filename,
            quadrilateral=quad,
            rectified=binary,
            table=table,
            cells=cells,
        )

    def process_file(
        self, source: Path | bytes, filename: str | None = None
    ) -> TableResult:
        """Load a document image from a path or bytes and process it.

        Args:
            source: Path to an image file, or raw encoded image bytes.
            filename: Display name; defaults to the file name.

        Returns:
            The recovered table.
        """
        if filename is None:
            filename = "document" if isinstance(source, bytes) else Path(source).name
        return self.process(load_image(source), filename)


def load_image(source: Path | bytes) -> np.ndarray:
    """Decode an image file or buffer to a grayscale numpy array.

    Args:
        source: Path or raw bytes of a PNG, JPEG, TIFF or similar image.

    Returns:
        Grayscale image.
    """
    if isinstance(source, bytes):
        img = Image.open(io.BytesIO(source))
    else:
        img = Image.open(Path(source))
    return np.array(img.convert("L"))


def save_image(image: np.ndarray, path: Path) -> None:
    """Encode an image to ``path``; the format follows the file suffix."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(image).save(path)
