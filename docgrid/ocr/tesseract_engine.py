"""Tesseract OCR engine wrapper for single table cells.

Each call spawns its own tesseract process, so one engine instance can be
shared between worker threads.
"""

import numpy as np
import pytesseract
from PIL import Image

from docgrid.errors import OCRError
from docgrid.utils.config import OCRConfig
from docgrid.utils.logger import get_logger

logger = get_logger(__name__)


class TesseractEngine:
    """Recognizes the text of a small, binarized cell image.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        lang: OCR language code.
        oem: Tesseract OCR engine mode.
        psm: Tesseract page segmentation mode.
        timeout: Seconds before a tesseract call is aborted; 0 disables it.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        lang: str = "eng",
        oem: int = 3,
        psm: int = 3,
        timeout: float = 0,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.lang = lang
        self.oem = oem
        self.psm = psm
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: OCRConfig) -> "TesseractEngine":
        return cls(
            tesseract_cmd=config.tesseract_cmd,
            lang=config.lang,
            oem=config.oem,
            psm=config.psm,
            timeout=config.timeout,
        )

    @property
    def tesseract_config(self) -> str:
        return f"--oem {self.oem} --psm {self.psm}"

    def recognize(self, image: np.ndarray) -> str:
        """Return the best-guess text of a cell image.

        Args:
            image: Grayscale or binary cell crop.

        Returns:
            Recognized text with surrounding whitespace stripped.

        Raises:
            OCRError: If tesseract is missing, fails, or times out.
        """
        pil_image = Image.fromarray(image)
        try:
            text = pytesseract.image_to_string(
                pil_image,
                lang=self.lang,
                config=self.tesseract_config,
                timeout=self.timeout,
            )
        except (
            pytesseract.TesseractError,
            pytesseract.TesseractNotFoundError,
            RuntimeError,
        ) as exc:
            raise OCRError(f"Tesseract failed: {exc}") from exc

        text = text.strip()
        logger.debug(
            "Recognized %r from %dx%d cell", text, image.shape[1], image.shape[0]
        )
        return text
