"""Grayscale conversion and binarization for document photos.

Provides Otsu's thresholding and adaptive thresholding, used both when
preparing the edge map and when cleaning up the rectified page.
"""

import cv2
import numpy as np

from docgrid.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an image to grayscale if it has color channels.

    Args:
        image: Input image (BGR, BGRA or grayscale).

    Returns:
        Grayscale image.
    """
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    if image.ndim == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image


def binarize_otsu(image: np.ndarray) -> np.ndarray:
    """Binarize an image using Otsu's automatic thresholding.

    Args:
        image: Input image (BGR or grayscale).

    Returns:
        Binary image with pixel values 0 or 255.
    """
    gray = to_gray(image)
    threshold, binary = cv2.threshold(
        gray, 128, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU
    )
    logger.debug("Applied Otsu binarization (threshold=%.1f)", threshold)
    return binary


def binarize_adaptive(
    image: np.ndarray, block_size: int = 11, c: int = 2
) -> np.ndarray:
    """Binarize an image using adaptive Gaussian thresholding.

    Args:
        image: Input image (BGR or grayscale).
        block_size: Size of the pixel neighborhood for threshold calculation.
        c: Constant subtracted from the mean.

    Returns:
        Binary image with pixel values 0 or 255.
    """
    gray = to_gray(image)
    result = cv2.adaptiveThreshold(
        gray,
        255,
        cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
        cv2.THRESH_BINARY,
        block_size,
        c,
    )
    logger.debug("Applied adaptive binarization (block=%d, c=%d)", block_size, c)
    return result


def binarize(image: np.ndarray, method: str = "otsu") -> np.ndarray:
    """Binarize an image using the specified method.

    Args:
        image: Input image (BGR or grayscale).
        method: Either ``"otsu"`` or ``"adaptive"``.

    Returns:
        Binary image with pixel values 0 or 255.

    Raises:
        ValueError: If an unsupported method is specified.
    """
    if method == "otsu":
        return binarize_otsu(image)
    if method == "adaptive":
        return binarize_adaptive(image)
    raise ValueError(f"Unsupported binarize method: {method}")
