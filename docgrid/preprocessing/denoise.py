"""Noise reduction and sharpening filters for document images."""

import cv2
import numpy as np

from docgrid.utils.logger import get_logger

logger = get_logger(__name__)

_SHARPENING_KERNEL = np.array([[0, -1, 0], [-1, 5, -1], [0, -1, 0]], dtype=np.float32)


def denoise_gaussian(
    image: np.ndarray, kernel_size: int = 3, sigma: float = 2.0
) -> np.ndarray:
    """Apply Gaussian blur to reduce noise.

    Args:
        image: Input image as a numpy array.
        kernel_size: Size of the Gaussian kernel (must be odd).
        sigma: Gaussian standard deviation in x; y uses the same value.

    Returns:
        Blurred image.
    """
    result = cv2.GaussianBlur(image, (kernel_size, kernel_size), sigma)
    logger.debug(
        "Applied Gaussian blur with kernel_size=%d, sigma=%.1f", kernel_size, sigma
    )
    return result


def denoise_nl_means(
    image: np.ndarray,
    strength: float = 10.0,
    template_window: int = 7,
    search_window: int = 21,
) -> np.ndarray:
    """Apply non-local means denoising to a grayscale image.

    Args:
        image: Grayscale input image.
        strength: Filter strength; higher removes more noise and more detail.
        template_window: Size of the patch compared between pixels (odd).
        search_window: Size of the area searched for similar patches (odd).

    Returns:
        Denoised image.
    """
    result = cv2.fastNlMeansDenoising(
        image, None, strength, template_window, search_window
    )
    logger.debug(
        "Applied NL-means denoise (h=%.1f, template=%d, search=%d)",
        strength,
        template_window,
        search_window,
    )
    return result


def sharpen(image: np.ndarray) -> np.ndarray:
    """Sharpen an image with a 3x3 Laplacian-style kernel."""
    return cv2.filter2D(image, -1, _SHARPENING_KERNEL)
