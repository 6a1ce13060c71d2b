"""Image preparation stages around perspective correction.

``prepare_edge_map`` turns the raw photo into the edge map consumed by the
quadrilateral detector; ``postprocess_rectified`` cleans up the flattened
page before table extraction.
"""

import cv2
import numpy as np

from docgrid.utils.config import PostprocessingConfig, PreprocessingConfig
from docgrid.utils.logger import get_logger

from .binarize import binarize, binarize_otsu, to_gray
from .denoise import denoise_gaussian, denoise_nl_means, sharpen

logger = get_logger(__name__)


def prepare_edge_map(
    image: np.ndarray, config: PreprocessingConfig
) -> tuple[np.ndarray, np.ndarray]:
    """Run grayscale, blur, binarize, denoise and edge detection.

    Args:
        image: Raw document photo (BGR or grayscale).
        config: Preprocessing configuration.

    Returns:
        Tuple of (prepared_page, edges). The prepared page is the denoised
        binary image that gets rectified; edges is the Canny edge map.
    """
    gray = to_gray(image)
    blurred = denoise_gaussian(gray, config.blur_kernel_size, config.blur_sigma)
    prepared = binarize(blurred, method=config.binarize_method)

    if config.denoise_enabled:
        prepared = denoise_nl_means(
            prepared,
            strength=config.denoise_strength,
            template_window=config.denoise_template_window,
            search_window=config.denoise_search_window,
        )

    edges = cv2.Canny(
        prepared,
        config.canny_low,
        config.canny_high,
        apertureSize=config.canny_aperture,
    )
    logger.debug(
        "Prepared edge map %dx%d (%d edge pixels)",
        edges.shape[1],
        edges.shape[0],
        int(np.count_nonzero(edges)),
    )
    return prepared, edges


def postprocess_rectified(
    image: np.ndarray, config: PostprocessingConfig
) -> np.ndarray:
    """Denoise, re-binarize and optionally sharpen the rectified page.

    Args:
        image: Rectified grayscale page.
        config: Postprocessing configuration.

    Returns:
        Binary page with dark ruling lines and text on a light background.
    """
    result = to_gray(image)

    if config.denoise_enabled:
        result = denoise_nl_means(
            result,
            strength=config.denoise_strength,
            template_window=config.denoise_template_window,
            search_window=config.denoise_search_window,
        )

    result = binarize_otsu(result)

    if config.sharpen_enabled:
        result = sharpen(result)

    logger.info("Post-processed rectified page %dx%d", result.shape[1], result.shape[0])
    return result
