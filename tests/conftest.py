"""Shared test fixtures for the table recovery test suite."""

from collections.abc import Callable
from pathlib import Path

import numpy as np
import pytest


def _draw_ruled_table(
    height: int = 240,
    width: int = 300,
    rows: int = 3,
    cols: int = 2,
    margin: int = 0,
    thickness: int = 2,
) -> np.ndarray:
    """Draw a white page with a black ruled grid of equal-sized cells."""
    image = np.full((height, width), 255, dtype=np.uint8)
    top, left = margin, margin
    bottom = height - margin - thickness
    right = width - margin - thickness

    for i in range(rows + 1):
        y = top + round(i * (bottom - top) / rows)
        image[y : y + thickness, left : right + thickness] = 0
    for j in range(cols + 1):
        x = left + round(j * (right - left) / cols)
        image[top : bottom + thickness, x : x + thickness] = 0
    return image


@pytest.fixture
def make_ruled_table() -> Callable[..., np.ndarray]:
    """Factory for synthetic ruled table pages."""
    return _draw_ruled_table


@pytest.fixture
def ruled_table() -> np.ndarray:
    """A 3x2 ruled table filling the whole page."""
    return _draw_ruled_table()


@pytest.fixture
def white_rectangle() -> np.ndarray:
    """A white rectangle with corners (10,10) and (310,210) on black."""
    image = np.zeros((260, 360), dtype=np.uint8)
    image[10:211, 10:311] = 255
    return image


@pytest.fixture
def document_photo() -> np.ndarray:
    """A white page holding a 3x2 ruled table, on a black background."""
    photo = np.zeros((340, 420), dtype=np.uint8)
    photo[30:310, 40:380] = _draw_ruled_table(280, 340, margin=20)
    return photo


@pytest.fixture
def gradient_image() -> np.ndarray:
    """A smooth diagonal gradient, useful for resampling comparisons."""
    yy, xx = np.mgrid[0:200, 0:300]
    return ((xx + yy) // 2).astype(np.uint8)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
