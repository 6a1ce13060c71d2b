"""Configuration management for the table recovery pipeline.

Loads and validates YAML configuration. Every tunable constant of the
pipeline (kernel sizes, iteration counts, scaling factor, margins) lives
here with its documented default. Out-of-range values are rejected with
a ``pydantic.ValidationError``, which is a ``ValueError``.
"""

import logging
from pathlib import Path
from typing import Annotated, Literal

import yaml
from pydantic import (
    AfterValidator,
    BaseModel,
    Field,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
)

logger = logging.getLogger(__name__)


def _check_odd(value: int) -> int:
    if value % 2 == 0:
        raise ValueError(f"kernel size must be odd, got {value}")
    return value


OddKernelSize = Annotated[PositiveInt, AfterValidator(_check_odd)]


class PreprocessingConfig(BaseModel):
    """Edge-map preparation applied to the raw photo before detection."""

    blur_kernel_size: OddKernelSize = 3
    blur_sigma: float = Field(default=2.0, ge=0)
    binarize_method: Literal["otsu", "adaptive"] = "otsu"
    denoise_enabled: bool = True
    denoise_strength: PositiveFloat = 11.0
    denoise_template_window: OddKernelSize = 31
    denoise_search_window: OddKernelSize = 9
    canny_low: float = Field(default=50.0, ge=0)
    canny_high: float = Field(default=150.0, ge=0)
    canny_aperture: Literal[3, 5, 7] = 3


class PostprocessingConfig(BaseModel):
    """Cleanup applied to the rectified page before table extraction."""

    denoise_enabled: bool = True
    denoise_strength: PositiveFloat = 10.0
    denoise_template_window: OddKernelSize = 7
    denoise_search_window: OddKernelSize = 21
    sharpen_enabled: bool = True


class DetectionConfig(BaseModel):
    """Document boundary detection."""

    # Polygon simplification tolerance as a fraction of hull perimeter.
    epsilon_ratio: PositiveFloat = 0.001


class TableConfig(BaseModel):
    """Ruling-line isolation and cell clustering."""

    horizontal_divisor: PositiveInt = 50
    vertical_divisor: PositiveInt = 35
    line_iterations: PositiveInt = 8
    gap_kernel_size: OddKernelSize = 3
    gap_iterations: NonNegativeInt = 2
    skip_hole_contours: bool = True
    max_cell_area_ratio: float = Field(default=0.5, gt=0, le=1)


class CellConfig(BaseModel):
    """Per-cell cropping, normalization and OCR selection."""

    enabled: bool = True
    columns: list[NonNegativeInt] | None = None
    min_row_columns: PositiveInt = 1
    min_cell_size: NonNegativeInt = 10
    delta: NonNegativeInt = 1
    scale: PositiveInt = 2
    shrink_tolerance: NonNegativeInt = 10
    close_kernel_size: OddKernelSize = 3
    threshold: int = Field(default=128, ge=0, le=255)
    workers: PositiveInt = 1


class OCRConfig(BaseModel):
    """Configuration for the Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    lang: str = "eng"
    oem: int = Field(default=3, ge=0, le=3)
    psm: int = Field(default=3, ge=0, le=13)
    timeout: float = Field(default=0, ge=0)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    postprocessing: PostprocessingConfig = Field(default_factory=PostprocessingConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    table: TableConfig = Field(default_factory=TableConfig)
    cells: CellConfig = Field(default_factory=CellConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.is_file():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
