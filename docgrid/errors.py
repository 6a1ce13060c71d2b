"""Exception hierarchy for the table recovery pipeline.

Every fatal, per-image condition derives from :class:`DocGridError` so that
batch callers can report a failure and move on to the next image.
"""


class DocGridError(Exception):
    """Base class for all pipeline errors."""

    kind = "error"


class GeometryError(DocGridError):
    """A geometric computation could not be carried out."""

    kind = "geometry"


class DegeneratePolygonError(GeometryError):
    """A polygon has no usable vertices (empty, or collapsed onto its centroid)."""

    kind = "degenerate_polygon"


class DetectionError(DocGridError):
    """The document boundary could not be detected."""

    kind = "detection"


class NoQuadrilateralFoundError(DetectionError):
    """No contour of the edge map simplifies to a valid 4-vertex polygon."""

    kind = "no_quadrilateral_found"


class RectifyError(DocGridError):
    """The perspective correction could not be computed."""

    kind = "rectify"


class SingularTransformError(RectifyError):
    """The quadrilateral is degenerate, so no homography exists."""

    kind = "singular_transform"


class TableError(DocGridError):
    """The table structure could not be recovered."""

    kind = "table"


class NoCellsFoundError(TableError):
    """No cell boxes were detected in the rectified image."""

    kind = "no_cells_found"


class OCRError(DocGridError):
    """The OCR engine failed on a single cell image."""

    kind = "ocr"
