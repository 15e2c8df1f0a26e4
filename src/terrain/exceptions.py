"""
Exception types raised by the terrain suitability engine.

Input validation errors (bad bounding box, degenerate polygon) abort a run
before any raster is allocated. Fetch errors are raised by the network layer
and absorbed by the analysis session, which turns them into warnings.
"""


class TerrainAnalysisError(Exception):
    """Base class for all terrain analysis errors."""


class InvalidBoundingBoxError(TerrainAnalysisError, ValueError):
    """Bounding box is malformed or has zero area."""


class InvalidPolygonError(TerrainAnalysisError, ValueError):
    """Area-of-interest polygon has fewer than 3 distinct vertices."""


class TileFetchError(TerrainAnalysisError):
    """A single elevation tile could not be fetched or decoded."""

    def __init__(self, z: int, x: int, y: int, reason: str):
        self.z = z
        self.x = x
        self.y = y
        self.reason = reason
        super().__init__(f"Tile {z}/{x}/{y} failed: {reason}")


class VectorFetchError(TerrainAnalysisError):
    """The development feature query failed."""


class AnalysisInProgressError(TerrainAnalysisError):
    """A second analysis was started while one is still running."""


class AnalysisCancelledError(TerrainAnalysisError):
    """The running analysis was cancelled through its token."""
