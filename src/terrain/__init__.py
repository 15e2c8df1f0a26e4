"""
Terrain suitability analysis package.

Core functionality:
- Tile grid resolution and Terrarium elevation mosaics
- Terrain derivatives (slope, aspect, TPI, aspect variance)
- AOI and development exclusion masks
- Hotspot extraction and overlay/GeoTIFF/GeoJSON export
- TerrainAnalysisSession running the full pipeline
"""

from .geometry import AOIPolygon, BoundingBox, haversine_distance
from .tiles import TileGrid, TileIndex, resolve_tile_grid
from .elevation import ElevationMosaic, TerrariumTileSource, decode_terrarium, load_elevation_mosaic
from .derivatives import TerrainDerivatives, compute_terrain_derivatives
from .hotspots import Hotspot, extract_hotspots
from .color_mapping import suitability_colormap
from .cancellation import CancellationToken
from .session import (
    AnalysisConfig,
    AnalysisResult,
    AnalysisWarning,
    RunState,
    Scope,
    TerrainAnalysisSession,
    TimeOfDay,
    resolve_analysis_area,
)

__all__ = [
    "AOIPolygon",
    "BoundingBox",
    "haversine_distance",
    "TileGrid",
    "TileIndex",
    "resolve_tile_grid",
    "ElevationMosaic",
    "TerrariumTileSource",
    "decode_terrarium",
    "load_elevation_mosaic",
    "TerrainDerivatives",
    "compute_terrain_derivatives",
    "Hotspot",
    "extract_hotspots",
    "suitability_colormap",
    "CancellationToken",
    "AnalysisConfig",
    "AnalysisResult",
    "AnalysisWarning",
    "RunState",
    "Scope",
    "TerrainAnalysisSession",
    "TimeOfDay",
    "resolve_analysis_area",
]
