"""
Web-Mercator slippy-tile grid resolution.

Maps a geographic bounding box and a zoom hint to the range of XYZ tiles
covering it, and to the exact georeferenced footprint of the resulting
raster mosaic. All mosaic-level rasters of one analysis run share the
coordinate system described by a TileGrid.

Usage:
    from src.terrain.tiles import resolve_tile_grid
    from src.terrain.geometry import BoundingBox

    grid = resolve_tile_grid(BoundingBox(-84.40, 34.84, -84.30, 34.90), zoom_hint=13.4)
    print(grid.width, grid.height, grid.corners)
"""

import math
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from rasterio import Affine

from src.terrain.geometry import BoundingBox

TILE_SIZE = 256
MIN_ANALYSIS_ZOOM = 12
MAX_ANALYSIS_ZOOM = 14

# Latitude limit of the square Web-Mercator world
MAX_MERCATOR_LAT = 85.0511287798066

# Half the Web-Mercator world width in meters (EPSG:3857)
ORIGIN_SHIFT_M = 20037508.342789244

LngLat = Tuple[float, float]


def clamp_analysis_zoom(zoom_hint: float) -> int:
    """Floor a display zoom and bound it to the analysis range [12, 14]."""
    return max(MIN_ANALYSIS_ZOOM, min(MAX_ANALYSIS_ZOOM, int(math.floor(zoom_hint))))


def lnglat_to_global_pixel(lon: float, lat: float, zoom: int) -> Tuple[float, float]:
    """Project lon/lat to global pixel coordinates at a zoom (y grows southward)."""
    scale = TILE_SIZE * 2**zoom
    x = (lon + 180.0) / 360.0 * scale
    lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, lat))
    sin_lat = math.sin(math.radians(lat))
    y = (0.5 - math.log((1 + sin_lat) / (1 - sin_lat)) / (4 * math.pi)) * scale
    return x, y


def global_pixel_to_lnglat(x: float, y: float, zoom: int) -> LngLat:
    """Inverse of lnglat_to_global_pixel."""
    scale = TILE_SIZE * 2**zoom
    lon = x / scale * 360.0 - 180.0
    n = math.pi - 2 * math.pi * y / scale
    lat = math.degrees(math.atan(math.sinh(n)))
    return lon, lat


def lon_to_tile_x(lon: float, zoom: int) -> int:
    n = 2**zoom
    x = int(math.floor((lon + 180.0) / 360.0 * n))
    return max(0, min(n - 1, x))


def lat_to_tile_y(lat: float, zoom: int) -> int:
    n = 2**zoom
    lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, lat))
    phi = math.radians(lat)
    y = int(math.floor((1 - math.log(math.tan(phi) + 1 / math.cos(phi)) / math.pi) / 2 * n))
    return max(0, min(n - 1, y))


@dataclass(frozen=True)
class TileIndex:
    """XYZ tile address."""

    x: int
    y: int
    zoom: int


@dataclass(frozen=True)
class TileGrid:
    """
    Inclusive tile range at one zoom level and the mosaic it spans.

    Attributes:
        zoom: Analysis zoom level
        min_x, max_x: Inclusive tile column range
        min_y, max_y: Inclusive tile row range (y grows southward)
        tile_size: Tile edge length in pixels
    """

    zoom: int
    min_x: int
    max_x: int
    min_y: int
    max_y: int
    tile_size: int = TILE_SIZE

    @property
    def tiles_x(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def tiles_y(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def width(self) -> int:
        return self.tiles_x * self.tile_size

    @property
    def height(self) -> int:
        return self.tiles_y * self.tile_size

    @property
    def shape(self) -> Tuple[int, int]:
        """(height, width) of the mosaic raster."""
        return self.height, self.width

    @property
    def origin_x(self) -> int:
        return self.min_x * self.tile_size

    @property
    def origin_y(self) -> int:
        return self.min_y * self.tile_size

    @property
    def tile_count(self) -> int:
        return self.tiles_x * self.tiles_y

    def tiles(self) -> Iterator[TileIndex]:
        """Iterate tiles in row-major order (north to south, west to east)."""
        for y in range(self.min_y, self.max_y + 1):
            for x in range(self.min_x, self.max_x + 1):
                yield TileIndex(x, y, self.zoom)

    def tile_offset(self, tile: TileIndex) -> Tuple[int, int]:
        """Pixel (col, row) of a tile's top-left corner inside the mosaic."""
        return (tile.x - self.min_x) * self.tile_size, (tile.y - self.min_y) * self.tile_size

    def pixel_to_lnglat(self, col: float, row: float) -> LngLat:
        """Convert mosaic pixel coordinates to lon/lat."""
        return global_pixel_to_lnglat(self.origin_x + col, self.origin_y + row, self.zoom)

    def lnglat_to_pixel(self, lon: float, lat: float) -> Tuple[float, float]:
        """Convert lon/lat to fractional mosaic pixel coordinates (col, row)."""
        gx, gy = lnglat_to_global_pixel(lon, lat, self.zoom)
        return gx - self.origin_x, gy - self.origin_y

    @property
    def corners(self) -> List[LngLat]:
        """
        Geographic corners of the mosaic footprint.

        Returns:
            [top-left, top-right, bottom-right, bottom-left] as (lon, lat)
        """
        return [
            self.pixel_to_lnglat(0, 0),
            self.pixel_to_lnglat(self.width, 0),
            self.pixel_to_lnglat(self.width, self.height),
            self.pixel_to_lnglat(0, self.height),
        ]

    @property
    def footprint(self) -> BoundingBox:
        (west, north), _, (east, south), _ = self.corners
        return BoundingBox(west, south, east, north)

    @property
    def mid_latitude(self) -> float:
        return self.footprint.mid_latitude

    @property
    def mercator_transform(self) -> Affine:
        """Affine transform from mosaic pixels to EPSG:3857 meters."""
        pixel_m = 2 * ORIGIN_SHIFT_M / (self.tile_size * 2**self.zoom)
        return Affine(
            pixel_m, 0, self.origin_x * pixel_m - ORIGIN_SHIFT_M,
            0, -pixel_m, ORIGIN_SHIFT_M - self.origin_y * pixel_m,
        )


def resolve_tile_grid(bbox: BoundingBox, zoom_hint: float) -> TileGrid:
    """
    Resolve the tile range covering a bounding box.

    The zoom hint is floored and clamped to [12, 14]. A zero-area box still
    yields a one-tile grid; validating the box is the caller's job.

    Args:
        bbox: Area to cover
        zoom_hint: Caller's display zoom

    Returns:
        TileGrid covering the whole bbox
    """
    zoom = clamp_analysis_zoom(zoom_hint)
    min_x, max_x = lon_to_tile_x(bbox.west, zoom), lon_to_tile_x(bbox.east, zoom)
    min_y, max_y = lat_to_tile_y(bbox.north, zoom), lat_to_tile_y(bbox.south, zoom)
    return TileGrid(
        zoom=zoom,
        min_x=min(min_x, max_x),
        max_x=max(min_x, max_x),
        min_y=min(min_y, max_y),
        max_y=max(min_y, max_y),
    )
