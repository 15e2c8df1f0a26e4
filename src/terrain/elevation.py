"""
Elevation mosaic loading from Terrarium-encoded tiles.

Terrarium tiles store elevation in the RGB channels of a 256x256 PNG:

    elevation_m = R * 256 + G + B / 256 - 32768

Each tile of a TileGrid is fetched and decoded independently, then written
into its own 256x256 block of the mosaic. A tile that cannot be fetched or
decoded leaves its block at 0 m and is reported in `missing_tiles`; the
mosaic itself is never rejected.

Usage:
    from src.terrain.elevation import TerrariumTileSource, load_elevation_mosaic

    source = TerrariumTileSource()
    mosaic = load_elevation_mosaic(grid, source, max_workers=8)
    if mosaic.missing_tiles:
        print(f"{len(mosaic.missing_tiles)} of {grid.tile_count} tiles missing")
"""

import io
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import requests
from PIL import Image
from tqdm.auto import tqdm

from src.config import DEFAULT_MAX_WORKERS, TERRARIUM_URL, TILE_TIMEOUT
from src.terrain.cache import TileCache
from src.terrain.cancellation import CancellationToken
from src.terrain.exceptions import TileFetchError
from src.terrain.tiles import TileGrid, TileIndex

logger = logging.getLogger(__name__)


def decode_terrarium(rgb: np.ndarray) -> np.ndarray:
    """
    Decode Terrarium RGB(A) pixels to elevation in meters.

    Args:
        rgb: uint8 array with shape (..., 3) or (..., 4); alpha is ignored

    Returns:
        float32 array of elevations with the channel axis removed
    """
    rgb = np.asarray(rgb)
    r = rgb[..., 0].astype(np.float64)
    g = rgb[..., 1].astype(np.float64)
    b = rgb[..., 2].astype(np.float64)
    return (r * 256.0 + g + b / 256.0 - 32768.0).astype(np.float32)


class TerrariumTileSource:
    """
    Fetches and decodes Terrarium elevation tiles over HTTP.

    Args:
        url_template: URL with {z}, {x} and {y} placeholders
        timeout: Request timeout in seconds
        session: Optional requests.Session to reuse connections
        cache: Optional TileCache consulted before fetching
    """

    def __init__(
        self,
        url_template: str = TERRARIUM_URL,
        timeout: float = TILE_TIMEOUT,
        session: Optional[requests.Session] = None,
        cache: Optional[TileCache] = None,
    ):
        self.url_template = url_template
        self.timeout = timeout
        self.session = session or requests.Session()
        self.cache = cache

    def tile_url(self, tile: TileIndex) -> str:
        return self.url_template.format(z=tile.zoom, x=tile.x, y=tile.y)

    def fetch(self, tile: TileIndex) -> np.ndarray:
        """
        Fetch one tile as a 256x256 float32 elevation block.

        Raises:
            TileFetchError: On any network, HTTP or decoding failure
        """
        if self.cache is not None:
            cached = self.cache.load(tile.zoom, tile.x, tile.y)
            if cached is not None:
                return cached

        url = self.tile_url(tile)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise TileFetchError(tile.zoom, tile.x, tile.y, str(e)) from e

        try:
            with Image.open(io.BytesIO(response.content)) as img:
                rgb = np.asarray(img.convert("RGB"))
        except (OSError, ValueError) as e:
            raise TileFetchError(tile.zoom, tile.x, tile.y, f"decode failed: {e}") from e

        elevation = decode_terrarium(rgb)
        if elevation.shape != (256, 256):
            raise TileFetchError(
                tile.zoom, tile.x, tile.y, f"unexpected tile shape {elevation.shape}"
            )

        if self.cache is not None:
            self.cache.save(tile.zoom, tile.x, tile.y, elevation)
        return elevation


@dataclass
class ElevationMosaic:
    """
    Contiguous elevation raster covering a TileGrid.

    Attributes:
        grid: Tile grid the mosaic was assembled from
        data: float32 elevations in meters, shape (grid.height, grid.width)
        missing_tiles: Tiles whose block was left at 0 m
    """

    grid: TileGrid
    data: np.ndarray
    missing_tiles: List[TileIndex] = field(default_factory=list)

    @property
    def shape(self):
        return self.data.shape


def load_elevation_mosaic(
    grid: TileGrid,
    source: TerrariumTileSource,
    max_workers: int = DEFAULT_MAX_WORKERS,
    cancel_token: Optional[CancellationToken] = None,
    show_progress: bool = False,
) -> ElevationMosaic:
    """
    Fetch every tile of a grid and assemble the elevation mosaic.

    Tiles are fetched concurrently; each completed tile is written into its
    own disjoint block, so completion order does not affect the result.

    Args:
        grid: Resolved tile grid
        source: Tile source with a fetch(tile) method
        max_workers: Maximum concurrent tile fetches
        cancel_token: Checked after each tile completes
        show_progress: Display a tqdm progress bar

    Returns:
        ElevationMosaic with missing tiles recorded

    Raises:
        AnalysisCancelledError: If the token is cancelled mid-load
    """
    data = np.zeros(grid.shape, dtype=np.float32)
    missing: List[TileIndex] = []
    tiles = list(grid.tiles())
    tile_size = grid.tile_size

    logger.info(
        f"Loading {len(tiles)} elevation tiles at z{grid.zoom} "
        f"({grid.width}×{grid.height} px mosaic)"
    )

    executor = ThreadPoolExecutor(max_workers=max(1, max_workers))
    try:
        future_map = {executor.submit(source.fetch, tile): tile for tile in tiles}
        with tqdm(total=len(tiles), desc="Loading elevation tiles", disable=not show_progress) as pbar:
            for future in as_completed(future_map):
                tile = future_map[future]
                try:
                    block = future.result()
                    col, row = grid.tile_offset(tile)
                    data[row:row + tile_size, col:col + tile_size] = block
                except TileFetchError as e:
                    logger.warning(str(e))
                    missing.append(tile)
                pbar.update(1)

                if cancel_token is not None:
                    cancel_token.raise_if_cancelled("elevation loading")
    finally:
        executor.shutdown(wait=True, cancel_futures=True)

    if missing:
        logger.warning(f"{len(missing)} of {len(tiles)} elevation tiles missing (left at 0 m)")
    else:
        logger.info("All elevation tiles loaded")

    missing.sort(key=lambda t: (t.y, t.x))
    return ElevationMosaic(grid=grid, data=data, missing_tiles=missing)
