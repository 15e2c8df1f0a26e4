"""Pytest configuration and fixtures for terrain suitability tests."""
import sys
import threading
from pathlib import Path

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import pytest
import numpy as np

from src.terrain.exceptions import TileFetchError


class FakeTileSource:
    """
    In-memory tile source.

    Args:
        elevation_fn: Callable(tile) -> 256x256 elevation array
        failing: (x, y) tile addresses that raise TileFetchError
    """

    def __init__(self, elevation_fn, failing=()):
        self.elevation_fn = elevation_fn
        self.failing = set(failing)
        self.calls = []
        self._lock = threading.Lock()

    def fetch(self, tile):
        with self._lock:
            self.calls.append(tile)
        if (tile.x, tile.y) in self.failing:
            raise TileFetchError(tile.zoom, tile.x, tile.y, "simulated outage")
        return self.elevation_fn(tile).astype(np.float32)


def flat_elevation(tile):
    """Every pixel at 100 m."""
    return np.full((256, 256), 100.0, dtype=np.float32)


def wavy_elevation(tile):
    """Smooth hills continuous across tile seams."""
    gx = tile.x * 256 + np.arange(256)
    gy = tile.y * 256 + np.arange(256)
    cols, rows = np.meshgrid(gx, gy)
    return (300.0 + 40.0 * np.sin(cols / 25.0) + 25.0 * np.cos(rows / 35.0)).astype(np.float32)


@pytest.fixture
def make_tile_source():
    """Factory for FakeTileSource instances."""
    return FakeTileSource


@pytest.fixture
def flat_tile_source():
    return FakeTileSource(flat_elevation)


@pytest.fixture
def wavy_tile_source():
    return FakeTileSource(wavy_elevation)


@pytest.fixture
def equator_bbox():
    """Small box around (0, 0); resolves to a 2x2 tile grid at z12."""
    from src.terrain.geometry import BoundingBox

    return BoundingBox(-0.01, -0.01, 0.01, 0.01)


@pytest.fixture
def equator_grid(equator_bbox):
    from src.terrain.tiles import resolve_tile_grid

    return resolve_tile_grid(equator_bbox, zoom_hint=12)


@pytest.fixture
def sample_dem():
    """Create a small synthetic DEM for testing."""
    x = np.linspace(-10, 10, 100)
    y = np.linspace(-10, 10, 100)
    X, Y = np.meshgrid(x, y)
    # Simple terrain with a peak in the center
    Z = 1000 + 100 * np.exp(-(X**2 + Y**2) / 50)
    return Z.astype(np.float32)


@pytest.fixture
def cache_dir(tmp_path):
    """Temporary cache directory for tests."""
    cache = tmp_path / "cache"
    cache.mkdir()
    return cache
