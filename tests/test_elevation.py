"""
Tests for Terrarium decoding, the HTTP tile source and mosaic assembly.
"""

import io
from unittest.mock import Mock

import numpy as np
import pytest
import requests
from PIL import Image

from src.terrain.cache import TileCache
from src.terrain.cancellation import CancellationToken
from src.terrain.elevation import TerrariumTileSource, decode_terrarium, load_elevation_mosaic
from src.terrain.exceptions import AnalysisCancelledError, TileFetchError
from src.terrain.tiles import TileIndex


def _png_bytes(rgb: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(rgb.astype(np.uint8)).save(buffer, format="PNG")
    return buffer.getvalue()


def _mock_session(content: bytes) -> Mock:
    response = Mock()
    response.content = content
    response.raise_for_status = Mock()
    session = Mock()
    session.get.return_value = response
    return session


# =============================================================================
# DECODING
# =============================================================================


class TestDecodeTerrarium:
    """Terrarium RGB -> meters."""

    def test_sea_level(self):
        assert decode_terrarium(np.array([128, 0, 0]))[()] == 0.0

    def test_minimum(self):
        assert decode_terrarium(np.array([0, 0, 0]))[()] == -32768.0

    def test_maximum(self):
        value = decode_terrarium(np.array([255, 255, 255]))[()]
        assert value == pytest.approx(32767.996, abs=1e-3)

    def test_fractional_blue_channel(self):
        assert decode_terrarium(np.array([128, 100, 128]))[()] == pytest.approx(100.5)

    def test_alpha_is_ignored(self):
        rgba = np.array([[[128, 10, 0, 0], [128, 10, 0, 255]]], dtype=np.uint8)
        np.testing.assert_array_equal(decode_terrarium(rgba), [[10.0, 10.0]])

    def test_output_dtype_and_shape(self):
        rgb = np.zeros((4, 5, 3), dtype=np.uint8)
        decoded = decode_terrarium(rgb)
        assert decoded.dtype == np.float32
        assert decoded.shape == (4, 5)


# =============================================================================
# TILE SOURCE
# =============================================================================


class TestTerrariumTileSource:
    """HTTP fetching with a mocked requests session."""

    def test_fetch_decodes_png(self):
        rgb = np.zeros((256, 256, 3), dtype=np.uint8)
        rgb[..., 0] = 128
        rgb[..., 1] = 10
        session = _mock_session(_png_bytes(rgb))
        source = TerrariumTileSource(url_template="https://tiles.test/{z}/{x}/{y}.png", session=session)

        elevation = source.fetch(TileIndex(x=1, y=2, zoom=12))

        assert elevation.shape == (256, 256)
        assert np.all(elevation == 10.0)
        args, kwargs = session.get.call_args
        assert args[0] == "https://tiles.test/12/1/2.png"
        assert kwargs["timeout"] == source.timeout

    def test_network_error_raises_tile_fetch_error(self):
        session = Mock()
        session.get.side_effect = requests.exceptions.ConnectionError("down")
        source = TerrariumTileSource(session=session)

        with pytest.raises(TileFetchError, match="Tile 12/1/2"):
            source.fetch(TileIndex(1, 2, 12))

    def test_http_error_raises_tile_fetch_error(self):
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("404")
        session = Mock()
        session.get.return_value = response
        source = TerrariumTileSource(session=session)

        with pytest.raises(TileFetchError):
            source.fetch(TileIndex(1, 2, 12))

    def test_undecodable_payload(self):
        source = TerrariumTileSource(session=_mock_session(b"not a png"))

        with pytest.raises(TileFetchError, match="decode failed"):
            source.fetch(TileIndex(1, 2, 12))

    def test_wrong_tile_size(self):
        rgb = np.full((128, 128, 3), 128, dtype=np.uint8)
        source = TerrariumTileSource(session=_mock_session(_png_bytes(rgb)))

        with pytest.raises(TileFetchError, match="unexpected tile shape"):
            source.fetch(TileIndex(1, 2, 12))

    def test_cache_hit_skips_network(self, cache_dir):
        cache = TileCache(cache_dir=cache_dir)
        cache.save(12, 1, 2, np.full((256, 256), 42.0, dtype=np.float32))
        session = Mock()
        source = TerrariumTileSource(session=session, cache=cache)

        elevation = source.fetch(TileIndex(1, 2, 12))

        assert np.all(elevation == 42.0)
        session.get.assert_not_called()

    def test_fetched_tile_is_cached(self, cache_dir):
        rgb = np.zeros((256, 256, 3), dtype=np.uint8)
        rgb[..., 0] = 129  # 256 m
        cache = TileCache(cache_dir=cache_dir)
        source = TerrariumTileSource(session=_mock_session(_png_bytes(rgb)), cache=cache)

        source.fetch(TileIndex(3, 4, 13))

        cached = cache.load(13, 3, 4)
        assert cached is not None
        assert np.all(cached == 256.0)


# =============================================================================
# MOSAIC ASSEMBLY
# =============================================================================


def _tile_id_elevation(tile):
    return np.full((256, 256), tile.x * 10 + tile.y, dtype=np.float32)


class TestLoadElevationMosaic:
    """Concurrent mosaic assembly."""

    def test_blocks_land_at_tile_offsets(self, equator_grid, make_tile_source):
        source = make_tile_source(_tile_id_elevation)

        mosaic = load_elevation_mosaic(equator_grid, source, max_workers=4)

        assert mosaic.shape == (512, 512)
        assert mosaic.data.dtype == np.float32
        assert np.all(mosaic.data[:256, :256] == 2047 * 10 + 2047)
        assert np.all(mosaic.data[:256, 256:] == 2048 * 10 + 2047)
        assert np.all(mosaic.data[256:, :256] == 2047 * 10 + 2048)
        assert np.all(mosaic.data[256:, 256:] == 2048 * 10 + 2048)
        assert mosaic.missing_tiles == []
        assert len(source.calls) == 4

    def test_result_independent_of_worker_count(self, equator_grid, wavy_tile_source):
        serial = load_elevation_mosaic(equator_grid, wavy_tile_source, max_workers=1)
        parallel = load_elevation_mosaic(equator_grid, wavy_tile_source, max_workers=8)
        np.testing.assert_array_equal(serial.data, parallel.data)

    def test_failed_tile_defaults_to_zero(self, equator_grid, make_tile_source):
        source = make_tile_source(_tile_id_elevation, failing={(2048, 2047)})

        mosaic = load_elevation_mosaic(equator_grid, source)

        assert mosaic.missing_tiles == [TileIndex(2048, 2047, 12)]
        assert np.all(mosaic.data[:256, 256:] == 0.0)
        assert np.all(mosaic.data[:256, :256] != 0.0)

    def test_all_tiles_failing_still_returns_mosaic(self, equator_grid, make_tile_source):
        failing = {(t.x, t.y) for t in equator_grid.tiles()}
        source = make_tile_source(_tile_id_elevation, failing=failing)

        mosaic = load_elevation_mosaic(equator_grid, source)

        assert len(mosaic.missing_tiles) == 4
        assert np.all(mosaic.data == 0.0)

    def test_cancelled_token_aborts(self, equator_grid, flat_tile_source):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(AnalysisCancelledError):
            load_elevation_mosaic(equator_grid, flat_tile_source, cancel_token=token)
