"""Tests for configuration module."""
from src import config


def test_project_root_exists():
    """Test that PROJECT_ROOT is set correctly."""
    assert config.PROJECT_ROOT.exists()
    assert config.PROJECT_ROOT.is_dir()
    assert (config.PROJECT_ROOT / "src").is_dir()


def test_cache_directories_under_cache_root():
    """Tile and feature caches live under CACHE_DIR."""
    assert config.TILE_CACHE.parent == config.CACHE_DIR
    assert config.FEATURE_CACHE.parent == config.CACHE_DIR


def test_remote_sources():
    """URL templates carry the tile address placeholders."""
    for placeholder in ("{z}", "{x}", "{y}"):
        assert placeholder in config.TERRARIUM_URL
    assert config.OVERPASS_URL.startswith("https://")


def test_config_constants():
    """Test that configuration constants are properly set."""
    assert config.TILE_TIMEOUT > 0
    assert config.OVERPASS_TIMEOUT > 0
    assert config.DEFAULT_MAX_WORKERS >= 1
    assert config.FEATURE_CACHE_MAX_AGE_DAYS == 30
    assert isinstance(config.DEFAULT_LOG_LEVEL, str)
