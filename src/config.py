"""Configuration module for the terrain suitability engine.

Centralizes data paths, remote endpoints and default settings.
"""
import os
from pathlib import Path

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Data directories
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = DATA_DIR / "outputs"

# Cache directories (created on first write by the caches themselves)
CACHE_DIR = Path(os.environ.get("DEERSCOUT_CACHE_DIR", DATA_DIR / "cache"))
TILE_CACHE = CACHE_DIR / "terrarium"
FEATURE_CACHE = CACHE_DIR / "features"

# Remote sources
TERRARIUM_URL = "https://s3.amazonaws.com/elevation-tiles-prod/terrarium/{z}/{x}/{y}.png"
OVERPASS_URL = "https://overpass-api.de/api/interpreter"

# Network settings
TILE_TIMEOUT = 30  # seconds per elevation tile
OVERPASS_TIMEOUT = 60  # seconds for the development feature query
DEFAULT_MAX_WORKERS = 8  # concurrent tile downloads
FEATURE_CACHE_MAX_AGE_DAYS = 30

# Default settings
DEFAULT_LOG_LEVEL = "INFO"
