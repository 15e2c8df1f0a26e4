#!/usr/bin/env python3
"""
Deer-Stand Terrain Suitability Analysis Example.

Scores terrain for deer-stand suitability inside a bounding box (or a
drawn area of interest) and writes the results for use in a map viewer.

Pipeline:
1. Resolve the Web-Mercator tile grid for the area
2. Load Terrarium elevation tiles into a mosaic
3. Compute slope, aspect, TPI and aspect variance
4. Score benches, saddles, leeward wind and thermal orientation
5. Mask to the AOI and exclude development (OpenStreetMap)
6. Extract hotspots and save overlay PNG, score GeoTIFF and hotspot GeoJSON

Usage:
    # Analyze a bounding box (west south east north)
    python examples/analyze_terrain.py --bbox -84.40 34.84 -84.30 34.90

    # Analyze an AOI polygon with a north-west wind in the daytime
    python examples/analyze_terrain.py --aoi="-84.38,34.85 -84.32,34.85 -84.35,34.89" \\
        --wind-from 315 --time-of-day day

    # Skip the development mask and caches
    python examples/analyze_terrain.py --bbox -84.40 34.84 -84.30 34.90 --no-exclude-development --no-cache
"""

import sys
import argparse
import logging
import json
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.config import DEFAULT_LOG_LEVEL, OUTPUT_DIR
from src.terrain.cache import FeatureCache, TileCache
from src.terrain.elevation import TerrariumTileSource
from src.terrain.exceptions import TerrainAnalysisError
from src.terrain.export import save_hotspots_geojson, save_overlay_png, write_score_geotiff
from src.terrain.geometry import BoundingBox
from src.terrain.osm_features import get_development_features
from src.terrain.session import AnalysisConfig, Scope, TerrainAnalysisSession, TimeOfDay

# Configure logging
LOG_FILE = Path(__file__).parent / "analyze_terrain.log"
logger = logging.getLogger(__name__)
logger.setLevel(DEFAULT_LOG_LEVEL)
logger.handlers = []

console_handler = logging.StreamHandler()
console_handler.setLevel(DEFAULT_LOG_LEVEL)
console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
logger.addHandler(console_handler)

file_handler = logging.FileHandler(LOG_FILE, mode='w')
file_handler.setLevel(logging.DEBUG)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s: %(message)s"))
logger.addHandler(file_handler)

logging.basicConfig(
    level=DEFAULT_LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s: %(message)s",
    handlers=[file_handler]
)


def parse_aoi(text: str):
    """Parse "lon,lat lon,lat ..." into a vertex list."""
    vertices = []
    for pair in text.split():
        lon, lat = pair.split(",")
        vertices.append((float(lon), float(lat)))
    return vertices


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Deer-Stand Terrain Suitability Analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Bounding box at zoom 13
  python examples/analyze_terrain.py --bbox -84.40 34.84 -84.30 34.90 --zoom 13

  # AOI polygon, evening thermals, 60 m development buffer
  python examples/analyze_terrain.py --aoi="-84.38,34.85 -84.32,34.85 -84.35,34.89" --buffer 60
        """,
    )

    parser.add_argument(
        "--bbox",
        type=float,
        nargs=4,
        metavar=("WEST", "SOUTH", "EAST", "NORTH"),
        help="Viewport bounding box in degrees",
    )

    parser.add_argument(
        "--aoi",
        type=parse_aoi,
        help='AOI polygon as "lon,lat lon,lat lon,lat ..."',
    )

    parser.add_argument(
        "--scope",
        choices=[s.value for s in Scope],
        default=Scope.AUTO.value,
        help="Which input governs the analysed area (default: auto)",
    )

    parser.add_argument(
        "--zoom",
        type=float,
        default=13.0,
        help="Zoom hint, clamped to 12-14 (default: 13)",
    )

    parser.add_argument(
        "--wind-from",
        type=float,
        default=270.0,
        help="Wind-from bearing in degrees (default: 270)",
    )

    parser.add_argument(
        "--time-of-day",
        choices=[t.value for t in TimeOfDay],
        default=TimeOfDay.EVENING.value,
        help="Thermal regime (default: evening)",
    )

    parser.add_argument(
        "--buffer",
        type=float,
        default=80.0,
        help="Development exclusion buffer in meters, 20-120 (default: 80)",
    )

    parser.add_argument(
        "--no-exclude-development",
        action="store_true",
        help="Skip the OpenStreetMap development mask",
    )

    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Disable tile and feature caches",
    )

    parser.add_argument(
        "--output-dir",
        type=Path,
        default=OUTPUT_DIR / "deer_stand",
        help="Output directory (default: data/outputs/deer_stand/)",
    )

    args = parser.parse_args()
    if args.bbox is None and args.aoi is None:
        parser.error("one of --bbox or --aoi is required")

    args.output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("\n" + "=" * 70)
    logger.info("Deer-Stand Terrain Suitability Analysis")
    logger.info("=" * 70)
    logger.info(f"Output directory: {args.output_dir}")

    use_cache = not args.no_cache
    tile_source = TerrariumTileSource(cache=TileCache(enabled=use_cache))
    feature_cache = FeatureCache(enabled=use_cache)

    session = TerrainAnalysisSession(
        tile_source=tile_source,
        feature_fetcher=lambda bbox: get_development_features(bbox, cache=feature_cache),
        show_progress=True,
    )

    try:
        config = AnalysisConfig(
            scope=args.scope,
            zoom_hint=args.zoom,
            wind_from_deg=args.wind_from,
            time_of_day=args.time_of_day,
            exclude_development=not args.no_exclude_development,
            development_buffer_m=args.buffer,
        )
        viewport = BoundingBox.from_tuple(args.bbox) if args.bbox else None
        result = session.analyze(viewport, aoi=args.aoi, config=config)
    except (TerrainAnalysisError, ValueError) as e:
        logger.error(f"\n[✗] Error: {e}")
        return 1

    save_overlay_png(result.overlay, args.output_dir / "suitability_overlay.png")
    write_score_geotiff(
        result.score,
        result.grid,
        args.output_dir / "suitability_score.tif",
        metadata={
            "wind_from_deg": config.wind_from_deg,
            "time_of_day": config.time_of_day.value,
            "zoom": result.grid.zoom,
        },
    )
    save_hotspots_geojson(result.hotspots, args.output_dir / "hotspots.geojson")

    with open(args.output_dir / "overlay_corners.json", "w") as f:
        json.dump({"corners": [list(c) for c in result.corners]}, f, indent=2)

    logger.info(f"\nTop hotspots ({len(result.hotspots)}):")
    for rank, hotspot in enumerate(result.hotspots[:10], start=1):
        logger.info(f"  {rank:2d}. ({hotspot.lon:.5f}, {hotspot.lat:.5f}) score {hotspot.score:.3f}")

    for warning in result.warnings:
        logger.warning(f"⚠ {warning.message}")

    logger.info("\n" + "=" * 70)
    logger.info("✓ Analysis complete!")
    logger.info(f"Outputs saved to: {args.output_dir}")
    logger.info("=" * 70 + "\n")

    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("\n[✗] Interrupted by user")
        sys.exit(1)
