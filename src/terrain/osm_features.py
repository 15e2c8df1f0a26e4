"""
Development feature fetcher (OpenStreetMap Overpass API).

Fetches the built-up features that exclude terrain from analysis:
buildings, developed landuse, institutional amenities, sports grounds and
the classified road network. Results are cached locally with hash-based
keys.

Pipeline:
1. Build Overpass QL query for the bbox
2. Fetch element geometries (`out geom`) from Overpass
3. Cache raw elements locally
4. Parse into DevelopmentFeature records (area rings and road paths)

Usage:
    from src.terrain.osm_features import get_development_features

    features = get_development_features(bbox)  # raises VectorFetchError on failure
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests

from src.config import OVERPASS_TIMEOUT, OVERPASS_URL
from src.terrain.cache import FeatureCache
from src.terrain.exceptions import VectorFetchError
from src.terrain.geometry import BoundingBox

logger = logging.getLogger(__name__)

LANDUSE_CLASSES = ["residential", "commercial", "industrial", "retail", "parking"]
AMENITY_CLASSES = ["school", "university", "hospital", "parking"]
LEISURE_CLASSES = ["pitch", "golf_course"]
HIGHWAY_CLASSES = [
    "motorway", "trunk", "primary", "secondary", "tertiary",
    "unclassified", "residential", "service", "track",
]

AREA_TAGS = ("building", "landuse", "amenity", "leisure")


@dataclass(frozen=True)
class DevelopmentFeature:
    """
    One development feature in lon/lat.

    Attributes:
        kind: "area" for closed rings, "road" for open paths
        tag: OSM key that classified the feature (building, landuse, highway, ...)
        value: OSM tag value (e.g. "residential", "motorway")
        coords: Ordered (lon, lat) vertices
    """

    kind: str
    tag: str
    value: str
    coords: Tuple[Tuple[float, float], ...]


# =============================================================================
# QUERY BUILDING
# =============================================================================


def build_overpass_query(bbox: BoundingBox, timeout: int = 25) -> str:
    """
    Build the Overpass QL query for development features.

    Args:
        bbox: Area to query
        timeout: Server-side timeout in seconds

    Returns:
        Overpass QL query string
    """
    south, west, north, east = bbox.to_overpass()
    bbox_str = f"{south},{west},{north},{east}"
    landuse = "|".join(LANDUSE_CLASSES)
    amenity = "|".join(AMENITY_CLASSES)
    leisure = "|".join(LEISURE_CLASSES)
    highway = "|".join(HIGHWAY_CLASSES)

    return f"""
[out:json][timeout:{timeout}];
(
  way["building"]({bbox_str});
  relation["building"]({bbox_str});
  way["landuse"~"{landuse}"]({bbox_str});
  relation["landuse"~"{landuse}"]({bbox_str});
  way["amenity"~"{amenity}"]({bbox_str});
  relation["amenity"~"{amenity}"]({bbox_str});
  way["leisure"~"{leisure}"]({bbox_str});
  relation["leisure"~"{leisure}"]({bbox_str});
  way["highway"~"{highway}"]({bbox_str});
);
out geom;
"""


# =============================================================================
# PARSING
# =============================================================================


def _coords(geometry: List[Dict[str, Any]]) -> Tuple[Tuple[float, float], ...]:
    return tuple((float(pt["lon"]), float(pt["lat"])) for pt in geometry if pt)


def _classify(tags: Dict[str, Any]) -> Optional[Tuple[str, str, str]]:
    """Return (kind, tag, value) or None for elements we do not mask."""
    for tag in AREA_TAGS:
        if tag in tags:
            return "area", tag, str(tags[tag])
    if "highway" in tags:
        return "road", "highway", str(tags["highway"])
    return None


def parse_overpass_elements(elements: List[Dict[str, Any]]) -> List[DevelopmentFeature]:
    """
    Convert raw Overpass elements into DevelopmentFeature records.

    Ways carry their geometry directly. For relations, each member way with
    geometry becomes its own area ring (inner rings are skipped since the
    mask only needs the built-up footprint).

    Args:
        elements: The "elements" list of an Overpass JSON response

    Returns:
        List of DevelopmentFeature

    Raises:
        VectorFetchError: If the elements are not shaped like Overpass output
    """
    if not isinstance(elements, list):
        raise VectorFetchError(
            f"Overpass elements must be a list, got {type(elements).__name__}"
        )

    features = []
    skipped = 0

    try:
        for element in elements:
            classified = _classify(element.get("tags") or {})
            if classified is None:
                skipped += 1
                continue
            kind, tag, value = classified

            if element.get("type") == "relation":
                for member in element.get("members") or []:
                    if member.get("role") == "inner" or not member.get("geometry"):
                        continue
                    coords = _coords(member["geometry"])
                    if len(coords) >= 3:
                        features.append(DevelopmentFeature("area", tag, value, coords))
                continue

            geometry = element.get("geometry")
            if not geometry:
                skipped += 1
                continue

            coords = _coords(geometry)
            min_vertices = 3 if kind == "area" else 2
            if len(coords) < min_vertices:
                skipped += 1
                continue
            features.append(DevelopmentFeature(kind, tag, value, coords))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        logger.error(f"  Malformed Overpass element: {e!r}")
        raise VectorFetchError(f"Malformed Overpass element: {e!r}") from e

    logger.debug(f"Parsed {len(features)} development features ({skipped} elements skipped)")
    return features


# =============================================================================
# FETCHING FROM OSM
# =============================================================================


def fetch_overpass_elements(
    bbox: BoundingBox,
    url: str = OVERPASS_URL,
    timeout: int = OVERPASS_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> List[Dict[str, Any]]:
    """
    Fetch raw development elements from the Overpass API.

    Args:
        bbox: Area to query
        url: Overpass interpreter endpoint
        timeout: Request timeout in seconds
        session: Optional requests.Session

    Returns:
        List of Overpass elements

    Raises:
        VectorFetchError: On timeout, HTTP error, or malformed response
    """
    http = session or requests
    query = build_overpass_query(bbox)

    logger.info("Fetching development features from OpenStreetMap Overpass API...")
    logger.info(
        f"  Extent: lat [{bbox.south:.4f}, {bbox.north:.4f}], lon [{bbox.west:.4f}, {bbox.east:.4f}]"
    )

    try:
        response = http.post(url, data={"data": query}, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.Timeout as e:
        logger.error(f"  Overpass API timeout after {timeout}s")
        raise VectorFetchError(f"Overpass API timeout after {timeout}s") from e
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else "unknown"
        if status == 429:
            logger.error("  Overpass API rate limited (429)")
        else:
            logger.error(f"  Overpass API error: {status}")
        raise VectorFetchError(f"Overpass API error: {status}") from e
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error(f"  Failed to fetch from Overpass API: {e}")
        raise VectorFetchError(f"Failed to fetch from Overpass API: {e}") from e

    elements = data.get("elements") if isinstance(data, dict) else None
    if not isinstance(elements, list):
        raise VectorFetchError("Overpass response has no 'elements' list")

    logger.info(f"  Received {len(elements)} elements")
    return elements


# =============================================================================
# PUBLIC API
# =============================================================================


def get_development_features(
    bbox: BoundingBox,
    cache: Optional[FeatureCache] = None,
    force_refresh: bool = False,
    session: Optional[requests.Session] = None,
) -> List[DevelopmentFeature]:
    """
    Get development features for a bounding box.

    Uses the cache if available, otherwise queries Overpass.

    Args:
        bbox: Area to query
        cache: Optional FeatureCache
        force_refresh: Skip the cache lookup
        session: Optional requests.Session

    Returns:
        List of DevelopmentFeature

    Raises:
        VectorFetchError: If the query fails or returns malformed elements,
            and no readable cached result exists
    """
    if cache is not None and not force_refresh:
        cached = cache.load(bbox)
        if cached is not None:
            logger.info(f"  Using cached development features ({len(cached)} elements)")
            try:
                return parse_overpass_elements(cached)
            except VectorFetchError as e:
                logger.warning(f"  Ignoring unreadable feature cache: {e}")

    elements = fetch_overpass_elements(bbox, session=session)
    features = parse_overpass_elements(elements)
    if cache is not None:
        cache.save(bbox, elements)
    return features
