"""
Analysis session: runs the terrain suitability pipeline end to end.

    resolve grid → load elevation → derivatives → score → masks → hotspots

A session owns its tile source, feature fetcher and run state. Only one
analysis may run at a time per session; a second concurrent call is
rejected with AnalysisInProgressError. Each call receives immutable inputs
and returns an immutable AnalysisResult together with any degradation
warnings (missing elevation tiles, unavailable development mask).

Usage:
    from src.terrain.session import AnalysisConfig, TerrainAnalysisSession
    from src.terrain.geometry import BoundingBox

    session = TerrainAnalysisSession()
    result = session.analyze(
        BoundingBox(-84.40, 34.84, -84.30, 34.90),
        config=AnalysisConfig(wind_from_deg=315, time_of_day="day", zoom_hint=13),
    )
    for warning in result.warnings:
        print(warning.message)
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from src.config import DEFAULT_MAX_WORKERS
from src.scoring.configs.deer_stand import compute_suitability_score
from src.terrain.cancellation import CancellationToken
from src.terrain.color_mapping import suitability_colormap
from src.terrain.derivatives import compute_terrain_derivatives
from src.terrain.elevation import TerrariumTileSource, load_elevation_mosaic
from src.terrain.exceptions import (
    AnalysisInProgressError,
    InvalidBoundingBoxError,
    VectorFetchError,
)
from src.terrain.geometry import AOIPolygon, BoundingBox
from src.terrain.hotspots import Hotspot, extract_hotspots
from src.terrain.masks import (
    apply_aoi_mask,
    apply_exclusion_mask,
    rasterize_aoi_mask,
    rasterize_development_mask,
)
from src.terrain.osm_features import DevelopmentFeature, get_development_features
from src.terrain.tiles import TileGrid, resolve_tile_grid

logger = logging.getLogger(__name__)

MIN_BUFFER_M = 20.0
MAX_BUFFER_M = 120.0


class Scope(str, Enum):
    """Which input governs the analysed area."""

    AUTO = "auto"
    AOI = "aoi"
    VIEWPORT = "viewport"


class TimeOfDay(str, Enum):
    """Thermal regime used by the thermal scoring term."""

    DAY = "day"
    EVENING = "evening"


class RunState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    DERIVING = "deriving"
    SCORING = "scoring"
    MASKING = "masking"
    EXTRACTING = "extracting"
    DONE = "done"


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Per-run user parameters.

    Attributes:
        scope: AUTO uses the AOI when one is given, AOI forces it, VIEWPORT ignores it
        zoom_hint: Display zoom; floored and clamped to [12, 14] for analysis
        wind_from_deg: Bearing the wind blows from, [0, 360)
        time_of_day: DAY or EVENING thermal regime
        exclude_development: Apply the development exclusion mask
        development_buffer_m: Exclusion buffer around development, 20-120 m
        show_hotspots: Rendering hint only; hotspots are always computed
    """

    scope: Scope = Scope.AUTO
    zoom_hint: float = 11.0
    wind_from_deg: float = 270.0
    time_of_day: TimeOfDay = TimeOfDay.EVENING
    exclude_development: bool = True
    development_buffer_m: float = 80.0
    show_hotspots: bool = True

    def __post_init__(self):
        object.__setattr__(self, "scope", Scope(self.scope))
        object.__setattr__(self, "time_of_day", TimeOfDay(self.time_of_day))

    def validate(self) -> "AnalysisConfig":
        """
        Check parameter ranges.

        Raises:
            ValueError: If any parameter is out of range
        """
        if not math.isfinite(self.zoom_hint):
            raise ValueError(f"zoom_hint must be finite, got {self.zoom_hint}")
        if not (math.isfinite(self.wind_from_deg) and 0.0 <= self.wind_from_deg < 360.0):
            raise ValueError(f"wind_from_deg must be in [0, 360), got {self.wind_from_deg}")
        if not MIN_BUFFER_M <= self.development_buffer_m <= MAX_BUFFER_M:
            raise ValueError(
                f"development_buffer_m must be in [{MIN_BUFFER_M:g}, {MAX_BUFFER_M:g}], "
                f"got {self.development_buffer_m}"
            )
        return self


@dataclass(frozen=True)
class AnalysisWarning:
    """A non-fatal degradation reported alongside a result."""

    code: str
    message: str


@dataclass(frozen=True)
class AnalysisResult:
    """
    Output of one analysis run.

    Attributes:
        score: Final masked score raster, float32 in [0, 1]
        overlay: RGBA uint8 rendering of the score
        corners: [top-left, top-right, bottom-right, bottom-left] (lon, lat)
            placing the overlay on a map
        hotspots: Ranked hotspots, at most 20
        warnings: Degradations that occurred during the run
        grid: Tile grid the rasters are aligned to
        config: Parameters the run used
    """

    score: np.ndarray
    overlay: np.ndarray
    corners: Tuple[Tuple[float, float], ...]
    hotspots: Tuple[Hotspot, ...]
    warnings: Tuple[AnalysisWarning, ...]
    grid: TileGrid
    config: AnalysisConfig = field(default_factory=AnalysisConfig)


FeatureFetcher = Callable[[BoundingBox], Sequence[DevelopmentFeature]]
BBoxLike = Union[BoundingBox, Sequence[float]]
AOILike = Union[AOIPolygon, Sequence[Sequence[float]]]


def resolve_analysis_area(
    viewport: Optional[BBoxLike],
    aoi: Optional[AOILike],
    scope: Scope = Scope.AUTO,
) -> Tuple[BoundingBox, Optional[AOIPolygon]]:
    """
    Decide which area a run analyses.

    AOI scope, or AUTO with an AOI present, analyses the AOI bounds and masks
    to the AOI. Everything else analyses the viewport; AOI scope without an
    AOI falls back to the viewport.

    Returns:
        (validated bbox, AOI to mask with or None)

    Raises:
        InvalidBoundingBoxError: If the chosen box is missing or invalid
        InvalidPolygonError: If the AOI has fewer than 3 distinct vertices
    """
    scope = Scope(scope)
    if aoi is not None and not isinstance(aoi, AOIPolygon):
        aoi = AOIPolygon.from_points(aoi)

    if aoi is not None and scope in (Scope.AOI, Scope.AUTO):
        return aoi.bounds.validate(), aoi

    if scope == Scope.AOI:
        logger.warning("AOI scope requested without an AOI; using the viewport")

    if viewport is None:
        raise InvalidBoundingBoxError("No viewport bounding box given and no AOI in scope")
    if not isinstance(viewport, BoundingBox):
        viewport = BoundingBox.from_tuple(viewport)
    return viewport.validate(), None


class TerrainAnalysisSession:
    """
    Single-flight runner for terrain suitability analyses.

    Args:
        tile_source: Object with fetch(TileIndex) -> 256x256 elevation array
        feature_fetcher: Callable returning development features for a bbox;
            must raise VectorFetchError on failure
        max_workers: Concurrent tile fetches
        show_progress: Show a tqdm bar while loading tiles
    """

    def __init__(
        self,
        tile_source=None,
        feature_fetcher: Optional[FeatureFetcher] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        show_progress: bool = False,
    ):
        self.tile_source = tile_source if tile_source is not None else TerrariumTileSource()
        self.feature_fetcher = feature_fetcher or get_development_features
        self.max_workers = max_workers
        self.show_progress = show_progress
        self.state = RunState.IDLE
        self.last_result: Optional[AnalysisResult] = None
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _enter(self, state: RunState, cancel_token: Optional[CancellationToken]) -> None:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(state.value)
        self.state = state
        logger.debug(f"Analysis state: {state.value}")

    def analyze(
        self,
        viewport: Optional[BBoxLike] = None,
        aoi: Optional[AOILike] = None,
        config: Optional[AnalysisConfig] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AnalysisResult:
        """
        Run one analysis.

        Args:
            viewport: Visible map bounding box
            aoi: Optional area-of-interest polygon or vertex list
            config: Run parameters (defaults apply when omitted)
            cancel_token: Optional token checked between tiles and stages

        Returns:
            AnalysisResult

        Raises:
            AnalysisInProgressError: If this session is already running
            InvalidBoundingBoxError, InvalidPolygonError, ValueError: On bad input
            AnalysisCancelledError: If the token is cancelled
        """
        if not self._lock.acquire(blocking=False):
            raise AnalysisInProgressError("An analysis is already running in this session")
        try:
            result = self._run(viewport, aoi, config or AnalysisConfig(), cancel_token)
        except BaseException:
            self.state = RunState.IDLE
            raise
        finally:
            self._lock.release()

        self.last_result = result
        return result

    def _run(
        self,
        viewport: Optional[BBoxLike],
        aoi: Optional[AOILike],
        config: AnalysisConfig,
        cancel_token: Optional[CancellationToken],
    ) -> AnalysisResult:
        config.validate()
        bbox, mask_aoi = resolve_analysis_area(viewport, aoi, config.scope)
        grid = resolve_tile_grid(bbox, config.zoom_hint)
        warnings: List[AnalysisWarning] = []

        logger.info(
            f"Analyzing {bbox.to_tuple()} at z{grid.zoom} "
            f"({grid.tile_count} tiles, wind {config.wind_from_deg:g}°, {config.time_of_day.value})"
        )

        self._enter(RunState.LOADING, cancel_token)
        mosaic = load_elevation_mosaic(
            grid,
            self.tile_source,
            max_workers=self.max_workers,
            cancel_token=cancel_token,
            show_progress=self.show_progress,
        )
        if mosaic.missing_tiles:
            warnings.append(
                AnalysisWarning(
                    "tiles_missing",
                    f"{len(mosaic.missing_tiles)} of {grid.tile_count} elevation tiles missing",
                )
            )

        self._enter(RunState.DERIVING, cancel_token)
        derivatives = compute_terrain_derivatives(mosaic.data, grid.mid_latitude, grid.zoom)

        self._enter(RunState.SCORING, cancel_token)
        score = compute_suitability_score(derivatives, config.wind_from_deg, config.time_of_day)

        self._enter(RunState.MASKING, cancel_token)
        if mask_aoi is not None:
            score = apply_aoi_mask(score, rasterize_aoi_mask(mask_aoi, grid))

        if config.exclude_development:
            try:
                features = self.feature_fetcher(bbox)
            except VectorFetchError as e:
                logger.warning(f"Development mask unavailable: {e}")
                warnings.append(
                    AnalysisWarning("development_mask_unavailable", "development mask unavailable")
                )
            else:
                excluded = rasterize_development_mask(
                    features, grid, derivatives.meters_per_pixel, config.development_buffer_m
                )
                score = apply_exclusion_mask(score, excluded)

        self._enter(RunState.EXTRACTING, cancel_token)
        hotspots = extract_hotspots(score, grid, aoi=mask_aoi)
        overlay = suitability_colormap(score)

        self.state = RunState.DONE
        logger.info(f"Analysis complete: {len(hotspots)} hotspots, {len(warnings)} warnings")

        return AnalysisResult(
            score=score,
            overlay=overlay,
            corners=tuple(grid.corners),
            hotspots=tuple(hotspots),
            warnings=tuple(warnings),
            grid=grid,
            config=config,
        )
