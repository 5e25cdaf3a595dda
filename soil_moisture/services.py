from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, cast

from django.conf import settings
from django.core.cache import caches
from django.utils.text import slugify

from .aggregation import summarize
from .catalog import build_index_series
from .engines.base import EvaluationClient, ImageSeries
from .exceptions import ComputationError, EngineError, SessionError
from .expressions import index_band
from .metrics import (
    soil_moisture_cache_hit_total,
    soil_moisture_computations_total,
)
from .reductions import STAGE_BOUNDARY, evaluate_stage, gather_or_cancel
from .regions import get_region_registry, select_regions
from .session import EngineSession, get_default_session
from .trends import trends
from .types import (
    IndexName,
    Region,
    RegionSummary,
    SoilMoistureResult,
    TimeStep,
    TrendPoint,
)

logger = logging.getLogger(__name__)

DEFAULT_INDEX = str(getattr(settings, "SOIL_MOISTURE_DEFAULT_INDEX", "smi"))
CACHE_TTL_SECONDS = int(
    getattr(settings, "SOIL_MOISTURE_CACHE_TTL_SECONDS", 3600)
)

STAGE_SESSION = "session"


@dataclass(frozen=True)
class CacheKey:
    engine: str
    index: str
    start: date
    end: date
    time_step: str
    region: str | None = None

    def as_string(self) -> str:
        region_part = slugify(self.region) if self.region else "-"
        return (
            f"soil_moisture:{self.engine}:{self.index}:"
            f"{self.start.isoformat()}:{self.end.isoformat()}:"
            f"{self.time_step}:{region_part}"
        )


async def resolve_boundaries(
    client: EvaluationClient, regions: Sequence[Region]
) -> dict[str, list[Any]]:
    coordinates = await gather_or_cancel(
        (
            evaluate_stage(
                client.geometry(region.extent).coordinates(),
                stage=STAGE_BOUNDARY,
            )
            for region in regions
        )
    )
    return {
        region.name: list(coords or [])
        for region, coords in zip(regions, coordinates, strict=True)
    }


def _feature(summary: RegionSummary) -> dict[str, Any]:
    return {
        "type": "Feature",
        "properties": {
            "region": summary.region,
            "value": summary.value,
            "average": summary.average,
            "status": summary.status.value,
        },
        "geometry": {
            "type": "Polygon",
            "coordinates": list(summary.boundary or []),
        },
    }


def assemble_result(
    summaries: Sequence[RegionSummary],
    boundaries: Mapping[str, list[Any]],
    trend_points: Sequence[TrendPoint],
) -> SoilMoistureResult:
    """Attach boundaries and build the map features; no I/O."""

    data = [
        replace(summary, boundary=boundaries.get(summary.region, []))
        for summary in summaries
    ]
    return SoilMoistureResult(
        data=data,
        regions=[_feature(summary) for summary in data],
        trends=list(trend_points),
    )


def _fail(stage: str, exc: BaseException) -> ComputationError:
    soil_moisture_computations_total.labels(outcome="failed").inc()
    logger.warning(
        "soil_moisture.compute.failed stage=%s err=%s", stage, exc
    )
    return ComputationError(stage, exc)


async def compute_soil_moisture_index(
    start: date,
    end: date,
    time_step: TimeStep | str = "weekly",
    region: str | None = None,
    *,
    index: IndexName | str | None = None,
    session: EngineSession | None = None,
    registry: Mapping[str, Region] | None = None,
) -> SoilMoistureResult:
    """Summaries, boundaries and trends for the selected regions.

    Inputs are expected to be validated by the caller. Either the whole
    result is returned or a single `ComputationError` is raised.
    """

    index_name = cast(IndexName, (index or DEFAULT_INDEX).lower())
    band = index_band(index_name)
    selected = select_regions(
        registry if registry is not None else get_region_registry(), region
    )
    session = session or get_default_session()

    key = CacheKey(
        engine=session.client.name,
        index=index_name,
        start=start,
        end=end,
        time_step=str(time_step),
        region=region,
    )
    cache = caches["default"]
    cached = cache.get(key.as_string())
    if cached:
        soil_moisture_cache_hit_total.labels(layer="result").inc()
        return cast(SoilMoistureResult, cached)

    logger.info(
        "soil_moisture.compute.start start=%s end=%s step=%s regions=%s "
        "index=%s",
        start,
        end,
        time_step,
        len(selected),
        index_name,
    )
    try:
        client = await session.ensure()
    except SessionError as exc:
        raise _fail(STAGE_SESSION, exc) from exc

    def fetch_series(series_start: date, series_end: date) -> ImageSeries:
        return build_index_series(
            client, series_start, series_end, index_name
        )

    index_series = fetch_series(start, end)
    try:
        summaries, trend_points, boundaries = await gather_or_cancel(
            [
                summarize(
                    client,
                    selected,
                    index_series,
                    start,
                    end,
                    band=band,
                    fetch_series=fetch_series,
                ),
                trends(client, index_series, selected, time_step, band=band),
                resolve_boundaries(client, selected),
            ]
        )
    except EngineError as exc:
        raise _fail(exc.stage or "evaluation", exc) from exc

    result = assemble_result(summaries, boundaries, trend_points)
    cache.set(key.as_string(), result, CACHE_TTL_SECONDS)
    soil_moisture_computations_total.labels(outcome="success").inc()
    logger.info(
        "soil_moisture.compute.done regions=%s trend_points=%s",
        len(result.data),
        len(result.trends),
    )
    return result
