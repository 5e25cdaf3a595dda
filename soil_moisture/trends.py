"""Time-bucketed index means per region."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date

from django.conf import settings

from .engines.base import EvaluationClient, ImageSeries
from .reductions import (
    STAGE_DISCOVERY,
    STAGE_TREND,
    TREND_MAX_PIXELS,
    evaluate_stage,
    gather_or_cancel,
    reduce_mean,
)
from .timeutils import step_end
from .types import Region, TimeStep, TrendPoint

logger = logging.getLogger(__name__)

LABEL_FORMAT = str(getattr(settings, "SOIL_MOISTURE_TREND_LABEL_FORMAT", "%b"))


async def discover_dates(index_series: ImageSeries) -> list[date]:
    raw_dates = await evaluate_stage(
        index_series.distinct_dates(), stage=STAGE_DISCOVERY
    )
    return [date.fromisoformat(str(raw)) for raw in raw_dates or []]


async def _bucket_point(
    client: EvaluationClient,
    index_series: ImageSeries,
    regions: Sequence[Region],
    bucket_start: date,
    time_step: TimeStep | str,
    *,
    band: str,
) -> TrendPoint:
    composite = index_series.filter_date(
        bucket_start, step_end(bucket_start, time_step)
    ).mean()
    values = await gather_or_cancel(
        (
            reduce_mean(
                client,
                composite,
                region,
                band=band,
                max_pixels=TREND_MAX_PIXELS,
                stage=STAGE_TREND,
            )
            for region in regions
        )
    )
    return TrendPoint(
        label=bucket_start.strftime(LABEL_FORMAT),
        date=bucket_start,
        values_by_region={
            region.name: value
            for region, value in zip(regions, values, strict=True)
        },
    )


async def trends(
    client: EvaluationClient,
    index_series: ImageSeries,
    regions: Sequence[Region],
    time_step: TimeStep | str,
    *,
    band: str,
) -> list[TrendPoint]:
    """One point per distinct observation date, in discovery order.

    Buckets are `[date, date + step)` and are evaluated one after another;
    regions inside a bucket are reduced concurrently.
    """

    bucket_starts = await discover_dates(index_series)
    logger.info(
        "soil_moisture.trends.discovered buckets=%s step=%s",
        len(bucket_starts),
        time_step,
    )
    points: list[TrendPoint] = []
    for bucket_start in bucket_starts:
        points.append(
            await _bucket_point(
                client,
                index_series,
                regions,
                bucket_start,
                time_step,
                band=band,
            )
        )
    return points
