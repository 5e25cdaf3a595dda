"""Per-region current value vs. historical baseline."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime, time
from typing import Final

from .engines.base import EvaluationClient, ImageSeries
from .reductions import (
    STAGE_BASELINE,
    STAGE_CURRENT,
    SUMMARY_MAX_PIXELS,
    gather_or_cancel,
    reduce_mean,
)
from .timeutils import shift_years
from .types import MoistureStatus, Region, RegionSummary

logger = logging.getLogger(__name__)

BASELINE_YEARS: Final[int] = 5

ABOVE_NORMAL_DELTA: Final[float] = 0.2
NORMAL_DELTA: Final[float] = 0.1
DROUGHT_DELTA: Final[float] = 0.0

SeriesFetcher = Callable[[date, date], ImageSeries]


def classify_status(delta: float) -> MoistureStatus:
    """Map `value - average` to a status; boundaries fall to the lower one."""

    if delta > ABOVE_NORMAL_DELTA:
        return MoistureStatus.ABOVE_NORMAL
    if delta > NORMAL_DELTA:
        return MoistureStatus.NORMAL
    if delta > DROUGHT_DELTA:
        return MoistureStatus.MODERATE_DROUGHT
    return MoistureStatus.SEVERE_DROUGHT


def baseline_start(start: date) -> date:
    return shift_years(start, -BASELINE_YEARS)


async def _summarize_region(
    client: EvaluationClient,
    region: Region,
    *,
    current: ImageSeries,
    baseline: ImageSeries,
    band: str,
    observed_at: datetime,
) -> RegionSummary:
    value, average = await gather_or_cancel(
        [
            reduce_mean(
                client,
                current.mean(),
                region,
                band=band,
                max_pixels=SUMMARY_MAX_PIXELS,
                stage=STAGE_CURRENT,
            ),
            reduce_mean(
                client,
                baseline.mean(),
                region,
                band=band,
                max_pixels=SUMMARY_MAX_PIXELS,
                stage=STAGE_BASELINE,
            ),
        ]
    )
    status = classify_status(value - average)
    logger.debug(
        "soil_moisture.summary region=%s value=%s average=%s status=%s",
        region.name,
        value,
        average,
        status.value,
    )
    return RegionSummary(
        region=region.name,
        value=value,
        average=average,
        status=status,
        observed_at=observed_at,
    )


async def summarize(
    client: EvaluationClient,
    regions: Sequence[Region],
    index_series: ImageSeries,
    start: date,
    end: date,
    *,
    band: str,
    fetch_series: SeriesFetcher,
) -> list[RegionSummary]:
    """Summaries for every region, all regions evaluated concurrently.

    The baseline is a separate catalog query over the 5 years before
    `start` through `end`. Any failed reduction fails the whole batch.
    """

    current = index_series.filter_date(start, end)
    baseline = fetch_series(baseline_start(start), end)
    observed_at = datetime.combine(end, time.min, tzinfo=UTC)
    return await gather_or_cancel(
        (
            _summarize_region(
                client,
                region,
                current=current,
                baseline=baseline,
                band=band,
                observed_at=observed_at,
            )
            for region in regions
        )
    )
