"""Staged remote evaluation and the fixed spatial-mean reduction."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Coroutine, Iterable
from typing import Any, Final, TypeVar

from .engines.base import DeferredValue, EvaluationClient, Image
from .exceptions import EngineError
from .metrics import (
    soil_moisture_evaluation_latency_seconds,
    soil_moisture_evaluations_total,
)
from .types import Region

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCALE_METERS: Final[int] = 30
SUMMARY_MAX_PIXELS: Final[float] = 1e13
TREND_MAX_PIXELS: Final[float] = 1e9

STAGE_DISCOVERY: Final[str] = "date discovery"
STAGE_CURRENT: Final[str] = "current period reduction"
STAGE_BASELINE: Final[str] = "baseline reduction"
STAGE_TREND: Final[str] = "trend reduction"
STAGE_BOUNDARY: Final[str] = "boundary resolution"


async def evaluate_stage(value: DeferredValue[T], *, stage: str) -> T:
    """Evaluate `value`, tagging any engine failure with `stage`."""

    started = time.perf_counter()
    try:
        result = await value.evaluate()
    except EngineError as exc:
        soil_moisture_evaluations_total.labels(
            stage=stage, outcome=exc.__class__.__name__
        ).inc()
        raise type(exc)(str(exc), stage=stage) from exc
    finally:
        soil_moisture_evaluation_latency_seconds.labels(stage=stage).observe(
            time.perf_counter() - started
        )
    soil_moisture_evaluations_total.labels(
        stage=stage, outcome="success"
    ).inc()
    return result


def _first_error(group: BaseExceptionGroup) -> BaseException:
    error: BaseException = group
    while isinstance(error, BaseExceptionGroup):
        error = error.exceptions[0]
    return error


async def gather_or_cancel(
    coros: Iterable[Coroutine[Any, Any, T]],
) -> list[T]:
    """Run `coros` concurrently and return their results in order.

    The first failure cancels every sibling still running and is re-raised
    on its own, so callers see the original `EngineError` and no evaluation
    outlives the request.
    """

    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except BaseExceptionGroup as exc:
        raise _first_error(exc)  # noqa: B904
    return [task.result() for task in tasks]


def _as_mean(raw: object, *, band: str, stage: str) -> float:
    if raw is None:
        return 0.0
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        raise EngineError(
            f"Unexpected reduction value for {band}: {raw!r}", stage=stage
        )
    value = float(raw)
    if math.isnan(value):
        return 0.0
    return value


async def reduce_mean(
    client: EvaluationClient,
    image: Image,
    region: Region,
    *,
    band: str,
    max_pixels: float,
    stage: str,
) -> float:
    """Mean of `band` over the region at the fixed 30 m scale.

    A region without qualifying pixels yields 0.0; engine failures raise.
    """

    reduction = image.reduce_region(
        geometry=client.geometry(region.extent),
        scale=SCALE_METERS,
        max_pixels=max_pixels,
    )
    result = await evaluate_stage(reduction, stage=stage)
    value = (result or {}).get(band)
    if value is None:
        logger.debug(
            "soil_moisture.reduce.empty region=%s band=%s stage=%s",
            region.name,
            band,
            stage,
        )
    return _as_mean(value, band=band, stage=stage)
