from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any

from asgiref.sync import async_to_sync
from celery import shared_task
from django.conf import settings

from .exceptions import ComputationError
from .services import compute_soil_moisture_index

logger = logging.getLogger(__name__)

REFRESH_LOOKBACK_DAYS = int(
    getattr(settings, "SOIL_MOISTURE_REFRESH_LOOKBACK_DAYS", 90)
)


@shared_task(bind=True, max_retries=3, default_retry_delay=300)
def refresh_soil_moisture_cache(
    self: Any,
    time_step: str = "weekly",
    lookback_days: int | None = None,
) -> str:
    """Recompute the trailing window so dashboard requests hit the cache."""

    end = date.today()
    start = end - timedelta(days=lookback_days or REFRESH_LOOKBACK_DAYS)
    try:
        result = async_to_sync(compute_soil_moisture_index)(
            start, end, time_step
        )
    except ComputationError as exc:
        logger.warning(
            "soil_moisture.refresh.failed stage=%s err=%s", exc.stage, exc
        )
        raise self.retry(exc=exc) from exc
    logger.info(
        "soil_moisture.refresh.done start=%s end=%s regions=%s",
        start,
        end,
        len(result.data),
    )
    return "ok"
