"""Google Earth Engine adapter for the evaluation client interface."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from datetime import date
from typing import Any, Final, TypeVar

import ee
from django.conf import settings
from googleapiclient.errors import HttpError

from ..exceptions import EngineError, EngineTimeoutError, SessionError
from ..types import BBox
from .base import (
    EngineCredentials,
    EvaluationClient,
    Image,
    ImageSeries,
    Operand,
    ReductionResult,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT: Final[float] = float(
    getattr(settings, "SOIL_MOISTURE_ENGINE_TIMEOUT_SECONDS", 120)
)
DEFAULT_MAX_CONCURRENCY: Final[int] = int(
    getattr(settings, "SOIL_MOISTURE_ENGINE_MAX_CONCURRENCY", 8)
)


def _unwrap(other: Operand) -> Any:
    if isinstance(other, EarthEngineImage):
        return other.ee_image
    return other


class EarthEngineValue:
    """Deferred `ee.ComputedObject`; `evaluate` runs `getInfo` off-loop."""

    def __init__(self, client: EarthEngineClient, obj: Any) -> None:
        self._client = client
        self._obj = obj

    async def evaluate(self) -> Any:
        return await self._client.evaluate(self._obj.getInfo)


class EarthEngineGeometry:
    def __init__(self, client: EarthEngineClient, geometry: Any) -> None:
        self._client = client
        self.ee_geometry = geometry

    def coordinates(self) -> EarthEngineValue:
        return EarthEngineValue(self._client, self.ee_geometry.coordinates())


class EarthEngineImage:
    def __init__(self, client: EarthEngineClient, image: Any) -> None:
        self._client = client
        self.ee_image = image

    def _wrap(self, image: Any) -> EarthEngineImage:
        return EarthEngineImage(self._client, image)

    def select(self, band: str) -> EarthEngineImage:
        return self._wrap(self.ee_image.select(band))

    def normalized_difference(
        self, band_a: str, band_b: str
    ) -> EarthEngineImage:
        return self._wrap(self.ee_image.normalizedDifference([band_a, band_b]))

    def add(self, other: Operand) -> EarthEngineImage:
        return self._wrap(self.ee_image.add(_unwrap(other)))

    def subtract(self, other: Operand) -> EarthEngineImage:
        return self._wrap(self.ee_image.subtract(_unwrap(other)))

    def multiply(self, other: Operand) -> EarthEngineImage:
        return self._wrap(self.ee_image.multiply(_unwrap(other)))

    def divide(self, other: Operand) -> EarthEngineImage:
        # Earth Engine masks x/0 cells, so they drop out of mean reductions.
        return self._wrap(self.ee_image.divide(_unwrap(other)))

    def pow(self, exponent: float) -> EarthEngineImage:
        return self._wrap(self.ee_image.pow(exponent))

    def log(self) -> EarthEngineImage:
        return self._wrap(self.ee_image.log())

    def clamp(self, low: float, high: float) -> EarthEngineImage:
        return self._wrap(self.ee_image.clamp(low, high))

    def rename(self, name: str) -> EarthEngineImage:
        return self._wrap(self.ee_image.rename(name))

    def add_bands(self, other: Image) -> EarthEngineImage:
        return self._wrap(self.ee_image.addBands(_unwrap(other)))

    def reduce_region(
        self, *, geometry: Any, scale: float, max_pixels: float
    ) -> EarthEngineValue:
        reduction = self.ee_image.reduceRegion(
            reducer=ee.Reducer.mean(),
            geometry=geometry.ee_geometry,
            scale=scale,
            maxPixels=max_pixels,
        )
        return EarthEngineValue(self._client, reduction)


class EarthEngineSeries:
    def __init__(self, client: EarthEngineClient, collection: Any) -> None:
        self._client = client
        self.ee_collection = collection

    def _wrap(self, collection: Any) -> EarthEngineSeries:
        return EarthEngineSeries(self._client, collection)

    def filter_date(self, start: date, end: date) -> EarthEngineSeries:
        return self._wrap(
            self.ee_collection.filterDate(start.isoformat(), end.isoformat())
        )

    def map(self, fn: Callable[[Image], Image]) -> EarthEngineSeries:
        client = self._client

        def _apply(raw: Any) -> Any:
            result = fn(EarthEngineImage(client, ee.Image(raw)))
            return _unwrap(result)

        return self._wrap(self.ee_collection.map(_apply))

    def merge(self, other: ImageSeries) -> EarthEngineSeries:
        if not isinstance(other, EarthEngineSeries):
            raise TypeError("Can only merge Earth Engine series")
        return self._wrap(self.ee_collection.merge(other.ee_collection))

    def mean(self) -> EarthEngineImage:
        return EarthEngineImage(self._client, self.ee_collection.mean())

    def distinct_dates(self) -> EarthEngineValue:
        dates = (
            self.ee_collection.aggregate_array("system:time_start")
            .map(lambda millis: ee.Date(millis).format("YYYY-MM-dd"))
            .distinct()
            .sort()
        )
        return EarthEngineValue(self._client, dates)


class EarthEngineClient(EvaluationClient):
    """Evaluate deferred graphs on Google Earth Engine.

    `getInfo` is blocking, so each evaluation runs in a worker thread and
    several round trips can be outstanding at once. At most
    `max_concurrency` evaluations hit the engine concurrently.
    """

    name: Final[str] = "earthengine"

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds or DEFAULT_TIMEOUT
        self.max_concurrency = max_concurrency or DEFAULT_MAX_CONCURRENCY
        self._slots = threading.BoundedSemaphore(self.max_concurrency)

    def authenticate(self, credentials: EngineCredentials) -> None:
        logger.info(
            "soil_moisture.earthengine.authenticate client_email=%s",
            credentials.client_email,
        )
        try:
            service_account = ee.ServiceAccountCredentials(
                credentials.client_email, key_data=credentials.private_key
            )
            ee.Initialize(service_account, project=credentials.project)
        except Exception as exc:
            raise SessionError(
                f"Earth Engine initialization failed: {exc}"
            ) from exc

    def catalog(
        self, source_id: str, start: date, end: date
    ) -> EarthEngineSeries:
        collection = ee.ImageCollection(source_id).filterDate(
            start.isoformat(), end.isoformat()
        )
        return EarthEngineSeries(self, collection)

    def geometry(self, bbox: BBox) -> EarthEngineGeometry:
        rectangle = ee.Geometry.Rectangle(
            [bbox.min_lon, bbox.min_lat, bbox.max_lon, bbox.max_lat]
        )
        return EarthEngineGeometry(self, rectangle)

    async def evaluate(self, fetch: Callable[[], T]) -> T:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._run_limited, fetch),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as exc:
            raise EngineTimeoutError(
                "Earth Engine evaluation timed out after "
                f"{self.timeout_seconds}s"
            ) from exc
        except ee.EEException as exc:
            raise EngineError(str(exc)) from exc
        except (OSError, HttpError) as exc:
            raise EngineError(f"Earth Engine request failed: {exc}") from exc

    def _run_limited(self, fetch: Callable[[], T]) -> T:
        with self._slots:
            return fetch()

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return (
            "EarthEngineClient("
            f"timeout={self.timeout_seconds}, "
            f"max_concurrency={self.max_concurrency}"
            ")"
        )
