from __future__ import annotations

# ruff: noqa: S101
import asyncio
import threading
import time
from collections.abc import Callable
from datetime import date
from unittest.mock import MagicMock

import ee
import pytest
from googleapiclient.errors import HttpError

from soil_moisture.engines import earthengine
from soil_moisture.engines.earthengine import (
    EarthEngineClient,
    EarthEngineGeometry,
    EarthEngineImage,
    EarthEngineSeries,
    EarthEngineValue,
)
from soil_moisture.exceptions import (
    EngineError,
    EngineTimeoutError,
    SessionError,
)
from soil_moisture.tests.fakes import FAKE_CREDENTIALS
from soil_moisture.types import BBox


@pytest.fixture
def fake_ee(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    module = MagicMock(name="ee")
    module.EEException = ee.EEException
    monkeypatch.setattr(earthengine, "ee", module)
    return module


def _value(
    client: EarthEngineClient, get_info: Callable[[], object]
) -> EarthEngineValue:
    obj = MagicMock()
    obj.getInfo = get_info
    return EarthEngineValue(client, obj)


def test_authenticate_initializes_with_service_account(
    fake_ee: MagicMock,
) -> None:
    client = EarthEngineClient()
    client.authenticate(FAKE_CREDENTIALS)

    fake_ee.ServiceAccountCredentials.assert_called_once_with(
        FAKE_CREDENTIALS.client_email, key_data=FAKE_CREDENTIALS.private_key
    )
    fake_ee.Initialize.assert_called_once_with(
        fake_ee.ServiceAccountCredentials.return_value, project=None
    )


def test_authenticate_failure_is_a_session_error(fake_ee: MagicMock) -> None:
    fake_ee.Initialize.side_effect = ee.EEException("invalid_grant")

    with pytest.raises(SessionError, match="invalid_grant"):
        EarthEngineClient().authenticate(FAKE_CREDENTIALS)


def test_catalog_filters_half_open_window(fake_ee: MagicMock) -> None:
    series = EarthEngineClient().catalog(
        "LANDSAT/LC08/C02/T1_L2", date(2023, 1, 1), date(2023, 11, 30)
    )

    fake_ee.ImageCollection.assert_called_once_with("LANDSAT/LC08/C02/T1_L2")
    fake_ee.ImageCollection.return_value.filterDate.assert_called_once_with(
        "2023-01-01", "2023-11-30"
    )
    assert isinstance(series, EarthEngineSeries)


def test_geometry_is_a_rectangle(fake_ee: MagicMock) -> None:
    geometry = EarthEngineClient().geometry(BBox(36.5, 0.5, 38.0, 2.0))

    fake_ee.Geometry.Rectangle.assert_called_once_with([36.5, 0.5, 38.0, 2.0])
    assert geometry.ee_geometry is fake_ee.Geometry.Rectangle.return_value


def test_image_algebra_delegates_and_unwraps(fake_ee: MagicMock) -> None:
    client = EarthEngineClient()
    left = EarthEngineImage(client, MagicMock(name="left"))
    right = EarthEngineImage(client, MagicMock(name="right"))

    summed = left.add(right)
    scaled = left.multiply(0.5)
    nd = left.normalized_difference("SR_B5", "SR_B4")
    stacked = left.add_bands(right)

    left.ee_image.add.assert_called_once_with(right.ee_image)
    left.ee_image.multiply.assert_called_once_with(0.5)
    left.ee_image.normalizedDifference.assert_called_once_with(
        ["SR_B5", "SR_B4"]
    )
    left.ee_image.addBands.assert_called_once_with(right.ee_image)
    assert summed.ee_image is left.ee_image.add.return_value
    assert scaled.ee_image is left.ee_image.multiply.return_value
    assert nd.ee_image is left.ee_image.normalizedDifference.return_value
    assert stacked.ee_image is left.ee_image.addBands.return_value


def test_reduce_region_uses_mean_reducer(fake_ee: MagicMock) -> None:
    client = EarthEngineClient()
    image = EarthEngineImage(client, MagicMock())
    geometry = EarthEngineGeometry(client, MagicMock(name="rect"))

    value = image.reduce_region(geometry=geometry, scale=30, max_pixels=1e9)

    image.ee_image.reduceRegion.assert_called_once_with(
        reducer=fake_ee.Reducer.mean.return_value,
        geometry=geometry.ee_geometry,
        scale=30,
        maxPixels=1e9,
    )
    assert isinstance(value, EarthEngineValue)


def test_series_map_wraps_and_unwraps_images(fake_ee: MagicMock) -> None:
    client = EarthEngineClient()
    collection = MagicMock()
    series = EarthEngineSeries(client, collection)
    seen: list[EarthEngineImage] = []

    def _mapper(image: EarthEngineImage) -> EarthEngineImage:
        seen.append(image)
        return image.rename("SMI")

    mapped = series.map(_mapper)
    applied = collection.map.call_args.args[0]
    raw = object()
    result = applied(raw)

    fake_ee.Image.assert_called_once_with(raw)
    assert seen[0].ee_image is fake_ee.Image.return_value
    assert result is fake_ee.Image.return_value.rename.return_value
    assert mapped.ee_collection is collection.map.return_value


def test_merge_rejects_foreign_series() -> None:
    series = EarthEngineSeries(EarthEngineClient(), MagicMock())
    with pytest.raises(TypeError):
        series.merge(MagicMock())


def test_evaluate_returns_engine_value() -> None:
    client = EarthEngineClient()
    value = _value(client, lambda: {"SMI": 0.42})
    assert asyncio.run(value.evaluate()) == {"SMI": 0.42}


def test_evaluate_maps_engine_exceptions() -> None:
    client = EarthEngineClient()

    def _boom() -> None:
        raise ee.EEException("User memory limit exceeded.")

    with pytest.raises(EngineError, match="User memory limit exceeded"):
        asyncio.run(_value(client, _boom).evaluate())


@pytest.mark.parametrize(
    "error",
    [
        ConnectionError("connection reset by peer"),
        HttpError(
            MagicMock(status=503, reason="Service Unavailable"),
            b"backend unavailable",
        ),
    ],
    ids=["transport", "http"],
)
def test_evaluate_maps_request_failures(error: Exception) -> None:
    client = EarthEngineClient()

    def _boom() -> None:
        raise error

    with pytest.raises(EngineError, match="request failed") as excinfo:
        asyncio.run(_value(client, _boom).evaluate())
    assert excinfo.value.__cause__ is error
    assert not isinstance(excinfo.value, EngineTimeoutError)


def test_evaluate_times_out() -> None:
    client = EarthEngineClient(timeout_seconds=0.01)

    def _slow() -> int:
        time.sleep(0.2)
        return 1

    with pytest.raises(EngineTimeoutError, match="timed out"):
        asyncio.run(_value(client, _slow).evaluate())


def test_evaluations_respect_max_concurrency() -> None:
    client = EarthEngineClient(max_concurrency=2)
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    def _fetch() -> int:
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.02)
        with lock:
            state["active"] -= 1
        return 1

    async def _many() -> list[int]:
        return await asyncio.gather(
            *(_value(client, _fetch).evaluate() for _ in range(6))
        )

    assert asyncio.run(_many()) == [1] * 6
    assert state["peak"] <= 2
