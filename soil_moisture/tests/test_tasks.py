from __future__ import annotations

# ruff: noqa: S101
from datetime import date, timedelta
from typing import Any
from unittest.mock import patch

import pytest

from soil_moisture import tasks as tasks_module
from soil_moisture.exceptions import ComputationError, EngineError
from soil_moisture.tasks import refresh_soil_moisture_cache
from soil_moisture.types import SoilMoistureResult


def test_refresh_recomputes_trailing_window(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured: dict[str, Any] = {}

    async def _fake_compute(
        start: date, end: date, time_step: str
    ) -> SoilMoistureResult:
        captured.update(start=start, end=end, time_step=time_step)
        return SoilMoistureResult(data=[], regions=[])

    monkeypatch.setattr(
        tasks_module, "compute_soil_moisture_index", _fake_compute
    )

    result = refresh_soil_moisture_cache.apply(
        kwargs={"time_step": "monthly", "lookback_days": 30}
    ).get()

    assert result == "ok"
    assert captured["time_step"] == "monthly"
    assert captured["end"] - captured["start"] == timedelta(days=30)


def test_refresh_retries_on_computation_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _failing(*args: object) -> SoilMoistureResult:
        raise ComputationError(
            "trend reduction", EngineError("Computation timed out.")
        )

    monkeypatch.setattr(tasks_module, "compute_soil_moisture_index", _failing)

    with patch.object(
        refresh_soil_moisture_cache,
        "retry",
        side_effect=RuntimeError("retry"),
    ) as retry:
        with pytest.raises(RuntimeError, match="retry"):
            refresh_soil_moisture_cache.apply().get()

    assert isinstance(retry.call_args.kwargs["exc"], ComputationError)
