from __future__ import annotations

# ruff: noqa: S101
import json
from datetime import UTC, date, datetime
from io import StringIO
from typing import Any

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from soil_moisture.exceptions import ComputationError, EngineError
from soil_moisture.management.commands import soil_moisture_compute
from soil_moisture.types import (
    MoistureStatus,
    RegionSummary,
    SoilMoistureResult,
)


@pytest.fixture
def calls(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    recorded: list[dict[str, Any]] = []

    async def _fake_compute(
        start: date,
        end: date,
        time_step: str,
        region: str | None,
        *,
        index: str | None,
    ) -> SoilMoistureResult:
        recorded.append(
            {
                "start": start,
                "end": end,
                "time_step": time_step,
                "region": region,
                "index": index,
            }
        )
        summary = RegionSummary(
            region="Eastern Basin",
            value=0.05,
            average=0.2,
            status=MoistureStatus.SEVERE_DROUGHT,
            observed_at=datetime(2023, 6, 30, tzinfo=UTC),
            boundary=[],
        )
        return SoilMoistureResult(data=[summary], regions=[])

    monkeypatch.setattr(
        soil_moisture_compute, "compute_soil_moisture_index", _fake_compute
    )
    return recorded


def test_command_prints_result_as_json(calls: list) -> None:
    out = StringIO()
    call_command(
        "soil_moisture_compute",
        "--start=2023-01-01",
        "--end=2023-06-30",
        "--time-step=monthly",
        "--region=Eastern Basin",
        stdout=out,
    )

    payload = json.loads(out.getvalue())
    assert payload["data"][0]["region"] == "Eastern Basin"
    assert payload["data"][0]["status"] == "Severe Drought"
    assert payload["trends"] == []
    assert calls == [
        {
            "start": date(2023, 1, 1),
            "end": date(2023, 6, 30),
            "time_step": "monthly",
            "region": "Eastern Basin",
            "index": None,
        }
    ]


@pytest.mark.parametrize(
    ("start", "end", "message"),
    [
        ("yesterday", "2023-06-30", "Invalid date"),
        ("2023-07-01", "2023-06-30", "must be before"),
        ("2023-06-30", "2023-06-30", "must be before"),
    ],
)
def test_command_rejects_bad_dates(
    calls: list, start: str, end: str, message: str
) -> None:
    with pytest.raises(CommandError, match=message):
        call_command(
            "soil_moisture_compute", f"--start={start}", f"--end={end}"
        )
    assert calls == []


def test_command_reports_computation_errors(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _failing(*args: object, **kwargs: object) -> None:
        raise ComputationError(
            "baseline reduction", EngineError("User memory limit exceeded.")
        )

    monkeypatch.setattr(
        soil_moisture_compute, "compute_soil_moisture_index", _failing
    )

    with pytest.raises(CommandError, match="User memory limit exceeded"):
        call_command(
            "soil_moisture_compute", "--start=2023-01-01", "--end=2023-02-01"
        )
