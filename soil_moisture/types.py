from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal

from django.db import models

TimeStep = Literal["daily", "weekly", "monthly"]
IndexName = Literal["smi", "ndmi"]


class MoistureStatus(models.TextChoices):
    ABOVE_NORMAL = "Above Normal", "Above Normal"
    NORMAL = "Normal", "Normal"
    MODERATE_DROUGHT = "Moderate Drought", "Moderate Drought"
    SEVERE_DROUGHT = "Severe Drought", "Severe Drought"


@dataclass(frozen=True)
class BBox:
    """Axis-aligned extent in WGS84 decimal degrees."""

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float


@dataclass(frozen=True)
class Region:
    name: str
    extent: BBox


@dataclass(frozen=True)
class RegionSummary:
    """Current-period index value against its 5-year baseline."""

    region: str
    value: float
    average: float
    status: MoistureStatus
    observed_at: datetime
    boundary: Sequence[Any] | None = None


@dataclass(frozen=True)
class TrendPoint:
    label: str
    date: date
    values_by_region: Mapping[str, float]


@dataclass(frozen=True)
class SoilMoistureResult:
    data: Sequence[RegionSummary]
    regions: Sequence[dict[str, Any]]
    trends: Sequence[TrendPoint] = field(default_factory=tuple)
