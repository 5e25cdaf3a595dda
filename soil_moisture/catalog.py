"""Observation catalog queries feeding the index pipeline."""

from __future__ import annotations

from datetime import date
from typing import Final

from .engines.base import EvaluationClient, ImageSeries
from .expressions import index_mapper
from .types import IndexName

LANDSAT_SOURCES: Final[tuple[str, ...]] = (
    "LANDSAT/LC08/C02/T1_L2",
    "LANDSAT/LC09/C02/T1_L2",
)


def build_index_series(
    client: EvaluationClient,
    start: date,
    end: date,
    index: IndexName = "smi",
) -> ImageSeries:
    """Merged Landsat 8/9 series in `[start, end)` with the index band added.

    Purely descriptive: no request reaches the engine here.
    """

    mapper = index_mapper(index)
    first, *rest = LANDSAT_SOURCES
    series = client.catalog(first, start, end).map(mapper)
    for source_id in rest:
        mapped = client.catalog(source_id, start, end).map(mapper)
        series = series.merge(mapped)
    return series
