"""Static registry of named regions and their extents."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from functools import lru_cache
from types import MappingProxyType
from typing import Any

from django.conf import settings

from .types import BBox, Region

DEFAULT_REGIONS: dict[str, list[float]] = {
    "North Region": [36.5, 0.5, 38.0, 2.0],
    "Central Plains": [36.0, -1.0, 37.5, 0.5],
    "Eastern Basin": [38.0, -1.5, 39.5, 0.0],
    "Southern Valley": [36.5, -3.0, 38.0, -1.5],
    "Western Hills": [34.5, -1.0, 36.0, 0.5],
}


def _to_bbox(name: str, raw: Sequence[Any]) -> BBox:
    if len(raw) != 4:
        raise ValueError(
            f"Region {name!r} must be [min_lon, min_lat, max_lon, max_lat]."
        )
    min_lon, min_lat, max_lon, max_lat = (float(v) for v in raw)
    if min_lon >= max_lon or min_lat >= max_lat:
        raise ValueError(
            f"Region {name!r} must have min_lon < max_lon and "
            "min_lat < max_lat."
        )
    return BBox(
        min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat
    )


def build_registry(
    config: Mapping[str, Sequence[Any]],
) -> Mapping[str, Region]:
    """Return a read-only name -> Region mapping, preserving config order."""

    regions = {
        name: Region(name=name, extent=_to_bbox(name, raw))
        for name, raw in config.items()
    }
    return MappingProxyType(regions)


@lru_cache(maxsize=1)
def get_region_registry() -> Mapping[str, Region]:
    configured = getattr(settings, "SOIL_MOISTURE_REGIONS", None)
    return build_registry(configured or DEFAULT_REGIONS)


def select_regions(
    registry: Mapping[str, Region], name: str | None = None
) -> list[Region]:
    if name is None:
        return list(registry.values())
    try:
        return [registry[name]]
    except KeyError as exc:
        raise ValueError(f"Unknown region: {name}") from exc
