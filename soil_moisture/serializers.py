from __future__ import annotations

from datetime import date
from typing import Any, ClassVar

from django.conf import settings
from rest_framework import serializers

from config.api.responses import JSONValue

from .expressions import INDEX_BANDS
from .regions import get_region_registry
from .types import Region, SoilMoistureResult

MAX_RANGE_DAYS = int(getattr(settings, "SOIL_MOISTURE_MAX_RANGE_DAYS", 731))
TIME_STEPS = ("daily", "weekly", "monthly")


class SoilMoistureQuerySerializer(serializers.Serializer):
    start_date: ClassVar[serializers.DateField] = serializers.DateField()
    end_date: ClassVar[serializers.DateField] = serializers.DateField()
    time_step: ClassVar[serializers.ChoiceField] = serializers.ChoiceField(
        choices=TIME_STEPS, required=False, default="weekly"
    )
    region: ClassVar[serializers.CharField] = serializers.CharField(
        required=False, allow_null=True, allow_blank=True
    )
    index: ClassVar[serializers.CharField] = serializers.CharField(
        required=False, allow_null=True, allow_blank=True
    )

    def validate_region(self, value: str | None) -> str | None:
        if not value:
            return None
        if value not in get_region_registry():
            raise serializers.ValidationError("Unknown region.")
        return value

    def validate_index(self, value: str | None) -> str | None:
        if not value:
            return None
        normalized = value.lower()
        if normalized not in INDEX_BANDS:
            raise serializers.ValidationError("Unknown index.")
        return normalized

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        attrs = super().validate(attrs)
        start = attrs.get("start_date")
        end = attrs.get("end_date")
        if isinstance(start, date) and isinstance(end, date):
            if start >= end:
                raise serializers.ValidationError(
                    "start_date must be before end_date."
                )
            if (end - start).days > MAX_RANGE_DAYS:
                raise serializers.ValidationError(
                    "Requested range exceeds SOIL_MOISTURE_MAX_RANGE_DAYS."
                )
        return attrs


class RegionSummarySerializer(serializers.Serializer):
    region: ClassVar[serializers.CharField] = serializers.CharField()
    value: ClassVar[serializers.FloatField] = serializers.FloatField()
    average: ClassVar[serializers.FloatField] = serializers.FloatField()
    status: ClassVar[serializers.CharField] = serializers.CharField()
    observed_at: ClassVar[serializers.DateTimeField] = (
        serializers.DateTimeField()
    )
    boundary: ClassVar[serializers.JSONField] = serializers.JSONField()


class TrendPointSerializer(serializers.Serializer):
    label: ClassVar[serializers.CharField] = serializers.CharField()
    date: ClassVar[serializers.DateField] = serializers.DateField()
    values_by_region: ClassVar[serializers.DictField] = serializers.DictField(
        child=serializers.FloatField()
    )


class RegionSerializer(serializers.Serializer):
    name: ClassVar[serializers.CharField] = serializers.CharField()
    extent: ClassVar[serializers.SerializerMethodField] = (
        serializers.SerializerMethodField()
    )

    def get_extent(self, obj: Region) -> list[float]:
        return [
            obj.extent.min_lon,
            obj.extent.min_lat,
            obj.extent.max_lon,
            obj.extent.max_lat,
        ]


def serialize_result(result: SoilMoistureResult) -> dict[str, JSONValue]:
    return {
        "data": list(RegionSummarySerializer(result.data, many=True).data),
        "regions": list(result.regions),
        "trends": list(TrendPointSerializer(result.trends, many=True).data),
    }


def serialize_regions(regions: list[Region]) -> list[dict[str, JSONValue]]:
    return list(RegionSerializer(regions, many=True).data)
