"""Soil moisture API endpoints.

Responses use `config.api.responses.success_response`
(status/message/data/errors). Engine failures surface through the global
exception handler as a 502 envelope naming the failed stage.
"""

from __future__ import annotations

from typing import cast

from asgiref.sync import async_to_sync
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiTypes,
    extend_schema,
    inline_serializer,
)
from rest_framework import serializers
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from config.api.openapi import (
    error_envelope_serializer,
    success_envelope_serializer,
)
from config.api.responses import JSONValue, success_response

from .regions import get_region_registry, select_regions
from .serializers import (
    RegionSerializer,
    RegionSummarySerializer,
    SoilMoistureQuerySerializer,
    TrendPointSerializer,
    serialize_regions,
    serialize_result,
)
from .services import compute_soil_moisture_index

soil_moisture_error_schema = error_envelope_serializer(
    "SoilMoistureErrorResponse"
)

soil_moisture_success_schema = success_envelope_serializer(
    "SoilMoistureSuccess",
    data=inline_serializer(
        name="SoilMoistureData",
        fields={
            "data": RegionSummarySerializer(many=True),
            "regions": serializers.ListField(child=serializers.JSONField()),
            "trends": TrendPointSerializer(many=True),
        },
    ),
)

regions_success_schema = success_envelope_serializer(
    "SoilMoistureRegionsSuccess",
    data=inline_serializer(
        name="SoilMoistureRegionsData",
        fields={"regions": RegionSerializer(many=True)},
    ),
)


class SoilMoistureView(APIView):
    """Soil moisture index per region, with baseline status and trends."""

    permission_classes = [AllowAny]

    @extend_schema(
        parameters=[
            OpenApiParameter(
                name="start_date",
                type=OpenApiTypes.DATE,
                location=OpenApiParameter.QUERY,
                required=True,
            ),
            OpenApiParameter(
                name="end_date",
                type=OpenApiTypes.DATE,
                location=OpenApiParameter.QUERY,
                required=True,
            ),
            OpenApiParameter(
                name="time_step",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Trend bucket: daily, weekly (default), monthly",
            ),
            OpenApiParameter(
                name="region",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Single registered region (default: all)",
            ),
            OpenApiParameter(
                name="index",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Index to compute: smi (default) or ndmi",
            ),
        ],
        responses={
            200: soil_moisture_success_schema,
            400: soil_moisture_error_schema,
            502: soil_moisture_error_schema,
        },
    )
    def get(self, request: Request) -> Response:
        serializer = SoilMoistureQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        result = async_to_sync(compute_soil_moisture_index)(
            params["start_date"],
            params["end_date"],
            params.get("time_step") or "weekly",
            params.get("region"),
            index=params.get("index"),
        )
        return success_response(serialize_result(result))


class SoilMoistureRegionsView(APIView):
    """Registered regions and their extents."""

    permission_classes = [AllowAny]

    @extend_schema(responses={200: regions_success_schema})
    def get(self, request: Request) -> Response:
        regions = select_regions(get_region_registry())
        return success_response(
            {"regions": cast(JSONValue, serialize_regions(regions))}
        )
