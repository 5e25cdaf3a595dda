"""Project-level non-DRF views."""

from __future__ import annotations

from django.http import HttpRequest, JsonResponse


def home(request: HttpRequest) -> JsonResponse:
    """Return service metadata and the main endpoint links."""
    return JsonResponse(
        {
            "ok": True,
            "service": "soil-moisture-api",
            "soil_moisture": "/api/v1/soil-moisture/",
            "regions": "/api/v1/soil-moisture/regions/",
            "docs": "/api/docs/",
        }
    )
