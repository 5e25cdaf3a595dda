from __future__ import annotations

from django.urls import path

from .views import SoilMoistureRegionsView, SoilMoistureView

urlpatterns = [
    path(
        "soil-moisture/",
        SoilMoistureView.as_view(),
        name="soil-moisture",
    ),
    path(
        "soil-moisture/regions/",
        SoilMoistureRegionsView.as_view(),
        name="soil-moisture-regions",
    ),
]
