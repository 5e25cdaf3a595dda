from __future__ import annotations

from django.apps import AppConfig


class SoilMoistureConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "soil_moisture"
    verbose_name = "Soil moisture"
