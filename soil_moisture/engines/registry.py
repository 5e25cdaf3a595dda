from __future__ import annotations

from collections.abc import Callable

from django.conf import settings

from .base import EvaluationClient
from .earthengine import EarthEngineClient

CLIENT_FACTORIES: dict[str, Callable[[], EvaluationClient]] = {
    "earthengine": EarthEngineClient,
}


def default_engine_name() -> str:
    configured = getattr(settings, "SOIL_MOISTURE_ENGINE", "earthengine")
    return str(configured).lower()


def build_client(engine_name: str | None = None) -> EvaluationClient:
    name = (engine_name or default_engine_name()).lower()
    factory = CLIENT_FACTORIES.get(name)
    if factory is None:
        raise ValueError(f"Unsupported soil moisture engine: {name}")
    return factory()
