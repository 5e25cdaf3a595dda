from __future__ import annotations

from prometheus_client import Counter, Histogram

soil_moisture_evaluations_total = Counter(
    "soil_moisture_evaluations_total",
    "Remote engine evaluations issued by the soil moisture pipeline",
    labelnames=["stage", "outcome"],
)

soil_moisture_evaluation_latency_seconds = Histogram(
    "soil_moisture_evaluation_latency_seconds",
    "Latency of remote engine evaluations",
    labelnames=["stage"],
    buckets=(0.1, 0.3, 0.5, 1, 2, 5, 10, 20, 30, 60, 120),
)

soil_moisture_computations_total = Counter(
    "soil_moisture_computations_total",
    "Soil moisture index computations",
    labelnames=["outcome"],
)

soil_moisture_cache_hit_total = Counter(
    "soil_moisture_cache_hit_total",
    "Cache hits by soil moisture layer",
    labelnames=["layer"],
)
