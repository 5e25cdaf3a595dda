"""Engine abstractions for remote, lazily evaluated imagery analytics.

Nothing in these interfaces performs I/O except `DeferredValue.evaluate`.
Everything else only composes a computation graph on the remote engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol, TypeVar, Union

from ..types import BBox

T_co = TypeVar("T_co", covariant=True)

Operand = Union["Image", float]
ReductionResult = dict[str, float | None]


@dataclass(frozen=True)
class EngineCredentials:
    """Service-account credentials for the engine handshake."""

    client_email: str
    private_key: str
    project: str | None = None

    def __repr__(self) -> str:
        return (
            "EngineCredentials("
            f"client_email={self.client_email}, project={self.project}"
            ")"
        )


class DeferredValue(Protocol[T_co]):
    """Server-side value that only hits the network when evaluated."""

    async def evaluate(self) -> T_co:
        """Fetch the value; raise `EngineError` on failure."""


class Geometry(Protocol):
    def coordinates(self) -> DeferredValue[list[Any]]:
        """Return the polygon rings of this geometry."""


class Image(Protocol):
    """One observation (or composite) with named bands."""

    def select(self, band: str) -> Image: ...

    def normalized_difference(self, band_a: str, band_b: str) -> Image: ...

    def add(self, other: Operand) -> Image: ...

    def subtract(self, other: Operand) -> Image: ...

    def multiply(self, other: Operand) -> Image: ...

    def divide(self, other: Operand) -> Image: ...

    def pow(self, exponent: float) -> Image: ...

    def log(self) -> Image: ...

    def clamp(self, low: float, high: float) -> Image: ...

    def rename(self, name: str) -> Image: ...

    def add_bands(self, other: Image) -> Image: ...

    def reduce_region(
        self, *, geometry: Geometry, scale: float, max_pixels: float
    ) -> DeferredValue[ReductionResult]:
        """Mean of every band over `geometry`; no-data pixels are skipped."""


class ImageSeries(Protocol):
    """Time-ordered, filterable collection of observations."""

    def filter_date(self, start: date, end: date) -> ImageSeries:
        """Keep observations acquired in the half-open `[start, end)`."""

    def map(self, fn: Callable[[Image], Image]) -> ImageSeries: ...

    def merge(self, other: ImageSeries) -> ImageSeries: ...

    def mean(self) -> Image: ...

    def distinct_dates(self) -> DeferredValue[list[str]]:
        """Distinct acquisition dates as YYYY-MM-DD, ascending."""


class EvaluationClient(ABC):
    """Abstract base for remote evaluation backends."""

    name: str

    @abstractmethod
    def authenticate(self, credentials: EngineCredentials) -> None:
        """Blocking handshake with the engine; raise `SessionError`."""

    @abstractmethod
    def catalog(self, source_id: str, start: date, end: date) -> ImageSeries:
        """Return the observations of `source_id` within `[start, end)`."""

    @abstractmethod
    def geometry(self, bbox: BBox) -> Geometry:
        """Return a rectangle geometry for an extent."""
