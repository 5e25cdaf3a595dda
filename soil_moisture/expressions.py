"""Band algebra for the moisture indices.

These functions only describe computations on an `Image`; nothing is
evaluated until a reduction built on top of them is evaluated. The
calibration values below are fixed and must not be tuned per request.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Final

from .engines.base import Image
from .types import IndexName

NIR_BAND: Final[str] = "SR_B5"
RED_BAND: Final[str] = "SR_B4"
SWIR_BAND: Final[str] = "SR_B6"
THERMAL_BAND: Final[str] = "ST_B10"

NDVI_BAND: Final[str] = "NDVI"
NDMI_BAND: Final[str] = "NDMI"
SMI_BAND: Final[str] = "SMI"

# Landsat Collection 2 surface temperature calibration (DN -> Kelvin).
THERMAL_SCALE: Final[float] = 0.00341802
THERMAL_OFFSET_K: Final[float] = 149.0

# Vegetation fraction Pv = ((NDVI - 0.2) / (0.5 - 0.2))^2, clamped to [0, 1].
PV_NDVI_SOIL: Final[float] = 0.2
PV_NDVI_RANGE: Final[float] = 0.3

EMISSIVITY_SLOPE: Final[float] = 0.004
EMISSIVITY_SOIL: Final[float] = 0.986

EMITTED_WAVELENGTH: Final[float] = 0.00115
RADIATION_CONSTANT_C2: Final[float] = 14388.0
KELVIN_TO_CELSIUS: Final[float] = 273.15

# Empirical dry/wet edges of the LST-NDVI space.
LST_MAX_SLOPE: Final[float] = 5.0
LST_MAX_INTERCEPT: Final[float] = 40.0
LST_MIN_SLOPE: Final[float] = 3.0
LST_MIN_INTERCEPT: Final[float] = 20.0

INDEX_BANDS: Final[dict[str, str]] = {"smi": SMI_BAND, "ndmi": NDMI_BAND}


def normalized_difference_index(
    image: Image, band_a: str, band_b: str, name: str
) -> Image:
    """(A - B) / (A + B) renamed to `name`.

    Cells where A + B == 0 come back as no-data from the engine and are left
    out of any later mean.
    """

    return image.normalized_difference(band_a, band_b).rename(name)


def brightness_temperature(image: Image) -> Image:
    return (
        image.select(THERMAL_BAND)
        .multiply(THERMAL_SCALE)
        .add(THERMAL_OFFSET_K)
    )


def vegetation_fraction(ndvi: Image) -> Image:
    return (
        ndvi.subtract(PV_NDVI_SOIL)
        .divide(PV_NDVI_RANGE)
        .pow(2)
        .clamp(0.0, 1.0)
    )


def emissivity(vegetation: Image) -> Image:
    return vegetation.multiply(EMISSIVITY_SLOPE).add(EMISSIVITY_SOIL)


def land_surface_temperature(brightness: Image, emissive: Image) -> Image:
    """Tb / (1 + (lambda * Tb / c2) * ln(e)) - 273.15, in Celsius."""

    correction = (
        brightness.multiply(EMITTED_WAVELENGTH)
        .divide(RADIATION_CONSTANT_C2)
        .multiply(emissive.log())
        .add(1.0)
    )
    return brightness.divide(correction).subtract(KELVIN_TO_CELSIUS)


def radiative_temperature_index(image: Image) -> Image:
    """Soil moisture index (LST_max - LST) / (LST_max - LST_min).

    Expects the image to already carry an NDVI band.
    """

    ndvi = image.select(NDVI_BAND)
    lst = land_surface_temperature(
        brightness_temperature(image), emissivity(vegetation_fraction(ndvi))
    )
    lst_max = ndvi.multiply(LST_MAX_SLOPE).add(LST_MAX_INTERCEPT)
    lst_min = ndvi.multiply(LST_MIN_SLOPE).add(LST_MIN_INTERCEPT)
    return (
        lst_max.subtract(lst)
        .divide(lst_max.subtract(lst_min))
        .rename(SMI_BAND)
    )


def with_ndvi(image: Image) -> Image:
    return image.add_bands(
        normalized_difference_index(image, NIR_BAND, RED_BAND, NDVI_BAND)
    )


def with_smi(image: Image) -> Image:
    ndvi_image = with_ndvi(image)
    return ndvi_image.add_bands(radiative_temperature_index(ndvi_image))


def with_ndmi(image: Image) -> Image:
    return image.add_bands(
        normalized_difference_index(image, NIR_BAND, SWIR_BAND, NDMI_BAND)
    )


def index_mapper(index: IndexName) -> Callable[[Image], Image]:
    """Per-observation function attaching the index band."""

    if index == "smi":
        return with_smi
    if index == "ndmi":
        return with_ndmi
    raise ValueError(f"Unsupported soil moisture index: {index}")


def index_band(index: IndexName) -> str:
    try:
        return INDEX_BANDS[index]
    except KeyError as exc:
        raise ValueError(f"Unsupported soil moisture index: {index}") from exc
