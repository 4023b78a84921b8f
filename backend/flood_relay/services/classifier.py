"""
Reading Classifier
==================

Turns raw numbers into the labels dashboards show.

Both functions are pure: same input, same output, no I/O. They accept any
int or float, negatives included.

ELEVATION:
---------
    elevation <  banjir            -> Banjir
    banjir <= elevation < normal   -> Siaga
    elevation >= normal            -> Normal

    So exactly at the banjir line it's Siaga, exactly at the normal line
    it's Normal.

RAINFALL (curah hujan):
----------------------
    >= 50      -> Hujan deras
    20 .. <50  -> Hujan sedang
    >0 .. <20  -> Hujan ringan
    <= 0       -> Tidak ada hujan
"""

from typing import Union

from flood_relay.models import ElevationStatus, RainfallStatus, ThresholdPair

Number = Union[int, float]

# Lower bound of each rainfall band, heaviest first
HEAVY_RAIN_MIN = 50
MODERATE_RAIN_MIN = 20


def classify_elevation(elevation: Number, thresholds: ThresholdPair) -> ElevationStatus:
    """Classify a water elevation against the normal/banjir levels."""
    if elevation < thresholds.banjir:
        return ElevationStatus.BANJIR
    if elevation < thresholds.normal:
        return ElevationStatus.SIAGA
    return ElevationStatus.NORMAL


def classify_rainfall(curah_hujan: Number) -> RainfallStatus:
    """Classify a rainfall measurement into an intensity band."""
    if curah_hujan >= HEAVY_RAIN_MIN:
        return RainfallStatus.DERAS
    if curah_hujan >= MODERATE_RAIN_MIN:
        return RainfallStatus.SEDANG
    if curah_hujan > 0:
        return RainfallStatus.RINGAN
    return RainfallStatus.TIDAK_ADA
