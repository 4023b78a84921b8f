"""
Reading Models
==============
Pydantic models for everything that travels over the relay socket.

This module defines all data structures used throughout the relay:
- Inbound frames: What sensors send us (readings, time-ready signals)
- Outbound frames: What we broadcast to everyone else
- Thresholds: The level pair fetched from the config endpoint

WIRE FORMAT:
-----------
Every frame is a JSON object with a "type" discriminator:

    {"type": "data", "hardwareId": "AWLR-01", "elevation": 75, "curah_hujan": 30}
    {"type": "time", "timeReady": "2026-10-19 07:00:00"}
    {"type": "connection", "connection_count": 3}      (outbound only)

Frames without a "type" are treated as readings.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    confloat,
    model_validator,
)


# Numbers only - "75" or true must not sneak through as an elevation,
# and 1e400 (parsed as inf) is not a reading
Numeric = Union[StrictInt, confloat(strict=True, allow_inf_nan=False)]


class FrameDecodeError(ValueError):
    """Raised when an inbound frame cannot be turned into a known message."""


# =============================================================================
# ENUMS
# =============================================================================

class FrameType(str, Enum):
    """Values of the "type" discriminator."""
    DATA = "data"
    TIME = "time"
    CONNECTION = "connection"


class ElevationStatus(str, Enum):
    """
    Water level condition derived from an elevation reading.

    Elevation is the distance from the sensor down to the water, so a
    SMALLER number means the water is HIGHER:

        elevation >= normal          -> NORMAL
        banjir <= elevation < normal -> SIAGA (alert)
        elevation < banjir           -> BANJIR (flood)
    """
    NORMAL = "Normal"
    SIAGA = "Siaga"
    BANJIR = "Banjir"


class RainfallStatus(str, Enum):
    """Rainfall intensity bands (curah hujan), lightest to heaviest."""
    TIDAK_ADA = "Tidak ada hujan"
    RINGAN = "Hujan ringan"
    SEDANG = "Hujan sedang"
    DERAS = "Hujan deras"


# =============================================================================
# THRESHOLDS
# =============================================================================

class ThresholdPair(BaseModel):
    """
    The two elevation levels used to classify a reading.

    The config endpoint returns them capitalised:
        GET /api/level -> {"Normal": 100, "Banjir": 80}

    Banjir must sit below Normal, otherwise the Siaga band would be empty
    or upside down.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    normal: int = Field(..., alias="Normal", description="Elevation at or above which water is normal")
    banjir: int = Field(..., alias="Banjir", description="Elevation below which the area is flooded")

    @model_validator(mode="after")
    def check_order(self) -> "ThresholdPair":
        if self.banjir >= self.normal:
            raise ValueError(
                f"Banjir level ({self.banjir}) must be lower than Normal level ({self.normal})"
            )
        return self


# =============================================================================
# INBOUND FRAMES - What sensors send us
# =============================================================================

class DataFrame(BaseModel):
    """
    A single reading from a water-level / rain gauge station.

    Required:
        elevation: Distance to the water surface (number)
        curah_hujan: Rainfall measurement (number)

    Everything else is optional and echoed back out as sent, whatever
    its type.
    Unknown fields are dropped.
    """
    type: Literal["data"] = "data"
    hardwareId: Optional[Any] = None
    elevation: Numeric = Field(..., description="Distance from sensor to water surface")
    curah_hujan: Numeric = Field(..., description="Rainfall measurement")
    latitude: Optional[Any] = None
    longitude: Optional[Any] = None
    level_siaga: Optional[Any] = None
    level_banjir: Optional[Any] = None


class TimeFrame(BaseModel):
    """Time-ready signal; relayed to every client exactly as received."""
    type: Literal["time"]
    timeReady: Any = None


InboundFrame = Union[DataFrame, TimeFrame]

_FRAME_MODELS = {
    FrameType.DATA.value: DataFrame,
    FrameType.TIME.value: TimeFrame,
}


def _reject_constant(name: str):
    # json.loads happily accepts NaN and Infinity, sensors never send them
    raise ValueError(f"Unsupported constant {name}")


def decode_frame(raw: Union[str, bytes]) -> InboundFrame:
    """
    Turn a raw socket frame into a DataFrame or TimeFrame.

    Raises:
        FrameDecodeError: Bad JSON, not an object, unknown type, or fields
                          that are missing / have the wrong type.
    """
    try:
        payload = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        # RecursionError: nesting deeper than the decoder can follow
        raise FrameDecodeError(f"Invalid JSON format: {e}") from e

    if not isinstance(payload, dict):
        raise FrameDecodeError(f"Expected a JSON object, got {type(payload).__name__}")

    frame_type = payload.get("type", FrameType.DATA.value)
    model = _FRAME_MODELS.get(frame_type) if isinstance(frame_type, str) else None
    if model is None:
        raise FrameDecodeError(f"Unknown frame type: {frame_type!r}")

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise FrameDecodeError(f"Invalid {frame_type} frame: {e.error_count()} error(s): {e}") from e


# =============================================================================
# OUTBOUND FRAMES - What we broadcast
# =============================================================================

class EnrichedReading(BaseModel):
    """
    A reading plus everything the relay adds before broadcasting it.

    Added fields:
        timestamp: When the relay received it (RFC 1123, UTC)
        status_elevation: Normal / Siaga / Banjir
        status_curah_hujan: Rainfall intensity label
    """
    type: Literal["data"] = "data"
    hardwareId: Optional[Any] = None
    timestamp: str
    elevation: Numeric
    status_elevation: ElevationStatus
    curah_hujan: Numeric
    status_curah_hujan: RainfallStatus
    latitude: Optional[Any] = None
    longitude: Optional[Any] = None
    level_siaga: Optional[Any] = None
    level_banjir: Optional[Any] = None

    @staticmethod
    def format_timestamp(moment: Optional[datetime] = None) -> str:
        """Format like "Mon, 19 Oct 2026 07:00:00 UTC"."""
        moment = moment or datetime.now(timezone.utc)
        return moment.astimezone(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S UTC")

    @classmethod
    def from_frame(
        cls,
        frame: DataFrame,
        status_elevation: ElevationStatus,
        status_curah_hujan: RainfallStatus,
        captured_at: Optional[datetime] = None,
    ) -> "EnrichedReading":
        return cls(
            hardwareId=frame.hardwareId,
            timestamp=cls.format_timestamp(captured_at),
            elevation=frame.elevation,
            status_elevation=status_elevation,
            curah_hujan=frame.curah_hujan,
            status_curah_hujan=status_curah_hujan,
            latitude=frame.latitude,
            longitude=frame.longitude,
            level_siaga=frame.level_siaga,
            level_banjir=frame.level_banjir,
        )


class ConnectionCountMessage(BaseModel):
    """Sent to everyone whenever a client joins or leaves."""
    type: Literal["connection"] = "connection"
    connection_count: int = Field(..., ge=0)
