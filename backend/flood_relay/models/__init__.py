"""
Models Package
==============

This is where all our wire models live.
Import from here instead of the individual files.

Example:
    from flood_relay.models import decode_frame, ThresholdPair
"""

from .reading import (
    # Status labels
    FrameType,
    ElevationStatus,
    RainfallStatus,

    # Config endpoint
    ThresholdPair,

    # What sensors send us
    DataFrame,
    TimeFrame,
    InboundFrame,
    decode_frame,
    FrameDecodeError,

    # What we broadcast
    EnrichedReading,
    ConnectionCountMessage,
)

__all__ = [
    "FrameType",
    "ElevationStatus",
    "RainfallStatus",
    "ThresholdPair",
    "DataFrame",
    "TimeFrame",
    "InboundFrame",
    "decode_frame",
    "FrameDecodeError",
    "EnrichedReading",
    "ConnectionCountMessage",
]
