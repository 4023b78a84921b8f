"""
Services Package
================

These are the "workers" that do the actual work.

- classify_elevation / classify_rainfall: Turn numbers into labels
- ThresholdService: Fetches the Normal/Banjir levels
- ConnectionHub: Tracks open sockets and broadcasts to them
- ConnectionSession: Runs one client from connect to disconnect
"""

from .classifier import classify_elevation, classify_rainfall
from .threshold_service import ThresholdService, ThresholdFetchError
from .connection_hub import Connection, ConnectionRegistry, Broadcaster, ConnectionHub
from .session import ConnectionSession, SessionState

__all__ = [
    "classify_elevation",
    "classify_rainfall",
    "ThresholdService",
    "ThresholdFetchError",
    "Connection",
    "ConnectionRegistry",
    "Broadcaster",
    "ConnectionHub",
    "ConnectionSession",
    "SessionState",
]
