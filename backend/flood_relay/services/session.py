"""
Connection Session
==================

One of these runs for every connected client, from handshake to goodbye.

STATES:
------
    CONNECTING --accept()--> OPEN --read fails / peer leaves--> CLOSED

    There's no way back from CLOSED. A client that reconnects gets a
    brand new session.

WHAT HAPPENS IN OPEN:
--------------------
For every frame the client sends:

    raw frame
        |
        | decode_frame()        bad JSON / bad fields? log it, wait for the next one
        v
    "time" frame  --> relayed as-is to EVERYONE (sender included)
    "data" frame  --> classify elevation + rainfall
                      add timestamp
                      relay to everyone EXCEPT the sender

Nothing is ever sent back to a client because its frame was bad.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from fastapi import WebSocket

from flood_relay.models import (
    DataFrame,
    EnrichedReading,
    FrameDecodeError,
    ThresholdPair,
    TimeFrame,
    decode_frame,
)
from flood_relay.services.classifier import classify_elevation, classify_rainfall
from flood_relay.services.connection_hub import Connection, ConnectionHub
from flood_relay.services.threshold_service import ThresholdService

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class ConnectionSession:
    """
    Drives a single WebSocket through its lifecycle.

    HOW TO USE (the /ws endpoint does this):
    ----------
    session = ConnectionSession(websocket, hub, threshold_service)
    await session.run()     # returns once the client is gone
    """

    def __init__(self, websocket: WebSocket, hub: ConnectionHub, threshold_service: ThresholdService):
        self.websocket = websocket
        self.hub = hub
        self.threshold_service = threshold_service
        self.connection = Connection(websocket)
        self.state = SessionState.CONNECTING
        self.thresholds: Optional[ThresholdPair] = None

    @property
    def peer(self) -> str:
        return self.connection.remote_address

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def run(self):
        """Accept, register, fetch levels, then read until the client goes away."""
        await self.websocket.accept()
        self.state = SessionState.OPEN

        try:
            await self.hub.add(self.connection)

            # Fetched once; the session keeps these until it closes
            self.thresholds = await self.threshold_service.get_thresholds(self.peer)

            # A failed write elsewhere may evict this connection mid-loop
            while self.state == SessionState.OPEN and not self.connection.closed:
                raw = await self._receive()
                if raw is None:
                    break
                await self.handle_frame(raw)
        finally:
            # Runs as its own task so a cancelled session still deregisters
            await asyncio.shield(self.close())

    async def _receive(self) -> Optional[Union[str, bytes]]:
        """
        Wait for the next frame.

        Returns None when the client is gone (disconnect or read error).
        """
        try:
            message = await self.websocket.receive()
        except Exception as e:
            logger.warning(f"[{self.peer}] Error reading message: {e}")
            return None

        if message["type"] == "websocket.disconnect":
            logger.debug(f"[{self.peer}] Peer closed (code {message.get('code')})")
            return None

        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes")

    async def close(self):
        """Deregister (everyone left gets the new count) and release the socket."""
        if self.state == SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        await self.hub.remove(self.connection)
        await self.connection.close()

    # =========================================================================
    # DISPATCH
    # =========================================================================

    async def handle_frame(self, raw: Union[str, bytes]):
        """Decode one frame and relay it. Bad frames are logged and dropped."""
        try:
            frame = decode_frame(raw)
        except FrameDecodeError as e:
            logger.warning(f"[{self.peer}] {e}")
            return

        if isinstance(frame, TimeFrame):
            text = raw if isinstance(raw, str) else raw.decode("utf-8", errors="replace")
            await self.hub.broadcast(None, text)
            return

        reading = self.enrich(frame)
        delivered = await self.hub.broadcast(self.connection, reading.model_dump_json())
        logger.debug(
            f"[{self.peer}] {reading.hardwareId or '-'} elevation={reading.elevation} "
            f"({reading.status_elevation.value}) -> {delivered} client(s)"
        )

    def enrich(self, frame: DataFrame, captured_at: Optional[datetime] = None) -> EnrichedReading:
        """Classify a reading and stamp it with the capture time."""
        thresholds = self.thresholds or self.threshold_service.defaults
        return EnrichedReading.from_frame(
            frame,
            status_elevation=classify_elevation(frame.elevation, thresholds),
            status_curah_hujan=classify_rainfall(frame.curah_hujan),
            captured_at=captured_at,
        )
