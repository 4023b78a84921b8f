"""
Relay Router
============

The one door sensors and dashboards come through.

ENDPOINT:
--------
WS  /ws   - Open a relay connection

HOW IT WORKS:
------------
1. Client opens ws://<host>:8001/ws (any origin, no auth)
2. We hand the socket to a ConnectionSession
3. The session runs until the client disconnects

Sensors send readings, dashboards just listen. To the relay they're the
same thing: a connection that gets everyone else's messages.
"""

from fastapi import APIRouter, Depends, HTTPException, WebSocket

from flood_relay.services import ConnectionHub, ConnectionSession, ThresholdService


router = APIRouter(tags=["relay"])


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================
# The lifespan handler builds the hub and threshold service and hands them here

_hub = None
_threshold_service = None


def set_relay_services(hub: ConnectionHub, threshold_service: ThresholdService):
    """Called when the app starts to give us the hub and threshold service."""
    global _hub, _threshold_service
    _hub = hub
    _threshold_service = threshold_service


def get_hub() -> ConnectionHub:
    if _hub is None:
        raise HTTPException(status_code=500, detail="Server not fully started yet")
    return _hub


def get_threshold_service() -> ThresholdService:
    if _threshold_service is None:
        raise HTTPException(status_code=500, detail="Server not fully started yet")
    return _threshold_service


# =============================================================================
# WEBSOCKET ENDPOINT
# =============================================================================

@router.websocket("/ws")
async def relay_websocket(
    websocket: WebSocket,
    hub: ConnectionHub = Depends(get_hub),
    threshold_service: ThresholdService = Depends(get_threshold_service),
):
    """
    Relay connection.

    Send readings as JSON:
        {"type": "data", "hardwareId": "AWLR-01", "elevation": 75, "curah_hujan": 30}

    Receive everyone else's readings with statuses attached:
        {"type": "data", ..., "timestamp": "...",
         "status_elevation": "Banjir", "status_curah_hujan": "Hujan sedang"}

    Plus control messages:
        {"type": "connection", "connection_count": 3}
        {"type": "time", "timeReady": ...}
    """
    session = ConnectionSession(websocket, hub, threshold_service)
    await session.run()
