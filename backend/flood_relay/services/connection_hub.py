"""
Connection Hub
==============

This is the HEART of the relay!

WHAT IT DOES:
------------
1. Keeps track of every open WebSocket (sensors AND dashboards)
2. Sends a message to everyone except whoever sent it
3. Kicks out connections that can't be written to anymore
4. Tells everyone how many clients are connected whenever someone joins/leaves

THE PIECES:
----------
    Connection          - One open socket. Identity IS the object, no id field.
    ConnectionRegistry  - The set of open connections, behind one asyncio.Lock
    Broadcaster         - Fans a payload out to a snapshot of the registry
    ConnectionHub       - Registry + Broadcaster glued together; this is what
                          sessions and the app talk to

LOCKING:
-------
The registry lock only covers touching the set (add / remove / snapshot).
Writes happen OUTSIDE it, one peer at a time. Each Connection has its own
send lock, so two sessions broadcasting at the same moment can't mix up
their frames on a shared peer.
"""

import asyncio
import logging
from typing import Optional

from fastapi.websockets import WebSocket, WebSocketState

from flood_relay.models import ConnectionCountMessage

logger = logging.getLogger(__name__)


# =============================================================================
# CONNECTION HANDLE
# =============================================================================

class Connection:
    """
    Wraps one accepted WebSocket.

    Hashing and equality are by identity, so the same socket can never
    show up twice in the registry under different handles.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._send_lock = asyncio.Lock()
        self._closed = False

        client = getattr(websocket, "client", None)
        self.remote_address = f"{client.host}:{client.port}" if client else "unknown"

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_closed(self):
        self._closed = True

    async def send_text(self, payload: str):
        """Write one frame. Raises if the socket is gone."""
        if self._closed:
            raise ConnectionError(f"Connection {self.remote_address} is closed")
        async with self._send_lock:
            await self.websocket.send_text(payload)

    async def close(self, code: int = 1000):
        """Close the socket. Safe to call more than once."""
        self._closed = True
        for state in ("application_state", "client_state"):
            if getattr(self.websocket, state, None) == WebSocketState.DISCONNECTED:
                return
        try:
            await self.websocket.close(code=code)
        except Exception as e:
            # Peer went away between the state check and the close frame
            logger.debug(f"[{self.remote_address}] Close ignored: {e}")

    def __repr__(self):
        state = "closed" if self._closed else "open"
        return f"<Connection {self.remote_address} {state}>"


# =============================================================================
# REGISTRY
# =============================================================================

class ConnectionRegistry:
    """
    The set of open connections.

    Only add(), remove() and snapshot() touch the set, always under the
    same lock. The raw set never leaves this class.
    """

    def __init__(self):
        self._connections: set[Connection] = set()
        self._lock = asyncio.Lock()

    async def add(self, conn: Connection) -> int:
        """Insert a connection (no-op if already there). Returns the new size."""
        async with self._lock:
            if conn.closed:
                raise ConnectionError(f"Refusing to register closed connection {conn.remote_address}")
            self._connections.add(conn)
            return len(self._connections)

    async def remove(self, conn: Connection) -> bool:
        """
        Drop a connection and mark it closed.

        Returns True if it was actually in the set.
        """
        async with self._lock:
            conn.mark_closed()
            if conn not in self._connections:
                return False
            self._connections.discard(conn)
            return True

    async def snapshot(self) -> list[Connection]:
        """Copy of the current members, safe to iterate while others mutate."""
        async with self._lock:
            return [conn for conn in self._connections if not conn.closed]

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, conn: Connection) -> bool:
        return conn in self._connections


# =============================================================================
# BROADCASTER
# =============================================================================

class Broadcaster:
    """Delivers one payload to every registry member except the origin."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def broadcast(self, origin: Optional[Connection], payload: str) -> int:
        """
        Send payload to everyone in the registry except origin.

        Pass origin=None to send to everyone (control messages).

        Any connection that fails the write is closed and removed. The
        removal happens after the loop, so the snapshot being walked is
        never modified mid-iteration.

        Returns:
            How many connections got the payload.
        """
        delivered = 0
        dead: list[Connection] = []

        for conn in await self.registry.snapshot():
            if conn is origin:
                continue
            try:
                await conn.send_text(payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"[{conn.remote_address}] Error broadcasting to client: {e}")
                dead.append(conn)

        for conn in dead:
            await conn.close()
            await self.registry.remove(conn)

        if dead:
            logger.info(f"Evicted {len(dead)} dead connection(s), {len(self.registry)} remaining")
            await self.broadcast_connection_count()

        return delivered

    async def broadcast_connection_count(self, count: Optional[int] = None) -> int:
        """Tell every client how many clients are connected."""
        if count is None:
            count = len(self.registry)
        message = ConnectionCountMessage(connection_count=count)
        return await self.broadcast(None, message.model_dump_json())


# =============================================================================
# THE HUB
# =============================================================================

class ConnectionHub:
    """
    What the rest of the app uses.

    HOW TO USE:
    ----------
    hub = ConnectionHub()

    conn = Connection(websocket)
    await hub.add(conn)                 # everyone gets the new count
    await hub.broadcast(conn, payload)  # everyone but conn gets payload
    await hub.remove(conn)              # everyone left gets the new count
    """

    def __init__(self):
        self.registry = ConnectionRegistry()
        self.broadcaster = Broadcaster(self.registry)

    async def add(self, conn: Connection) -> int:
        """Register a connection and announce the new count to everyone (including it)."""
        count = await self.registry.add(conn)
        logger.info(f"[{conn.remote_address}] Client connected ({count} total)")
        await self.broadcaster.broadcast_connection_count()
        return count

    async def remove(self, conn: Connection) -> bool:
        """Deregister a connection and announce the new count to whoever's left."""
        removed = await self.registry.remove(conn)
        if removed:
            logger.info(f"[{conn.remote_address}] Client disconnected ({len(self.registry)} remaining)")
            await self.broadcaster.broadcast_connection_count()
        return removed

    async def broadcast(self, origin: Optional[Connection], payload: str) -> int:
        return await self.broadcaster.broadcast(origin, payload)

    async def snapshot(self) -> list[Connection]:
        return await self.registry.snapshot()

    @property
    def connection_count(self) -> int:
        return len(self.registry)

    async def close_all(self, code: int = 1001):
        """
        Close every open connection (server shutting down).

        Each session's pending receive then ends and the session cleans
        itself up the normal way.
        """
        connections = await self.registry.snapshot()
        if connections:
            logger.info(f"Closing {len(connections)} connection(s)")
        for conn in connections:
            await conn.close(code=code)
            await self.registry.remove(conn)
