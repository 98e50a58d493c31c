"""WebSocket connection manager for change notifications.

Channels are ``"<tenant_id>:<table>"`` where table is ``orders`` or
``table_logs``. Messages only say that something changed; clients
re-fetch what they display.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import WebSocket, status

logger = logging.getLogger(__name__)

CHANNEL_TABLES = ("orders", "table_logs")


def channel_name(tenant_id: int, table: str) -> str:
    return f"{tenant_id}:{table}"


class ConnectionManager:
    """Manages WebSocket connections for real-time updates."""

    # Configuration
    MAX_CONNECTIONS_PER_CHANNEL = 1000

    def __init__(self):
        self.active_connections: Dict[str, List[WebSocket]] = {}
        self.connection_metadata: Dict[int, Dict[str, Any]] = {}
        self.sent_messages = 0

    async def connect(
        self,
        websocket: WebSocket,
        channel: str,
        user_id: Optional[str] = None,
    ) -> bool:
        """Accept a WebSocket into a channel.

        Returns True if connection was successful, False if rejected.
        """
        if len(self.active_connections.get(channel, [])) >= self.MAX_CONNECTIONS_PER_CHANNEL:
            logger.warning(f"WebSocket connection rejected: channel '{channel}' at capacity")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return False

        await websocket.accept()
        self.active_connections.setdefault(channel, []).append(websocket)
        self.connection_metadata[id(websocket)] = {
            "connected_at": datetime.now(timezone.utc),
            "user_id": user_id,
            "channel": channel,
            "last_ping": datetime.now(timezone.utc),
        }
        logger.debug(f"WebSocket connected to channel '{channel}', user_id={user_id}")
        return True

    def disconnect(self, websocket: WebSocket, channel: str):
        """Disconnect a WebSocket from a channel."""
        connections = self.active_connections.get(channel, [])
        if websocket in connections:
            connections.remove(websocket)
        self.connection_metadata.pop(id(websocket), None)
        logger.debug(f"WebSocket disconnected from channel '{channel}'")

    def update_ping(self, websocket: WebSocket):
        """Update last ping time for a connection."""
        meta = self.connection_metadata.get(id(websocket))
        if meta is not None:
            meta["last_ping"] = datetime.now(timezone.utc)

    async def broadcast(self, message: Dict[str, Any], channel: str):
        """Broadcast a message to all connections in a channel."""
        disconnected = []
        for connection in list(self.active_connections.get(channel, [])):
            try:
                await connection.send_json(message)
                self.sent_messages += 1
            except Exception as e:
                logger.debug(f"WebSocket send failed: {e}")
                disconnected.append(connection)

        for conn in disconnected:
            self.disconnect(conn, channel)

    async def notify(self, tenant_id: int, table: str, event: str, record_id: Any = None):
        """Tell a tenant's subscribers that a row in ``table`` changed."""
        await self.broadcast(
            {
                "table": table,
                "event": event,
                "id": record_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            channel_name(tenant_id, table),
        )

    def get_connection_count(self, channel: Optional[str] = None) -> int:
        """Get the number of active connections."""
        if channel:
            return len(self.active_connections.get(channel, []))
        return sum(len(conns) for conns in self.active_connections.values())


# Global connection manager instance
ws_manager = ConnectionManager()
