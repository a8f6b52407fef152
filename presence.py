"""
In-process registry of live WebSocket connections.

Connection ids are random per connection and are only valid for the lifetime of
this process. After a restart every client has to announce itself again with a
`login` event.
"""
import logging
from typing import Any, Dict, Iterable, Optional, Set
from uuid import uuid4

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self):
        self.connections: Dict[str, WebSocket] = {}
        self.presence: Dict[str, str] = {}
        self.rooms: Dict[str, Set[str]] = {}

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid4().hex
        self.connections[connection_id] = websocket
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        self.connections.pop(connection_id, None)
        for user_id in [u for u, c in self.presence.items() if c == connection_id]:
            del self.presence[user_id]
        for members in self.rooms.values():
            members.discard(connection_id)

    def associate(self, user_id: str, connection_id: str) -> None:
        self.presence[user_id] = connection_id

    def resolve(self, user_id: str) -> Optional[str]:
        return self.presence.get(user_id)

    def join(self, connection_id: str, room: str) -> None:
        self.rooms.setdefault(room, set()).add(connection_id)

    async def send(self, connection_id: Optional[str], event: str, data: Any) -> bool:
        """Push one event. Unknown or closed connections are dropped."""
        websocket = self.connections.get(connection_id) if connection_id else None
        if websocket is None:
            logger.debug("Dropping %s event for stale connection %s", event, connection_id)
            return False
        try:
            await websocket.send_json({"event": event, "data": jsonable_encoder(data)})
        except (WebSocketDisconnect, RuntimeError, OSError):
            logger.warning("Connection %s went away while sending %s", connection_id, event)
            self.disconnect(connection_id)
            return False
        return True

    def connection_for(self, user: Dict[str, Any]) -> Optional[str]:
        return self.resolve(str(user["_id"])) or user.get("socket_id")

    async def emit_to_users(self, users: Iterable[Dict[str, Any]], event: str, data: Any) -> None:
        targets = []
        for user in users:
            connection_id = self.connection_for(user)
            if connection_id and connection_id not in targets:
                targets.append(connection_id)
        for connection_id in targets:
            await self.send(connection_id, event, data)

    def clear(self) -> None:
        self.connections.clear()
        self.presence.clear()
        self.rooms.clear()


manager = ConnectionManager()
