"""Lifecycle-scoped registry of live WebSocket connections.

Created in the application lifespan and stored on ``app.state.registry``;
tests build their own instances. A connection is any object with an async
``send_json`` method (starlette's WebSocket, or a test double).

Users may hold several connections (tabs, devices). Project rooms hold
connections, not users, so leaving a room from one tab keeps the others in.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, Optional, Set

from ..observability.metrics import websocket_connections

logger = logging.getLogger(__name__)


class ConnectionRegistry:

    def __init__(self):
        self._user_connections: Dict[str, Set[Any]] = defaultdict(set)
        self._rooms: Dict[str, Set[Any]] = defaultdict(set)
        self._connection_users: Dict[Any, str] = {}

    def connect(self, user_id: Any, connection: Any) -> None:
        key = str(user_id)
        self._user_connections[key].add(connection)
        self._connection_users[connection] = key
        websocket_connections.set(self.connected_count())
        logger.info(f"Real-time connection opened for user {key}", extra={"user_id": key})

    def disconnect(self, connection: Any) -> None:
        """Drop a connection from its user and every room it joined."""
        key = self._connection_users.pop(connection, None)
        for room_id in list(self._rooms):
            self._rooms[room_id].discard(connection)
            if not self._rooms[room_id]:
                del self._rooms[room_id]
        if key is not None:
            self._user_connections[key].discard(connection)
            if not self._user_connections[key]:
                del self._user_connections[key]
            logger.info(f"Real-time connection closed for user {key}", extra={"user_id": key})
        websocket_connections.set(self.connected_count())

    def join(self, connection: Any, project_id: Any) -> None:
        self._rooms[str(project_id)].add(connection)

    def leave(self, connection: Any, project_id: Any) -> None:
        room = self._rooms.get(str(project_id))
        if room is None:
            return
        room.discard(connection)
        if not room:
            del self._rooms[str(project_id)]

    def is_member(self, connection: Any, project_id: Any) -> bool:
        return connection in self._rooms.get(str(project_id), ())

    def user_of(self, connection: Any) -> Optional[str]:
        return self._connection_users.get(connection)

    def is_online(self, user_id: Any) -> bool:
        return bool(self._user_connections.get(str(user_id)))

    def connected_count(self) -> int:
        """Number of distinct users with at least one live connection."""
        return len(self._user_connections)

    def room_members(self, project_id: Any) -> Set[Any]:
        return set(self._rooms.get(str(project_id), ()))

    async def emit_to_user(self, user_id: Any, event: str, data: Any) -> int:
        """Send to every connection of a user. Returns how many were reached."""
        return await self._send_all(self._user_connections.get(str(user_id), ()), event, data)

    async def emit_to_project(
        self,
        project_id: Any,
        event: str,
        data: Any,
        exclude: Optional[Any] = None,
    ) -> int:
        targets = [c for c in self._rooms.get(str(project_id), ()) if c is not exclude]
        return await self._send_all(targets, event, data)

    async def broadcast(self, event: str, data: Any) -> int:
        return await self._send_all(list(self._connection_users), event, data)

    async def close_user(self, user_id: Any) -> int:
        """Close and drop every connection of one user. Returns how many were closed."""
        connections = list(self._user_connections.get(str(user_id), ()))
        for connection in connections:
            await self._close(connection)
        return len(connections)

    async def close_all(self) -> None:
        """Close every connection; used at application shutdown."""
        for connection in list(self._connection_users):
            await self._close(connection)

    async def _close(self, connection: Any) -> None:
        close = getattr(connection, "close", None)
        if close is not None:
            try:
                await close()
            except Exception as e:
                logger.debug(f"Ignoring error while closing connection: {e}")
        self.disconnect(connection)

    async def _send_all(self, connections: Iterable[Any], event: str, data: Any) -> int:
        delivered = 0
        dead = []
        for connection in list(connections):
            try:
                await connection.send_json({"event": event, "data": data})
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping unreachable connection after failed '{event}': {e}")
                dead.append(connection)
        for connection in dead:
            self.disconnect(connection)
        return delivered
