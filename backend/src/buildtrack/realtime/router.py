"""WebSocket endpoint for project chat and workflow notifications.

Clients connect to ``/v1/ws?token=<access token>`` and exchange JSON frames
shaped ``{"event": <name>, "data": {...}}``.

Incoming events:
- join-project / leave-project: ``{"project_id"}``
- typing-start / typing-stop: ``{"project_id"}``, relayed to the rest of the room
- send-message: ``{"project_id", "content", "files"}``, persisted like the REST endpoint
- message-read: ``{"message_id"}``

Only project participants may join a room, and typing events need a joined
room. Errors from a single frame, including frames that are not JSON, are
reported back as ``message-error`` and keep the connection open.
"""

import logging
from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from sqlalchemy.orm import sessionmaker

from ..auth.dependencies import AuthenticationError, authenticate_token
from ..config import get_settings
from ..database import get_session_factory
from ..domain.errors import WorkflowError
from ..domain.workflow.relocation import BlobRelocator
from ..domain.workflow.transaction import TransactionCoordinator
from ..messages import service as message_service
from ..messages.schemas import MessageCreate
from ..models.base import utcnow
from ..models.user import User
from ..observability.request_id import request_context
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Real-time"])

ROOM_EVENTS = frozenset({"join-project", "leave-project", "typing-start", "typing-stop"})


def _authenticate(token: str, session_factory: sessionmaker) -> User:
    session = session_factory()
    try:
        return authenticate_token(token, session)
    finally:
        session.close()


class ChannelHandler:
    """Dispatches the frames of one authenticated connection."""

    def __init__(
        self,
        websocket: WebSocket,
        user: User,
        registry: ConnectionRegistry,
        session_factory: sessionmaker,
    ):
        self.websocket = websocket
        self.user = user
        self.registry = registry
        self.session_factory = session_factory

    async def dispatch(self, frame: Any) -> None:
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            await self.send_error("Frames must look like {\"event\": ..., \"data\": {...}}")
            return
        data = frame.get("data") or {}
        if not isinstance(data, dict):
            await self.send_error("Event data must be an object")
            return
        handler = {
            "join-project": self.join_project,
            "leave-project": self.leave_project,
            "typing-start": self.typing_start,
            "typing-stop": self.typing_stop,
            "send-message": self.send_message,
            "message-read": self.message_read,
        }.get(frame["event"])
        if handler is None:
            await self.send_error(f"Unknown event: {frame['event']}")
            return
        if frame["event"] in ROOM_EVENTS and not data.get("project_id"):
            await self.send_error(f"{frame['event']} requires project_id")
            return
        await handler(data)

    async def join_project(self, data: Dict[str, Any]) -> None:
        try:
            project_id = UUID(str(data.get("project_id")))
        except ValueError:
            await self.send_error("Invalid project id")
            return
        session = self.session_factory()
        try:
            message_service.load_project_for(session, project_id, self.user)
        except WorkflowError as e:
            logger.warning(
                f"Refused join-project for user {self.user.id}: {e.message}",
                extra={"user_id": str(self.user.id), "project_id": str(project_id)},
            )
            await self.send_error(e.message)
            return
        finally:
            session.close()
        self.registry.join(self.websocket, project_id)

    async def leave_project(self, data: Dict[str, Any]) -> None:
        self.registry.leave(self.websocket, data.get("project_id"))

    async def typing_start(self, data: Dict[str, Any]) -> None:
        if not self.registry.is_member(self.websocket, data.get("project_id")):
            await self.send_error("Join the project before sending typing events")
            return
        await self.registry.emit_to_project(
            data.get("project_id"),
            "user-typing-start",
            {"user_id": str(self.user.id), "user_name": self.user.name},
            exclude=self.websocket,
        )

    async def typing_stop(self, data: Dict[str, Any]) -> None:
        if not self.registry.is_member(self.websocket, data.get("project_id")):
            await self.send_error("Join the project before sending typing events")
            return
        await self.registry.emit_to_project(
            data.get("project_id"),
            "user-typing-stop",
            {"user_id": str(self.user.id)},
            exclude=self.websocket,
        )

    async def send_message(self, data: Dict[str, Any]) -> None:
        try:
            body = MessageCreate(
                project_id=data.get("project_id"),
                content=data.get("content") or "",
                files=data.get("files") or [],
            )
            storage = self.websocket.app.state.storage
            await message_service.post_message(
                TransactionCoordinator(self.session_factory),
                BlobRelocator(storage, staging_prefix=get_settings().STAGING_PREFIX),
                body,
                self.user,
                registry=self.registry,
            )
        except ValidationError as e:
            await self.send_error(f"Invalid message: {e.errors()[0]['msg']}")
        except WorkflowError as e:
            await self.send_error(e.message)

    async def message_read(self, data: Dict[str, Any]) -> None:
        try:
            message_id = UUID(str(data.get("message_id")))
            await message_service.mark_read(
                TransactionCoordinator(self.session_factory),
                message_id,
                self.user,
                registry=self.registry,
            )
        except ValueError:
            await self.send_error("Invalid message id")
        except WorkflowError as e:
            await self.send_error(e.message)

    async def send_error(self, error: str) -> None:
        await self.websocket.send_json({
            "event": "message-error",
            "data": {"error": error, "timestamp": utcnow().isoformat()},
        })


@router.websocket("/ws")
async def project_channel(
    websocket: WebSocket,
    token: str = Query(...),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    try:
        user = _authenticate(token, session_factory)
    except AuthenticationError as e:
        logger.warning(f"WebSocket authentication failed: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    registry: ConnectionRegistry = websocket.app.state.registry
    await websocket.accept()
    registry.connect(user.id, websocket)
    handler = ChannelHandler(websocket, user, registry, session_factory)

    try:
        while True:
            try:
                frame = await websocket.receive_json()
            except ValueError:
                await handler.send_error("Frames must be JSON")
                continue
            with request_context():
                await handler.dispatch(frame)
    except WebSocketDisconnect:
        pass
    finally:
        registry.disconnect(websocket)
