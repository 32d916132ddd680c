"""Project message service.

Used by both the REST endpoints and the WebSocket ``send-message`` event.
Attached files are relocated to ``messages/{project}/{message}/`` in the
transaction that inserts the message; the ``message-created`` event goes out
only after commit.
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ..domain.errors import ForbiddenError, NotFoundError
from ..domain.workflow.relocation import BlobRelocator, key_computer_for
from ..domain.workflow.transaction import TransactionCoordinator, TransactionHandle
from ..models.base import utcnow
from ..models.message import Message
from ..models.project import Project
from ..models.user import User
from ..projects.service import is_project_participant
from ..realtime.registry import ConnectionRegistry
from .schemas import MessageCreate

logger = logging.getLogger(__name__)

MESSAGE_NAMESPACE = "messages"


def load_project_for(session: Session, project_id: UUID, actor: User) -> Project:
    project = session.get(Project, project_id)
    if not project:
        raise NotFoundError(f"Project {project_id} not found")
    if not is_project_participant(session, project, actor):
        raise ForbiddenError("Not a participant of this project")
    return project


async def post_message(
    coordinator: TransactionCoordinator,
    relocator: BlobRelocator,
    data: MessageCreate,
    actor: User,
    registry: Optional[ConnectionRegistry] = None,
) -> Message:
    """Persist a message and announce it to the project room.

    Raises:
        NotFoundError: If the project doesn't exist
        ForbiddenError: If the sender is not a project participant
        StorageError: If an attachment cannot be copied (no message is stored)
    """

    async def work(handle: TransactionHandle) -> Message:
        session = handle.session
        project = load_project_for(session, data.project_id, actor)

        message_id = uuid4()
        files = await relocator.relocate_files(
            handle,
            [f.model_dump(exclude_none=True) for f in data.files],
            key_computer_for(MESSAGE_NAMESPACE, project.id, message_id),
        )
        message = Message(
            id=message_id,
            project_id=project.id,
            sender_id=actor.id,
            content=data.content,
            files=files,
        )
        session.add(message)
        session.flush()

        if registry is not None:
            payload = {"message": message.to_dict(), "timestamp": utcnow().isoformat()}

            async def announce():
                await registry.emit_to_project(project.id, "message-created", payload)

            handle.after_commit(announce)
        return message

    message = await coordinator.run_atomic(work)
    logger.info(
        f"Message {message.id} posted to project {message.project_id}",
        extra={"entity_type": "message", "entity_id": message.id, "user_id": actor.id},
    )
    return message


def list_messages_query(db: Session, project_id: UUID, actor: User, is_read: Optional[bool] = None):
    load_project_for(db, project_id, actor)
    query = db.query(Message).filter(Message.project_id == project_id)
    if is_read is not None:
        query = query.filter(Message.is_read == is_read)
    return query.order_by(Message.created_at.desc())


async def mark_read(
    coordinator: TransactionCoordinator,
    message_id: UUID,
    actor: User,
    registry: Optional[ConnectionRegistry] = None,
) -> Message:
    """Mark a message read and send a read receipt to the rest of the room.

    Marking an already-read message is a no-op apart from the receipt.
    """

    async def work(handle: TransactionHandle) -> Message:
        session = handle.session
        message = session.get(Message, message_id)
        if not message:
            raise NotFoundError(f"Message {message_id} not found")
        load_project_for(session, message.project_id, actor)

        if not message.is_read:
            message.is_read = True
            message.read_at = utcnow()

        if registry is not None:
            payload = {
                "message_id": str(message.id),
                "user_id": str(actor.id),
                "timestamp": utcnow().isoformat(),
            }
            project_id = message.project_id

            async def receipt():
                await registry.emit_to_project(project_id, "message-read-receipt", payload)

            handle.after_commit(receipt)
        return message

    return await coordinator.run_atomic(work)
