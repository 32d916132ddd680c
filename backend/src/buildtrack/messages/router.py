"""Project messages API endpoints"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user
from ..database import get_db
from ..dependencies import get_coordinator, get_registry, get_relocator
from ..domain.workflow.relocation import BlobRelocator
from ..domain.workflow.transaction import TransactionCoordinator
from ..models.user import User
from ..pagination import PageParams, paginate
from ..realtime.registry import ConnectionRegistry
from . import service
from .schemas import MessageCreate

router = APIRouter(tags=["Messages"])


@router.post("/messages", status_code=status.HTTP_201_CREATED)
async def post_message(
    body: MessageCreate,
    current_user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    relocator: BlobRelocator = Depends(get_relocator),
    registry: ConnectionRegistry = Depends(get_registry),
):
    message = await service.post_message(coordinator, relocator, body, current_user, registry=registry)
    return message.to_dict()


@router.get("/projects/{project_id}/messages")
def list_project_messages(
    project_id: UUID,
    is_read: Optional[bool] = Query(None),
    page: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = service.list_messages_query(db, project_id, current_user, is_read=is_read)
    return paginate(query, page)


@router.post("/messages/{message_id}/read")
async def mark_message_read(
    message_id: UUID,
    current_user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    registry: ConnectionRegistry = Depends(get_registry),
):
    message = await service.mark_read(coordinator, message_id, current_user, registry=registry)
    return message.to_dict()
