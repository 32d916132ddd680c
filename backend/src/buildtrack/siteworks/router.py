"""Siteworks API endpoints"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user, require_right
from ..auth.roles import Right
from ..database import get_db
from ..dependencies import get_coordinator, get_relocator
from ..domain.workflow.relocation import BlobRelocator
from ..domain.workflow.transaction import TransactionCoordinator
from ..models.user import User
from . import service
from .schemas import SiteworkCreate, SiteworkDocumentCreate, SiteworkDocumentReview, SiteworkUpdate

router = APIRouter(tags=["Siteworks"])


@router.post("/siteworks", status_code=status.HTTP_201_CREATED)
async def create_sitework(
    body: SiteworkCreate,
    current_user: User = Depends(require_right(Right.MANAGE_SITEWORKS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    sitework = await service.create_sitework(coordinator, body, current_user)
    return sitework.to_dict()


@router.patch("/siteworks/{sitework_id}")
async def update_sitework(
    sitework_id: UUID,
    body: SiteworkUpdate,
    current_user: User = Depends(require_right(Right.MANAGE_SITEWORKS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    sitework = await service.update_sitework(coordinator, sitework_id, body, current_user)
    return sitework.to_dict()


@router.get("/projects/{project_id}/siteworks")
def list_project_siteworks(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return service.list_project_siteworks(db, project_id, current_user)


@router.post("/siteworks/{sitework_id}/documents", status_code=status.HTTP_201_CREATED)
async def add_sitework_document(
    sitework_id: UUID,
    body: SiteworkDocumentCreate,
    current_user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    relocator: BlobRelocator = Depends(get_relocator),
):
    document = await service.add_document(coordinator, relocator, sitework_id, body, current_user)
    return document.to_dict()


@router.get("/siteworks/{sitework_id}/documents")
def list_sitework_documents(
    sitework_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return [d.to_dict() for d in service.list_documents(db, sitework_id, current_user)]


@router.post("/siteworks/{sitework_id}/documents/{document_id}/review")
async def review_sitework_document(
    sitework_id: UUID,
    document_id: UUID,
    body: SiteworkDocumentReview,
    current_user: User = Depends(get_current_user),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    document = await service.review_document(coordinator, sitework_id, document_id, body, current_user)
    return document.to_dict()
