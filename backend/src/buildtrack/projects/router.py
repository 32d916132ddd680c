"""Projects, architect proposals and architect documents API endpoints"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user, require_right, require_roles
from ..auth.roles import Right, UserRole
from ..database import get_db
from ..dependencies import get_coordinator, get_relocator
from ..domain.workflow.relocation import BlobRelocator
from ..domain.workflow.transaction import TransactionCoordinator
from ..models.user import User
from ..pagination import PageParams, paginate
from . import documents, service
from .schemas import (
    ArchitectDocumentSubmit,
    ArchitectProposalCreate,
    ArchitectProposalStatusChange,
    DocumentReview,
    ProjectCreate,
)

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    body: ProjectCreate,
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.SALES_ADMIN)),
    db: Session = Depends(get_db),
):
    return service.create_project(db, body, current_user).to_dict()


@router.get("")
def list_projects(
    status_filter: Optional[str] = Query(None, alias="status"),
    project_name: Optional[str] = Query(None),
    page: PageParams = Depends(),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = service.list_projects_query(db, current_user, status=status_filter, project_name=project_name)
    return paginate(query, page)


@router.get("/procurement/documents")
def list_procurement_documents(
    project_id: Optional[UUID] = Query(None),
    current_user: User = Depends(require_right(Right.MANAGE_PROCUREMENT)),
    db: Session = Depends(get_db),
):
    return [d.to_dict() for d in documents.list_procurement_documents(db, project_id)]


@router.get("/{project_id}")
def get_project(
    project_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return service.get_project(db, project_id).to_dict()


# Architect proposals

@router.post("/{project_id}/proposals", status_code=status.HTTP_201_CREATED)
def add_architect_proposal(
    project_id: UUID,
    body: ArchitectProposalCreate,
    current_user: User = Depends(require_roles(UserRole.ARCHITECT)),
    db: Session = Depends(get_db),
):
    return service.add_architect_proposal(db, project_id, body, current_user).to_dict()


@router.get("/{project_id}/proposals")
def list_architect_proposals(
    project_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_PROJECTS)),
    db: Session = Depends(get_db),
):
    return [p.to_dict() for p in service.list_proposals(db, project_id)]


@router.post("/{project_id}/proposals/{proposal_id}/status")
async def change_architect_proposal_status(
    project_id: UUID,
    proposal_id: UUID,
    body: ArchitectProposalStatusChange,
    current_user: User = Depends(require_right(Right.MANAGE_PROJECTS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    proposal = await service.change_proposal_status(
        coordinator, project_id, proposal_id, body.status, current_user, response=body.response
    )
    return proposal.to_dict()


@router.post("/{project_id}/proposals/{proposal_id}/accept")
async def accept_architect_proposal(
    project_id: UUID,
    proposal_id: UUID,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    """Accept a proposal: assigns the architect and rejects the other open proposals."""
    proposal = await service.change_proposal_status(
        coordinator, project_id, proposal_id, "Accepted", current_user
    )
    return proposal.to_dict()


# Architect documents

@router.post("/{project_id}/documents", status_code=status.HTTP_201_CREATED)
async def submit_architect_document(
    project_id: UUID,
    body: ArchitectDocumentSubmit,
    current_user: User = Depends(require_roles(UserRole.ARCHITECT)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    relocator: BlobRelocator = Depends(get_relocator),
):
    document = await documents.submit_document(coordinator, relocator, project_id, body, current_user)
    return document.to_dict()


@router.get("/{project_id}/documents")
def list_architect_documents(
    project_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_PROJECTS)),
    db: Session = Depends(get_db),
):
    return [d.to_dict() for d in documents.list_documents(db, project_id)]


@router.post("/{project_id}/documents/{document_id}/review")
async def review_architect_document(
    project_id: UUID,
    document_id: UUID,
    body: DocumentReview,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    document = await documents.admin_review(coordinator, project_id, document_id, body, current_user)
    return document.to_dict()


@router.post("/{project_id}/documents/{document_id}/send-to-customer")
def send_document_to_customer(
    project_id: UUID,
    document_id: UUID,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    return documents.send_to_customer(db, project_id, document_id).to_dict()


@router.get("/{project_id}/documents/customer")
def list_customer_documents(
    project_id: UUID,
    current_user: User = Depends(require_right(Right.REVIEW_DOCUMENTS)),
    db: Session = Depends(get_db),
):
    return [d.to_dict() for d in documents.list_customer_documents(db, project_id, current_user)]


@router.post("/{project_id}/documents/{document_id}/customer-review")
async def customer_review_document(
    project_id: UUID,
    document_id: UUID,
    body: DocumentReview,
    current_user: User = Depends(require_roles(UserRole.CUSTOMER)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    document = await documents.customer_review(coordinator, project_id, document_id, body, current_user)
    return document.to_dict()


@router.post("/{project_id}/documents/{document_id}/send-to-procurement")
def send_document_to_procurement(
    project_id: UUID,
    document_id: UUID,
    current_user: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    return documents.send_to_procurement(db, project_id, document_id).to_dict()
