"""Client proposals API endpoints"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..auth.dependencies import require_right
from ..auth.roles import Right
from ..database import get_db
from ..dependencies import get_coordinator
from ..domain.workflow.transaction import TransactionCoordinator
from ..models.user import User
from ..pagination import PageParams, paginate
from . import service
from .schemas import ClientProposalCreate, ClientProposalStatusChange, ClientProposalUpdate

router = APIRouter(prefix="/client-proposals", tags=["Client Proposals"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_client_proposal(
    body: ClientProposalCreate,
    current_user: User = Depends(require_right(Right.MANAGE_PROPOSALS)),
    db: Session = Depends(get_db),
):
    return service.create_proposal(db, body, current_user).to_dict()


@router.get("")
def list_client_proposals(
    project_id: Optional[UUID] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    created_by_id: Optional[UUID] = Query(None),
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.MANAGE_PROPOSALS)),
    db: Session = Depends(get_db),
):
    query = service.list_proposals_query(
        db, project_id=project_id, status=status_filter, created_by_id=created_by_id
    )
    return paginate(query, page)


@router.get("/{proposal_id}")
def get_client_proposal(
    proposal_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_PROPOSALS)),
    db: Session = Depends(get_db),
):
    return service.get_proposal(db, proposal_id).to_dict()


@router.patch("/{proposal_id}")
def update_client_proposal(
    proposal_id: UUID,
    body: ClientProposalUpdate,
    current_user: User = Depends(require_right(Right.MANAGE_PROPOSALS)),
    db: Session = Depends(get_db),
):
    return service.update_proposal(db, proposal_id, body, current_user).to_dict()


@router.post("/{proposal_id}/status")
async def change_client_proposal_status(
    proposal_id: UUID,
    body: ClientProposalStatusChange,
    current_user: User = Depends(require_right(Right.MANAGE_PROPOSALS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    proposal = await service.change_status(coordinator, proposal_id, body.status, current_user)
    return proposal.to_dict()


@router.post("/{proposal_id}/versions", status_code=status.HTTP_201_CREATED)
def create_client_proposal_version(
    proposal_id: UUID,
    body: ClientProposalUpdate,
    current_user: User = Depends(require_right(Right.MANAGE_PROPOSALS)),
    db: Session = Depends(get_db),
):
    return service.create_new_version(db, proposal_id, body, current_user).to_dict()


@router.delete("/{proposal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client_proposal(
    proposal_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_PROPOSALS)),
    db: Session = Depends(get_db),
):
    service.delete_proposal(db, proposal_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
