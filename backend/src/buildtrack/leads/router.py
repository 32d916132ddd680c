"""Customer leads API endpoints"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user, require_right
from ..auth.roles import Right
from ..database import get_db
from ..dependencies import get_coordinator, get_relocator
from ..domain.workflow.relocation import BlobRelocator
from ..domain.workflow.transaction import TransactionCoordinator
from ..models.user import User
from ..pagination import PageParams, paginate
from . import service
from .schemas import LeadCreate, LeadUpdate, ShareRequirementRequest

router = APIRouter(prefix="/customer-leads", tags=["Customer Leads"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_lead(
    body: LeadCreate,
    current_user: User = Depends(require_right(Right.MANAGE_LEADS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    relocator: BlobRelocator = Depends(get_relocator),
):
    """Create a lead with one or more requirements.

    Files referenced by staged keys are moved to permanent storage as part
    of the same transaction; a failed copy leaves no lead behind.
    """
    lead = await service.create_lead(coordinator, relocator, body, current_user)
    return lead.to_dict()


@router.get("")
def list_leads(
    lead_source: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    customer_name: Optional[str] = Query(None, description="Case-insensitive substring"),
    created_by_id: Optional[UUID] = Query(None),
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.MANAGE_LEADS)),
    db: Session = Depends(get_db),
):
    query = service.list_leads_query(
        db,
        lead_source=lead_source,
        city=city,
        state=state,
        is_active=is_active,
        customer_name=customer_name,
        created_by_id=created_by_id,
    )
    return paginate(query, page)


@router.get("/shared-with-me")
def list_shared_requirements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return service.list_shared_requirements(db, current_user)


@router.get("/{lead_id}")
def get_lead(
    lead_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_LEADS)),
    db: Session = Depends(get_db),
):
    return service.get_lead(db, lead_id).to_dict()


@router.patch("/{lead_id}")
def update_lead(
    lead_id: UUID,
    body: LeadUpdate,
    current_user: User = Depends(require_right(Right.MANAGE_LEADS)),
    db: Session = Depends(get_db),
):
    return service.update_lead(db, lead_id, body).to_dict()


@router.post("/{lead_id}/activate")
def activate_lead(
    lead_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_LEADS)),
    db: Session = Depends(get_db),
):
    return service.set_lead_active(db, lead_id, True).to_dict()


@router.post("/{lead_id}/deactivate")
def deactivate_lead(
    lead_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_LEADS)),
    db: Session = Depends(get_db),
):
    return service.set_lead_active(db, lead_id, False).to_dict()


@router.post("/{lead_id}/requirements/{requirement_id}/share", status_code=status.HTTP_201_CREATED)
def share_requirement(
    lead_id: UUID,
    requirement_id: UUID,
    body: ShareRequirementRequest,
    current_user: User = Depends(require_right(Right.MANAGE_LEADS)),
    db: Session = Depends(get_db),
):
    return service.share_requirement(db, lead_id, requirement_id, body.user_id, current_user).to_dict()
