"""Site visits API endpoints"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth.dependencies import require_right
from ..auth.roles import Right
from ..database import get_db
from ..dependencies import get_coordinator, get_registry, get_relocator
from ..domain.workflow.relocation import BlobRelocator
from ..domain.workflow.transaction import TransactionCoordinator
from ..models.user import User
from ..realtime.registry import ConnectionRegistry
from . import service
from .schemas import SiteVisitProgress, SiteVisitSchedule

router = APIRouter(tags=["Site Visits"])


@router.post("/requirements/{requirement_id}/site-visits", status_code=status.HTTP_201_CREATED)
def schedule_site_visit(
    requirement_id: UUID,
    body: SiteVisitSchedule,
    current_user: User = Depends(require_right(Right.MANAGE_SITE_VISITS)),
    db: Session = Depends(get_db),
):
    return service.schedule_visit(db, requirement_id, body, current_user).to_dict()


@router.get("/requirements/{requirement_id}/site-visits")
def list_site_visits(
    requirement_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_SITE_VISITS)),
    db: Session = Depends(get_db),
):
    return [v.to_dict() for v in service.list_visits_for_requirement(db, requirement_id)]


@router.get("/site-visits/{visit_id}")
def get_site_visit(
    visit_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_SITE_VISITS)),
    db: Session = Depends(get_db),
):
    return service.get_visit(db, visit_id).to_dict()


@router.patch("/site-visits/{visit_id}")
async def save_site_visit_progress(
    visit_id: UUID,
    body: SiteVisitProgress,
    current_user: User = Depends(require_right(Right.MANAGE_SITE_VISITS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    relocator: BlobRelocator = Depends(get_relocator),
):
    visit = await service.save_progress(coordinator, relocator, visit_id, body, current_user)
    return visit.to_dict()


@router.post("/site-visits/{visit_id}/complete")
async def complete_site_visit(
    visit_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_SITE_VISITS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    visit = await service.complete_visit(coordinator, visit_id, current_user)
    return visit.to_dict()


@router.post("/site-visits/{visit_id}/approve")
async def approve_site_visit(
    visit_id: UUID,
    current_user: User = Depends(require_right(Right.APPROVE_SITE_VISITS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    registry: ConnectionRegistry = Depends(get_registry),
):
    """Approve a Completed visit: merge its draft and outdate sibling visits."""
    visit = await service.approve_visit(coordinator, visit_id, current_user, registry)
    return visit.to_dict()


@router.post("/site-visits/{visit_id}/cancel")
async def cancel_site_visit(
    visit_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_SITE_VISITS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    visit = await service.cancel_visit(coordinator, visit_id, current_user)
    return visit.to_dict()
