"""BOM API endpoints"""

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
from .schemas import BomCreate, BomReview, BomStatusChange, BomUpdate

router = APIRouter(tags=["BOMs"])


@router.get("/boms/reusable")
def list_reusable_boms(
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.MANAGE_BOMS)),
    db: Session = Depends(get_db),
):
    return paginate(service.list_reusable_query(db), page)


@router.get("/boms/submitted")
def list_submitted_boms(
    status_filter: Optional[str] = Query(None, alias="status"),
    created_by_id: Optional[UUID] = Query(None),
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.REVIEW_BOMS)),
    db: Session = Depends(get_db),
):
    query = service.list_review_queue_query(db, status=status_filter, created_by_id=created_by_id)
    return paginate(query, page)


@router.post("/projects/{project_id}/boms", status_code=status.HTTP_201_CREATED)
def create_bom(
    project_id: UUID,
    body: BomCreate,
    current_user: User = Depends(require_right(Right.MANAGE_BOMS)),
    db: Session = Depends(get_db),
):
    return service.create_bom(db, project_id, body, current_user).to_dict()


@router.get("/projects/{project_id}/boms")
def list_boms(
    project_id: UUID,
    status_filter: Optional[str] = Query(None, alias="status"),
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.MANAGE_BOMS)),
    db: Session = Depends(get_db),
):
    return paginate(service.list_boms_query(db, project_id, status=status_filter), page)


@router.get("/projects/{project_id}/boms/{bom_id}")
def get_bom(
    project_id: UUID,
    bom_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_BOMS)),
    db: Session = Depends(get_db),
):
    return service.get_bom(db, project_id, bom_id).to_dict()


@router.patch("/projects/{project_id}/boms/{bom_id}")
def update_bom(
    project_id: UUID,
    bom_id: UUID,
    body: BomUpdate,
    current_user: User = Depends(require_right(Right.MANAGE_BOMS)),
    db: Session = Depends(get_db),
):
    """Edit a draft BOM. Replacing `items` recomputes every line total."""
    return service.update_bom(db, project_id, bom_id, body).to_dict()


@router.delete("/projects/{project_id}/boms/{bom_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_bom(
    project_id: UUID,
    bom_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_BOMS)),
    db: Session = Depends(get_db),
):
    service.delete_bom(db, project_id, bom_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/projects/{project_id}/boms/{bom_id}/status")
async def change_bom_status(
    project_id: UUID,
    bom_id: UUID,
    body: BomStatusChange,
    current_user: User = Depends(require_right(Right.MANAGE_BOMS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    bom = await service.change_status(
        coordinator, project_id, bom_id, body.status, current_user, remarks=body.remarks
    )
    return bom.to_dict()


@router.post("/projects/{project_id}/boms/{bom_id}/submit")
async def submit_bom(
    project_id: UUID,
    bom_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_BOMS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    bom = await service.submit_bom(coordinator, project_id, bom_id, current_user)
    return bom.to_dict()


@router.post("/projects/{project_id}/boms/{bom_id}/review")
async def review_bom(
    project_id: UUID,
    bom_id: UUID,
    body: BomReview,
    current_user: User = Depends(require_right(Right.REVIEW_BOMS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    bom = await service.review_bom(coordinator, project_id, bom_id, body, current_user)
    return bom.to_dict()
