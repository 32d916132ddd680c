"""Project assignment payments API endpoints"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..auth.dependencies import require_right
from ..auth.roles import Right
from ..database import get_db
from ..models.user import User
from ..pagination import PageParams, paginate
from . import service
from .schemas import AssignmentPaymentCreate, AssignmentPaymentUpdate

router = APIRouter(prefix="/assignment-payments", tags=["Assignment Payments"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_assignment_payment(
    body: AssignmentPaymentCreate,
    current_user: User = Depends(require_right(Right.MANAGE_WALLET)),
    db: Session = Depends(get_db),
):
    return service.create_payment(db, body, current_user).to_dict()


@router.get("")
def list_assignment_payments(
    project_id: Optional[UUID] = Query(None),
    user_id: Optional[UUID] = Query(None),
    project_name: Optional[str] = Query(None),
    user_name: Optional[str] = Query(None),
    user_role: Optional[str] = Query(None),
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.MANAGE_WALLET)),
    db: Session = Depends(get_db),
):
    query = service.list_payments_query(
        db,
        project_id=project_id,
        user_id=user_id,
        project_name=project_name,
        user_name=user_name,
        user_role=user_role,
    )
    return paginate(query, page)


@router.get("/{payment_id}")
def get_assignment_payment(
    payment_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_WALLET)),
    db: Session = Depends(get_db),
):
    return service.get_payment(db, payment_id).to_dict()


@router.patch("/{payment_id}")
def update_assignment_payment(
    payment_id: UUID,
    body: AssignmentPaymentUpdate,
    current_user: User = Depends(require_right(Right.MANAGE_WALLET)),
    db: Session = Depends(get_db),
):
    return service.update_payment(db, payment_id, body).to_dict()


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assignment_payment(
    payment_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_WALLET)),
    db: Session = Depends(get_db),
):
    service.delete_payment(db, payment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
