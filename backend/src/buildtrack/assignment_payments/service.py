"""Project assignment payment service.

One row per (project, user) pair. Rows are created here directly or upserted
by the sitework service when users are assigned to work on a project.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..domain.errors import InvalidInputError, NotFoundError
from ..models.project import Project
from ..models.sitework import ProjectAssignmentPayment
from ..models.user import User
from .schemas import AssignmentPaymentCreate, AssignmentPaymentUpdate

logger = logging.getLogger(__name__)


def upsert_assignment(
    session: Session,
    project_id: UUID,
    user_id: UUID,
    assigned_amount: Decimal,
    per_day_amount: Decimal,
    actor: User,
    overwrite: bool = True,
) -> ProjectAssignmentPayment:
    """Create the (project, user) row, or update its amounts when `overwrite` is set.

    Adds to the caller's session without committing.
    """
    payment = session.query(ProjectAssignmentPayment).filter(
        ProjectAssignmentPayment.project_id == project_id,
        ProjectAssignmentPayment.user_id == user_id,
    ).one_or_none()
    if payment is None:
        payment = ProjectAssignmentPayment(
            project_id=project_id,
            user_id=user_id,
            assigned_amount=assigned_amount,
            per_day_amount=per_day_amount,
            created_by_id=actor.id,
        )
        session.add(payment)
    elif overwrite:
        payment.assigned_amount = assigned_amount
        payment.per_day_amount = per_day_amount
    return payment


def create_payment(db: Session, data: AssignmentPaymentCreate, actor: User) -> ProjectAssignmentPayment:
    """Raises:
        NotFoundError: If the project or user doesn't exist
        InvalidInputError: If the user already has a payment on this project
    """
    if not db.get(Project, data.project_id):
        raise NotFoundError(f"Project {data.project_id} not found")
    if not db.get(User, data.user_id):
        raise NotFoundError(f"User {data.user_id} not found")
    exists = db.query(ProjectAssignmentPayment.id).filter(
        ProjectAssignmentPayment.project_id == data.project_id,
        ProjectAssignmentPayment.user_id == data.user_id,
    ).first()
    if exists:
        raise InvalidInputError("User already has an assignment payment for this project")

    payment = ProjectAssignmentPayment(**data.model_dump(), created_by_id=actor.id)
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def get_payment(db: Session, payment_id: UUID) -> ProjectAssignmentPayment:
    payment = db.get(ProjectAssignmentPayment, payment_id)
    if not payment:
        raise NotFoundError(f"Assignment payment {payment_id} not found")
    return payment


def list_payments_query(
    db: Session,
    project_id: Optional[UUID] = None,
    user_id: Optional[UUID] = None,
    project_name: Optional[str] = None,
    user_name: Optional[str] = None,
    user_role: Optional[str] = None,
):
    query = db.query(ProjectAssignmentPayment)
    if project_id:
        query = query.filter(ProjectAssignmentPayment.project_id == project_id)
    if user_id:
        query = query.filter(ProjectAssignmentPayment.user_id == user_id)
    if project_name:
        query = query.join(Project, Project.id == ProjectAssignmentPayment.project_id).filter(
            Project.project_name.ilike(f"%{project_name}%")
        )
    if user_name or user_role:
        query = query.join(User, User.id == ProjectAssignmentPayment.user_id)
        if user_name:
            query = query.filter(User.name.ilike(f"%{user_name}%"))
        if user_role:
            query = query.filter(User.role == user_role)
    return query.order_by(ProjectAssignmentPayment.created_at.desc())


def update_payment(db: Session, payment_id: UUID, data: AssignmentPaymentUpdate) -> ProjectAssignmentPayment:
    payment = get_payment(db, payment_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(payment, field, value)
    db.commit()
    db.refresh(payment)
    return payment


def delete_payment(db: Session, payment_id: UUID) -> None:
    payment = get_payment(db, payment_id)
    db.delete(payment)
    db.commit()
    logger.info(
        f"Assignment payment {payment_id} deleted",
        extra={"entity_type": "project_assignment_payment", "entity_id": payment_id},
    )
