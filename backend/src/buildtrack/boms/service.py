"""BOM service.

Every status change goes through ``bom_machine``; edits and deletion are
only allowed while the BOM is a draft.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..domain.errors import NotFoundError
from ..domain.workflow.machines import BomStatus, bom_machine
from ..domain.workflow.transaction import TransactionCoordinator, TransactionHandle
from ..models.bom import Bom, BomItem
from ..models.project import Project
from ..models.user import User
from .schemas import BomCreate, BomItemIn, BomReview, BomUpdate

logger = logging.getLogger(__name__)

REVIEW_QUEUE_STATUSES = (
    BomStatus.SUBMITTED.value,
    BomStatus.APPROVED.value,
    BomStatus.REJECTED.value,
)


def line_total(quantity: Decimal, unit_cost: Decimal) -> Decimal:
    return (Decimal(quantity) * Decimal(unit_cost)).quantize(Decimal("0.01"))


def _build_items(items: Iterable[BomItemIn]) -> list:
    return [
        BomItem(
            position=position,
            material_name=item.material_name,
            specification=item.specification,
            unit=item.unit,
            quantity=item.quantity,
            estimated_unit_cost=item.estimated_unit_cost,
            total_cost=line_total(item.quantity, item.estimated_unit_cost),
        )
        for position, item in enumerate(items)
    ]


def _load_bom(session: Session, project_id: UUID, bom_id: UUID) -> Bom:
    bom = session.get(Bom, bom_id)
    if not bom or bom.project_id != project_id:
        raise NotFoundError("BOM not found")
    return bom


def create_bom(db: Session, project_id: UUID, data: BomCreate, actor: User) -> Bom:
    """Create a draft BOM as the project's next version."""
    if not db.get(Project, project_id):
        raise NotFoundError(f"Project {project_id} not found")

    last_version = db.query(func.max(Bom.version)).filter(Bom.project_id == project_id).scalar()
    bom = Bom(
        project_id=project_id,
        version=(last_version or 0) + 1,
        title=data.title,
        remarks=data.remarks,
        is_reusable=data.is_reusable,
        status=BomStatus.DRAFT.value,
        created_by_id=actor.id,
    )
    bom.items = _build_items(data.items)
    db.add(bom)
    db.commit()
    db.refresh(bom)
    logger.info(
        f"BOM v{bom.version} created for project {project_id}",
        extra={"entity_type": "bom", "entity_id": bom.id, "user_id": actor.id},
    )
    return bom


def list_boms_query(db: Session, project_id: UUID, status: Optional[str] = None):
    query = db.query(Bom).filter(Bom.project_id == project_id)
    if status:
        query = query.filter(Bom.status == status)
    return query.order_by(Bom.version.desc())


def get_bom(db: Session, project_id: UUID, bom_id: UUID) -> Bom:
    return _load_bom(db, project_id, bom_id)


def update_bom(db: Session, project_id: UUID, bom_id: UUID, data: BomUpdate) -> Bom:
    bom = _load_bom(db, project_id, bom_id)
    bom_machine.ensure_status(bom, [BomStatus.DRAFT])

    updates = data.model_dump(exclude_unset=True, exclude={"items"})
    for field, value in updates.items():
        setattr(bom, field, value)
    if data.items is not None:
        bom.items = _build_items(data.items)

    db.commit()
    db.refresh(bom)
    return bom


def delete_bom(db: Session, project_id: UUID, bom_id: UUID) -> None:
    bom = _load_bom(db, project_id, bom_id)
    bom_machine.ensure_status(bom, [BomStatus.DRAFT])
    db.delete(bom)
    db.commit()


async def change_status(
    coordinator: TransactionCoordinator,
    project_id: UUID,
    bom_id: UUID,
    status: str,
    actor: User,
    remarks: Optional[str] = None,
) -> Bom:

    async def work(handle: TransactionHandle) -> Bom:
        bom = _load_bom(handle.session, project_id, bom_id)
        await bom_machine.transition(handle, bom, status, actor=actor)
        if remarks is not None:
            bom.remarks = remarks
        # loaded before the session closes so the response can serialize them
        list(bom.items)
        return bom

    return await coordinator.run_atomic(work)


async def submit_bom(
    coordinator: TransactionCoordinator,
    project_id: UUID,
    bom_id: UUID,
    actor: User,
) -> Bom:
    return await change_status(coordinator, project_id, bom_id, BomStatus.SUBMITTED.value, actor)


async def review_bom(
    coordinator: TransactionCoordinator,
    project_id: UUID,
    bom_id: UUID,
    review: BomReview,
    actor: User,
) -> Bom:
    """Admin decision on a submitted BOM."""

    async def work(handle: TransactionHandle) -> Bom:
        bom = _load_bom(handle.session, project_id, bom_id)
        bom_machine.ensure_status(bom, [BomStatus.SUBMITTED])
        await bom_machine.transition(handle, bom, review.status, actor=actor)
        bom.admin_remarks = review.admin_remarks
        bom.reviewed_by_id = actor.id
        list(bom.items)
        return bom

    return await coordinator.run_atomic(work)


def list_reusable_query(db: Session):
    return db.query(Bom).filter(Bom.is_reusable.is_(True)).order_by(Bom.created_at.desc())


def list_review_queue_query(
    db: Session,
    status: Optional[str] = None,
    created_by_id: Optional[UUID] = None,
):
    """BOMs that have been submitted at least once, for the admin review screen."""
    query = db.query(Bom)
    if status:
        query = query.filter(Bom.status == status)
    else:
        query = query.filter(Bom.status.in_(REVIEW_QUEUE_STATUSES))
    if created_by_id:
        query = query.filter(Bom.created_by_id == created_by_id)
    return query.order_by(Bom.updated_at.desc())
