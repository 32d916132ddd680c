"""Site visit workflow service.

Visits move Scheduled → InProgress → Completed → Approved through
``site_visit_machine``. Approval merges the visit's draft into the
requirement's canonical ``scp_data`` and supersedes sibling visits, all in
the transaction that writes the Approved status.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..auth.roles import UserRole
from ..domain.errors import ForbiddenError, InvalidInputError, NotFoundError
from ..domain.workflow.machines import SiteVisitStatus, site_visit_machine
from ..domain.workflow.relocation import BlobRelocator, key_computer_for
from ..domain.workflow.transaction import TransactionCoordinator, TransactionHandle
from ..leads.service import LEAD_FILE_NAMESPACE, get_requirement
from ..models.customer_lead import Requirement
from ..models.site_visit import SiteVisit
from ..models.user import User
from ..realtime.registry import ConnectionRegistry
from .schemas import SiteVisitProgress, SiteVisitSchedule

logger = logging.getLogger(__name__)

# Roles that may act on visits assigned to someone else
SUPERVISOR_ROLES = (UserRole.ADMIN.value, UserRole.SALES_ADMIN.value)


def _load_visit(session: Session, visit_id: UUID) -> SiteVisit:
    visit = session.get(SiteVisit, visit_id)
    if not visit:
        raise NotFoundError(f"Site visit {visit_id} not found")
    return visit


def _ensure_assigned(visit: SiteVisit, actor: User) -> None:
    if actor.role in SUPERVISOR_ROLES:
        return
    if visit.site_engineer_id != actor.id:
        raise ForbiddenError("Site visit is assigned to another site engineer")


def schedule_visit(
    db: Session,
    requirement_id: UUID,
    data: SiteVisitSchedule,
    actor: User,
) -> SiteVisit:
    """Schedule a visit for a requirement.

    Raises:
        NotFoundError: If the requirement doesn't exist
        InvalidInputError: If the assignee is missing or not a site engineer
    """
    requirement = get_requirement(db, requirement_id)

    engineer = db.get(User, data.site_engineer_id)
    if not engineer or engineer.role != UserRole.SITE_ENGINEER.value:
        raise InvalidInputError("Invalid site engineer")

    visit = SiteVisit(
        requirement_id=requirement.id,
        project_id=requirement.project_id,
        site_engineer_id=engineer.id,
        visit_date=data.visit_date,
        remarks=data.remarks,
        status=SiteVisitStatus.SCHEDULED.value,
        scheduled_by_id=actor.id,
    )
    db.add(visit)
    db.commit()
    db.refresh(visit)
    logger.info(
        f"Site visit {visit.id} scheduled for requirement {requirement_id}",
        extra={"entity_type": "site_visit", "entity_id": visit.id, "user_id": actor.id},
    )
    return visit


def list_visits_for_requirement(db: Session, requirement_id: UUID) -> List[SiteVisit]:
    return db.query(SiteVisit).filter(
        SiteVisit.requirement_id == requirement_id
    ).order_by(SiteVisit.visit_date.desc()).all()


def get_visit(db: Session, visit_id: UUID) -> SiteVisit:
    return _load_visit(db, visit_id)


async def save_progress(
    coordinator: TransactionCoordinator,
    relocator: BlobRelocator,
    visit_id: UUID,
    data: SiteVisitProgress,
    actor: User,
) -> SiteVisit:
    """Save the engineer's draft; the first save moves the visit to InProgress."""

    async def work(handle: TransactionHandle) -> SiteVisit:
        session = handle.session
        visit = _load_visit(session, visit_id)
        _ensure_assigned(visit, actor)
        site_visit_machine.ensure_status(
            visit, [SiteVisitStatus.SCHEDULED, SiteVisitStatus.IN_PROGRESS]
        )

        requirement = session.get(Requirement, visit.requirement_id)
        if not requirement:
            raise NotFoundError(f"Requirement {visit.requirement_id} not found")

        if data.files:
            relocated = await relocator.relocate_files(
                handle,
                [f.model_dump(exclude_none=True) for f in data.files],
                key_computer_for(LEAD_FILE_NAMESPACE, requirement.lead_id, requirement.id, visit.id),
            )
            visit.files = list(visit.files or []) + relocated

        if data.updated_data is not None:
            draft = dict(visit.updated_data or {})
            draft.update(data.updated_data)
            visit.updated_data = draft
        if data.remarks is not None:
            visit.remarks = data.remarks
        if data.visit_date is not None:
            visit.visit_date = data.visit_date

        if visit.status == SiteVisitStatus.SCHEDULED.value:
            await site_visit_machine.transition(
                handle, visit, SiteVisitStatus.IN_PROGRESS, actor=actor
            )

        session.flush()
        return visit

    return await coordinator.run_atomic(work)


async def complete_visit(
    coordinator: TransactionCoordinator,
    visit_id: UUID,
    actor: User,
) -> SiteVisit:

    async def work(handle: TransactionHandle) -> SiteVisit:
        visit = _load_visit(handle.session, visit_id)
        _ensure_assigned(visit, actor)
        await site_visit_machine.transition(handle, visit, SiteVisitStatus.COMPLETED, actor=actor)
        return visit

    return await coordinator.run_atomic(work)


async def approve_visit(
    coordinator: TransactionCoordinator,
    visit_id: UUID,
    actor: User,
    registry: Optional[ConnectionRegistry] = None,
) -> SiteVisit:
    """Approve a completed visit and merge its draft into the requirement.

    Raises:
        NotFoundError: If the visit or its requirement doesn't exist
        InvalidTransitionError: If the visit is not Completed
        ForbiddenError: If the actor is not an admin
    """

    async def work(handle: TransactionHandle) -> SiteVisit:
        visit = _load_visit(handle.session, visit_id)
        await site_visit_machine.transition(handle, visit, SiteVisitStatus.APPROVED, actor=actor)
        if registry is not None:
            payload = {
                "site_visit_id": str(visit.id),
                "requirement_id": str(visit.requirement_id),
                "approved_by": str(actor.id),
            }
            project_id = visit.project_id
            engineer_id = visit.site_engineer_id

            async def notify():
                if project_id:
                    await registry.emit_to_project(project_id, "site-visit-approved", payload)
                if engineer_id:
                    await registry.emit_to_user(engineer_id, "site-visit-approved", payload)

            handle.after_commit(notify)
        return visit

    return await coordinator.run_atomic(work)


async def cancel_visit(
    coordinator: TransactionCoordinator,
    visit_id: UUID,
    actor: User,
) -> SiteVisit:

    async def work(handle: TransactionHandle) -> SiteVisit:
        visit = _load_visit(handle.session, visit_id)
        if actor.role not in SUPERVISOR_ROLES:
            raise ForbiddenError("Only admins can cancel site visits")
        await site_visit_machine.transition(handle, visit, SiteVisitStatus.CANCELLED, actor=actor)
        return visit

    return await coordinator.run_atomic(work)
