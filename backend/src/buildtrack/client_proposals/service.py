"""Client proposal service."""

from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..auth.roles import UserRole
from ..domain.errors import ForbiddenError, NotFoundError
from ..domain.workflow.machines import ClientProposalStatus, client_proposal_machine
from ..domain.workflow.transaction import TransactionCoordinator, TransactionHandle
from ..models.client_proposal import ClientProposal
from ..models.project import Project
from ..models.user import User
from .schemas import ClientProposalCreate, ClientProposalUpdate


def _ensure_owner_or_admin(proposal: ClientProposal, actor: User) -> None:
    if actor.role == UserRole.ADMIN.value:
        return
    if proposal.created_by_id != actor.id:
        raise ForbiddenError("Only the creator or an admin can modify this proposal")


def _load(session: Session, proposal_id: UUID) -> ClientProposal:
    proposal = session.get(ClientProposal, proposal_id)
    if not proposal:
        raise NotFoundError(f"Client proposal {proposal_id} not found")
    return proposal


def create_proposal(db: Session, data: ClientProposalCreate, actor: User) -> ClientProposal:
    if not db.get(Project, data.project_id):
        raise NotFoundError(f"Project {data.project_id} not found")
    proposal = ClientProposal(
        project_id=data.project_id,
        title=data.title,
        customer_info=data.customer_info,
        sections=[s.model_dump() for s in data.sections],
        total_amount=data.total_amount,
        status=ClientProposalStatus.DRAFT.value,
        version=1,
        created_by_id=actor.id,
    )
    db.add(proposal)
    db.commit()
    db.refresh(proposal)
    return proposal


def list_proposals_query(
    db: Session,
    project_id: Optional[UUID] = None,
    status: Optional[str] = None,
    created_by_id: Optional[UUID] = None,
):
    query = db.query(ClientProposal)
    if project_id:
        query = query.filter(ClientProposal.project_id == project_id)
    if status:
        query = query.filter(ClientProposal.status == status)
    if created_by_id:
        query = query.filter(ClientProposal.created_by_id == created_by_id)
    return query.order_by(ClientProposal.created_at.desc())


def get_proposal(db: Session, proposal_id: UUID) -> ClientProposal:
    return _load(db, proposal_id)


def update_proposal(
    db: Session,
    proposal_id: UUID,
    data: ClientProposalUpdate,
    actor: User,
) -> ClientProposal:
    proposal = _load(db, proposal_id)
    _ensure_owner_or_admin(proposal, actor)
    # sent and approved proposals change through create_new_version
    client_proposal_machine.ensure_status(proposal, [ClientProposalStatus.DRAFT])
    updates = data.model_dump(exclude_unset=True)
    if "sections" in updates and updates["sections"] is not None:
        updates["sections"] = [dict(s) for s in updates["sections"]]
    for field, value in updates.items():
        setattr(proposal, field, value)
    db.commit()
    db.refresh(proposal)
    return proposal


async def change_status(
    coordinator: TransactionCoordinator,
    proposal_id: UUID,
    status: str,
    actor: User,
) -> ClientProposal:

    async def work(handle: TransactionHandle) -> ClientProposal:
        proposal = _load(handle.session, proposal_id)
        _ensure_owner_or_admin(proposal, actor)
        await client_proposal_machine.transition(handle, proposal, status, actor=actor)
        return proposal

    return await coordinator.run_atomic(work)


def create_new_version(
    db: Session,
    proposal_id: UUID,
    data: ClientProposalUpdate,
    actor: User,
) -> ClientProposal:
    """Copy a proposal as version + 1 in draft, applying `data` on top."""
    original = _load(db, proposal_id)
    _ensure_owner_or_admin(original, actor)

    latest = db.query(ClientProposal.version).filter(
        ClientProposal.project_id == original.project_id,
        ClientProposal.title == original.title,
    ).order_by(ClientProposal.version.desc()).first()

    copy = ClientProposal(
        project_id=original.project_id,
        title=original.title,
        customer_info=dict(original.customer_info or {}),
        sections=list(original.sections or []),
        total_amount=original.total_amount,
        status=ClientProposalStatus.DRAFT.value,
        version=max(original.version, latest[0] if latest else 0) + 1,
        parent_proposal_id=original.id,
        created_by_id=actor.id,
    )
    updates = data.model_dump(exclude_unset=True)
    if "sections" in updates and updates["sections"] is not None:
        updates["sections"] = [dict(s) for s in updates["sections"]]
    for field, value in updates.items():
        setattr(copy, field, value)

    db.add(copy)
    db.commit()
    db.refresh(copy)
    return copy


def delete_proposal(db: Session, proposal_id: UUID, actor: User) -> None:
    proposal = _load(db, proposal_id)
    _ensure_owner_or_admin(proposal, actor)
    client_proposal_machine.ensure_status(proposal, [ClientProposalStatus.DRAFT])
    db.delete(proposal)
    db.commit()
