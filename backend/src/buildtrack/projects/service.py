"""Project and architect proposal service."""

import logging
import random
import time
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth.roles import UserRole
from ..domain.errors import ForbiddenError, InvalidInputError, NotFoundError
from ..domain.workflow.machines import ArchitectProposalStatus, architect_proposal_machine
from ..domain.workflow.transaction import TransactionCoordinator, TransactionHandle
from ..models.customer_lead import CustomerLead, Requirement
from ..models.project import ArchitectProposal, Project
from ..models.user import User
from .schemas import ArchitectProposalCreate, ProjectCreate

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 10


def generate_project_code(db: Session) -> str:
    """Unique code ``PROJ-<last 6 digits of ms timestamp><4 random digits>``."""
    for _ in range(MAX_CODE_ATTEMPTS):
        timestamp = str(int(time.time() * 1000))[-6:]
        code = f"PROJ-{timestamp}{random.randint(1000, 9999)}"
        if not db.query(Project.id).filter(Project.project_code == code).first():
            return code
    raise RuntimeError("Could not generate a unique project code")


def get_project(db: Session, project_id: UUID) -> Project:
    project = db.get(Project, project_id)
    if not project:
        raise NotFoundError(f"Project {project_id} not found")
    return project


def is_project_customer(db: Session, project: Project, user: User) -> bool:
    """True if `user` is the customer behind the project's lead."""
    if not project.lead_id:
        return False
    lead = db.get(CustomerLead, project.lead_id)
    if not lead:
        return False
    if lead.customer_id and lead.customer_id == user.id:
        return True
    return bool(lead.email) and lead.email.lower() == user.email.lower()


def create_project(db: Session, data: ProjectCreate, actor: User) -> Project:
    """Create a project for a lead's requirement.

    Raises:
        NotFoundError: If the lead doesn't exist
        InvalidInputError: If the requirement doesn't belong to the lead or already has a project
    """
    lead = db.get(CustomerLead, data.lead_id)
    if not lead:
        raise NotFoundError(f"Customer lead {data.lead_id} not found")
    requirement = db.get(Requirement, data.requirement_id)
    if not requirement or requirement.lead_id != lead.id:
        raise InvalidInputError("Requirement does not belong to the lead")
    if requirement.project_id:
        raise InvalidInputError("Requirement already has a project")

    project = Project(
        project_name=data.project_name,
        project_code=generate_project_code(db),
        lead_id=lead.id,
        requirement_id=requirement.id,
        budget=data.budget if data.budget is not None else requirement.budget,
        created_by_id=actor.id,
    )
    db.add(project)
    db.flush()
    requirement.project_id = project.id
    db.commit()
    db.refresh(project)
    logger.info(
        f"Project {project.project_code} created for requirement {requirement.id}",
        extra={"entity_type": "project", "entity_id": project.id, "user_id": actor.id},
    )
    return project


def list_projects_query(
    db: Session,
    user: User,
    status: Optional[str] = None,
    project_name: Optional[str] = None,
):
    """Projects visible to `user`: architects see assigned ones, customers their own."""
    query = db.query(Project)
    if user.role == UserRole.ARCHITECT.value:
        query = query.filter(Project.architect_id == user.id)
    elif user.role == UserRole.CUSTOMER.value:
        lead_ids = db.query(CustomerLead.id).filter(
            or_(CustomerLead.customer_id == user.id, CustomerLead.email == user.email)
        )
        query = query.filter(Project.lead_id.in_(lead_ids))
    if status:
        query = query.filter(Project.status == status)
    if project_name:
        query = query.filter(Project.project_name.ilike(f"%{project_name}%"))
    return query.order_by(Project.created_at.desc())


def add_architect_proposal(
    db: Session,
    project_id: UUID,
    data: ArchitectProposalCreate,
    actor: User,
) -> ArchitectProposal:
    project = get_project(db, project_id)
    if project.architect_id:
        raise InvalidInputError("Project already has an assigned architect")
    proposal = ArchitectProposal(
        project_id=project.id,
        architect_id=actor.id,
        proposed_charges=data.proposed_charges,
        delivery_timeline_days=data.delivery_timeline_days,
        message=data.message,
        status=ArchitectProposalStatus.PENDING.value,
    )
    db.add(proposal)
    db.commit()
    db.refresh(proposal)
    return proposal


def list_proposals(db: Session, project_id: UUID) -> List[ArchitectProposal]:
    get_project(db, project_id)
    return db.query(ArchitectProposal).filter(
        ArchitectProposal.project_id == project_id
    ).order_by(ArchitectProposal.created_at).all()


async def change_proposal_status(
    coordinator: TransactionCoordinator,
    project_id: UUID,
    proposal_id: UUID,
    status: str,
    actor: User,
    response: Optional[str] = None,
) -> ArchitectProposal:
    """Move a proposal through its table.

    Only the proposing architect may withdraw; every other move is an admin
    decision. Accepting assigns the architect and rejects competing proposals.
    """

    async def work(handle: TransactionHandle) -> ArchitectProposal:
        session = handle.session
        proposal = session.get(ArchitectProposal, proposal_id)
        if not proposal or proposal.project_id != project_id:
            raise NotFoundError("Proposal not found")

        if status == ArchitectProposalStatus.WITHDRAWN.value:
            if proposal.architect_id != actor.id:
                raise ForbiddenError("Only the proposing architect can withdraw a proposal")
        elif actor.role != UserRole.ADMIN.value:
            raise ForbiddenError("Only admins can decide on architect proposals")

        if response is not None:
            proposal.response = response
        await architect_proposal_machine.transition(handle, proposal, status, actor=actor)
        return proposal

    return await coordinator.run_atomic(work)


def is_project_participant(db: Session, project: Project, user: User) -> bool:
    """Staff, the assigned architect or the project's customer."""
    if user.role in (UserRole.ADMIN.value, UserRole.SALES_ADMIN.value, UserRole.PROCUREMENT.value):
        return True
    if project.architect_id == user.id or project.created_by_id == user.id:
        return True
    return is_project_customer(db, project, user)
