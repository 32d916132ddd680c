"""Customer lead service.

Lead creation is the first consumer of staged uploads: every requirement
file is relocated to ``customer-leads/{lead}/{requirement}/{file_type}/``
inside the same transaction that inserts the lead.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ..audit.service import log_audit_event
from ..domain.errors import InvalidInputError, NotFoundError
from ..domain.workflow.relocation import BlobRelocator, key_computer_for
from ..domain.workflow.transaction import TransactionCoordinator, TransactionHandle
from ..models.customer_lead import CustomerLead, Requirement, RequirementShare
from ..models.user import User
from .schemas import LeadCreate, LeadUpdate

logger = logging.getLogger(__name__)

LEAD_FILE_NAMESPACE = "customer-leads"


def get_lead(db: Session, lead_id: UUID) -> CustomerLead:
    lead = db.get(CustomerLead, lead_id)
    if not lead:
        raise NotFoundError(f"Customer lead {lead_id} not found")
    return lead


def get_requirement(db: Session, requirement_id: UUID) -> Requirement:
    requirement = db.get(Requirement, requirement_id)
    if not requirement:
        raise NotFoundError(f"Requirement {requirement_id} not found")
    return requirement


async def create_lead(
    coordinator: TransactionCoordinator,
    relocator: BlobRelocator,
    data: LeadCreate,
    actor: User,
) -> CustomerLead:
    """Insert a lead with its requirements and relocate their staged files.

    Raises:
        StorageError: If any staged file cannot be copied (nothing is persisted)
    """

    async def work(handle: TransactionHandle) -> CustomerLead:
        lead = CustomerLead(
            id=uuid4(),
            lead_source=data.lead_source,
            customer_name=data.customer_name,
            mobile_number=data.mobile_number,
            email=data.email,
            state=data.state,
            city=data.city,
            address=data.address,
            customer_id=data.customer_id,
            is_active=True,
            created_by_id=actor.id,
        )
        handle.session.add(lead)

        for req_in in data.requirements:
            requirement = Requirement(
                id=uuid4(),
                requirement_type=req_in.requirement_type,
                description=req_in.description,
                urgency=req_in.urgency,
                budget=req_in.budget,
                scp_data=dict(req_in.scp_data),
            )
            files = []
            for file in req_in.files:
                entry = file.model_dump(exclude_none=True)
                if relocator.is_staged(file.key):
                    entry["key"] = await relocator.relocate(
                        handle,
                        file.key,
                        key_computer_for(LEAD_FILE_NAMESPACE, lead.id, requirement.id, file.file_type),
                    )
                files.append(entry)
            requirement.files = files
            lead.requirements.append(requirement)

        handle.session.flush()
        return lead

    lead = await coordinator.run_atomic(work)
    logger.info(
        f"Customer lead created: {lead.id} with {len(lead.requirements)} requirement(s)",
        extra={"entity_type": "customer_lead", "entity_id": lead.id, "user_id": actor.id},
    )
    return lead


def list_leads_query(
    db: Session,
    lead_source: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    is_active: Optional[bool] = None,
    customer_name: Optional[str] = None,
    created_by_id: Optional[UUID] = None,
):
    query = db.query(CustomerLead)
    if lead_source:
        query = query.filter(CustomerLead.lead_source == lead_source)
    if city:
        query = query.filter(CustomerLead.city == city)
    if state:
        query = query.filter(CustomerLead.state == state)
    if is_active is not None:
        query = query.filter(CustomerLead.is_active == is_active)
    if customer_name:
        query = query.filter(CustomerLead.customer_name.ilike(f"%{customer_name}%"))
    if created_by_id:
        query = query.filter(CustomerLead.created_by_id == created_by_id)
    return query.order_by(CustomerLead.created_at.desc())


def update_lead(db: Session, lead_id: UUID, data: LeadUpdate) -> CustomerLead:
    lead = get_lead(db, lead_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(lead, field, value)
    db.commit()
    db.refresh(lead)
    return lead


def set_lead_active(db: Session, lead_id: UUID, is_active: bool) -> CustomerLead:
    lead = get_lead(db, lead_id)
    lead.is_active = is_active
    db.commit()
    db.refresh(lead)
    return lead


def share_requirement(
    db: Session,
    lead_id: UUID,
    requirement_id: UUID,
    user_id: UUID,
    actor: User,
) -> RequirementShare:
    """Grant `user_id` access to one requirement of a lead.

    Raises:
        NotFoundError: If the lead, the requirement within it, or the user doesn't exist
        InvalidInputError: If the requirement is already shared with the user
    """
    get_lead(db, lead_id)
    requirement = db.get(Requirement, requirement_id)
    if not requirement or requirement.lead_id != lead_id:
        raise NotFoundError("Requirement not found within the lead")
    if not db.get(User, user_id):
        raise NotFoundError(f"User {user_id} not found")

    existing = db.query(RequirementShare).filter(
        RequirementShare.requirement_id == requirement_id,
        RequirementShare.user_id == user_id,
    ).first()
    if existing:
        raise InvalidInputError("Requirement already shared with this user")

    share = RequirementShare(
        requirement_id=requirement_id,
        user_id=user_id,
        shared_by_id=actor.id,
    )
    db.add(share)
    log_audit_event(
        db=db,
        action="REQUIREMENT_SHARED",
        actor_id=actor.id,
        entity_type="requirement",
        entity_id=requirement_id,
        metadata={"shared_with": str(user_id), "lead_id": str(lead_id)},
    )
    db.commit()
    db.refresh(share)
    return share


def list_shared_requirements(db: Session, user: User) -> List[Dict[str, Any]]:
    """Requirements shared with `user`, newest share first, with their lead summary."""
    shares = db.query(RequirementShare).filter(
        RequirementShare.user_id == user.id
    ).order_by(RequirementShare.shared_at.desc()).all()

    results = []
    for share in shares:
        requirement = share.requirement
        lead = requirement.lead
        results.append({
            "share": share.to_dict(),
            "requirement": requirement.to_dict(),
            "lead": lead.to_dict(include_requirements=False),
        })
    return results
