"""Concrete approval state machines for every reviewable entity kind.

Status flows:
    Site visit:          Scheduled → InProgress → Completed → Approved
                         Scheduled, InProgress → Cancelled; any open visit → Outdated
    BOM:                 draft → submitted → approved | rejected; rejected → draft
    Client proposal:     draft → sent → approved | rejected; → archived
    Architect proposal:  Pending → Responded → Accepted | Rejected | Withdrawn
    Architect document:  admin_status and customer_status, each Pending → Approved | Rejected
    Sitework:            not-started → in-progress → completed; open siteworks → cancelled
    Sitework document:   admin_status and site_engineer_status, each Pending → Approved | Rejected
"""

from enum import Enum

from ..errors import InvalidTransitionError, NotFoundError
from .state_machine import StateMachine
from ...audit.service import log_audit_event
from ...auth.roles import UserRole
from ...models.base import utcnow
from ...models.customer_lead import Requirement
from ...models.project import ArchitectProposal, Project
from ...models.site_visit import SiteVisit


class SiteVisitStatus(str, Enum):
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    APPROVED = "Approved"
    CANCELLED = "Cancelled"
    OUTDATED = "Outdated"


class BomStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class ClientProposalStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"
    ARCHIVED = "archived"


class ArchitectProposalStatus(str, Enum):
    PENDING = "Pending"
    RESPONDED = "Responded"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"


class SiteworkStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReviewStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# Sibling visits in these states are superseded when another visit is approved
SUPERSEDABLE_VISIT_STATUSES = (
    SiteVisitStatus.SCHEDULED.value,
    SiteVisitStatus.IN_PROGRESS.value,
    SiteVisitStatus.COMPLETED.value,
)

OPEN_PROPOSAL_STATUSES = (
    ArchitectProposalStatus.PENDING.value,
    ArchitectProposalStatus.RESPONDED.value,
)


def _require_visit_findings(visit, actor) -> None:
    if not visit.remarks and not visit.updated_data:
        raise InvalidTransitionError(
            "Site visit cannot be completed before remarks or site data are saved"
        )


async def _merge_approved_visit(handle, visit, actor) -> None:
    """Fold the approved draft into the requirement and supersede sibling visits."""
    session = handle.session
    requirement = session.get(Requirement, visit.requirement_id)
    if requirement is None:
        raise NotFoundError(f"Requirement {visit.requirement_id} not found")

    merged = dict(requirement.scp_data or {})
    merged.update(visit.updated_data or {})
    # reassign so the JSON column is marked dirty
    requirement.scp_data = merged

    visit.approved_by_id = getattr(actor, "id", None)
    visit.approved_at = utcnow()

    siblings = session.query(SiteVisit).filter(
        SiteVisit.requirement_id == visit.requirement_id,
        SiteVisit.id != visit.id,
        SiteVisit.status.in_(SUPERSEDABLE_VISIT_STATUSES),
    ).all()
    for sibling in siblings:
        await site_visit_machine.transition(
            handle,
            sibling,
            SiteVisitStatus.OUTDATED,
            actor=actor,
            metadata={"superseded_by": str(visit.id)},
        )

    log_audit_event(
        db=session,
        action="SITE_VISIT_MERGED",
        actor_id=getattr(actor, "id", None),
        entity_type="requirement",
        entity_id=requirement.id,
        metadata={
            "site_visit_id": str(visit.id),
            "merged_fields": sorted((visit.updated_data or {}).keys()),
            "outdated_visits": [str(s.id) for s in siblings],
        },
    )


def _require_bom_items(bom, actor) -> None:
    if not bom.items:
        raise InvalidTransitionError("BOM must have at least one item before submission")


async def _assign_architect(handle, proposal, actor) -> None:
    """Make the proposal's architect the project architect and reject competing proposals."""
    session = handle.session
    project = session.get(Project, proposal.project_id)
    if project is None:
        raise NotFoundError(f"Project {proposal.project_id} not found")

    project.architect_id = proposal.architect_id

    competing = session.query(ArchitectProposal).filter(
        ArchitectProposal.project_id == proposal.project_id,
        ArchitectProposal.id != proposal.id,
        ArchitectProposal.status.in_(OPEN_PROPOSAL_STATUSES),
    ).all()
    for other in competing:
        await architect_proposal_machine.transition(
            handle,
            other,
            ArchitectProposalStatus.REJECTED,
            actor=actor,
            metadata={"accepted_proposal_id": str(proposal.id)},
        )

    log_audit_event(
        db=session,
        action="ARCHITECT_ASSIGNED",
        actor_id=getattr(actor, "id", None),
        entity_type="project",
        entity_id=project.id,
        metadata={
            "architect_id": str(proposal.architect_id),
            "proposal_id": str(proposal.id),
        },
    )


def _require_sent_to_customer(document, actor) -> None:
    if not document.sent_to_customer:
        raise InvalidTransitionError("Document has not been sent to the customer")


site_visit_machine = StateMachine(
    name="site_visit",
    transitions={
        SiteVisitStatus.SCHEDULED: [
            SiteVisitStatus.IN_PROGRESS,
            SiteVisitStatus.CANCELLED,
            SiteVisitStatus.OUTDATED,
        ],
        SiteVisitStatus.IN_PROGRESS: [
            SiteVisitStatus.COMPLETED,
            SiteVisitStatus.CANCELLED,
            SiteVisitStatus.OUTDATED,
        ],
        SiteVisitStatus.COMPLETED: [
            SiteVisitStatus.APPROVED,
            SiteVisitStatus.OUTDATED,
        ],
        SiteVisitStatus.APPROVED: [],
        SiteVisitStatus.CANCELLED: [],
        SiteVisitStatus.OUTDATED: [],
    },
    role_rules={SiteVisitStatus.APPROVED: [UserRole.ADMIN]},
    guards={SiteVisitStatus.COMPLETED: [_require_visit_findings]},
    on_enter={SiteVisitStatus.APPROVED: _merge_approved_visit},
)

bom_machine = StateMachine(
    name="bom",
    transitions={
        BomStatus.DRAFT: [BomStatus.SUBMITTED],
        BomStatus.SUBMITTED: [BomStatus.APPROVED, BomStatus.REJECTED, BomStatus.DRAFT],
        BomStatus.APPROVED: [BomStatus.REJECTED],
        BomStatus.REJECTED: [BomStatus.DRAFT],
    },
    role_rules={
        BomStatus.APPROVED: [UserRole.ADMIN],
        BomStatus.REJECTED: [UserRole.ADMIN],
    },
    guards={BomStatus.SUBMITTED: [_require_bom_items]},
)

client_proposal_machine = StateMachine(
    name="client_proposal",
    transitions={
        ClientProposalStatus.DRAFT: [ClientProposalStatus.SENT, ClientProposalStatus.ARCHIVED],
        ClientProposalStatus.SENT: [
            ClientProposalStatus.APPROVED,
            ClientProposalStatus.REJECTED,
            ClientProposalStatus.DRAFT,
        ],
        ClientProposalStatus.APPROVED: [ClientProposalStatus.ARCHIVED],
        ClientProposalStatus.REJECTED: [ClientProposalStatus.DRAFT, ClientProposalStatus.ARCHIVED],
        ClientProposalStatus.ARCHIVED: [ClientProposalStatus.DRAFT],
    },
)

architect_proposal_machine = StateMachine(
    name="architect_proposal",
    transitions={
        ArchitectProposalStatus.PENDING: [
            ArchitectProposalStatus.RESPONDED,
            ArchitectProposalStatus.ACCEPTED,
            ArchitectProposalStatus.REJECTED,
            ArchitectProposalStatus.WITHDRAWN,
        ],
        ArchitectProposalStatus.RESPONDED: [
            ArchitectProposalStatus.ACCEPTED,
            ArchitectProposalStatus.REJECTED,
            ArchitectProposalStatus.WITHDRAWN,
        ],
        ArchitectProposalStatus.ACCEPTED: [],
        ArchitectProposalStatus.REJECTED: [],
        ArchitectProposalStatus.WITHDRAWN: [],
    },
    role_rules={ArchitectProposalStatus.ACCEPTED: [UserRole.ADMIN]},
    on_enter={ArchitectProposalStatus.ACCEPTED: _assign_architect},
)

_REVIEW_TRANSITIONS = {
    ReviewStatus.PENDING: [ReviewStatus.APPROVED, ReviewStatus.REJECTED],
    ReviewStatus.APPROVED: [],
    ReviewStatus.REJECTED: [],
}

document_admin_review_machine = StateMachine(
    name="architect_document_admin_review",
    transitions=_REVIEW_TRANSITIONS,
    status_field="admin_status",
    role_rules={
        ReviewStatus.APPROVED: [UserRole.ADMIN],
        ReviewStatus.REJECTED: [UserRole.ADMIN],
    },
    entity_type="architect_document",
)

document_customer_review_machine = StateMachine(
    name="architect_document_customer_review",
    transitions=_REVIEW_TRANSITIONS,
    status_field="customer_status",
    role_rules={
        ReviewStatus.APPROVED: [UserRole.CUSTOMER],
        ReviewStatus.REJECTED: [UserRole.CUSTOMER],
    },
    guards={
        ReviewStatus.APPROVED: [_require_sent_to_customer],
        ReviewStatus.REJECTED: [_require_sent_to_customer],
    },
    entity_type="architect_document",
)

sitework_machine = StateMachine(
    name="sitework",
    transitions={
        SiteworkStatus.NOT_STARTED: [SiteworkStatus.IN_PROGRESS, SiteworkStatus.CANCELLED],
        SiteworkStatus.IN_PROGRESS: [SiteworkStatus.COMPLETED, SiteworkStatus.CANCELLED],
        SiteworkStatus.COMPLETED: [],
        SiteworkStatus.CANCELLED: [],
    },
)

sitework_document_admin_review_machine = StateMachine(
    name="sitework_document_admin_review",
    transitions=_REVIEW_TRANSITIONS,
    status_field="admin_status",
    role_rules={
        ReviewStatus.APPROVED: [UserRole.ADMIN, UserRole.SALES_ADMIN],
        ReviewStatus.REJECTED: [UserRole.ADMIN, UserRole.SALES_ADMIN],
    },
    entity_type="sitework_document",
)

sitework_document_engineer_review_machine = StateMachine(
    name="sitework_document_engineer_review",
    transitions=_REVIEW_TRANSITIONS,
    status_field="site_engineer_status",
    role_rules={
        ReviewStatus.APPROVED: [UserRole.SITE_ENGINEER],
        ReviewStatus.REJECTED: [UserRole.SITE_ENGINEER],
    },
    entity_type="sitework_document",
)
