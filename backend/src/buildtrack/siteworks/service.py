"""Sitework service.

Assigning users to a sitework upserts their ProjectAssignmentPayment rows in
the same transaction. Documents are relocated to
``siteworks/{sitework}/{document}/`` and reviewed on two independent tracks:
office staff and the site engineer.
"""

import logging
from typing import Any, Dict, List
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ..assignment_payments.service import upsert_assignment
from ..auth.roles import UserRole
from ..domain.errors import ForbiddenError, InvalidInputError, NotFoundError
from ..domain.workflow.machines import (
    SiteworkStatus,
    sitework_document_admin_review_machine,
    sitework_document_engineer_review_machine,
    sitework_machine,
)
from ..domain.workflow.relocation import BlobRelocator, key_computer_for
from ..domain.workflow.transaction import TransactionCoordinator, TransactionHandle
from ..models.project import Project
from ..models.sitework import Sitework, SiteworkDocument
from ..models.user import User
from ..projects.service import get_project
from .schemas import (
    AssignedUser,
    SiteworkCreate,
    SiteworkDocumentCreate,
    SiteworkDocumentReview,
    SiteworkUpdate,
)

logger = logging.getLogger(__name__)

SITEWORK_NAMESPACE = "siteworks"

# See every sitework and every document on it
STAFF_ROLES = (UserRole.ADMIN.value, UserRole.SALES_ADMIN.value, UserRole.SITE_ENGINEER.value)
OFFICE_ROLES = (UserRole.ADMIN.value, UserRole.SALES_ADMIN.value)


def _load_sitework(session: Session, sitework_id: UUID) -> Sitework:
    sitework = session.get(Sitework, sitework_id)
    if not sitework:
        raise NotFoundError(f"Sitework {sitework_id} not found")
    return sitework


def _load_document(session: Session, sitework_id: UUID, document_id: UUID) -> SiteworkDocument:
    document = session.get(SiteworkDocument, document_id)
    if not document or document.sitework_id != sitework_id:
        raise NotFoundError("Document not found")
    return document


def _assign(
    session: Session,
    sitework: Sitework,
    assigned: List[AssignedUser],
    actor: User,
    overwrite: bool,
) -> None:
    seen = set()
    entries = []
    for a in assigned:
        if a.user_id in seen:
            raise InvalidInputError(f"User {a.user_id} is assigned more than once")
        seen.add(a.user_id)
        if not session.get(User, a.user_id):
            raise InvalidInputError(f"Assigned user {a.user_id} does not exist")
        upsert_assignment(
            session,
            sitework.project_id,
            a.user_id,
            a.assignment_amount,
            a.per_day_amount,
            actor,
            overwrite=overwrite,
        )
        entries.append({
            "user_id": str(a.user_id),
            "assignment_amount": float(a.assignment_amount),
            "per_day_amount": float(a.per_day_amount),
        })
    sitework.assigned_users = entries


async def create_sitework(
    coordinator: TransactionCoordinator,
    data: SiteworkCreate,
    actor: User,
) -> Sitework:
    """Create a sitework in ``not-started``.

    Existing assignment payments for the project keep their amounts; missing
    ones are created from the assignment.

    Raises:
        NotFoundError: If the project doesn't exist
        InvalidInputError: If an assigned user doesn't exist or is listed twice
    """

    async def work(handle: TransactionHandle) -> Sitework:
        session = handle.session
        if not session.get(Project, data.project_id):
            raise NotFoundError(f"Project {data.project_id} not found")
        sitework = Sitework(
            id=uuid4(),
            project_id=data.project_id,
            name=data.name,
            description=data.description,
            start_date=data.start_date,
            end_date=data.end_date,
            sequence=data.sequence,
            status=SiteworkStatus.NOT_STARTED.value,
            is_active=True,
            created_by_id=actor.id,
        )
        _assign(session, sitework, data.assigned_users, actor, overwrite=False)
        session.add(sitework)
        session.flush()
        return sitework

    sitework = await coordinator.run_atomic(work)
    logger.info(
        f"Sitework {sitework.id} created for project {sitework.project_id}",
        extra={"entity_type": "sitework", "entity_id": sitework.id, "user_id": actor.id},
    )
    return sitework


async def update_sitework(
    coordinator: TransactionCoordinator,
    sitework_id: UUID,
    data: SiteworkUpdate,
    actor: User,
) -> Sitework:
    """Apply a partial update; a new assignment overwrites payment amounts."""

    async def work(handle: TransactionHandle) -> Sitework:
        session = handle.session
        sitework = _load_sitework(session, sitework_id)
        updates = data.model_dump(exclude_unset=True, exclude={"status", "assigned_users"})
        for field, value in updates.items():
            setattr(sitework, field, value)
        if data.assigned_users is not None:
            _assign(session, sitework, data.assigned_users, actor, overwrite=True)
        if data.status is not None and data.status != sitework.status:
            await sitework_machine.transition(handle, sitework, data.status, actor=actor)
        return sitework

    return await coordinator.run_atomic(work)


def _visible_documents(db: Session, sitework: Sitework, user: User) -> List[SiteworkDocument]:
    query = db.query(SiteworkDocument).filter(SiteworkDocument.sitework_id == sitework.id)
    if user.role not in STAFF_ROLES:
        query = query.filter(SiteworkDocument.created_by_id == user.id)
    return query.order_by(SiteworkDocument.created_at).all()


def list_project_siteworks(db: Session, project_id: UUID, user: User) -> List[Dict[str, Any]]:
    """Siteworks of a project in sequence order, each with the documents `user` may see.

    Staff see everything; anyone else sees only the siteworks they are
    assigned to, and only their own documents on them.
    """
    get_project(db, project_id)
    siteworks = db.query(Sitework).filter(
        Sitework.project_id == project_id
    ).order_by(Sitework.sequence, Sitework.created_at).all()
    if user.role not in STAFF_ROLES:
        siteworks = [s for s in siteworks if str(user.id) in s.assigned_user_ids()]
    return [
        {**s.to_dict(), "documents": [d.to_dict() for d in _visible_documents(db, s, user)]}
        for s in siteworks
    ]


def list_documents(db: Session, sitework_id: UUID, user: User) -> List[SiteworkDocument]:
    return _visible_documents(db, _load_sitework(db, sitework_id), user)


async def add_document(
    coordinator: TransactionCoordinator,
    relocator: BlobRelocator,
    sitework_id: UUID,
    data: SiteworkDocumentCreate,
    actor: User,
) -> SiteworkDocument:
    """Attach a document; both review tracks start at Pending.

    Raises:
        NotFoundError: If the sitework doesn't exist
        ForbiddenError: If the actor is neither staff nor assigned to the sitework
        StorageError: If a staged file cannot be copied (no document is stored)
    """

    async def work(handle: TransactionHandle) -> SiteworkDocument:
        session = handle.session
        sitework = _load_sitework(session, sitework_id)
        if actor.role not in STAFF_ROLES and str(actor.id) not in sitework.assigned_user_ids():
            raise ForbiddenError("Not authorized to add documents to this sitework")

        document = SiteworkDocument(
            id=uuid4(),
            sitework_id=sitework.id,
            user_note=data.user_note,
            created_by_id=actor.id,
        )
        document.files = await relocator.relocate_files(
            handle,
            [f.model_dump(exclude_none=True) for f in data.files],
            key_computer_for(SITEWORK_NAMESPACE, sitework.id, document.id),
        )
        session.add(document)
        session.flush()
        return document

    document = await coordinator.run_atomic(work)
    logger.info(
        f"Document {document.id} added to sitework {sitework_id}",
        extra={"entity_type": "sitework_document", "entity_id": document.id, "user_id": actor.id},
    )
    return document


async def review_document(
    coordinator: TransactionCoordinator,
    sitework_id: UUID,
    document_id: UUID,
    review: SiteworkDocumentReview,
    actor: User,
) -> SiteworkDocument:
    """Record a decision on the reviewer's own track.

    Admins and sales admins write the office track, site engineers the
    engineer track; every other role is refused.
    """
    if actor.role in OFFICE_ROLES:
        machine, prefix = sitework_document_admin_review_machine, "admin"
    elif actor.role == UserRole.SITE_ENGINEER.value:
        machine, prefix = sitework_document_engineer_review_machine, "site_engineer"
    else:
        raise ForbiddenError("Not authorized to review sitework documents")

    async def work(handle: TransactionHandle) -> SiteworkDocument:
        document = _load_document(handle.session, sitework_id, document_id)
        setattr(document, f"{prefix}_feedback", review.feedback)
        setattr(document, f"{prefix}_feedback_by_id", actor.id)
        await machine.transition(handle, document, review.status, actor=actor)
        return document

    return await coordinator.run_atomic(work)
