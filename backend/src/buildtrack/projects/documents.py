"""Architect document submission and its two-stage review.

Flow:
    architect submits (files relocated to projects/{project}/{document}/{version}/)
    → admin review (admin_status)
    → send to customer
    → customer review (customer_status)
    → send to procurement once both reviews are Approved
"""

import logging
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..domain.errors import ForbiddenError, InvalidTransitionError, NotFoundError
from ..domain.workflow.machines import (
    ReviewStatus,
    document_admin_review_machine,
    document_customer_review_machine,
)
from ..domain.workflow.relocation import BlobRelocator, key_computer_for
from ..domain.workflow.transaction import TransactionCoordinator, TransactionHandle
from ..models.project import ArchitectDocument, Project
from ..models.user import User
from .schemas import ArchitectDocumentSubmit, DocumentReview
from .service import get_project, is_project_customer

logger = logging.getLogger(__name__)

PROJECT_FILE_NAMESPACE = "projects"


def _load_document(session: Session, project_id: UUID, document_id: UUID) -> ArchitectDocument:
    document = session.get(ArchitectDocument, document_id)
    if not document or document.project_id != project_id:
        raise NotFoundError("Document not found")
    return document


async def submit_document(
    coordinator: TransactionCoordinator,
    relocator: BlobRelocator,
    project_id: UUID,
    data: ArchitectDocumentSubmit,
    actor: User,
) -> ArchitectDocument:
    """Store a new document version from the project's assigned architect.

    Raises:
        NotFoundError: If the project doesn't exist
        ForbiddenError: If the actor is not the assigned architect
        StorageError: If a staged file cannot be copied
    """

    async def work(handle: TransactionHandle) -> ArchitectDocument:
        session = handle.session
        project = session.get(Project, project_id)
        if not project:
            raise NotFoundError(f"Project {project_id} not found")
        if project.architect_id != actor.id:
            raise ForbiddenError("You are not assigned to this project as an architect")

        last_version = session.query(func.max(ArchitectDocument.version)).filter(
            ArchitectDocument.project_id == project.id
        ).scalar()
        version = (last_version or 0) + 1

        document = ArchitectDocument(
            id=uuid4(),
            project_id=project.id,
            architect_id=actor.id,
            version=version,
            title=data.title,
            notes=data.notes,
        )
        document.files = await relocator.relocate_files(
            handle,
            [f.model_dump(exclude_none=True) for f in data.files],
            key_computer_for(PROJECT_FILE_NAMESPACE, project.id, document.id, version),
        )
        session.add(document)
        session.flush()
        return document

    document = await coordinator.run_atomic(work)
    logger.info(
        f"Architect document v{document.version} submitted for project {project_id}",
        extra={"entity_type": "architect_document", "entity_id": document.id, "user_id": actor.id},
    )
    return document


def list_documents(db: Session, project_id: UUID) -> List[ArchitectDocument]:
    get_project(db, project_id)
    return db.query(ArchitectDocument).filter(
        ArchitectDocument.project_id == project_id
    ).order_by(ArchitectDocument.version).all()


async def admin_review(
    coordinator: TransactionCoordinator,
    project_id: UUID,
    document_id: UUID,
    review: DocumentReview,
    actor: User,
) -> ArchitectDocument:

    async def work(handle: TransactionHandle) -> ArchitectDocument:
        document = _load_document(handle.session, project_id, document_id)
        document.admin_remarks = review.remarks
        await document_admin_review_machine.transition(handle, document, review.status, actor=actor)
        return document

    return await coordinator.run_atomic(work)


def send_to_customer(db: Session, project_id: UUID, document_id: UUID) -> ArchitectDocument:
    document = _load_document(db, project_id, document_id)
    document_admin_review_machine.ensure_status(document, [ReviewStatus.APPROVED])
    document.sent_to_customer = True
    db.commit()
    db.refresh(document)
    return document


async def customer_review(
    coordinator: TransactionCoordinator,
    project_id: UUID,
    document_id: UUID,
    review: DocumentReview,
    actor: User,
) -> ArchitectDocument:
    """Record the customer's decision; only the lead's customer may review."""

    async def work(handle: TransactionHandle) -> ArchitectDocument:
        session = handle.session
        project = session.get(Project, project_id)
        if not project:
            raise NotFoundError(f"Project {project_id} not found")
        if not is_project_customer(session, project, actor):
            raise ForbiddenError("You are not the customer of this project")
        document = _load_document(session, project_id, document_id)
        document.customer_remarks = review.remarks
        await document_customer_review_machine.transition(handle, document, review.status, actor=actor)
        return document

    return await coordinator.run_atomic(work)


def list_customer_documents(db: Session, project_id: UUID, user: User) -> List[ArchitectDocument]:
    """Documents awaiting the customer's review."""
    project = get_project(db, project_id)
    if not is_project_customer(db, project, user):
        raise ForbiddenError("You are not authorized to view documents for this project")
    return db.query(ArchitectDocument).filter(
        ArchitectDocument.project_id == project_id,
        ArchitectDocument.sent_to_customer.is_(True),
        ArchitectDocument.customer_status == ReviewStatus.PENDING.value,
    ).order_by(ArchitectDocument.version).all()


def send_to_procurement(db: Session, project_id: UUID, document_id: UUID) -> ArchitectDocument:
    document = _load_document(db, project_id, document_id)
    document_admin_review_machine.ensure_status(document, [ReviewStatus.APPROVED])
    document_customer_review_machine.ensure_status(document, [ReviewStatus.APPROVED])
    if document.sent_to_procurement:
        raise InvalidTransitionError("Document has already been sent to procurement")
    document.sent_to_procurement = True
    db.commit()
    db.refresh(document)
    return document


def list_procurement_documents(
    db: Session,
    project_id: Optional[UUID] = None,
) -> List[ArchitectDocument]:
    query = db.query(ArchitectDocument).filter(ArchitectDocument.sent_to_procurement.is_(True))
    if project_id:
        query = query.filter(ArchitectDocument.project_id == project_id)
    return query.order_by(ArchitectDocument.created_at.desc()).all()
