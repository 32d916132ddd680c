"""Project, ArchitectProposal and ArchitectDocument models"""

from uuid import uuid4

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, Numeric, Text, Uuid,
)

from .base import Base, PortableJSONB, utcnow, isoformat, file_dicts


class Project(Base):
    __tablename__ = "project"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_name = Column(Text, nullable=False)
    project_code = Column(Text, nullable=False, unique=True)
    lead_id = Column(Uuid, ForeignKey("customer_lead.id", ondelete="SET NULL"), nullable=True)
    requirement_id = Column(Uuid, ForeignKey("requirement.id", ondelete="SET NULL"), nullable=True)
    architect_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    status = Column(Text, nullable=False, default="active")
    budget = Column(Numeric(14, 2), nullable=True)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_name": self.project_name,
            "project_code": self.project_code,
            "lead_id": str(self.lead_id) if self.lead_id else None,
            "requirement_id": str(self.requirement_id) if self.requirement_id else None,
            "architect_id": str(self.architect_id) if self.architect_id else None,
            "status": self.status,
            "budget": float(self.budget) if self.budget is not None else None,
            "created_at": isoformat(self.created_at),
        }


class ArchitectProposal(Base):
    """An architect's bid to take on a project."""
    __tablename__ = "architect_proposal"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    architect_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    proposed_charges = Column(Numeric(14, 2), nullable=False)
    delivery_timeline_days = Column(Integer, nullable=False)
    message = Column(Text, nullable=True)
    response = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="Pending")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "architect_id": str(self.architect_id),
            "proposed_charges": float(self.proposed_charges),
            "delivery_timeline_days": self.delivery_timeline_days,
            "message": self.message,
            "response": self.response,
            "status": self.status,
            "created_at": isoformat(self.created_at),
        }


class ArchitectDocument(Base):
    """Versioned drawing set uploaded by the assigned architect.

    Reviewed twice: once by an admin (`admin_status`) and, after being sent,
    by the customer (`customer_status`).
    """
    __tablename__ = "architect_document"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    architect_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    title = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    files = Column(PortableJSONB, nullable=False, default=list)
    admin_status = Column(Text, nullable=False, default="Pending")
    admin_remarks = Column(Text, nullable=True)
    customer_status = Column(Text, nullable=False, default="Pending")
    customer_remarks = Column(Text, nullable=True)
    sent_to_customer = Column(Boolean, nullable=False, default=False)
    sent_to_procurement = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "architect_id": str(self.architect_id) if self.architect_id else None,
            "version": self.version,
            "title": self.title,
            "notes": self.notes,
            "files": file_dicts(self.files),
            "admin_status": self.admin_status,
            "admin_remarks": self.admin_remarks,
            "customer_status": self.customer_status,
            "customer_remarks": self.customer_remarks,
            "sent_to_customer": self.sent_to_customer,
            "sent_to_procurement": self.sent_to_procurement,
            "created_at": isoformat(self.created_at),
        }
