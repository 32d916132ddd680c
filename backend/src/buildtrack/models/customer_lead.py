"""CustomerLead, Requirement and RequirementShare models"""

from uuid import uuid4

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Numeric, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow, isoformat, file_dicts


class CustomerLead(Base):
    """Prospective customer captured by sales staff."""
    __tablename__ = "customer_lead"
    __table_args__ = (
        Index("ix_customer_lead_created_at", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    lead_source = Column(Text, nullable=False)
    customer_name = Column(Text, nullable=False)
    mobile_number = Column(Text, nullable=False)
    email = Column(Text, nullable=True)
    state = Column(Text, nullable=True)
    city = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    customer_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    requirements = relationship(
        "Requirement", back_populates="lead", order_by="Requirement.created_at"
    )

    def to_dict(self, include_requirements: bool = True):
        data = {
            "id": str(self.id),
            "lead_source": self.lead_source,
            "customer_name": self.customer_name,
            "mobile_number": self.mobile_number,
            "email": self.email,
            "state": self.state,
            "city": self.city,
            "address": self.address,
            "customer_id": str(self.customer_id) if self.customer_id else None,
            "is_active": self.is_active,
            "created_by_id": str(self.created_by_id) if self.created_by_id else None,
            "created_at": isoformat(self.created_at),
        }
        if include_requirements:
            data["requirements"] = [r.to_dict() for r in self.requirements]
        return data


class Requirement(Base):
    """A customer's construction requirement.

    `scp_data` holds the canonical site-condition record; approved site
    visits merge their drafts into it.
    """
    __tablename__ = "requirement"

    id = Column(Uuid, primary_key=True, default=uuid4)
    lead_id = Column(Uuid, ForeignKey("customer_lead.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(
        Uuid,
        ForeignKey("project.id", ondelete="SET NULL", use_alter=True, name="fk_requirement_project"),
        nullable=True,
    )
    requirement_type = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    urgency = Column(Text, nullable=True)
    budget = Column(Numeric(14, 2), nullable=True)
    scp_data = Column(PortableJSONB, nullable=False, default=dict)
    files = Column(PortableJSONB, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    lead = relationship("CustomerLead", back_populates="requirements")

    def to_dict(self):
        return {
            "id": str(self.id),
            "lead_id": str(self.lead_id),
            "project_id": str(self.project_id) if self.project_id else None,
            "requirement_type": self.requirement_type,
            "description": self.description,
            "urgency": self.urgency,
            "budget": float(self.budget) if self.budget is not None else None,
            "scp_data": dict(self.scp_data or {}),
            "files": file_dicts(self.files),
            "created_at": isoformat(self.created_at),
        }


class RequirementShare(Base):
    """Grant of read access on a requirement to another user."""
    __tablename__ = "requirement_share"
    __table_args__ = (
        UniqueConstraint("requirement_id", "user_id", name="uq_requirement_share_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    requirement_id = Column(Uuid, ForeignKey("requirement.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    shared_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_seen = Column(Boolean, nullable=False, default=False)

    requirement = relationship("Requirement")

    def to_dict(self):
        return {
            "id": str(self.id),
            "requirement_id": str(self.requirement_id),
            "user_id": str(self.user_id),
            "shared_by_id": str(self.shared_by_id) if self.shared_by_id else None,
            "shared_at": isoformat(self.shared_at),
            "is_seen": self.is_seen,
        }
