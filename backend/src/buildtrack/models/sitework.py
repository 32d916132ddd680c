"""Sitework, SiteworkDocument and ProjectAssignmentPayment models"""

from uuid import uuid4

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint, Uuid,
)

from .base import Base, PortableJSONB, utcnow, isoformat, file_dicts


class Sitework(Base):
    """A unit of construction work on a project.

    `assigned_users` holds ``{"user_id", "assignment_amount", "per_day_amount"}``
    entries; the amounts are mirrored into ProjectAssignmentPayment.
    """
    __tablename__ = "sitework"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    status = Column(Text, nullable=False, default="not-started")
    assigned_users = Column(PortableJSONB, nullable=False, default=list)
    sequence = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def assigned_user_ids(self):
        return {str(a["user_id"]) for a in (self.assigned_users or [])}

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "name": self.name,
            "description": self.description,
            "start_date": isoformat(self.start_date),
            "end_date": isoformat(self.end_date),
            "status": self.status,
            "assigned_users": [dict(a) for a in (self.assigned_users or [])],
            "sequence": self.sequence,
            "is_active": self.is_active,
            "created_by_id": str(self.created_by_id) if self.created_by_id else None,
            "created_at": isoformat(self.created_at),
        }


class SiteworkDocument(Base):
    """Progress evidence uploaded against a sitework.

    Reviewed on two independent tracks: office staff (`admin_status`) and the
    site engineer (`site_engineer_status`).
    """
    __tablename__ = "sitework_document"

    id = Column(Uuid, primary_key=True, default=uuid4)
    sitework_id = Column(Uuid, ForeignKey("sitework.id", ondelete="CASCADE"), nullable=False, index=True)
    files = Column(PortableJSONB, nullable=False, default=list)
    user_note = Column(Text, nullable=True)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    admin_status = Column(Text, nullable=False, default="Pending")
    admin_feedback = Column(Text, nullable=True)
    admin_feedback_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    site_engineer_status = Column(Text, nullable=False, default="Pending")
    site_engineer_feedback = Column(Text, nullable=True)
    site_engineer_feedback_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "sitework_id": str(self.sitework_id),
            "files": file_dicts(self.files),
            "user_note": self.user_note,
            "created_by_id": str(self.created_by_id) if self.created_by_id else None,
            "admin_status": self.admin_status,
            "admin_feedback": self.admin_feedback,
            "admin_feedback_by_id": str(self.admin_feedback_by_id) if self.admin_feedback_by_id else None,
            "site_engineer_status": self.site_engineer_status,
            "site_engineer_feedback": self.site_engineer_feedback,
            "site_engineer_feedback_by_id": (
                str(self.site_engineer_feedback_by_id) if self.site_engineer_feedback_by_id else None
            ),
            "created_at": isoformat(self.created_at),
        }


class ProjectAssignmentPayment(Base):
    """Agreed pay for one user working on one project."""
    __tablename__ = "project_assignment_payment"
    __table_args__ = (
        UniqueConstraint("project_id", "user_id", name="uq_assignment_payment_project_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_amount = Column(Numeric(14, 2), nullable=False, default=0)
    per_day_amount = Column(Numeric(14, 2), nullable=False, default=0)
    note = Column(Text, nullable=True)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "user_id": str(self.user_id),
            "assigned_amount": float(self.assigned_amount),
            "per_day_amount": float(self.per_day_amount),
            "note": self.note,
            "created_by_id": str(self.created_by_id) if self.created_by_id else None,
            "created_at": isoformat(self.created_at),
        }
