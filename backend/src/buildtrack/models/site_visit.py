"""SiteVisit SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, Uuid

from .base import Base, PortableJSONB, utcnow, isoformat, file_dicts


class SiteVisit(Base):
    """A site engineer's survey of a requirement's site.

    `updated_data` is the engineer's draft of site conditions; it only
    reaches `Requirement.scp_data` when an admin approves the visit.
    """
    __tablename__ = "site_visit"
    __table_args__ = (
        Index("ix_site_visit_requirement_status", "requirement_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="SET NULL"), nullable=True)
    requirement_id = Column(Uuid, ForeignKey("requirement.id", ondelete="CASCADE"), nullable=False)
    site_engineer_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    visit_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False, default="Scheduled")
    updated_data = Column(PortableJSONB, nullable=True)
    files = Column(PortableJSONB, nullable=False, default=list)
    remarks = Column(Text, nullable=True)
    scheduled_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    approved_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_id": str(self.project_id) if self.project_id else None,
            "requirement_id": str(self.requirement_id),
            "site_engineer_id": str(self.site_engineer_id) if self.site_engineer_id else None,
            "visit_date": isoformat(self.visit_date),
            "status": self.status,
            "updated_data": dict(self.updated_data) if self.updated_data else None,
            "files": file_dicts(self.files),
            "remarks": self.remarks,
            "approved_by_id": str(self.approved_by_id) if self.approved_by_id else None,
            "approved_at": isoformat(self.approved_at),
            "created_at": isoformat(self.created_at),
        }
