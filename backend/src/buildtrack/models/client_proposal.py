"""ClientProposal SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, Text, Uuid

from .base import Base, PortableJSONB, utcnow, isoformat


class ClientProposal(Base):
    """Commercial proposal sent to a customer for a project.

    New versions are copies with `version + 1` that point back at the
    proposal they were derived from.
    """
    __tablename__ = "client_proposal"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    customer_info = Column(PortableJSONB, nullable=False, default=dict)
    sections = Column(PortableJSONB, nullable=False, default=list)
    total_amount = Column(Numeric(14, 2), nullable=True)
    status = Column(Text, nullable=False, default="draft")
    version = Column(Integer, nullable=False, default=1)
    parent_proposal_id = Column(Uuid, ForeignKey("client_proposal.id", ondelete="SET NULL"), nullable=True)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "title": self.title,
            "customer_info": dict(self.customer_info or {}),
            "sections": list(self.sections or []),
            "total_amount": float(self.total_amount) if self.total_amount is not None else None,
            "status": self.status,
            "version": self.version,
            "parent_proposal_id": str(self.parent_proposal_id) if self.parent_proposal_id else None,
            "created_by_id": str(self.created_by_id) if self.created_by_id else None,
            "created_at": isoformat(self.created_at),
        }
