"""Message SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Text, Uuid

from .base import Base, PortableJSONB, utcnow, isoformat, file_dicts


class Message(Base):
    """Chat message posted in a project's channel."""
    __tablename__ = "message"
    __table_args__ = (
        Index("ix_message_project_created", "project_id", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    content = Column(Text, nullable=False, default="")
    files = Column(PortableJSONB, nullable=False, default=list)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "sender_id": str(self.sender_id) if self.sender_id else None,
            "content": self.content,
            "files": file_dicts(self.files),
            "is_read": self.is_read,
            "read_at": isoformat(self.read_at),
            "created_at": isoformat(self.created_at),
        }
