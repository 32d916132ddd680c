"""Bom and BomItem SQLAlchemy models"""

from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow, isoformat


class Bom(Base):
    """Bill of materials for a project, versioned per project."""
    __tablename__ = "bom"
    __table_args__ = (
        UniqueConstraint("project_id", "version", name="uq_bom_project_version"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    title = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="draft")
    is_reusable = Column(Boolean, nullable=False, default=False)
    remarks = Column(Text, nullable=True)
    admin_remarks = Column(Text, nullable=True)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    reviewed_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    items = relationship(
        "BomItem",
        back_populates="bom",
        cascade="all, delete-orphan",
        order_by="BomItem.position",
    )

    @property
    def total_cost(self) -> Decimal:
        return sum((item.total_cost for item in self.items), Decimal("0"))

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "version": self.version,
            "title": self.title,
            "status": self.status,
            "is_reusable": self.is_reusable,
            "remarks": self.remarks,
            "admin_remarks": self.admin_remarks,
            "created_by_id": str(self.created_by_id) if self.created_by_id else None,
            "items": [item.to_dict() for item in self.items],
            "total_cost": float(self.total_cost),
            "created_at": isoformat(self.created_at),
        }


class BomItem(Base):
    __tablename__ = "bom_item"

    id = Column(Uuid, primary_key=True, default=uuid4)
    bom_id = Column(Uuid, ForeignKey("bom.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    material_name = Column(Text, nullable=False)
    specification = Column(Text, nullable=True)
    unit = Column(Text, nullable=False)
    quantity = Column(Numeric(14, 3), nullable=False)
    estimated_unit_cost = Column(Numeric(14, 2), nullable=False, default=0)
    total_cost = Column(Numeric(16, 2), nullable=False, default=0)

    bom = relationship("Bom", back_populates="items")

    def to_dict(self):
        return {
            "id": str(self.id),
            "material_name": self.material_name,
            "specification": self.specification,
            "unit": self.unit,
            "quantity": float(self.quantity),
            "estimated_unit_cost": float(self.estimated_unit_cost),
            "total_cost": float(self.total_cost),
        }
