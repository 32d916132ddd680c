"""Vendor and PurchaseOrder SQLAlchemy models"""

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, Text, Uuid

from .base import Base, PortableJSONB, utcnow, isoformat, file_dicts


class Vendor(Base):
    __tablename__ = "vendor"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(Text, nullable=False)
    contact_person = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    category = Column(Text, nullable=True)
    city = Column(Text, nullable=True)
    gst_number = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "name": self.name,
            "contact_person": self.contact_person,
            "phone": self.phone,
            "email": self.email,
            "category": self.category,
            "city": self.city,
            "gst_number": self.gst_number,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
        }


class PurchaseOrder(Base):
    __tablename__ = "purchase_order"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    vendor_id = Column(Uuid, ForeignKey("vendor.id", ondelete="RESTRICT"), nullable=False)
    bom_id = Column(Uuid, ForeignKey("bom.id", ondelete="SET NULL"), nullable=True)
    po_number = Column(Text, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(Text, nullable=True)
    documents = Column(PortableJSONB, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "project_id": str(self.project_id),
            "vendor_id": str(self.vendor_id),
            "bom_id": str(self.bom_id) if self.bom_id else None,
            "po_number": self.po_number,
            "amount": float(self.amount),
            "description": self.description,
            "documents": file_dicts(self.documents),
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
        }
