"""WalletTransaction SQLAlchemy model"""

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Numeric, Text, Uuid

from .base import Base, utcnow, isoformat


class WalletTransaction(Base):
    """Ledger entry crediting or debiting a user's wallet."""
    __tablename__ = "wallet_transaction"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_wallet_transaction_amount_positive"),
        CheckConstraint(
            "type IN ('site_visit_payment', 'architect_payment', 'reimbursement', "
            "'advance', 'adjustment')",
            name="ck_wallet_transaction_type",
        ),
        Index("ix_wallet_transaction_user_created", "user_id", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    type = Column(Text, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(Text, nullable=False, default="INR")
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="SET NULL"), nullable=True)
    site_visit_id = Column(Uuid, ForeignKey("site_visit.id", ondelete="SET NULL"), nullable=True)
    requirement_id = Column(Uuid, ForeignKey("requirement.id", ondelete="SET NULL"), nullable=True)
    description = Column(Text, nullable=True)
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "type": self.type,
            "amount": float(self.amount),
            "currency": self.currency,
            "project_id": str(self.project_id) if self.project_id else None,
            "site_visit_id": str(self.site_visit_id) if self.site_visit_id else None,
            "requirement_id": str(self.requirement_id) if self.requirement_id else None,
            "description": self.description,
            "created_by_id": str(self.created_by_id) if self.created_by_id else None,
            "created_at": isoformat(self.created_at),
        }
