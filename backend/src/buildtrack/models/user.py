"""User SQLAlchemy model"""

import re
from uuid import uuid4

from sqlalchemy import Column, Text, DateTime, CheckConstraint, Uuid
from sqlalchemy.orm import validates

from .base import Base, utcnow, isoformat


class User(Base):
    """Authenticated user of the workflow system.

    The role decides which workflow rights the user holds (see auth.roles).
    Credentials are managed by the external identity provider that issues
    the JWTs, so no password material is stored here.
    """
    __tablename__ = "user"

    id = Column(Uuid, primary_key=True, default=uuid4)
    email = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    role = Column(Text, nullable=False)
    phone_number = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'sales-admin', 'site-engineer', 'architect', "
            "'procurement', 'customer', 'user')",
            name='ck_user_role'
        ),
        CheckConstraint(
            "status IN ('ACTIVE', 'DISABLED')",
            name='ck_user_status'
        ),
    )

    @validates('email')
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', value):
            raise ValueError("Invalid email format")
        return value.lower()

    def to_dict(self):
        return {
            "id": str(self.id),
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "phone_number": self.phone_number,
            "status": self.status,
            "created_at": isoformat(self.created_at),
        }
