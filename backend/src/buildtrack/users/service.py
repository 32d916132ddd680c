"""User administration service.

Accounts come from the identity provider that issues the JWTs; this service
only lists users and toggles their ``status``. A DISABLED user is refused by
``authenticate_token`` and loses any open real-time connections.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..audit.service import log_audit_event
from ..auth.roles import UserRole
from ..domain.errors import InvalidInputError, NotFoundError
from ..domain.workflow.transaction import TransactionCoordinator, TransactionHandle
from ..models.site_visit import SiteVisit
from ..models.user import User
from ..realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

ACTIVE = "ACTIVE"
DISABLED = "DISABLED"


def get_user(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def list_users_query(
    db: Session,
    name: Optional[str] = None,
    role: Optional[str] = None,
    status: Optional[str] = None,
):
    query = db.query(User)
    if name:
        query = query.filter(User.name.ilike(f"%{name}%"))
    if role:
        query = query.filter(User.role == role)
    if status:
        query = query.filter(User.status == status)
    return query.order_by(User.created_at.desc())


def list_site_engineers_query(db: Session, name: Optional[str] = None):
    """Active site engineers, the only users a visit can be assigned to."""
    return list_users_query(
        db, name=name, role=UserRole.SITE_ENGINEER.value, status=ACTIVE
    ).order_by(None).order_by(User.name)


def my_site_visits_query(db: Session, user: User, status: Optional[str] = None):
    query = db.query(SiteVisit).filter(SiteVisit.site_engineer_id == user.id)
    if status:
        query = query.filter(SiteVisit.status == status)
    return query.order_by(SiteVisit.visit_date.desc())


async def set_user_active(
    coordinator: TransactionCoordinator,
    user_id: UUID,
    active: bool,
    actor: User,
    registry: Optional[ConnectionRegistry] = None,
) -> User:
    """Activate or deactivate an account. Repeating the current state is a no-op.

    Raises:
        NotFoundError: If the user doesn't exist
        InvalidInputError: If an admin tries to deactivate their own account
    """
    if not active and user_id == actor.id:
        raise InvalidInputError("You cannot deactivate your own account")
    target = ACTIVE if active else DISABLED

    async def work(handle: TransactionHandle) -> User:
        session = handle.session
        user = get_user(session, user_id)
        if user.status == target:
            return user
        previous = user.status
        user.status = target
        log_audit_event(
            db=session,
            action="USER_ACTIVATED" if active else "USER_DEACTIVATED",
            actor_id=actor.id,
            entity_type="user",
            entity_id=user.id,
            metadata={"from": previous, "to": target},
        )
        if not active and registry is not None:

            async def disconnect():
                closed = await registry.close_user(user_id)
                if closed:
                    logger.info(f"Closed {closed} real-time connection(s) of deactivated user {user_id}")

            handle.after_commit(disconnect)
        return user

    user = await coordinator.run_atomic(work)
    logger.info(
        f"User {user_id} is now {user.status}",
        extra={"entity_type": "user", "entity_id": user_id, "user_id": actor.id},
    )
    return user
