"""Audit logging service for workflow events.

Entries are added to the caller's session and flushed, never committed here:
they persist only if the surrounding transaction commits.

Audit actions:
- STATUS_CHANGED (every state-machine transition)
- SITE_VISIT_MERGED
- ARCHITECT_ASSIGNED
- REQUIREMENT_SHARED
- WALLET_TRANSACTION_CREATED, WALLET_TRANSACTION_DELETED
- USER_ACTIVATED, USER_DEACTIVATED
"""

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """Create an audit log entry.

    Args:
        db: Database session (the transaction handle's session for workflow events)
        action: Event action (e.g., "STATUS_CHANGED")
        actor_id: User who performed the action (None for system events)
        entity_type: Type of entity affected (e.g., "site_visit", "bom")
        entity_id: ID of affected entity
        metadata: Additional context as JSON (e.g., {"from": "draft", "to": "submitted"})
        ip_address: Client IP address
        user_agent: Client User-Agent header

    Returns:
        AuditLog: The created audit log entry

    Example:
        log_audit_event(
            db=handle.session,
            action="STATUS_CHANGED",
            actor_id=current_user.id,
            entity_type="bom",
            entity_id=bom.id,
            metadata={"from": "draft", "to": "submitted"},
        )
    """
    audit_entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(audit_entry)
    db.flush()

    return audit_entry
