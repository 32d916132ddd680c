"""Table-driven approval state machine.

Each reviewable entity kind (site visit, BOM, proposal, ...) gets one
StateMachine instance describing its allowed edges, which roles may request
each target status, guards that must hold before entering it, and an
optional on-enter hook that runs in the same transaction.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..errors import ForbiddenError, InvalidTransitionError, PreconditionFailedError
from .transaction import TransactionHandle
from ...audit.service import log_audit_event
from ...observability.metrics import (
    workflow_transition_rejections_total,
    workflow_transitions_total,
)

logger = logging.getLogger(__name__)

# guard(entity, actor) raises InvalidTransitionError when the entity may not enter the status
Guard = Callable[[Any, Any], None]
# hook(handle, entity, actor) may be sync or async
Hook = Callable[[TransactionHandle, Any, Any], Union[None, Awaitable[None]]]


def _status_value(status: Any) -> Optional[str]:
    if status is None:
        return None
    return str(getattr(status, "value", status))


class StateMachine:
    """Validates and applies status transitions for one entity kind.

    Args:
        name: Machine name used in errors, logs and metrics
        transitions: current status -> allowed next statuses (terminal states map to [])
        status_field: Attribute on the entity holding the status
        role_rules: target status -> roles allowed to request it (absent = any role)
        guards: target status -> guards that must pass before entering it
        on_enter: target status -> hook run after the status is written
        entity_type: Entity type recorded in audit entries
    """

    def __init__(
        self,
        name: str,
        transitions: Mapping[Any, Iterable[Any]],
        status_field: str = "status",
        role_rules: Optional[Mapping[Any, Iterable[Any]]] = None,
        guards: Optional[Mapping[Any, Iterable[Guard]]] = None,
        on_enter: Optional[Mapping[Any, Hook]] = None,
        entity_type: Optional[str] = None,
    ):
        self.name = name
        self.status_field = status_field
        self.entity_type = entity_type or name
        self.transitions: Dict[str, List[str]] = {
            _status_value(src): [_status_value(dst) for dst in dsts]
            for src, dsts in transitions.items()
        }
        self.role_rules: Dict[str, set] = {
            _status_value(dst): {_status_value(r) for r in roles}
            for dst, roles in (role_rules or {}).items()
        }
        self.guards: Dict[str, List[Guard]] = {
            _status_value(dst): list(gs) for dst, gs in (guards or {}).items()
        }
        self.on_enter: Dict[str, Hook] = {
            _status_value(dst): hook for dst, hook in (on_enter or {}).items()
        }

    @property
    def statuses(self) -> set:
        known = set(self.transitions)
        for targets in self.transitions.values():
            known.update(targets)
        return known

    def can_transition(self, from_status: Any, to_status: Any) -> bool:
        """True if the edge exists in the table (roles and guards not considered)."""
        allowed = self.transitions.get(_status_value(from_status), [])
        return _status_value(to_status) in allowed

    def get_allowed_transitions(self, from_status: Any) -> List[str]:
        return list(self.transitions.get(_status_value(from_status), []))

    def is_terminal(self, status: Any) -> bool:
        return not self.transitions.get(_status_value(status))

    def current_status(self, entity: Any) -> Optional[str]:
        return _status_value(getattr(entity, self.status_field))

    def ensure_status(self, entity: Any, allowed: Iterable[Any]) -> None:
        """Raise InvalidTransitionError unless the entity is in one of `allowed`."""
        allowed_values = [_status_value(s) for s in allowed]
        current = self.current_status(entity)
        if current not in allowed_values:
            raise InvalidTransitionError(
                f"{self.name} must be {' or '.join(allowed_values)} "
                f"(current: {current})"
            )

    def check_role(self, to_status: Any, actor: Any) -> None:
        allowed_roles = self.role_rules.get(_status_value(to_status))
        if allowed_roles is None or actor is None:
            return
        if _status_value(actor.role) not in allowed_roles:
            workflow_transition_rejections_total.labels(machine=self.name, reason="forbidden").inc()
            raise ForbiddenError(
                f"Role '{actor.role}' may not move {self.name} to {_status_value(to_status)}"
            )

    async def transition(
        self,
        handle: TransactionHandle,
        entity: Any,
        requested_status: Any,
        actor: Any = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Move `entity` to `requested_status` inside the handle's transaction.

        `actor` is the requesting user; None marks a system-initiated move
        (e.g. superseding sibling records), which skips role rules.

        Raises:
            PreconditionFailedError: If the handle is not active
            InvalidTransitionError: If the edge is not in the table or a guard fails
            ForbiddenError: If the actor's role may not request the target status
        """
        if not handle.is_active:
            raise PreconditionFailedError(f"{self.name} transition requires an active transaction")

        current = self.current_status(entity)
        target = _status_value(requested_status)

        if not self.can_transition(current, target):
            workflow_transition_rejections_total.labels(machine=self.name, reason="invalid").inc()
            allowed = self.get_allowed_transitions(current)
            raise InvalidTransitionError(
                f"Invalid {self.name} transition: {current} -> {target}. "
                f"Allowed: {', '.join(allowed) if allowed else 'none (terminal state)'}"
            )

        self.check_role(target, actor)

        for guard in self.guards.get(target, []):
            try:
                guard(entity, actor)
            except InvalidTransitionError:
                workflow_transition_rejections_total.labels(machine=self.name, reason="guard").inc()
                raise

        setattr(entity, self.status_field, target)

        hook = self.on_enter.get(target)
        if hook is not None:
            result = hook(handle, entity, actor)
            if inspect.isawaitable(result):
                await result

        audit_metadata = {
            "machine": self.name,
            "field": self.status_field,
            "from": current,
            "to": target,
        }
        if metadata:
            audit_metadata.update(metadata)
        log_audit_event(
            db=handle.session,
            action="STATUS_CHANGED",
            actor_id=getattr(actor, "id", None),
            entity_type=self.entity_type,
            entity_id=getattr(entity, "id", None),
            metadata=audit_metadata,
        )

        workflow_transitions_total.labels(
            machine=self.name, from_status=current, to_status=target
        ).inc()
        logger.info(
            f"{self.name} {getattr(entity, 'id', '?')}: {current} -> {target}",
            extra={
                "machine": self.name,
                "entity_type": self.entity_type,
                "entity_id": getattr(entity, "id", None),
                "from_status": current,
                "to_status": target,
                "user_id": getattr(actor, "id", None),
            },
        )
        return entity
