"""Unit tests for the table-driven approval state machine.

Tests cover:
- Allowed transitions write the status and an audit entry
- Every pair outside the table is rejected with the status unchanged
- Role rules, guards and on-enter hooks
- Transitions require an active transaction
"""

from itertools import product
from types import SimpleNamespace
from uuid import uuid4

import pytest

from buildtrack.domain.errors import (
    ForbiddenError,
    InvalidTransitionError,
    PreconditionFailedError,
)
from buildtrack.domain.workflow.machines import (
    architect_proposal_machine,
    bom_machine,
    client_proposal_machine,
    document_admin_review_machine,
    document_customer_review_machine,
    site_visit_machine,
)
from buildtrack.domain.workflow.state_machine import StateMachine
from buildtrack.models import AuditLog

ALL_MACHINES = [
    site_visit_machine,
    bom_machine,
    client_proposal_machine,
    architect_proposal_machine,
    document_admin_review_machine,
    document_customer_review_machine,
]


def make_entity(machine, status, **fields):
    entity = SimpleNamespace(id=uuid4(), items=["item"], remarks="ok", updated_data={"a": 1},
                             sent_to_customer=True, **fields)
    setattr(entity, machine.status_field, status)
    return entity


class TestBomScenarios:
    """Draft → submitted succeeds, approved → submitted is rejected"""

    @pytest.mark.asyncio
    async def test_draft_to_submitted_succeeds(self, coordinator, db_session, admin_user):
        bom = make_entity(bom_machine, "draft")

        async def work(handle):
            return await bom_machine.transition(handle, bom, "submitted", actor=admin_user)

        await coordinator.run_atomic(work)

        assert bom.status == "submitted"
        entry = db_session.query(AuditLog).filter(AuditLog.entity_id == bom.id).one()
        assert entry.action == "STATUS_CHANGED"
        assert entry.metadata_json["from"] == "draft"
        assert entry.metadata_json["to"] == "submitted"
        assert entry.actor_id == admin_user.id

    @pytest.mark.asyncio
    async def test_approved_to_submitted_is_rejected(self, coordinator, db_session, admin_user):
        bom = make_entity(bom_machine, "approved")

        async def work(handle):
            return await bom_machine.transition(handle, bom, "submitted", actor=admin_user)

        with pytest.raises(InvalidTransitionError):
            await coordinator.run_atomic(work)

        assert bom.status == "approved"
        assert db_session.query(AuditLog).count() == 0


class TestTransitionTableCompleteness:
    """Any pair not in a machine's table raises InvalidTransitionError"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("machine", ALL_MACHINES, ids=lambda m: m.name)
    async def test_pairs_outside_table_are_rejected(self, machine, coordinator):
        rejected = 0
        for current, target in product(sorted(machine.statuses), repeat=2):
            if machine.can_transition(current, target):
                continue
            entity = make_entity(machine, current)

            async def work(handle, entity=entity, target=target):
                await machine.transition(handle, entity, target)

            with pytest.raises(InvalidTransitionError):
                await coordinator.run_atomic(work)
            assert getattr(entity, machine.status_field) == current
            rejected += 1

        assert rejected > 0

    @pytest.mark.parametrize("machine", ALL_MACHINES, ids=lambda m: m.name)
    def test_terminal_states_have_no_exits(self, machine):
        for status in machine.statuses:
            if machine.is_terminal(status):
                assert machine.get_allowed_transitions(status) == []

    def test_site_visit_terminal_states(self):
        assert site_visit_machine.is_terminal("Approved")
        assert site_visit_machine.is_terminal("Cancelled")
        assert site_visit_machine.is_terminal("Outdated")
        assert not site_visit_machine.is_terminal("Completed")

    def test_unknown_status_is_rejected(self):
        assert not bom_machine.can_transition("draft", "shipped")
        assert not bom_machine.can_transition("unknown", "draft")


class TestRolesAndGuards:

    @pytest.mark.asyncio
    async def test_role_rule_rejects_non_admin_approval(self, coordinator, architect_user):
        bom = make_entity(bom_machine, "submitted")

        async def work(handle):
            await bom_machine.transition(handle, bom, "approved", actor=architect_user)

        with pytest.raises(ForbiddenError):
            await coordinator.run_atomic(work)
        assert bom.status == "submitted"

    @pytest.mark.asyncio
    async def test_system_transition_skips_role_rules(self, coordinator):
        bom = make_entity(bom_machine, "submitted")

        async def work(handle):
            await bom_machine.transition(handle, bom, "approved", actor=None)

        await coordinator.run_atomic(work)
        assert bom.status == "approved"

    @pytest.mark.asyncio
    async def test_guard_blocks_empty_bom_submission(self, coordinator, admin_user):
        bom = make_entity(bom_machine, "draft")
        bom.items = []

        async def work(handle):
            await bom_machine.transition(handle, bom, "submitted", actor=admin_user)

        with pytest.raises(InvalidTransitionError, match="at least one item"):
            await coordinator.run_atomic(work)
        assert bom.status == "draft"

    @pytest.mark.asyncio
    async def test_customer_review_requires_document_sent(self, coordinator, customer_user):
        document = make_entity(document_customer_review_machine, "Pending")
        document.sent_to_customer = False

        async def work(handle):
            await document_customer_review_machine.transition(
                handle, document, "Approved", actor=customer_user
            )

        with pytest.raises(InvalidTransitionError, match="not been sent"):
            await coordinator.run_atomic(work)
        assert document.customer_status == "Pending"

    @pytest.mark.asyncio
    async def test_on_enter_hook_runs_in_transaction(self, coordinator):
        entered = []

        async def hook(handle, entity, actor):
            assert handle.is_active
            entered.append(entity.id)

        machine = StateMachine(
            name="ticket",
            transitions={"open": ["closed"], "closed": []},
            on_enter={"closed": hook},
        )
        ticket = SimpleNamespace(id=uuid4(), status="open")

        async def work(handle):
            await machine.transition(handle, ticket, "closed")

        await coordinator.run_atomic(work)
        assert entered == [ticket.id]
        assert ticket.status == "closed"

    def test_ensure_status(self):
        bom = make_entity(bom_machine, "submitted")
        bom_machine.ensure_status(bom, ["draft", "submitted"])
        with pytest.raises(InvalidTransitionError, match="must be draft"):
            bom_machine.ensure_status(bom, ["draft"])


class TestHandleRequirement:

    @pytest.mark.asyncio
    async def test_transition_with_closed_handle_fails(self, coordinator):
        bom = make_entity(bom_machine, "draft")
        captured = {}

        async def work(handle):
            captured["handle"] = handle

        await coordinator.run_atomic(work)

        with pytest.raises(PreconditionFailedError):
            await bom_machine.transition(captured["handle"], bom, "submitted")
        assert bom.status == "draft"
