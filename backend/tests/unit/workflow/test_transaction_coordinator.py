"""Unit tests for TransactionCoordinator"""

import pytest

from buildtrack.domain.errors import PreconditionFailedError
from buildtrack.models import User


def new_user(email):
    return User(email=email, name="Someone", role="user", status="ACTIVE")


class TestRunAtomic:

    @pytest.mark.asyncio
    async def test_commits_on_success(self, coordinator, db_session):
        async def work(handle):
            handle.session.add(new_user("committed@test.com"))
            return "done"

        assert await coordinator.run_atomic(work) == "done"
        assert db_session.query(User).filter(User.email == "committed@test.com").count() == 1

    @pytest.mark.asyncio
    async def test_rolls_back_on_exception(self, coordinator, db_session):
        async def work(handle):
            handle.session.add(new_user("rolled-back@test.com"))
            handle.session.flush()
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await coordinator.run_atomic(work)
        assert db_session.query(User).filter(User.email == "rolled-back@test.com").count() == 0

    @pytest.mark.asyncio
    async def test_nested_run_is_rejected(self, coordinator):
        async def inner(handle):
            return None

        async def outer(handle):
            await coordinator.run_atomic(inner)

        with pytest.raises(PreconditionFailedError):
            await coordinator.run_atomic(outer)
        assert coordinator.active_handle is None

    @pytest.mark.asyncio
    async def test_coordinator_is_reusable_after_a_run(self, coordinator):
        async def work(handle):
            return handle.is_active

        assert await coordinator.run_atomic(work) is True
        assert await coordinator.run_atomic(work) is True

    @pytest.mark.asyncio
    async def test_handle_inactive_after_commit(self, coordinator):
        captured = {}

        async def work(handle):
            captured["handle"] = handle

        await coordinator.run_atomic(work)
        assert captured["handle"].is_active is False


class TestCallbacks:

    @pytest.mark.asyncio
    async def test_after_commit_runs_only_on_success(self, coordinator):
        calls = []

        async def work(handle):
            handle.after_commit(lambda: calls.append("commit"))
            handle.after_abort(lambda: calls.append("abort"))

        await coordinator.run_atomic(work)
        assert calls == ["commit"]

    @pytest.mark.asyncio
    async def test_after_abort_runs_only_on_failure(self, coordinator):
        calls = []

        async def work(handle):
            handle.after_commit(lambda: calls.append("commit"))
            handle.after_abort(lambda: calls.append("abort"))
            raise ValueError("nope")

        with pytest.raises(ValueError):
            await coordinator.run_atomic(work)
        assert calls == ["abort"]

    @pytest.mark.asyncio
    async def test_async_callbacks_are_awaited(self, coordinator):
        calls = []

        async def notify():
            calls.append("notified")

        async def work(handle):
            handle.after_commit(notify)

        await coordinator.run_atomic(work)
        assert calls == ["notified"]

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_fail_the_operation(self, coordinator):
        calls = []

        def broken():
            raise RuntimeError("callback failed")

        async def work(handle):
            handle.after_commit(broken)
            handle.after_commit(lambda: calls.append("second"))
            return 42

        assert await coordinator.run_atomic(work) == 42
        assert calls == ["second"]

    @pytest.mark.asyncio
    async def test_register_hooks_once_per_owner(self, coordinator):
        calls = []
        owner = object()

        async def work(handle):
            assert handle.register_hooks(owner, after_commit=lambda: calls.append(1)) is True
            assert handle.register_hooks(owner, after_commit=lambda: calls.append(2)) is False

        await coordinator.run_atomic(work)
        assert calls == [1]
