"""Transaction coordination for multi-step workflow operations.

A TransactionCoordinator runs one unit of work inside a single database
transaction. Collaborators that produce side effects outside the database
(blob copies, notifications) register after-commit / after-abort callbacks on
the handle instead of being known to the coordinator.

Example:
    coordinator = TransactionCoordinator(SessionLocal)

    async def work(handle):
        bom = handle.session.get(Bom, bom_id)
        await bom_machine.transition(handle, bom, "submitted", actor=user)
        return bom

    bom = await coordinator.run_atomic(work)
"""

import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from sqlalchemy.orm import Session

from ..errors import PreconditionFailedError
from ...observability.metrics import transactions_total, transaction_duration_seconds

logger = logging.getLogger(__name__)

T = TypeVar("T")
Callback = Callable[[], Any]


@dataclass(frozen=True)
class PendingMove:
    """A staged blob copied to its permanent key, not yet finalized."""
    old_key: str
    new_key: str


class TransactionHandle:
    """Capability passed to a unit of work.

    Exposes the transaction's session, the relocation ledger for this request
    and callback registration. Becomes inactive as soon as the transaction
    commits or rolls back.
    """

    def __init__(self, session: Session):
        self.session = session
        self.ledger: List[PendingMove] = []
        self._active = True
        self._commit_callbacks: List[Callback] = []
        self._abort_callbacks: List[Callback] = []
        self._hook_owners: set = set()

    @property
    def is_active(self) -> bool:
        return self._active

    def after_commit(self, callback: Callback) -> None:
        self._commit_callbacks.append(callback)

    def after_abort(self, callback: Callback) -> None:
        self._abort_callbacks.append(callback)

    def register_hooks(
        self,
        owner: Any,
        after_commit: Optional[Callback] = None,
        after_abort: Optional[Callback] = None,
    ) -> bool:
        """Register callbacks once per owner. Returns False if already registered."""
        if id(owner) in self._hook_owners:
            return False
        self._hook_owners.add(id(owner))
        if after_commit is not None:
            self.after_commit(after_commit)
        if after_abort is not None:
            self.after_abort(after_abort)
        return True

    def _deactivate(self) -> None:
        self._active = False


class TransactionCoordinator:
    """Runs async units of work atomically against a session factory.

    One coordinator serves one request; it holds at most one open handle.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory
        self._handle: Optional[TransactionHandle] = None

    @property
    def active_handle(self) -> Optional[TransactionHandle]:
        return self._handle

    async def run_atomic(self, work: Callable[[TransactionHandle], Awaitable[T]]) -> T:
        """Run `work` in a transaction: commit on success, roll back on any exception.

        Raises:
            PreconditionFailedError: If a handle is already open on this coordinator
            Exception: Whatever `work` (or commit) raised, after rollback
        """
        if self._handle is not None:
            raise PreconditionFailedError(
                "A transaction is already open on this coordinator; pass its handle instead"
            )

        session = self._session_factory()
        handle = TransactionHandle(session)
        self._handle = handle
        start_time = time.time()

        try:
            result = await self._execute(session, handle, work)
        except Exception:
            transactions_total.labels(outcome="aborted").inc()
            await self._run_callbacks(handle._abort_callbacks, "after_abort")
            raise
        finally:
            transaction_duration_seconds.observe(time.time() - start_time)

        transactions_total.labels(outcome="committed").inc()
        await self._run_callbacks(handle._commit_callbacks, "after_commit")
        return result

    async def _execute(
        self,
        session: Session,
        handle: TransactionHandle,
        work: Callable[[TransactionHandle], Awaitable[T]],
    ) -> T:
        try:
            session.begin()
            result = await work(handle)
            session.commit()
            return result
        except Exception as e:
            logger.warning(f"Unit of work failed, rolling back: {type(e).__name__}: {e}")
            try:
                session.rollback()
            except Exception:
                logger.exception("Rollback failed")
            raise
        finally:
            handle._deactivate()
            try:
                session.close()
            except Exception:
                logger.exception("Closing session failed")
            self._handle = None

    async def _run_callbacks(self, callbacks: List[Callback], phase: str) -> None:
        for callback in callbacks:
            try:
                result = callback()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"{phase} callback failed")
