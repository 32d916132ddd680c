"""Wallet transaction service.

Creating a transaction notifies the payee with a ``payment-notification``
event once the row is committed.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..audit.service import log_audit_event
from ..domain.errors import NotFoundError
from ..domain.workflow.transaction import TransactionCoordinator, TransactionHandle
from ..models.project import Project
from ..models.user import User
from ..models.wallet_transaction import WalletTransaction
from ..realtime.registry import ConnectionRegistry
from .schemas import WalletTransactionCreate

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS = 5


async def create_transaction(
    coordinator: TransactionCoordinator,
    data: WalletTransactionCreate,
    actor: User,
    registry: Optional[ConnectionRegistry] = None,
) -> WalletTransaction:
    """Record a wallet transaction for `data.user_id`.

    Raises:
        NotFoundError: If the payee or the referenced project doesn't exist
    """

    async def work(handle: TransactionHandle) -> WalletTransaction:
        session = handle.session
        if not session.get(User, data.user_id):
            raise NotFoundError(f"User {data.user_id} not found")
        if data.project_id and not session.get(Project, data.project_id):
            raise NotFoundError(f"Project {data.project_id} not found")

        txn = WalletTransaction(**data.model_dump(), created_by_id=actor.id)
        session.add(txn)
        session.flush()

        log_audit_event(
            db=session,
            action="WALLET_TRANSACTION_CREATED",
            actor_id=actor.id,
            entity_type="wallet_transaction",
            entity_id=txn.id,
            metadata={"user_id": str(txn.user_id), "type": txn.type, "amount": str(txn.amount)},
        )

        if registry is not None:
            payload = txn.to_dict()
            payee = txn.user_id

            async def notify():
                await registry.emit_to_user(payee, "payment-notification", payload)

            handle.after_commit(notify)
        return txn

    txn = await coordinator.run_atomic(work)
    logger.info(
        f"Wallet transaction {txn.id} ({txn.type}) of {txn.amount} {txn.currency} for user {txn.user_id}",
        extra={"entity_type": "wallet_transaction", "entity_id": txn.id, "user_id": actor.id},
    )
    return txn


def list_transactions_query(
    db: Session,
    type: Optional[str] = None,
    user_id: Optional[UUID] = None,
    project_id: Optional[UUID] = None,
    min_amount: Optional[Decimal] = None,
    max_amount: Optional[Decimal] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
):
    query = db.query(WalletTransaction)
    if type:
        query = query.filter(WalletTransaction.type == type)
    if user_id:
        query = query.filter(WalletTransaction.user_id == user_id)
    if project_id:
        query = query.filter(WalletTransaction.project_id == project_id)
    if min_amount is not None:
        query = query.filter(WalletTransaction.amount >= min_amount)
    if max_amount is not None:
        query = query.filter(WalletTransaction.amount <= max_amount)
    if start_date:
        query = query.filter(WalletTransaction.created_at >= start_date)
    if end_date:
        query = query.filter(WalletTransaction.created_at <= end_date)
    return query.order_by(WalletTransaction.created_at.desc())


def get_transaction(db: Session, transaction_id: UUID) -> WalletTransaction:
    txn = db.get(WalletTransaction, transaction_id)
    if not txn:
        raise NotFoundError(f"Wallet transaction {transaction_id} not found")
    return txn


def delete_transaction(db: Session, transaction_id: UUID, actor: User) -> None:
    txn = get_transaction(db, transaction_id)
    log_audit_event(
        db=db,
        action="WALLET_TRANSACTION_DELETED",
        actor_id=actor.id,
        entity_type="wallet_transaction",
        entity_id=txn.id,
        metadata={"user_id": str(txn.user_id), "amount": str(txn.amount)},
    )
    db.delete(txn)
    db.commit()


def user_summary(
    db: Session,
    user_id: UUID,
    project_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Totals for one payee: amount, count, currency, per-type breakdown and recent rows."""
    base = list_transactions_query(
        db, user_id=user_id, project_id=project_id, start_date=start_date, end_date=end_date
    ).order_by(None)

    total_amount, total_count = base.with_entities(
        func.coalesce(func.sum(WalletTransaction.amount), 0),
        func.count(WalletTransaction.id),
    ).one()

    first = base.with_entities(WalletTransaction.currency).order_by(
        WalletTransaction.created_at
    ).first()

    breakdown_rows = base.with_entities(
        WalletTransaction.type,
        func.sum(WalletTransaction.amount).label("amount"),
        func.count(WalletTransaction.id).label("count"),
    ).group_by(WalletTransaction.type).order_by(func.sum(WalletTransaction.amount).desc()).all()

    recent = base.order_by(WalletTransaction.created_at.desc()).limit(RECENT_TRANSACTIONS).all()

    return {
        "user_id": str(user_id),
        "total_amount": float(total_amount),
        "total_transactions": total_count,
        "currency": first.currency if first else "INR",
        "type_breakdown": [
            {"type": row.type, "amount": float(row.amount), "count": row.count}
            for row in breakdown_rows
        ],
        "recent_transactions": [txn.to_dict() for txn in recent],
    }
