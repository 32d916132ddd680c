"""Wallet API endpoints"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..auth.dependencies import get_current_user, require_right
from ..auth.roles import Right
from ..database import get_db
from ..dependencies import get_coordinator, get_registry
from ..domain.workflow.transaction import TransactionCoordinator
from ..models.user import User
from ..pagination import PageParams, paginate
from ..realtime.registry import ConnectionRegistry
from . import service
from .schemas import WalletTransactionCreate

router = APIRouter(prefix="/wallet-transactions", tags=["Wallet"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_wallet_transaction(
    body: WalletTransactionCreate,
    current_user: User = Depends(require_right(Right.MANAGE_WALLET)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    registry: ConnectionRegistry = Depends(get_registry),
):
    txn = await service.create_transaction(coordinator, body, current_user, registry=registry)
    return txn.to_dict()


@router.get("")
def list_wallet_transactions(
    type: Optional[str] = Query(None),
    user_id: Optional[UUID] = Query(None),
    project_id: Optional[UUID] = Query(None),
    min_amount: Optional[Decimal] = Query(None, ge=0),
    max_amount: Optional[Decimal] = Query(None, ge=0),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.MANAGE_WALLET)),
    db: Session = Depends(get_db),
):
    query = service.list_transactions_query(
        db,
        type=type,
        user_id=user_id,
        project_id=project_id,
        min_amount=min_amount,
        max_amount=max_amount,
        start_date=start_date,
        end_date=end_date,
    )
    return paginate(query, page)


@router.get("/me/summary")
def my_wallet_summary(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return service.user_summary(db, current_user.id)


@router.get("/users/{user_id}/summary")
def wallet_summary(
    user_id: UUID,
    project_id: Optional[UUID] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: User = Depends(require_right(Right.MANAGE_WALLET)),
    db: Session = Depends(get_db),
):
    return service.user_summary(
        db, user_id, project_id=project_id, start_date=start_date, end_date=end_date
    )


@router.get("/{transaction_id}")
def get_wallet_transaction(
    transaction_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_WALLET)),
    db: Session = Depends(get_db),
):
    return service.get_transaction(db, transaction_id).to_dict()


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_wallet_transaction(
    transaction_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_WALLET)),
    db: Session = Depends(get_db),
):
    service.delete_transaction(db, transaction_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
