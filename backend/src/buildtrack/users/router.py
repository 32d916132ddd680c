"""Users API endpoints"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.dependencies import require_right
from ..auth.roles import Right
from ..database import get_db
from ..dependencies import get_coordinator, get_registry
from ..domain.workflow.transaction import TransactionCoordinator
from ..models.user import User
from ..pagination import PageParams, paginate
from ..realtime.registry import ConnectionRegistry
from . import service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("")
def list_users(
    name: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    return paginate(service.list_users_query(db, name=name, role=role, status=status_filter), page)


@router.get("/site-engineers")
def list_site_engineers(
    name: Optional[str] = Query(None),
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.MANAGE_SITE_VISITS)),
    db: Session = Depends(get_db),
):
    return paginate(service.list_site_engineers_query(db, name=name), page)


@router.get("/me/site-visits")
def list_my_site_visits(
    status_filter: Optional[str] = Query(None, alias="status"),
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.MANAGE_SITE_VISITS)),
    db: Session = Depends(get_db),
):
    return paginate(service.my_site_visits_query(db, current_user, status=status_filter), page)


@router.get("/{user_id}")
def get_user(
    user_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_USERS)),
    db: Session = Depends(get_db),
):
    return service.get_user(db, user_id).to_dict()


@router.post("/{user_id}/activate")
async def activate_user(
    user_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_USERS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
):
    user = await service.set_user_active(coordinator, user_id, True, current_user)
    return user.to_dict()


@router.post("/{user_id}/deactivate")
async def deactivate_user(
    user_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_USERS)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    registry: ConnectionRegistry = Depends(get_registry),
):
    user = await service.set_user_active(coordinator, user_id, False, current_user, registry=registry)
    return user.to_dict()
