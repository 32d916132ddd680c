"""Procurement API endpoints: vendors and purchase orders"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import require_right
from ..auth.roles import Right
from ..database import get_db
from ..dependencies import get_coordinator, get_relocator
from ..domain.workflow.relocation import BlobRelocator
from ..domain.workflow.transaction import TransactionCoordinator
from ..models.user import User
from ..pagination import PageParams, paginate
from . import service
from .schemas import PurchaseOrderCreate, VendorCreate, VendorOption

router = APIRouter(tags=["Procurement"])


@router.post("/vendors", status_code=status.HTTP_201_CREATED)
def create_vendor(
    body: VendorCreate,
    current_user: User = Depends(require_right(Right.MANAGE_PROCUREMENT)),
    db: Session = Depends(get_db),
):
    return service.create_vendor(db, body, current_user).to_dict()


@router.get("/vendors")
def list_vendors(
    category: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    name: Optional[str] = Query(None, description="Case-insensitive substring"),
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.MANAGE_PROCUREMENT)),
    db: Session = Depends(get_db),
):
    query = service.list_vendors_query(
        db, category=category, city=city, is_active=is_active, name=name
    )
    return paginate(query, page)


@router.get("/vendors/dropdown", response_model=List[VendorOption])
def vendor_dropdown(
    current_user: User = Depends(require_right(Right.MANAGE_PROCUREMENT)),
    db: Session = Depends(get_db),
):
    return service.vendor_dropdown(db)


@router.post("/vendors/{vendor_id}/activate")
def activate_vendor(
    vendor_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_PROCUREMENT)),
    db: Session = Depends(get_db),
):
    return service.set_vendor_active(db, vendor_id, True).to_dict()


@router.post("/vendors/{vendor_id}/deactivate")
def deactivate_vendor(
    vendor_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_PROCUREMENT)),
    db: Session = Depends(get_db),
):
    return service.set_vendor_active(db, vendor_id, False).to_dict()


@router.post("/purchase-orders", status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    body: PurchaseOrderCreate,
    current_user: User = Depends(require_right(Right.MANAGE_PROCUREMENT)),
    coordinator: TransactionCoordinator = Depends(get_coordinator),
    relocator: BlobRelocator = Depends(get_relocator),
):
    order = await service.create_purchase_order(coordinator, relocator, body, current_user)
    return order.to_dict()


@router.get("/purchase-orders")
def list_purchase_orders(
    project_id: Optional[UUID] = Query(None),
    vendor_id: Optional[UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: PageParams = Depends(),
    current_user: User = Depends(require_right(Right.MANAGE_PROCUREMENT)),
    db: Session = Depends(get_db),
):
    query = service.list_purchase_orders_query(
        db, project_id=project_id, vendor_id=vendor_id, is_active=is_active
    )
    return paginate(query, page)


@router.get("/purchase-orders/{po_id}")
def get_purchase_order(
    po_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_PROCUREMENT)),
    db: Session = Depends(get_db),
):
    return service.get_purchase_order(db, po_id).to_dict()


@router.post("/purchase-orders/{po_id}/activate")
def activate_purchase_order(
    po_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_PROCUREMENT)),
    db: Session = Depends(get_db),
):
    return service.set_purchase_order_active(db, po_id, True).to_dict()


@router.post("/purchase-orders/{po_id}/deactivate")
def deactivate_purchase_order(
    po_id: UUID,
    current_user: User = Depends(require_right(Right.MANAGE_PROCUREMENT)),
    db: Session = Depends(get_db),
):
    return service.set_purchase_order_active(db, po_id, False).to_dict()
