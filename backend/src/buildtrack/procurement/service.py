"""Procurement service: vendor directory and purchase orders.

Purchase order documents arrive as staged uploads and are relocated to
``purchase-orders/{project}/{po}/`` inside the transaction that inserts the
order.
"""

import logging
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from ..domain.errors import InvalidInputError, NotFoundError
from ..domain.workflow.relocation import BlobRelocator, key_computer_for
from ..domain.workflow.transaction import TransactionCoordinator, TransactionHandle
from ..models.bom import Bom
from ..models.procurement import PurchaseOrder, Vendor
from ..models.project import Project
from ..models.user import User
from .schemas import PurchaseOrderCreate, VendorCreate

logger = logging.getLogger(__name__)

PURCHASE_ORDER_NAMESPACE = "purchase-orders"


def create_vendor(db: Session, data: VendorCreate, actor: User) -> Vendor:
    vendor = Vendor(**data.model_dump(), is_active=True, created_by_id=actor.id)
    db.add(vendor)
    db.commit()
    db.refresh(vendor)
    return vendor


def get_vendor(db: Session, vendor_id: UUID) -> Vendor:
    vendor = db.get(Vendor, vendor_id)
    if not vendor:
        raise NotFoundError(f"Vendor {vendor_id} not found")
    return vendor


def list_vendors_query(
    db: Session,
    category: Optional[str] = None,
    city: Optional[str] = None,
    is_active: Optional[bool] = None,
    name: Optional[str] = None,
):
    query = db.query(Vendor)
    if category:
        query = query.filter(Vendor.category == category)
    if city:
        query = query.filter(Vendor.city == city)
    if is_active is not None:
        query = query.filter(Vendor.is_active == is_active)
    if name:
        query = query.filter(Vendor.name.ilike(f"%{name}%"))
    return query.order_by(Vendor.name)


def vendor_dropdown(db: Session) -> List[dict]:
    """Active vendors as ``{id, name}`` pairs, alphabetical."""
    rows = db.query(Vendor.id, Vendor.name).filter(
        Vendor.is_active.is_(True)
    ).order_by(Vendor.name).all()
    return [{"id": str(row.id), "name": row.name} for row in rows]


def set_vendor_active(db: Session, vendor_id: UUID, is_active: bool) -> Vendor:
    vendor = get_vendor(db, vendor_id)
    vendor.is_active = is_active
    db.commit()
    db.refresh(vendor)
    return vendor


async def create_purchase_order(
    coordinator: TransactionCoordinator,
    relocator: BlobRelocator,
    data: PurchaseOrderCreate,
    actor: User,
) -> PurchaseOrder:
    """Insert a purchase order and relocate its staged documents.

    Raises:
        NotFoundError: If the project or vendor doesn't exist
        InvalidInputError: If the vendor is inactive or the BOM belongs to another project
        StorageError: If a document copy fails (nothing is persisted)
    """

    async def work(handle: TransactionHandle) -> PurchaseOrder:
        session = handle.session
        if not session.get(Project, data.project_id):
            raise NotFoundError(f"Project {data.project_id} not found")
        vendor = session.get(Vendor, data.vendor_id)
        if not vendor:
            raise NotFoundError(f"Vendor {data.vendor_id} not found")
        if not vendor.is_active:
            raise InvalidInputError("Vendor is inactive")
        if data.bom_id is not None:
            bom = session.get(Bom, data.bom_id)
            if not bom or bom.project_id != data.project_id:
                raise InvalidInputError("BOM does not belong to the project")

        po_id = uuid4()
        documents = await relocator.relocate_files(
            handle,
            [d.model_dump(exclude_none=True) for d in data.documents],
            key_computer_for(PURCHASE_ORDER_NAMESPACE, data.project_id, po_id),
        )
        order = PurchaseOrder(
            id=po_id,
            project_id=data.project_id,
            vendor_id=vendor.id,
            bom_id=data.bom_id,
            po_number=data.po_number,
            amount=data.amount,
            description=data.description,
            documents=documents,
            is_active=True,
            created_by_id=actor.id,
        )
        session.add(order)
        session.flush()
        return order

    order = await coordinator.run_atomic(work)
    logger.info(
        f"Purchase order {order.po_number} created for project {order.project_id}",
        extra={"entity_type": "purchase_order", "entity_id": order.id, "user_id": actor.id},
    )
    return order


def get_purchase_order(db: Session, po_id: UUID) -> PurchaseOrder:
    order = db.get(PurchaseOrder, po_id)
    if not order:
        raise NotFoundError(f"Purchase order {po_id} not found")
    return order


def list_purchase_orders_query(
    db: Session,
    project_id: Optional[UUID] = None,
    vendor_id: Optional[UUID] = None,
    is_active: Optional[bool] = None,
):
    query = db.query(PurchaseOrder)
    if project_id:
        query = query.filter(PurchaseOrder.project_id == project_id)
    if vendor_id:
        query = query.filter(PurchaseOrder.vendor_id == vendor_id)
    if is_active is not None:
        query = query.filter(PurchaseOrder.is_active == is_active)
    return query.order_by(PurchaseOrder.created_at.desc())


def set_purchase_order_active(db: Session, po_id: UUID, is_active: bool) -> PurchaseOrder:
    order = get_purchase_order(db, po_id)
    order.is_active = is_active
    db.commit()
    db.refresh(order)
    return order
