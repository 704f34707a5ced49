# kasir/services/purchase_order_service.py

from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from kasir.common.exceptions import NotFoundError
from kasir.core.database import commit_write
from kasir.core.dependencies import SYSTEM_ACTOR, Actor
from kasir.logger_config import logger
from kasir.models.material import Material
from kasir.models.purchase_order import PurchaseOrder, PurchaseOrderStatus


# ==================== QUERY OPERATIONS ====================

def get_purchase_order(db: Session, po_id: str) -> PurchaseOrder:
    po = db.query(PurchaseOrder).filter(PurchaseOrder.id == po_id).first()
    if not po:
        raise NotFoundError(f"Purchase order not found: {po_id}")
    return po


def get_all_purchase_orders(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    status: Optional[PurchaseOrderStatus] = None,
    material_id: Optional[str] = None,
) -> Tuple[List[PurchaseOrder], int]:
    query = db.query(PurchaseOrder)
    if status:
        query = query.filter(PurchaseOrder.status == status)
    if material_id:
        query = query.filter(PurchaseOrder.material_id == material_id)
    total = query.count()
    rows = query.order_by(PurchaseOrder.created_at.desc()).offset(skip).limit(limit).all()
    return rows, total


# ==================== MUTATIONS ====================

def create_purchase_order(
    db: Session,
    material_id: str,
    quantity: Decimal,
    actor: Optional[Actor] = None,
    notes: Optional[str] = None,
) -> PurchaseOrder:
    actor = actor or SYSTEM_ACTOR
    material = db.query(Material).filter(Material.id == material_id).first()
    if not material:
        raise NotFoundError(f"Material not found: {material_id}")

    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise ValueError("quantity must be greater than zero")

    po = PurchaseOrder(
        material_id=material.id,
        material_name=material.name,
        quantity=quantity,
        unit=material.unit,
        requested_by=actor.display_name,
        status=PurchaseOrderStatus.PENDING,
        notes=notes,
    )
    db.add(po)
    commit_write(db, "create purchase order")
    db.refresh(po)
    logger.info(f"Purchase order {po.id} requested: {quantity} {material.unit} {material.name}")
    return po


def review_purchase_order(db: Session, po_id: str, approve: bool) -> PurchaseOrder:
    """Approve or reject a pending purchase order."""
    po = get_purchase_order(db, po_id)
    if po.status != PurchaseOrderStatus.PENDING:
        raise ValueError(f"Only pending purchase orders can be reviewed (current: {po.status.value})")

    po.status = PurchaseOrderStatus.APPROVED if approve else PurchaseOrderStatus.REJECTED
    commit_write(db, "review purchase order")
    db.refresh(po)
    logger.info(f"Purchase order {po.id} {po.status.value}")
    return po


def delete_purchase_order(db: Session, po_id: str) -> None:
    """Paid or received orders have cash and stock history and cannot be deleted."""
    po = get_purchase_order(db, po_id)
    if po.status in (PurchaseOrderStatus.DIBAYAR, PurchaseOrderStatus.SELESAI):
        raise ValueError(f"Cannot delete purchase order in status {po.status.value}")

    db.delete(po)
    commit_write(db, "delete purchase order")
    logger.info(f"Purchase order {po_id} deleted")
