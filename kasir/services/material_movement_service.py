"""
Material movement engine: turns order line items into material consumption
through each product's bill of materials, receives purchase orders into stock,
and records manual adjustments.

Every stock change writes the material row and its material_stock_movements
audit row in one commit. Stock-type materials are clamped at zero when an
order consumes more than is on hand; Beli/Jasa materials count usage, so
consumption raises their `stock` while the movement is still tagged OUT.
"""

from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kasir.common.exceptions import FetchFailedError, NotFoundError
from kasir.core.database import commit_write
from kasir.core.dependencies import SYSTEM_ACTOR, Actor
from kasir.logger_config import logger
from kasir.models.material import Material, MaterialMovement, MaterialType, MovementReason, MovementType
from kasir.models.purchase_order import PurchaseOrder, PurchaseOrderStatus
from kasir.models.transaction import Transaction
from kasir.utils.timezone import as_utc, day_window


REF_TYPE_TRANSACTION = "transaction"
REF_TYPE_PURCHASE_ORDER = "purchase_order"

ZERO = Decimal("0")


def _get(obj: Any, *names: str) -> Any:
    """Read the first present attribute / key; line items may be ORM rows or dicts."""
    for name in names:
        if isinstance(obj, Mapping):
            if obj.get(name) is not None:
                return obj[name]
        elif getattr(obj, name, None) is not None:
            return getattr(obj, name)
    return None


def extract_material_usage(line_items: Iterable[Any]) -> "OrderedDict[str, Decimal]":
    """
    Total material needed per material id: BOM quantity x item quantity,
    summed when several items use the same material. Items whose product has
    no bill of materials contribute nothing.
    """
    usage: "OrderedDict[str, Decimal]" = OrderedDict()
    for item in line_items:
        product = _get(item, "product")
        bom = _get(product, "materials") if product is not None else None
        if not bom:
            continue

        item_qty = Decimal(str(_get(item, "quantity") or 0))
        for row in bom:
            material_id = _get(row, "material_id", "materialId")
            if not material_id:
                continue
            per_unit = Decimal(str(_get(row, "quantity") or 0))
            usage[material_id] = usage.get(material_id, ZERO) + per_unit * item_qty

    return usage


def _lock_material(db: Session, material_id: str) -> Material:
    material = (
        db.query(Material)
        .filter(Material.id == material_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not material:
        raise NotFoundError(f"Material not found: {material_id}")
    return material


def _movement(
    material: Material,
    type: MovementType,
    reason: MovementReason,
    quantity: Decimal,
    previous: Decimal,
    new: Decimal,
    actor: Actor,
    reference_id: Optional[str] = None,
    reference_type: Optional[str] = None,
    notes: Optional[str] = None,
) -> MaterialMovement:
    return MaterialMovement(
        material_id=material.id,
        material_name=material.name,
        type=type,
        reason=reason,
        quantity=quantity,
        previous_stock=previous,
        new_stock=new,
        reference_id=reference_id,
        reference_type=reference_type,
        notes=notes,
        user_id=actor.user_id,
        user_name=actor.display_name,
    )


# ==================== PRODUCTION CONSUMPTION ====================

def consume_for_production(
    db: Session,
    transaction_id: str,
    line_items: Iterable[Any],
    actor: Optional[Actor] = None,
) -> List[MaterialMovement]:
    """Stage stock updates and movements for an order. Caller commits."""
    actor = actor or SYSTEM_ACTOR
    usage = extract_material_usage(line_items)
    movements: List[MaterialMovement] = []

    for material_id, used in usage.items():
        if used <= 0:
            continue

        material = _lock_material(db, material_id)
        previous = Decimal(str(material.stock or 0))

        if material.is_usage_counter:
            new = previous + used
        else:
            if previous < used:
                logger.warning(
                    f"Stock shortfall on {material.name} ({material.id}) for {transaction_id}: "
                    f"need {used}, have {previous}; clamping to 0"
                )
            new = max(ZERO, previous - used)

        material.stock = new
        movement = _movement(
            material,
            MovementType.OUT,
            MovementReason.PRODUCTION_CONSUMPTION,
            quantity=used,
            previous=previous,
            new=new,
            actor=actor,
            reference_id=transaction_id,
            reference_type=REF_TYPE_TRANSACTION,
            notes=f"Production process for transaction {transaction_id}",
        )
        db.add(movement)
        movements.append(movement)

    return movements


def apply_production_consumption(
    db: Session,
    transaction_id: str,
    line_items: Iterable[Any],
    actor: Optional[Actor] = None,
) -> List[MaterialMovement]:
    """
    Consume the materials an order needs and commit stock + movement rows together.
    Returns the movements written (empty when no item has a bill of materials).
    """
    try:
        movements = consume_for_production(db, transaction_id, line_items, actor)
    except NotFoundError:
        db.rollback()
        raise

    if not movements:
        return movements

    commit_write(db, "apply production consumption")
    for movement in movements:
        db.refresh(movement)
    logger.info(f"Production consumption for {transaction_id}: {len(movements)} material(s) updated")
    return movements


# ==================== PURCHASE ORDERS ====================

def receive_purchase_order(db: Session, po_id: str, actor: Optional[Actor] = None) -> Dict[str, Any]:
    """
    Receive a paid or approved purchase order into stock. Stock materials get
    IN / PURCHASE; usage-counter materials get OUT / PRODUCTION_CONSUMPTION.
    `stock` grows by the ordered quantity either way.
    """
    actor = actor or SYSTEM_ACTOR
    po = db.query(PurchaseOrder).filter(PurchaseOrder.id == po_id).first()
    if not po:
        raise NotFoundError(f"Purchase order not found: {po_id}")
    if po.status == PurchaseOrderStatus.SELESAI:
        raise ValueError(f"Purchase order {po_id} has already been received")
    if po.status not in (PurchaseOrderStatus.APPROVED, PurchaseOrderStatus.DIBAYAR):
        raise ValueError(f"Purchase order {po_id} cannot be received in status {po.status.value}")

    material = _lock_material(db, po.material_id)
    quantity = Decimal(str(po.quantity))
    previous = Decimal(str(material.stock or 0))
    new = previous + quantity

    if material.is_usage_counter:
        movement_type, reason = MovementType.OUT, MovementReason.PRODUCTION_CONSUMPTION
    else:
        movement_type, reason = MovementType.IN, MovementReason.PURCHASE

    material.stock = new
    movement = _movement(
        material,
        movement_type,
        reason,
        quantity=quantity,
        previous=previous,
        new=new,
        actor=actor,
        reference_id=po.id,
        reference_type=REF_TYPE_PURCHASE_ORDER,
        notes=f"Purchase order {po.id} received",
    )
    db.add(movement)
    po.status = PurchaseOrderStatus.SELESAI

    commit_write(db, "receive purchase order")
    db.refresh(po)
    db.refresh(movement)
    logger.info(f"Purchase order {po.id} received: {material.name} {previous} -> {new}")
    return {"purchase_order": po, "movement": movement}


# ==================== ADJUSTMENTS ====================

def adjust_stock(
    db: Session,
    material_id: str,
    new_stock: Decimal,
    actor: Optional[Actor] = None,
    notes: Optional[str] = None,
) -> MaterialMovement:
    """Stock opname: set the stock to a counted value and record the difference."""
    actor = actor or SYSTEM_ACTOR
    new = Decimal(str(new_stock))
    if new < 0:
        raise ValueError("Stock cannot be negative")

    material = _lock_material(db, material_id)
    previous = Decimal(str(material.stock or 0))
    if new == previous:
        db.rollback()
        raise ValueError(f"Stock of {material.name} is already {previous}")

    material.stock = new
    movement = _movement(
        material,
        MovementType.ADJUSTMENT,
        MovementReason.ADJUSTMENT,
        quantity=abs(new - previous),
        previous=previous,
        new=new,
        actor=actor,
        notes=notes,
    )
    db.add(movement)

    commit_write(db, "adjust stock")
    db.refresh(movement)
    logger.info(f"Stock of {material.id} adjusted {previous} -> {new}")
    return movement


# ==================== QUERIES ====================

def list_movements(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    material_id: Optional[str] = None,
    reference_id: Optional[str] = None,
    reason: Optional[MovementReason] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Movement log newest first. Rows referencing a transaction carry a short
    summary of it under `transaction`.
    """
    try:
        query = db.query(MaterialMovement)
        if material_id:
            query = query.filter(MaterialMovement.material_id == material_id)
        if reference_id:
            query = query.filter(MaterialMovement.reference_id == reference_id)
        if reason:
            query = query.filter(MaterialMovement.reason == reason)
        if start_date:
            query = query.filter(MaterialMovement.created_at >= day_window(start_date)[0])
        if end_date:
            query = query.filter(MaterialMovement.created_at < day_window(end_date)[1])

        total = query.count()
        rows = query.order_by(MaterialMovement.created_at.desc()).offset(skip).limit(limit).all()

        trx_ids = {m.reference_id for m in rows if m.reference_type == REF_TYPE_TRANSACTION and m.reference_id}
        transactions = {}
        if trx_ids:
            transactions = {
                t.id: t for t in db.query(Transaction).filter(Transaction.id.in_(trx_ids)).all()
            }
    except SQLAlchemyError as e:
        logger.exception("Error while fetching material movements")
        raise FetchFailedError(f"Failed to fetch material movements: {e}") from e

    items = []
    for m in rows:
        trx = transactions.get(m.reference_id) if m.reference_type == REF_TYPE_TRANSACTION else None
        items.append({
            "id": m.id,
            "material_id": m.material_id,
            "material_name": m.material_name,
            "type": m.type,
            "reason": m.reason,
            "quantity": m.quantity,
            "previous_stock": m.previous_stock,
            "new_stock": m.new_stock,
            "reference_id": m.reference_id,
            "reference_type": m.reference_type,
            "notes": m.notes,
            "user_name": m.user_name,
            "created_at": as_utc(m.created_at) if m.created_at else None,
            "transaction": {
                "id": trx.id,
                "customer_name": trx.customer_name,
                "order_date": trx.order_date,
                "status": trx.status,
            } if trx else None,
        })
    return items, total


def get_material(db: Session, material_id: str) -> Material:
    material = db.query(Material).filter(Material.id == material_id).first()
    if not material:
        raise NotFoundError(f"Material not found: {material_id}")
    return material


def list_materials(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    search: Optional[str] = None,
    type: Optional[MaterialType] = None,
) -> Tuple[List[Material], int]:
    query = db.query(Material)
    if type:
        query = query.filter(Material.type == type)
    if search:
        query = query.filter(Material.name.ilike(f"%{search}%"))
    total = query.count()
    return query.order_by(Material.name).offset(skip).limit(limit).all(), total


def create_material(
    db: Session,
    name: str,
    type: MaterialType = MaterialType.STOCK,
    unit: str = "pcs",
    price_per_unit: Decimal = ZERO,
    stock: Decimal = ZERO,
    min_stock: Decimal = ZERO,
    description: Optional[str] = None,
) -> Material:
    if Decimal(str(stock)) < 0 or Decimal(str(min_stock)) < 0:
        raise ValueError("Stock values cannot be negative")

    material = Material(
        name=name,
        type=type,
        unit=unit,
        price_per_unit=price_per_unit,
        stock=stock,
        min_stock=min_stock,
        description=description,
    )
    db.add(material)
    commit_write(db, "create material")
    db.refresh(material)
    logger.info(f"Material created: {material.id} ({name}, {type.value})")
    return material


def get_low_stock_materials(db: Session) -> List[Material]:
    """Stock-type materials at or below their minimum. Usage counters never run low."""
    return (
        db.query(Material)
        .filter(
            Material.type == MaterialType.STOCK,
            Material.stock <= Material.min_stock,
        )
        .order_by(Material.name)
        .all()
    )


def material_usage_summary(db: Session, material_id: str) -> Dict[str, Any]:
    """Total consumed and received for one material across its movement log."""
    material = get_material(db, material_id)
    rows = (
        db.query(MaterialMovement.reason, func.coalesce(func.sum(MaterialMovement.quantity), 0))
        .filter(MaterialMovement.material_id == material_id)
        .group_by(MaterialMovement.reason)
        .all()
    )
    by_reason = {reason.value: Decimal(str(total)) for reason, total in rows}
    return {
        "material_id": material.id,
        "material_name": material.name,
        "type": material.type,
        "remaining_stock": material.remaining_stock,
        "cumulative_usage": material.cumulative_usage,
        "by_reason": by_reason,
    }
