"""
Transaction (order) service: creation with optional up-front payment, status
lifecycle with one-time material consumption, and deletion with ledger
reversal.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kasir.common.exceptions import NotFoundError, WriteFailedError
from kasir.core.database import commit_write
from kasir.core.dependencies import SYSTEM_ACTOR, Actor
from kasir.logger_config import logger
from kasir.models.expense import Expense
from kasir.models.ledger import LedgerEntry
from kasir.models.product import Product
from kasir.models.transaction import PaymentStatus, Transaction, TransactionItem, TransactionStatus
from kasir.services.account_service import require_account
from kasir.services.cash_service import apply_balance_delta, payment_status_for, record_transaction_payment
from kasir.services.ledger_classifier import signed_amount
from kasir.services.material_movement_service import consume_for_production
from kasir.utils.timezone import day_window, utc_now


STATUS_FLOW = [
    TransactionStatus.PESANAN_MASUK,
    TransactionStatus.PROSES_DESIGN,
    TransactionStatus.ACC_COSTUMER,
    TransactionStatus.PROSES_PRODUKSI,
    TransactionStatus.PESANAN_SELESAI,
]
FINAL_STATUSES = (TransactionStatus.PESANAN_SELESAI, TransactionStatus.DIBATALKAN)
CONSUMING_STATUSES = (TransactionStatus.PROSES_PRODUKSI, TransactionStatus.PESANAN_SELESAI)


def get_transaction(db: Session, transaction_id: str) -> Transaction:
    trx = db.query(Transaction).filter(Transaction.id == transaction_id).first()
    if not trx:
        raise NotFoundError(f"Transaction not found: {transaction_id}")
    return trx


def list_transactions(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    status: Optional[TransactionStatus] = None,
    payment_status: Optional[PaymentStatus] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Tuple[List[Transaction], int]:
    query = db.query(Transaction)

    if status:
        query = query.filter(Transaction.status == status)
    if payment_status:
        query = query.filter(Transaction.payment_status == payment_status)
    if search:
        term = f"%{search}%"
        query = query.filter(or_(Transaction.customer_name.ilike(term), Transaction.id.ilike(term)))
    if start_date:
        query = query.filter(Transaction.order_date >= day_window(start_date)[0])
    if end_date:
        query = query.filter(Transaction.order_date < day_window(end_date)[1])

    total = query.count()
    rows = query.order_by(Transaction.order_date.desc()).offset(skip).limit(limit).all()
    return rows, total


def create_transaction(
    db: Session,
    customer_name: str,
    items: List[Dict[str, Any]],
    actor: Optional[Actor] = None,
    payment_account_id: Optional[str] = None,
    paid_amount: Decimal = Decimal("0"),
    order_date: Optional[datetime] = None,
) -> Transaction:
    """
    Create an order. items: [{product_id, quantity, price?, notes?}]; price
    defaults to the product's base price. A non-zero paid_amount is posted to
    the payment account in the same commit as the order.
    """
    actor = actor or SYSTEM_ACTOR
    if not items:
        raise ValueError("A transaction needs at least one item")

    paid = Decimal(str(paid_amount or 0))
    if paid < 0:
        raise ValueError("paid_amount cannot be negative")
    if paid > 0 and not payment_account_id:
        raise ValueError("payment_account_id is required when paid_amount > 0")
    if paid > 0:
        require_account(db, payment_account_id)

    lines = []
    subtotal = Decimal("0")
    for item in items:
        product = db.query(Product).filter(Product.id == item["product_id"]).first()
        if not product:
            raise NotFoundError(f"Product not found: {item['product_id']}")
        quantity = Decimal(str(item["quantity"]))
        if quantity <= 0:
            raise ValueError(f"Quantity for {product.name} must be greater than zero")
        price = Decimal(str(item["price"])) if item.get("price") is not None else Decimal(str(product.base_price))
        subtotal += price * quantity
        lines.append(TransactionItem(
            product_id=product.id,
            quantity=quantity,
            price=price,
            notes=item.get("notes"),
        ))

    if paid > subtotal:
        raise ValueError(f"paid_amount {paid} exceeds total {subtotal}")

    trx = Transaction(
        customer_name=customer_name,
        cashier_id=actor.user_id,
        cashier_name=actor.display_name,
        payment_account_id=payment_account_id if paid > 0 else None,
        order_date=order_date or utc_now(),
        subtotal=subtotal,
        total=subtotal,
        paid_amount=paid,
        payment_status=payment_status_for(subtotal, paid),
        status=TransactionStatus.PESANAN_MASUK,
        items=lines,
    )
    db.add(trx)
    try:
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create transaction for {customer_name}: {e}")
        raise WriteFailedError("create transaction", e) from e

    if paid > 0:
        record_transaction_payment(db, trx, payment_account_id, paid, actor, commit=False)

    commit_write(db, "create transaction")
    db.refresh(trx)
    logger.info(f"Transaction {trx.id} created for {customer_name}: total {subtotal}, paid {paid}")
    return trx


def update_transaction_status(
    db: Session,
    transaction_id: str,
    new_status: TransactionStatus,
    actor: Optional[Actor] = None,
) -> Transaction:
    """
    Move an order along its lifecycle. Forward jumps are allowed, going back is
    not, and finished or cancelled orders are frozen. Materials are consumed the
    first time the order reaches production or completion; cancelling later does
    not return them to stock.
    """
    trx = get_transaction(db, transaction_id)
    current = trx.status

    if current in FINAL_STATUSES:
        raise ValueError(f"Transaction {transaction_id} is already {current.value}")
    if new_status == current:
        return trx
    if new_status != TransactionStatus.DIBATALKAN and STATUS_FLOW.index(new_status) < STATUS_FLOW.index(current):
        raise ValueError(f"Cannot move transaction from {current.value} back to {new_status.value}")

    if new_status in CONSUMING_STATUSES and trx.materials_processed_at is None:
        try:
            movements = consume_for_production(db, trx.id, trx.items, actor)
        except NotFoundError:
            db.rollback()
            raise
        trx.materials_processed_at = utc_now()
        logger.debug(f"Transaction {trx.id}: {len(movements)} material movement(s) staged")

    trx.status = new_status
    commit_write(db, "update transaction status")
    db.refresh(trx)
    logger.info(f"Transaction {trx.id} status {current.value} -> {new_status.value}")
    return trx


def delete_transaction(db: Session, transaction_id: str) -> Dict[str, Any]:
    """
    Delete an order with the cash_history rows that reference it, reversing
    each row's effect on its account. Material movements stay in the log.
    """
    trx = get_transaction(db, transaction_id)

    entries = (
        db.query(LedgerEntry)
        .filter(
            or_(
                LedgerEntry.reference_id == transaction_id,
                LedgerEntry.reference_number == f"ORDER-{transaction_id}",
            )
        )
        .all()
    )

    reversed_by_account: Dict[str, Decimal] = {}
    for entry in entries:
        if entry.account_id:
            delta = -signed_amount(entry)
            apply_balance_delta(db, entry.account_id, delta)
            reversed_by_account[entry.account_id] = reversed_by_account.get(entry.account_id, Decimal("0")) + delta
        # Write-offs also left an expense row
        if entry.reference_number and entry.reference_number.startswith("EXP-"):
            db.query(Expense).filter(Expense.id == entry.reference_number[len("EXP-"):]).delete(
                synchronize_session=False
            )
        db.delete(entry)

    db.delete(trx)
    commit_write(db, "delete transaction")
    logger.info(f"Transaction {transaction_id} deleted with {len(entries)} cash history row(s)")
    return {
        "transaction_id": transaction_id,
        "deleted_ledger_entries": len(entries),
        "balance_reversals": reversed_by_account,
    }
