"""
Cash mutations: every operation that moves money writes the account balance
change and its cash_history row in the same database transaction.

Balance changes are store-level increments (balance = balance + delta), never
read-modify-write on a loaded row. Rows carry the legacy `type` /
`transaction_type` / `source_type` fields for continuity with historical data,
plus the normalized `category` computed by the classifier.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from kasir.common.exceptions import NotFoundError
from kasir.core.database import commit_write
from kasir.core.dependencies import SYSTEM_ACTOR, Actor
from kasir.logger_config import logger
from kasir.models.account import Account
from kasir.models.expense import AdvanceRepayment, EmployeeAdvance, Expense
from kasir.models.ledger import LedgerEntry, ReferenceType
from kasir.models.purchase_order import PurchaseOrder, PurchaseOrderStatus
from kasir.models.transaction import PaymentStatus, Transaction, TransactionStatus
from kasir.services.account_service import require_account
from kasir.services.ledger_classifier import is_inflow, resolve_category
from kasir.utils.timezone import utc_now


# Expense category -> ledger source type
EXPENSE_SOURCE_TYPES = {
    "Panjar Karyawan": "employee_advance",
    "Pembayaran PO": "po_payment",
    "Penghapusan Piutang": "receivables_writeoff",
}
DEFAULT_EXPENSE_SOURCE = "manual_expense"

EXPENSE_LEDGER_TYPES = {
    "employee_advance": "panjar_pengambilan",
    "po_payment": "pembayaran_po",
}


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _positive_amount(amount: Any, field: str = "amount") -> Decimal:
    value = _decimal(amount)
    if value <= 0:
        raise ValueError(f"{field} must be greater than zero")
    return value


def _timestamp_ref(prefix: str) -> str:
    return f"{prefix}-{int(utc_now().timestamp() * 1000)}"


def apply_balance_delta(db: Session, account_id: str, delta: Decimal) -> None:
    """Stage an atomic balance increment. Not committed."""
    updated = (
        db.query(Account)
        .filter(Account.id == account_id)
        .update({Account.balance: Account.balance + delta}, synchronize_session=False)
    )
    if updated == 0:
        raise NotFoundError(f"Account not found: {account_id}")


def post_cash(
    db: Session,
    account: Account,
    amount: Decimal,
    description: str,
    actor: Optional[Actor] = None,
    type: Optional[str] = None,
    transaction_type: Optional[str] = None,
    source_type: Optional[str] = None,
    reference_number: Optional[str] = None,
    reference_id: Optional[str] = None,
    reference_type: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> LedgerEntry:
    """
    Stage one ledger row plus the matching balance change on its account.
    The balance moves up for inflows and down for outflows, as classified.
    Caller commits.
    """
    actor = actor or SYSTEM_ACTOR
    amount = _positive_amount(amount)
    category = resolve_category(type=type, transaction_type=transaction_type, source_type=source_type)

    entry = LedgerEntry(
        account_id=account.id,
        account_name=account.name,
        amount=amount,
        description=description,
        type=type,
        transaction_type=transaction_type,
        source_type=source_type,
        category=category.value,
        reference_number=reference_number,
        reference_id=reference_id,
        reference_type=reference_type,
        created_by=actor.user_id,
        created_by_name=actor.display_name,
        created_at=created_at or utc_now(),
    )
    db.add(entry)

    delta = amount if is_inflow(category) else -amount
    apply_balance_delta(db, account.id, delta)
    logger.debug(f"Staged {category.value} {amount} on {account.id} ({source_type or type})")
    return entry


def payment_status_for(total: Any, paid: Any) -> PaymentStatus:
    total, paid = _decimal(total), _decimal(paid)
    if paid >= total:
        return PaymentStatus.LUNAS
    if paid > 0:
        return PaymentStatus.BELUM_LUNAS
    return PaymentStatus.KREDIT


def _get_transaction(db: Session, transaction_id: str) -> Transaction:
    trx = db.query(Transaction).filter(Transaction.id == transaction_id).first()
    if not trx:
        raise NotFoundError(f"Transaction not found: {transaction_id}")
    return trx


# ==================== TRANSACTION PAYMENTS ====================

def record_transaction_payment(
    db: Session,
    transaction: Transaction,
    account_id: str,
    amount: Decimal,
    actor: Optional[Actor] = None,
    commit: bool = True,
) -> LedgerEntry:
    """Point-of-sale payment taken when the order is placed."""
    account = require_account(db, account_id)
    entry = post_cash(
        db,
        account,
        amount,
        description=f"Pembayaran orderan dari {transaction.customer_name} - Order: {transaction.id}",
        actor=actor,
        type="orderan",
        transaction_type="income",
        source_type="pos_direct",
        reference_number=f"ORDER-{transaction.id}",
        reference_id=transaction.id,
        reference_type=ReferenceType.TRANSACTION.value,
    )
    if commit:
        commit_write(db, "record transaction payment")
        logger.info(f"Payment {amount} for order {transaction.id} recorded on {account_id}")
    return entry


def pay_receivable(
    db: Session,
    transaction_id: str,
    account_id: str,
    amount: Decimal,
    actor: Optional[Actor] = None,
) -> Transaction:
    """Later payment against an order's outstanding balance."""
    trx = _get_transaction(db, transaction_id)
    amount = _positive_amount(amount)

    if trx.status == TransactionStatus.DIBATALKAN:
        raise ValueError("Cannot take payment for a cancelled transaction")

    remaining = _decimal(trx.total) - _decimal(trx.paid_amount)
    if amount > remaining:
        raise ValueError(f"Payment {amount} exceeds remaining receivable {remaining}")

    account = require_account(db, account_id)
    trx.paid_amount = _decimal(trx.paid_amount) + amount
    trx.payment_status = payment_status_for(trx.total, trx.paid_amount)

    post_cash(
        db,
        account,
        amount,
        description=f"Pembayaran piutang dari {trx.customer_name} - Order: {trx.id}",
        actor=actor,
        transaction_type="income",
        source_type="receivables_payment",
        reference_number=f"RCV-{trx.id}",
        reference_id=trx.id,
        reference_type=ReferenceType.TRANSACTION.value,
    )
    commit_write(db, "pay receivable")
    db.refresh(trx)
    logger.info(f"Receivable payment {amount} on {trx.id}; paid {trx.paid_amount}/{trx.total}")
    return trx


def write_off_receivable(
    db: Session,
    transaction_id: str,
    account_id: str,
    actor: Optional[Actor] = None,
    reason: Optional[str] = None,
) -> Transaction:
    """Close an unpaid balance as a bad-debt expense and mark the order settled."""
    trx = _get_transaction(db, transaction_id)
    remaining = _decimal(trx.total) - _decimal(trx.paid_amount)
    if remaining <= 0:
        raise ValueError(f"Transaction {transaction_id} has no outstanding receivable")

    description = f"Penghapusan piutang {trx.customer_name} - Order: {trx.id}"
    if reason:
        description = f"{description} ({reason})"

    _stage_expense(
        db,
        description=description,
        amount=remaining,
        account_id=account_id,
        category="Penghapusan Piutang",
        actor=actor,
        reference_id=trx.id,
        reference_type=ReferenceType.TRANSACTION.value,
    )
    trx.paid_amount = _decimal(trx.total)
    trx.payment_status = PaymentStatus.LUNAS

    commit_write(db, "write off receivable")
    db.refresh(trx)
    logger.info(f"Receivable {remaining} on {trx.id} written off")
    return trx


# ==================== MANUAL CASH / TRANSFERS ====================

def record_manual_cash(
    db: Session,
    account_id: str,
    amount: Decimal,
    direction: str,
    description: str,
    actor: Optional[Actor] = None,
) -> LedgerEntry:
    """Kas masuk / kas keluar entered by hand. direction is 'in' or 'out'."""
    if direction not in ("in", "out"):
        raise ValueError("direction must be 'in' or 'out'")

    account = require_account(db, account_id)
    ledger_type = "kas_masuk_manual" if direction == "in" else "kas_keluar_manual"

    entry = post_cash(
        db,
        account,
        amount,
        description=description,
        actor=actor,
        type=ledger_type,
        transaction_type="income" if direction == "in" else "expense",
        source_type=ledger_type,
        reference_number=_timestamp_ref("MANUAL"),
        reference_type=ReferenceType.MANUAL.value,
    )
    commit_write(db, "record manual cash")
    db.refresh(entry)
    logger.info(f"Manual cash {direction} {amount} on {account_id}")
    return entry


def transfer_between_accounts(
    db: Session,
    from_account_id: str,
    to_account_id: str,
    amount: Decimal,
    description: str = "",
    actor: Optional[Actor] = None,
) -> Dict[str, Any]:
    """
    Move money between two accounts. Writes a transfer_keluar row on the source
    and a transfer_masuk row on the destination under one TRANSFER reference.
    """
    if from_account_id == to_account_id:
        raise ValueError("Source and destination accounts must be different")

    amount = _positive_amount(amount)
    source = require_account(db, from_account_id)
    target = require_account(db, to_account_id)

    if _decimal(source.balance) < amount:
        raise ValueError(
            f"Insufficient balance in {source.name}: {source.balance} < {amount}"
        )

    reference = _timestamp_ref("TRANSFER")
    note = f": {description}" if description else ""

    out_entry = post_cash(
        db,
        source,
        amount,
        description=f"Transfer ke {target.name}{note}",
        actor=actor,
        type="transfer_keluar",
        transaction_type="expense",
        source_type="transfer_keluar",
        reference_number=reference,
        reference_type=ReferenceType.TRANSFER.value,
    )
    in_entry = post_cash(
        db,
        target,
        amount,
        description=f"Transfer dari {source.name}{note}",
        actor=actor,
        type="transfer_masuk",
        transaction_type="income",
        source_type="transfer_masuk",
        reference_number=reference,
        reference_type=ReferenceType.TRANSFER.value,
    )

    # Guard against a concurrent withdrawal between the check and the update
    overdrawn = (
        db.query(Account.id)
        .filter(Account.id == from_account_id, Account.balance < 0)
        .first()
    )
    if overdrawn:
        db.rollback()
        raise ValueError(f"Insufficient balance in {source.name}")

    commit_write(db, "transfer between accounts")
    logger.info(f"Transfer {reference}: {amount} from {from_account_id} to {to_account_id}")
    return {
        "reference_number": reference,
        "amount": amount,
        "from_entry": out_entry,
        "to_entry": in_entry,
    }


# ==================== EXPENSES ====================

def _stage_expense(
    db: Session,
    description: str,
    amount: Decimal,
    account_id: str,
    category: str,
    actor: Optional[Actor] = None,
    expense_date: Optional[datetime] = None,
    reference_id: Optional[str] = None,
    reference_type: Optional[str] = None,
) -> Expense:
    amount = _positive_amount(amount)
    account = require_account(db, account_id)

    expense = Expense(
        description=description,
        amount=amount,
        account_id=account.id,
        account_name=account.name,
        category=category,
        date=expense_date or utc_now(),
    )
    db.add(expense)
    db.flush()

    source_type = EXPENSE_SOURCE_TYPES.get(category, DEFAULT_EXPENSE_SOURCE)
    post_cash(
        db,
        account,
        amount,
        description=description,
        actor=actor,
        type=EXPENSE_LEDGER_TYPES.get(source_type, "pengeluaran"),
        transaction_type="expense",
        source_type=source_type,
        reference_number=f"EXP-{expense.id}",
        reference_id=reference_id or expense.id,
        reference_type=reference_type or ReferenceType.EXPENSE.value,
    )
    return expense


def record_expense(
    db: Session,
    description: str,
    amount: Decimal,
    account_id: str,
    category: str = "Lain-lain",
    actor: Optional[Actor] = None,
    expense_date: Optional[datetime] = None,
) -> Expense:
    """Create an expense and its outflow. The category picks the ledger source type."""
    expense = _stage_expense(db, description, amount, account_id, category, actor, expense_date)
    commit_write(db, "record expense")
    db.refresh(expense)
    logger.info(f"Expense {expense.id} ({category}) {expense.amount} from {account_id}")
    return expense


# ==================== EMPLOYEE ADVANCES ====================

def issue_employee_advance(
    db: Session,
    employee_id: str,
    employee_name: str,
    amount: Decimal,
    account_id: str,
    actor: Optional[Actor] = None,
    notes: Optional[str] = None,
    advance_date: Optional[datetime] = None,
) -> EmployeeAdvance:
    amount = _positive_amount(amount)
    account = require_account(db, account_id)

    advance = EmployeeAdvance(
        employee_id=employee_id,
        employee_name=employee_name,
        amount=amount,
        remaining_amount=amount,
        account_id=account.id,
        account_name=account.name,
        date=advance_date or utc_now(),
        notes=notes,
    )
    db.add(advance)
    db.flush()

    post_cash(
        db,
        account,
        amount,
        description=f"Panjar karyawan: {employee_name}" + (f" - {notes}" if notes else ""),
        actor=actor,
        type="panjar_pengambilan",
        transaction_type="expense",
        source_type="employee_advance",
        reference_number=f"ADV-{advance.id}",
        reference_id=advance.id,
        reference_type=ReferenceType.EMPLOYEE_ADVANCE.value,
    )
    commit_write(db, "issue employee advance")
    db.refresh(advance)
    logger.info(f"Advance {advance.id} of {amount} issued to {employee_name}")
    return advance


def record_advance_repayment(
    db: Session,
    advance_id: str,
    amount: Decimal,
    actor: Optional[Actor] = None,
    account_id: Optional[str] = None,
    repayment_date: Optional[datetime] = None,
) -> EmployeeAdvance:
    """Repayment goes back into the advance's account unless another is given."""
    advance = db.query(EmployeeAdvance).filter(EmployeeAdvance.id == advance_id).first()
    if not advance:
        raise NotFoundError(f"Employee advance not found: {advance_id}")

    amount = _positive_amount(amount)
    remaining = _decimal(advance.remaining_amount)
    if amount > remaining:
        raise ValueError(f"Repayment {amount} exceeds remaining advance {remaining}")

    account = require_account(db, account_id or advance.account_id)
    actor = actor or SYSTEM_ACTOR

    advance.remaining_amount = remaining - amount
    db.add(AdvanceRepayment(
        advance_id=advance.id,
        amount=amount,
        date=repayment_date or utc_now(),
        recorded_by=actor.display_name,
    ))

    post_cash(
        db,
        account,
        amount,
        description=f"Pelunasan panjar: {advance.employee_name}",
        actor=actor,
        type="panjar_pelunasan",
        transaction_type="income",
        source_type="employee_advance_repayment",
        reference_number=f"ADV-{advance.id}",
        reference_id=advance.id,
        reference_type=ReferenceType.EMPLOYEE_ADVANCE.value,
    )
    commit_write(db, "record advance repayment")
    db.refresh(advance)
    logger.info(f"Advance {advance.id} repaid {amount}; remaining {advance.remaining_amount}")
    return advance


# ==================== PURCHASE ORDERS ====================

def pay_purchase_order(
    db: Session,
    po_id: str,
    account_id: str,
    total_cost: Decimal,
    actor: Optional[Actor] = None,
) -> PurchaseOrder:
    """Pay an approved PO: expense + po_payment outflow, status -> Dibayar."""
    po = db.query(PurchaseOrder).filter(PurchaseOrder.id == po_id).first()
    if not po:
        raise NotFoundError(f"Purchase order not found: {po_id}")
    if po.status not in (PurchaseOrderStatus.PENDING, PurchaseOrderStatus.APPROVED):
        raise ValueError(f"Purchase order {po_id} cannot be paid in status {po.status.value}")

    total_cost = _positive_amount(total_cost, "total_cost")

    _stage_expense(
        db,
        description=f"Pembayaran PO {po.id}: {po.material_name} ({po.quantity} {po.unit})",
        amount=total_cost,
        account_id=account_id,
        category="Pembayaran PO",
        actor=actor,
        reference_id=po.id,
        reference_type=ReferenceType.PURCHASE_ORDER.value,
    )
    po.total_cost = total_cost
    po.payment_account_id = account_id
    po.payment_date = utc_now()
    po.status = PurchaseOrderStatus.DIBAYAR

    commit_write(db, "pay purchase order")
    db.refresh(po)
    logger.info(f"Purchase order {po.id} paid {total_cost} from {account_id}")
    return po
