"""
Repair utilities for cash_history.

All three are idempotent: running them twice leaves the ledger as running them
once. None of them touch account balances; they only make the log agree with
what the balances already reflect.
"""

import re
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kasir.common.exceptions import FetchFailedError
from kasir.core.database import commit_write
from kasir.logger_config import logger
from kasir.models.account import Account
from kasir.models.ledger import LedgerEntry, ReferenceType
from kasir.models.transaction import Transaction
from kasir.services.ledger_classifier import CATEGORY_VALUES, classify, resolve_category
from kasir.utils.timezone import in_window, today_window


TRANSACTION_SOURCE_TYPES = ("pos_direct", "receivables_payment", "receivable_payment")
WRITEOFF_SOURCE_TYPE = "receivables_writeoff"

# Legacy rows only carry the order id inside the description
ORDER_PATTERN = re.compile(r"Order:\s*([A-Z0-9-]+)", re.IGNORECASE)


def order_reference(transaction_id: str) -> str:
    return f"ORDER-{transaction_id}"


def referenced_transaction_id(entry: LedgerEntry) -> Optional[str]:
    """Structured reference first; the description pattern is the fallback for old rows."""
    if entry.reference_id and (
        entry.reference_type == ReferenceType.TRANSACTION.value
        or entry.source_type in TRANSACTION_SOURCE_TYPES
    ):
        return entry.reference_id
    match = ORDER_PATTERN.search(entry.description or "")
    return match.group(1) if match else None


def backfill_today_transactions(db: Session, now: Optional[datetime] = None, dry_run: bool = False) -> int:
    """
    Insert the missing pos_direct income row for every order created today
    (app timezone) that took a payment into an account but has no ledger row.
    Returns the number of rows inserted (or that would be, with dry_run).
    """
    start, end = today_window(now)

    try:
        candidates = [
            t for t in (
                db.query(Transaction)
                .filter(
                    Transaction.paid_amount > 0,
                    Transaction.payment_account_id.isnot(None),
                )
                .all()
            )
            if in_window(t.created_at, start, end)
        ]
        if not candidates:
            logger.info("Backfill: no paid transactions today")
            return 0

        ids = [t.id for t in candidates]
        existing = (
            db.query(LedgerEntry)
            .filter(
                or_(
                    LedgerEntry.reference_number.in_([order_reference(i) for i in ids]),
                    LedgerEntry.reference_id.in_(ids),
                )
            )
            .all()
        )
        accounts = {a.id: a.name for a in db.query(Account).all()}
    except SQLAlchemyError as e:
        logger.exception("Backfill: failed to read transactions")
        raise FetchFailedError(f"Failed to fetch transactions for backfill: {e}") from e

    covered = set()
    # Receivable payments and write-offs are part of paid_amount but have their own rows
    logged_elsewhere = {}
    for entry in existing:
        if entry.reference_number and entry.reference_number.startswith("ORDER-"):
            covered.add(entry.reference_number[len("ORDER-"):])
        elif entry.source_type == "pos_direct":
            covered.add(entry.reference_id)
        elif entry.source_type in TRANSACTION_SOURCE_TYPES + (WRITEOFF_SOURCE_TYPE,):
            logged_elsewhere[entry.reference_id] = logged_elsewhere.get(entry.reference_id, 0) + entry.amount

    missing = []
    for trx in candidates:
        if trx.id in covered:
            continue
        amount = trx.paid_amount - logged_elsewhere.get(trx.id, 0)
        if amount > 0:
            missing.append((trx, amount))
    logger.info(f"Backfill: {len(candidates)} paid transaction(s) today, {len(missing)} without cash history")

    if dry_run or not missing:
        return len(missing)

    category = resolve_category(transaction_type="income", source_type="pos_direct").value
    for trx, amount in missing:
        db.add(LedgerEntry(
            account_id=trx.payment_account_id,
            account_name=accounts.get(trx.payment_account_id),
            amount=amount,
            description=f"Pembayaran orderan dari {trx.customer_name} - Order: {trx.id}",
            transaction_type="income",
            source_type="pos_direct",
            category=category,
            reference_number=order_reference(trx.id),
            reference_id=trx.id,
            reference_type=ReferenceType.TRANSACTION.value,
            created_by=trx.cashier_id,
            created_by_name=trx.cashier_name,
            created_at=trx.created_at,
        ))

    commit_write(db, "backfill cash history")
    logger.info(f"Backfill: inserted {len(missing)} cash history row(s)")
    return len(missing)


def cleanup_orphan_cash_history(db: Session, dry_run: bool = False) -> int:
    """
    Delete payment rows whose transaction no longer exists. Rows with no
    recoverable transaction id are kept. Returns the number removed.
    """
    try:
        candidates = (
            db.query(LedgerEntry)
            .filter(
                or_(
                    LedgerEntry.source_type.in_(TRANSACTION_SOURCE_TYPES),
                    LedgerEntry.reference_type == ReferenceType.TRANSACTION.value,
                )
            )
            .all()
        )
        by_transaction = {}
        for entry in candidates:
            transaction_id = referenced_transaction_id(entry)
            if transaction_id:
                by_transaction.setdefault(transaction_id, []).append(entry)

        existing = set()
        if by_transaction:
            existing = {
                row.id for row in
                db.query(Transaction.id).filter(Transaction.id.in_(list(by_transaction))).all()
            }
    except SQLAlchemyError as e:
        logger.exception("Cleanup: failed to read cash history")
        raise FetchFailedError(f"Failed to fetch cash history for cleanup: {e}") from e

    orphans: List[LedgerEntry] = [
        entry
        for transaction_id, entries in by_transaction.items()
        if transaction_id not in existing
        for entry in entries
    ]
    logger.info(f"Cleanup: {len(candidates)} candidate row(s), {len(orphans)} orphan(s)")

    if dry_run or not orphans:
        return len(orphans)

    for entry in orphans:
        logger.debug(f"Cleanup: deleting {entry.id} ({entry.reference_number}) {entry.description}")
        db.delete(entry)

    commit_write(db, "clean up orphan cash history")
    return len(orphans)


def normalize_ledger_categories(db: Session) -> int:
    """Fill the normalized category on legacy rows from their legacy fields."""
    try:
        rows = (
            db.query(LedgerEntry)
            .filter(or_(LedgerEntry.category.is_(None), LedgerEntry.category.notin_(sorted(CATEGORY_VALUES))))
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("Normalize: failed to read cash history")
        raise FetchFailedError(f"Failed to fetch cash history: {e}") from e

    if not rows:
        return 0

    for row in rows:
        row.category = classify(row).value

    commit_write(db, "normalize ledger categories")
    logger.info(f"Normalized category on {len(rows)} cash history row(s)")
    return len(rows)
