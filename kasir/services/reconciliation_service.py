"""
Balance reconciliation: current/previous balances and today's income/expense
derived from account snapshots plus the classified cash_history log.

The account snapshot is authoritative for "now"; previous balances are derived
backwards (current - today's net), which is exact only when the window is the
current day.
"""

from collections import OrderedDict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kasir.common.exceptions import FetchFailedError
from kasir.logger_config import logger
from kasir.models.account import Account
from kasir.models.ledger import LedgerCategory, LedgerEntry
from kasir.models.transaction import Transaction
from kasir.services.ledger_classifier import category_label, classify, is_transfer, signed_amount
from kasir.utils.timezone import as_utc, day_window, in_window, today_window


ZERO = Decimal("0")


def _dec(value: Any) -> Decimal:
    return Decimal(str(value)) if value is not None else ZERO


def reconcile(
    entries: Iterable[Any],
    accounts: Iterable[Any],
    window_start: datetime,
    window_end: datetime,
) -> Dict[str, Any]:
    """
    Pure computation over already-fetched rows.

    Transfers move only the per-account figures; income/expense entries move
    both the global totals and their account. Entries whose account is not in
    the snapshot list still count towards the global totals.
    """
    per_account: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    total_current = ZERO

    for acc in accounts:
        balance = _dec(acc.balance)
        per_account[acc.id] = {
            "account_id": acc.id,
            "account_name": acc.name,
            "current_balance": balance,
            "previous_balance": ZERO,
            "today_income": ZERO,
            "today_expense": ZERO,
            "today_net": ZERO,
        }
        total_current += balance

    today_income = ZERO
    today_expense = ZERO

    for entry in entries:
        if not in_window(entry.created_at, window_start, window_end):
            continue

        category = classify(entry)
        amount = _dec(entry.amount)
        row = per_account.get(entry.account_id)

        if is_transfer(category):
            if row is not None:
                if category == LedgerCategory.TRANSFER_IN:
                    row["today_income"] += amount
                else:
                    row["today_expense"] += amount
            continue

        if category == LedgerCategory.INCOME:
            today_income += amount
            if row is not None:
                row["today_income"] += amount
        else:
            today_expense += amount
            if row is not None:
                row["today_expense"] += amount

    for row in per_account.values():
        row["today_net"] = row["today_income"] - row["today_expense"]
        row["previous_balance"] = row["current_balance"] - row["today_net"]

    today_net = today_income - today_expense

    return {
        "total_current_balance": total_current,
        "total_previous_balance": total_current - today_net,
        "today_income": today_income,
        "today_expense": today_expense,
        "today_net": today_net,
        "per_account": list(per_account.values()),
    }


class CashBalanceService:
    """
    Read-side reports over cash_history and accounts.
    Both fetches must succeed; a store error aborts the whole report.
    """

    def __init__(self, db: Session):
        self.db = db

    def _fetch_accounts(self) -> List[Account]:
        try:
            return self.db.query(Account).order_by(Account.name).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch accounts: {e}")
            raise FetchFailedError(f"Failed to fetch accounts: {e}") from e

    def _fetch_entries(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[LedgerEntry]:
        try:
            query = self.db.query(LedgerEntry)
            if start is not None:
                query = query.filter(LedgerEntry.created_at >= start)
            if end is not None:
                query = query.filter(LedgerEntry.created_at < end)
            return query.order_by(LedgerEntry.created_at.asc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch cash history: {e}")
            raise FetchFailedError(f"Failed to fetch cash history: {e}") from e

    # ================= CASH HISTORY ===================

    def list_cash_history(
        self,
        skip: int = 0,
        limit: int = 25,
        account_id: Optional[str] = None,
        category: Optional[LedgerCategory] = None,
        search: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Tuple[List[Dict[str, Any]], int, Dict[str, Decimal]]:
        """
        Ledger rows newest first, each tagged with its classification and label.
        Totals cover every row matching the filters, not only the page.
        """
        try:
            query = self.db.query(LedgerEntry)

            if account_id:
                query = query.filter(LedgerEntry.account_id == account_id)

            if search:
                query = query.filter(
                    or_(
                        LedgerEntry.description.ilike(f"%{search}%"),
                        LedgerEntry.reference_number.ilike(f"%{search}%"),
                        LedgerEntry.reference_id.ilike(f"%{search}%"),
                    )
                )

            rows = query.order_by(LedgerEntry.created_at.desc()).all()
        except SQLAlchemyError as e:
            logger.exception("Error while fetching cash history")
            raise FetchFailedError(f"Failed to fetch cash history: {e}") from e

        # Date filters use the app timezone, so they run after the fetch
        if start_date:
            start, _ = day_window(start_date)
            rows = [r for r in rows if r.created_at is not None and as_utc(r.created_at) >= start]
            logger.debug(f"Filtering by start_date: {start_date}")
        if end_date:
            _, end = day_window(end_date)
            rows = [r for r in rows if r.created_at is not None and as_utc(r.created_at) < end]
            logger.debug(f"Filtering by end_date: {end_date}")

        classified = [(r, classify(r)) for r in rows]
        if category is not None:
            classified = [(r, c) for r, c in classified if c == category]

        totals = {"total_in": ZERO, "total_out": ZERO}
        for row, cat in classified:
            if is_transfer(cat):
                continue
            key = "total_in" if cat == LedgerCategory.INCOME else "total_out"
            totals[key] += _dec(row.amount)
        totals["net"] = totals["total_in"] - totals["total_out"]

        page = classified[skip:skip + limit]
        items = [
            {
                "id": r.id,
                "account_id": r.account_id,
                "account_name": r.account_name,
                "amount": _dec(r.amount),
                "description": r.description,
                "reference_number": r.reference_number,
                "reference_id": r.reference_id,
                "reference_type": r.reference_type,
                "source_type": r.source_type,
                "category": cat.value,
                "category_label": category_label(cat),
                "created_by_name": r.created_by_name,
                "created_at": r.created_at,
            }
            for r, cat in page
        ]
        return items, len(classified), totals

    # ================= CASH BALANCE ===================

    def get_cash_balance(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        start, end = today_window(now)
        logger.debug(f"Cash balance window: {start.isoformat()} .. {end.isoformat()}")

        # SQLite drops tzinfo on storage; fetch a day either side and let
        # reconcile() apply the exact boundaries
        entries = self._fetch_entries(start - timedelta(days=1), end + timedelta(days=1))
        accounts = self._fetch_accounts()

        result = reconcile(entries, accounts, start, end)
        result["window_start"] = start
        result["window_end"] = end
        return result

    # ================= DAILY REPORT ===================

    def daily_report(self, day: date) -> Dict[str, Any]:
        """
        Cash in/out for one calendar day (app timezone), grouped by account,
        plus the day's sales summary. Transfers appear per account only.
        """
        start, end = day_window(day)
        fetched = self._fetch_entries(start - timedelta(days=1), end + timedelta(days=1))
        entries = [e for e in fetched if in_window(e.created_at, start, end)]
        accounts = {acc.id: acc.name for acc in self._fetch_accounts()}

        try:
            transactions = [
                t for t in self.db.query(Transaction).order_by(Transaction.order_date.desc()).all()
                if in_window(t.order_date, start, end)
            ]
            # Write-offs settle paid_amount without any cash coming in
            written_off = dict(
                self.db.query(LedgerEntry.reference_id, func.sum(LedgerEntry.amount))
                .filter(
                    LedgerEntry.source_type == "receivables_writeoff",
                    LedgerEntry.reference_id.in_([t.id for t in transactions]),
                )
                .group_by(LedgerEntry.reference_id)
                .all()
            ) if transactions else {}
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch transactions: {e}")
            raise FetchFailedError(f"Failed to fetch transactions: {e}") from e

        cash_in = ZERO
        cash_out = ZERO
        by_account: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()

        for entry in entries:
            category = classify(entry)
            amount = _dec(entry.amount)
            name = entry.account_name or accounts.get(entry.account_id) or "Unknown Account"
            bucket = by_account.setdefault(name, {"account_name": name, "cash_in": ZERO, "cash_out": ZERO})

            if category in (LedgerCategory.INCOME, LedgerCategory.TRANSFER_IN):
                bucket["cash_in"] += amount
            else:
                bucket["cash_out"] += amount

            if is_transfer(category):
                continue
            if category == LedgerCategory.INCOME:
                cash_in += amount
            else:
                cash_out += amount

        total_sales = sum((_dec(t.total) for t in transactions), ZERO)
        total_cash = sum((_dec(t.paid_amount) - _dec(written_off.get(t.id)) for t in transactions), ZERO)

        return {
            "date": day,
            "cash_in": cash_in,
            "cash_out": cash_out,
            "net_cash": cash_in - cash_out,
            "sales_summary": {
                "total_sales": total_sales,
                "total_cash": total_cash,
                "total_credit": total_sales - total_cash,
                "transaction_count": len(transactions),
            },
            "cash_flow_by_account": list(by_account.values()),
            "transactions": [
                {
                    "id": t.id,
                    "time": as_utc(t.order_date).astimezone(start.tzinfo).strftime("%H:%M") if t.order_date else None,
                    "customer_name": t.customer_name,
                    "total": _dec(t.total),
                    "paid_amount": _dec(t.paid_amount),
                    "remaining": _dec(t.total) - _dec(t.paid_amount),
                    "payment_status": t.payment_status.value if t.payment_status else None,
                    "cashier_name": t.cashier_name,
                }
                for t in transactions
            ],
        }

    # ================= DRIFT CHECK ===================

    def account_balance_drift(self) -> List[Dict[str, Any]]:
        """balance vs initial_balance + signed ledger total, per account."""
        accounts = self._fetch_accounts()
        entries = self._fetch_entries()

        net_by_account: Dict[str, Decimal] = {}
        for entry in entries:
            if entry.account_id is None:
                continue
            net_by_account[entry.account_id] = net_by_account.get(entry.account_id, ZERO) + signed_amount(entry)

        report = []
        for acc in accounts:
            ledger_net = net_by_account.get(acc.id, ZERO)
            expected = _dec(acc.initial_balance) + ledger_net
            drift = _dec(acc.balance) - expected
            if drift != 0:
                logger.warning(f"Balance drift on account {acc.id} ({acc.name}): {drift}")
            report.append({
                "account_id": acc.id,
                "account_name": acc.name,
                "balance": _dec(acc.balance),
                "initial_balance": _dec(acc.initial_balance),
                "ledger_net": ledger_net,
                "expected_balance": expected,
                "drift": drift,
            })
        return report


def get_cash_balance(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    return CashBalanceService(db).get_cash_balance(now)


def daily_report(db: Session, day: date) -> Dict[str, Any]:
    return CashBalanceService(db).daily_report(day)


def account_balance_drift(db: Session) -> List[Dict[str, Any]]:
    return CashBalanceService(db).account_balance_drift()
