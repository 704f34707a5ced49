from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from kasir.common.exceptions import NotFoundError
from kasir.models.expense import EmployeeAdvance, Expense
from kasir.utils.timezone import day_window, local_date, today_window


def get_all_expenses(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    category: Optional[str] = None,
    account_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
) -> Tuple[List[Expense], int, Decimal]:
    """List expenses with filters: category, account, date range, search (description, category). Returns (rows, total_count, total_amount)."""
    query = db.query(Expense)
    if category:
        query = query.filter(Expense.category == category)
    if account_id:
        query = query.filter(Expense.account_id == account_id)
    if start_date is not None:
        query = query.filter(Expense.date >= day_window(start_date)[0])
    if end_date is not None:
        query = query.filter(Expense.date < day_window(end_date)[1])
    if search and search.strip():
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Expense.description.ilike(term),
                Expense.category.ilike(term),
            )
        )

    total_count = query.count()
    total_row = query.with_entities(func.coalesce(func.sum(Expense.amount), 0)).first()
    total_amount = Decimal(str(total_row[0])) if total_row else Decimal("0")

    rows = (
        query.order_by(Expense.date.desc(), Expense.created_at.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return rows, total_count, total_amount


def get_total_expense_today(db: Session) -> Tuple[date, Decimal, int]:
    """Total expense amount for today in the app timezone. Returns (date, total_amount, count)."""
    start, end = today_window()
    query = db.query(Expense).filter(Expense.date >= start, Expense.date < end)
    total_row = query.with_entities(
        func.coalesce(func.sum(Expense.amount), 0),
        func.count(Expense.id),
    ).first()
    total_amount = Decimal(str(total_row[0])) if total_row else Decimal("0")
    count = int(total_row[1]) if total_row else 0
    return local_date(start), total_amount, count


def get_employee_advance(db: Session, advance_id: str) -> EmployeeAdvance:
    advance = db.query(EmployeeAdvance).filter(EmployeeAdvance.id == advance_id).first()
    if not advance:
        raise NotFoundError(f"Employee advance not found: {advance_id}")
    return advance


def get_all_employee_advances(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    employee_id: Optional[str] = None,
    outstanding_only: bool = False,
) -> Tuple[List[EmployeeAdvance], int, Decimal]:
    """Advances newest first. Returns (rows, total_count, total_outstanding)."""
    query = db.query(EmployeeAdvance)
    if employee_id:
        query = query.filter(EmployeeAdvance.employee_id == employee_id)
    if outstanding_only:
        query = query.filter(EmployeeAdvance.remaining_amount > 0)

    total_count = query.count()
    total_row = query.with_entities(func.coalesce(func.sum(EmployeeAdvance.remaining_amount), 0)).first()
    outstanding = Decimal(str(total_row[0])) if total_row else Decimal("0")

    rows = query.order_by(EmployeeAdvance.date.desc()).offset(skip).limit(limit).all()
    return rows, total_count, outstanding
