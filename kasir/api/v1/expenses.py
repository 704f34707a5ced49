from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from kasir.common.exceptions import NotFoundError
from kasir.core.dependencies import Actor, get_current_actor, get_db
from kasir.schemas.expense import (
    ExpenseCreate,
    ExpenseResponse,
    ExpenseListResponse,
    ExpenseTotalTodayResponse,
)
from kasir.services.cash_service import record_expense
from kasir.services.expense_service import (
    get_all_expenses,
    get_total_expense_today,
)

router = APIRouter()


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
def create_single_expense(
    data: ExpenseCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Create a single expense; date defaults to now. Writes the matching cash history row."""
    try:
        expense = record_expense(
            db,
            description=data.description,
            amount=data.amount,
            account_id=data.account_id,
            category=data.category,
            actor=actor,
            expense_date=data.date,
        )
        return ExpenseResponse.model_validate(expense)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("", response_model=ExpenseListResponse)
def list_expenses(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    category: Optional[str] = Query(None),
    account_id: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
):
    """List expenses with filters; total_amount covers every matching row."""
    rows, total, total_amount = get_all_expenses(
        db,
        skip=skip,
        limit=limit,
        category=category,
        account_id=account_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )
    return ExpenseListResponse(
        total=total,
        total_amount=total_amount,
        expenses=[ExpenseResponse.model_validate(e) for e in rows],
    )


@router.get("/total-today", response_model=ExpenseTotalTodayResponse)
def total_expense_today(db: Session = Depends(get_db)):
    """Total expense amount for today (app timezone)."""
    day, total_amount, count = get_total_expense_today(db)
    return ExpenseTotalTodayResponse(date=day, total_amount=total_amount, count=count)
