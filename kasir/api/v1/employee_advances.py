"""
Employee advance (panjar) API: issue advances and record repayments.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from kasir.common.exceptions import NotFoundError
from kasir.core.dependencies import Actor, get_current_actor, get_db
from kasir.schemas.expense import (
    AdvanceRepaymentCreate,
    EmployeeAdvanceCreate,
    EmployeeAdvanceListResponse,
    EmployeeAdvanceResponse,
)
from kasir.services.cash_service import issue_employee_advance, record_advance_repayment
from kasir.services.expense_service import get_all_employee_advances, get_employee_advance

router = APIRouter()


@router.get("", response_model=EmployeeAdvanceListResponse)
def list_advances(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    employee_id: Optional[str] = Query(None),
    outstanding_only: bool = Query(False),
):
    rows, total, outstanding = get_all_employee_advances(
        db, skip=skip, limit=limit, employee_id=employee_id, outstanding_only=outstanding_only
    )
    return EmployeeAdvanceListResponse(
        total=total,
        total_outstanding=outstanding,
        advances=[EmployeeAdvanceResponse.model_validate(a) for a in rows],
    )


@router.get("/{advance_id}", response_model=EmployeeAdvanceResponse)
def get_advance(advance_id: str, db: Session = Depends(get_db)):
    try:
        return EmployeeAdvanceResponse.model_validate(get_employee_advance(db, advance_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=EmployeeAdvanceResponse, status_code=status.HTTP_201_CREATED)
def create_advance(
    data: EmployeeAdvanceCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Pay an advance out of an account."""
    try:
        advance = issue_employee_advance(
            db,
            employee_id=data.employee_id,
            employee_name=data.employee_name,
            amount=data.amount,
            account_id=data.account_id,
            actor=actor,
            notes=data.notes,
            advance_date=data.date,
        )
        return EmployeeAdvanceResponse.model_validate(advance)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{advance_id}/repayments", response_model=EmployeeAdvanceResponse)
def repay_advance(
    advance_id: str,
    data: AdvanceRepaymentCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    try:
        advance = record_advance_repayment(
            db,
            advance_id,
            data.amount,
            actor=actor,
            account_id=data.account_id,
            repayment_date=data.date,
        )
        return EmployeeAdvanceResponse.model_validate(advance)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
