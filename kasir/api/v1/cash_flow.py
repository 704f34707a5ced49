"""
Cash flow API: cash history, today's balance summary, daily report, manual
cash entries and account transfers.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from kasir.common.exceptions import NotFoundError
from kasir.core.dependencies import Actor, get_current_actor, get_db
from kasir.models.ledger import LedgerCategory
from kasir.schemas.cash_flow import (
    CashBalanceResponse,
    CashHistoryItem,
    CashHistoryListResponse,
    DailyReportResponse,
    ManualCashCreate,
    TransferCreate,
    TransferResponse,
)
from kasir.schemas.common import decimal_two_places
from kasir.services.cash_service import record_manual_cash, transfer_between_accounts
from kasir.services.ledger_classifier import category_label, classify
from kasir.services.reconciliation_service import CashBalanceService
from kasir.utils.timezone import local_date, utc_now

router = APIRouter()


def _build_history_item(entry) -> CashHistoryItem:
    category = classify(entry)
    return CashHistoryItem(
        id=entry.id,
        account_id=entry.account_id,
        account_name=entry.account_name,
        amount=entry.amount,
        description=entry.description,
        reference_number=entry.reference_number,
        reference_id=entry.reference_id,
        reference_type=entry.reference_type,
        source_type=entry.source_type,
        category=category.value,
        category_label=category_label(category),
        created_by_name=entry.created_by_name,
        created_at=entry.created_at,
    )


@router.get("", response_model=CashHistoryListResponse)
def get_cash_history(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(25, ge=1, le=100),
    search: Optional[str] = Query(None),
    account_id: Optional[str] = Query(None),
    category: Optional[LedgerCategory] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    """Cash history newest first, with in/out/net totals over all matching rows (transfers excluded)."""
    service = CashBalanceService(db)
    items, count, totals = service.list_cash_history(
        skip=skip,
        limit=limit,
        account_id=account_id,
        category=category,
        search=search,
        start_date=start_date,
        end_date=end_date,
    )
    return CashHistoryListResponse(
        data=[CashHistoryItem(**item) for item in items],
        count=count,
        total_dic={k: decimal_two_places(v) for k, v in totals.items()},
    )


@router.get("/balance", response_model=CashBalanceResponse)
def get_cash_balance_route(db: Session = Depends(get_db)):
    """Current balances with today's movement and the balance before today."""
    return CashBalanceResponse(**CashBalanceService(db).get_cash_balance())


@router.get("/daily-report", response_model=DailyReportResponse)
def get_daily_report(
    day: Optional[date] = Query(None, description="Defaults to today in the app timezone"),
    db: Session = Depends(get_db),
):
    return DailyReportResponse(**CashBalanceService(db).daily_report(day or local_date(utc_now())))


@router.post("/manual", response_model=CashHistoryItem, status_code=status.HTTP_201_CREATED)
def create_manual_cash(
    data: ManualCashCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Kas masuk / kas keluar entered by hand."""
    try:
        entry = record_manual_cash(
            db,
            account_id=data.account_id,
            amount=data.amount,
            direction=data.direction,
            description=data.description,
            actor=actor,
        )
        return _build_history_item(entry)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/transfer", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
def create_transfer(
    data: TransferCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    try:
        result = transfer_between_accounts(
            db,
            from_account_id=data.from_account_id,
            to_account_id=data.to_account_id,
            amount=data.amount,
            description=data.description,
            actor=actor,
        )
        return TransferResponse(
            reference_number=result["reference_number"],
            amount=result["amount"],
            from_entry_id=result["from_entry"].id,
            to_entry_id=result["to_entry"].id,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
