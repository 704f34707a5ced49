"""
Transaction API: orders, their status lifecycle and receivable payments.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from kasir.common.exceptions import NotFoundError
from kasir.core.dependencies import Actor, get_current_actor, get_db
from kasir.logger_config import logger
from kasir.models.transaction import PaymentStatus, TransactionStatus
from kasir.schemas.transaction import (
    ReceivablePayment,
    ReceivableWriteOff,
    TransactionCreate,
    TransactionDeleteResponse,
    TransactionItemResponse,
    TransactionListResponse,
    TransactionResponse,
    TransactionStatusUpdate,
)
from kasir.services.cash_service import pay_receivable, write_off_receivable
from kasir.services.transaction_service import (
    create_transaction,
    delete_transaction,
    get_transaction,
    list_transactions,
    update_transaction_status,
)

router = APIRouter()


def _build_transaction_response(trx) -> TransactionResponse:
    items = [
        TransactionItemResponse(
            id=item.id,
            product_id=item.product_id,
            product_name=item.product.name if item.product else None,
            quantity=item.quantity,
            price=item.price,
            notes=item.notes,
        )
        for item in trx.items
    ]
    return TransactionResponse(
        id=trx.id,
        customer_name=trx.customer_name,
        cashier_id=trx.cashier_id,
        cashier_name=trx.cashier_name,
        payment_account_id=trx.payment_account_id,
        order_date=trx.order_date,
        subtotal=trx.subtotal,
        total=trx.total,
        paid_amount=trx.paid_amount,
        remaining_amount=trx.remaining_amount,
        payment_status=trx.payment_status,
        status=trx.status,
        materials_processed_at=trx.materials_processed_at,
        items=items,
        created_at=trx.created_at,
    )


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction_route(
    data: TransactionCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Create an order; a non-zero paid_amount is posted to the payment account."""
    try:
        trx = create_transaction(
            db,
            customer_name=data.customer_name,
            items=[item.model_dump() for item in data.items],
            actor=actor,
            payment_account_id=data.payment_account_id,
            paid_amount=data.paid_amount,
            order_date=data.order_date,
        )
        return _build_transaction_response(trx)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("", response_model=TransactionListResponse)
def list_transactions_route(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = Query(None),
    search: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
):
    rows, total = list_transactions(
        db,
        skip=skip,
        limit=limit,
        status=status_filter,
        payment_status=payment_status,
        search=search,
        start_date=start_date,
        end_date=end_date,
    )
    return TransactionListResponse(
        total=total,
        transactions=[_build_transaction_response(t) for t in rows],
    )


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction_route(transaction_id: str, db: Session = Depends(get_db)):
    try:
        return _build_transaction_response(get_transaction(db, transaction_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.patch("/{transaction_id}/status", response_model=TransactionResponse)
def update_status_route(
    transaction_id: str,
    data: TransactionStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    Advance the order. Reaching Proses Produksi or Pesanan Selesai for the
    first time consumes the BOM materials.
    """
    try:
        trx = update_transaction_status(db, transaction_id, data.status, actor=actor)
        return _build_transaction_response(trx)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{transaction_id}/payments", response_model=TransactionResponse)
def pay_receivable_route(
    transaction_id: str,
    data: ReceivablePayment,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Take a payment against the order's outstanding balance."""
    try:
        trx = pay_receivable(db, transaction_id, data.account_id, data.amount, actor=actor)
        return _build_transaction_response(trx)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{transaction_id}/write-off", response_model=TransactionResponse)
def write_off_route(
    transaction_id: str,
    data: ReceivableWriteOff,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    try:
        trx = write_off_receivable(db, transaction_id, data.account_id, actor=actor, reason=data.reason)
        return _build_transaction_response(trx)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{transaction_id}", response_model=TransactionDeleteResponse)
def delete_transaction_route(
    transaction_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Delete the order and its cash history, reversing the account balances."""
    try:
        result = delete_transaction(db, transaction_id)
        logger.info(f"Transaction {transaction_id} deleted by {actor.display_name}")
        return TransactionDeleteResponse(**result)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
