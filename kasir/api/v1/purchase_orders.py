"""
Purchase order API: request, review, pay and receive material purchases.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from kasir.common.exceptions import NotFoundError
from kasir.core.dependencies import Actor, get_current_actor, get_db
from kasir.logger_config import logger
from kasir.models.purchase_order import PurchaseOrderStatus
from kasir.schemas.material import (
    MaterialMovementResponse,
    PurchaseOrderCreate,
    PurchaseOrderListResponse,
    PurchaseOrderPay,
    PurchaseOrderReceiveResponse,
    PurchaseOrderResponse,
    PurchaseOrderReview,
)
from kasir.services.cash_service import pay_purchase_order
from kasir.services.material_movement_service import receive_purchase_order
from kasir.services.purchase_order_service import (
    create_purchase_order,
    delete_purchase_order,
    get_all_purchase_orders,
    get_purchase_order,
    review_purchase_order,
)

router = APIRouter()


@router.get("", response_model=PurchaseOrderListResponse)
def list_purchase_orders(
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    status_filter: Optional[PurchaseOrderStatus] = Query(None, alias="status"),
    material_id: Optional[str] = Query(None),
):
    rows, total = get_all_purchase_orders(db, skip=skip, limit=limit, status=status_filter, material_id=material_id)
    return PurchaseOrderListResponse(
        total=total,
        purchase_orders=[PurchaseOrderResponse.model_validate(po) for po in rows],
    )


@router.get("/{po_id}", response_model=PurchaseOrderResponse)
def get_purchase_order_route(po_id: str, db: Session = Depends(get_db)):
    try:
        return PurchaseOrderResponse.model_validate(get_purchase_order(db, po_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
def create_purchase_order_route(
    data: PurchaseOrderCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    try:
        po = create_purchase_order(db, data.material_id, data.quantity, actor=actor, notes=data.notes)
        return PurchaseOrderResponse.model_validate(po)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{po_id}/review", response_model=PurchaseOrderResponse)
def review_purchase_order_route(
    po_id: str,
    data: PurchaseOrderReview,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    try:
        po = review_purchase_order(db, po_id, data.approve)
        logger.info(f"Purchase order {po_id} reviewed by {actor.display_name}")
        return PurchaseOrderResponse.model_validate(po)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{po_id}/pay", response_model=PurchaseOrderResponse)
def pay_purchase_order_route(
    po_id: str,
    data: PurchaseOrderPay,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Pay the order from an account; records a Pembayaran PO expense."""
    try:
        po = pay_purchase_order(db, po_id, data.account_id, data.total_cost, actor=actor)
        return PurchaseOrderResponse.model_validate(po)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{po_id}/receive", response_model=PurchaseOrderReceiveResponse)
def receive_purchase_order_route(
    po_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Receive the ordered quantity into the material's stock."""
    try:
        result = receive_purchase_order(db, po_id, actor=actor)
        return PurchaseOrderReceiveResponse(
            purchase_order=PurchaseOrderResponse.model_validate(result["purchase_order"]),
            movement=MaterialMovementResponse.model_validate(result["movement"]),
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{po_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_purchase_order_route(
    po_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    try:
        delete_purchase_order(db, po_id)
        logger.info(f"Purchase order {po_id} deleted by {actor.display_name}")
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
