"""
Pydantic schemas for materials, stock movements and purchase orders.
"""

from decimal import Decimal
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_serializer

from kasir.models.material import MaterialType, MovementReason, MovementType
from kasir.models.purchase_order import PurchaseOrderStatus
from kasir.models.transaction import TransactionStatus
from kasir.schemas.common import decimal_two_places


# ============================================================================
# Material Schemas
# ============================================================================


class MaterialCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: MaterialType = MaterialType.STOCK
    unit: str = Field("pcs", min_length=1, max_length=20)
    price_per_unit: Decimal = Field(Decimal("0"), ge=0)
    stock: Decimal = Field(Decimal("0"), ge=0)
    min_stock: Decimal = Field(Decimal("0"), ge=0)
    description: Optional[str] = None


class MaterialResponse(BaseModel):
    id: str
    name: str
    type: MaterialType
    unit: str
    price_per_unit: Decimal
    stock: Decimal
    min_stock: Decimal
    remaining_stock: Optional[Decimal] = Field(None, description="Quantity on hand; Stock-type materials only")
    cumulative_usage: Optional[Decimal] = Field(None, description="Total used so far; Beli/Jasa materials only")
    description: Optional[str] = None
    created_at: datetime

    @field_serializer("price_per_unit", "stock", "min_stock", "remaining_stock", "cumulative_usage")
    def _serialize_decimal_two_places(self, v):
        return decimal_two_places(v)

    class Config:
        from_attributes = True


class MaterialListResponse(BaseModel):
    total: int
    materials: List[MaterialResponse]


class StockAdjustment(BaseModel):
    """Stock opname: the counted quantity replaces the current stock."""
    new_stock: Decimal = Field(..., ge=0)
    notes: Optional[str] = None


class MaterialUsageSummary(BaseModel):
    material_id: str
    material_name: str
    type: MaterialType
    remaining_stock: Optional[Decimal] = None
    cumulative_usage: Optional[Decimal] = None
    by_reason: Dict[str, Decimal]

    @field_serializer("remaining_stock", "cumulative_usage")
    def _serialize_decimal_two_places(self, v):
        return decimal_two_places(v)


# ============================================================================
# Movement Schemas
# ============================================================================


class MovementTransactionRef(BaseModel):
    id: str
    customer_name: str
    order_date: Optional[datetime] = None
    status: TransactionStatus


class MaterialMovementResponse(BaseModel):
    id: str
    material_id: str
    material_name: str
    type: MovementType
    reason: MovementReason
    quantity: Decimal
    previous_stock: Decimal
    new_stock: Decimal
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None
    notes: Optional[str] = None
    user_name: Optional[str] = None
    created_at: Optional[datetime] = None
    transaction: Optional[MovementTransactionRef] = None

    @field_serializer("quantity", "previous_stock", "new_stock")
    def _serialize_decimal_two_places(self, v):
        return decimal_two_places(v)

    class Config:
        from_attributes = True


class MaterialMovementListResponse(BaseModel):
    data: List[MaterialMovementResponse]
    count: int


# ============================================================================
# Purchase Order Schemas
# ============================================================================


class PurchaseOrderCreate(BaseModel):
    material_id: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0)
    notes: Optional[str] = None


class PurchaseOrderReview(BaseModel):
    approve: bool


class PurchaseOrderPay(BaseModel):
    account_id: str = Field(..., min_length=1)
    total_cost: Decimal = Field(..., gt=0)


class PurchaseOrderResponse(BaseModel):
    id: str
    material_id: str
    material_name: str
    quantity: Decimal
    unit: str
    requested_by: str
    status: PurchaseOrderStatus
    notes: Optional[str] = None
    total_cost: Optional[Decimal] = None
    payment_account_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    created_at: datetime

    @field_serializer("quantity", "total_cost")
    def _serialize_decimal_two_places(self, v):
        return decimal_two_places(v)

    class Config:
        from_attributes = True


class PurchaseOrderListResponse(BaseModel):
    total: int
    purchase_orders: List[PurchaseOrderResponse]


class PurchaseOrderReceiveResponse(BaseModel):
    purchase_order: PurchaseOrderResponse
    movement: MaterialMovementResponse
