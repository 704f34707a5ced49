"""
Pydantic schemas for transactions (orders) and their payments.
"""

from decimal import Decimal
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_serializer, model_validator

from kasir.models.transaction import PaymentStatus, TransactionStatus
from kasir.schemas.common import decimal_two_places


class TransactionItemCreate(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0)
    price: Optional[Decimal] = Field(None, ge=0, description="Defaults to the product's base price")
    notes: Optional[str] = None


class TransactionCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=150)
    items: List[TransactionItemCreate] = Field(..., min_length=1)
    paid_amount: Decimal = Field(Decimal("0"), ge=0)
    payment_account_id: Optional[str] = None
    order_date: Optional[datetime] = None

    @model_validator(mode="after")
    def payment_needs_account(self):
        if self.paid_amount > 0 and not self.payment_account_id:
            raise ValueError("payment_account_id is required when paid_amount > 0")
        return self


class TransactionStatusUpdate(BaseModel):
    status: TransactionStatus


class ReceivablePayment(BaseModel):
    account_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)


class ReceivableWriteOff(BaseModel):
    account_id: str = Field(..., min_length=1)
    reason: Optional[str] = None


class TransactionItemResponse(BaseModel):
    id: int
    product_id: str
    product_name: Optional[str] = None
    quantity: Decimal
    price: Decimal
    notes: Optional[str] = None

    @field_serializer("quantity", "price")
    def _serialize_decimal_two_places(self, v):
        return decimal_two_places(v)


class TransactionResponse(BaseModel):
    id: str
    customer_name: str
    cashier_id: Optional[str] = None
    cashier_name: Optional[str] = None
    payment_account_id: Optional[str] = None
    order_date: datetime
    subtotal: Decimal
    total: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    payment_status: PaymentStatus
    status: TransactionStatus
    materials_processed_at: Optional[datetime] = None
    items: List[TransactionItemResponse]
    created_at: datetime

    @field_serializer("subtotal", "total", "paid_amount", "remaining_amount")
    def _serialize_decimal_two_places(self, v):
        return decimal_two_places(v)


class TransactionListResponse(BaseModel):
    total: int
    transactions: List[TransactionResponse]


class TransactionDeleteResponse(BaseModel):
    transaction_id: str
    deleted_ledger_entries: int
    balance_reversals: Dict[str, Decimal]

    @field_serializer("balance_reversals")
    def _serialize_reversals(self, v):
        return {k: decimal_two_places(d) for k, d in v.items()}
