from decimal import Decimal
from pydantic import BaseModel, Field, field_serializer
from typing import List, Optional
from datetime import date, datetime
from kasir.schemas.common import decimal_two_places

# Alias to avoid field name 'date' shadowing type 'date' in annotations (Pydantic v2)
DateType = date


class ExpenseCreate(BaseModel):
    """Single expense - date defaults to now on server if not provided."""
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    account_id: str = Field(..., min_length=1)
    category: str = Field("Lain-lain", min_length=1, max_length=50)
    date: Optional[datetime] = None


class ExpenseResponse(BaseModel):
    id: str
    description: str
    amount: Decimal
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    category: str
    date: datetime
    created_at: datetime

    @field_serializer("amount")
    def _serialize_money(self, v):
        return decimal_two_places(v)

    class Config:
        from_attributes = True


class ExpenseListResponse(BaseModel):
    total: int
    total_amount: Decimal
    expenses: List[ExpenseResponse]

    @field_serializer("total_amount")
    def _serialize_money(self, v):
        return decimal_two_places(v)


class ExpenseTotalTodayResponse(BaseModel):
    """Total expense amount for today."""
    date: DateType
    total_amount: Decimal
    count: int

    @field_serializer("total_amount")
    def _serialize_money(self, v):
        return decimal_two_places(v)


# ============================================================================
# Employee advances (panjar)
# ============================================================================


class EmployeeAdvanceCreate(BaseModel):
    employee_id: str = Field(..., min_length=1)
    employee_name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0)
    account_id: str = Field(..., min_length=1)
    notes: Optional[str] = None
    date: Optional[datetime] = None


class AdvanceRepaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    account_id: Optional[str] = Field(None, description="Defaults to the account the advance was paid from")
    date: Optional[datetime] = None


class AdvanceRepaymentResponse(BaseModel):
    id: int
    amount: Decimal
    date: datetime
    recorded_by: Optional[str] = None

    @field_serializer("amount")
    def _serialize_money(self, v):
        return decimal_two_places(v)

    class Config:
        from_attributes = True


class EmployeeAdvanceResponse(BaseModel):
    id: str
    employee_id: str
    employee_name: str
    amount: Decimal
    remaining_amount: Decimal
    account_id: str
    account_name: Optional[str] = None
    date: datetime
    notes: Optional[str] = None
    repayments: List[AdvanceRepaymentResponse] = []

    @field_serializer("amount", "remaining_amount")
    def _serialize_money(self, v):
        return decimal_two_places(v)

    class Config:
        from_attributes = True


class EmployeeAdvanceListResponse(BaseModel):
    total: int
    total_outstanding: Decimal
    advances: List[EmployeeAdvanceResponse]

    @field_serializer("total_outstanding")
    def _serialize_money(self, v):
        return decimal_two_places(v)
