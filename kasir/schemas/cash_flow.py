"""
Pydantic schemas for cash history, balance summary and daily report.
"""

from decimal import Decimal
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_serializer, model_validator

from kasir.schemas.common import decimal_two_places

DateType = date


class CashHistoryItem(BaseModel):
    id: str
    account_id: Optional[str] = None
    account_name: Optional[str] = None
    amount: Decimal
    description: Optional[str] = None
    reference_number: Optional[str] = None
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None
    source_type: Optional[str] = None
    category: str
    category_label: str
    created_by_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_serializer("amount")
    def _serialize_money(self, v):
        return decimal_two_places(v)

    class Config:
        from_attributes = True


class CashHistoryListResponse(BaseModel):
    data: List[CashHistoryItem]
    count: int
    total_dic: dict


class AccountBalanceSummary(BaseModel):
    account_id: str
    account_name: str
    current_balance: Decimal
    previous_balance: Decimal
    today_income: Decimal
    today_expense: Decimal
    today_net: Decimal

    @field_serializer("current_balance", "previous_balance", "today_income", "today_expense", "today_net")
    def _serialize_money(self, v):
        return decimal_two_places(v)


class CashBalanceResponse(BaseModel):
    total_current_balance: Decimal
    total_previous_balance: Decimal
    today_income: Decimal
    today_expense: Decimal
    today_net: Decimal
    window_start: datetime
    window_end: datetime
    per_account: List[AccountBalanceSummary]

    @field_serializer("total_current_balance", "total_previous_balance", "today_income", "today_expense", "today_net")
    def _serialize_money(self, v):
        return decimal_two_places(v)


class ManualCashCreate(BaseModel):
    account_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    direction: Literal["in", "out"]
    description: str = Field(..., min_length=1)


class TransferCreate(BaseModel):
    from_account_id: str = Field(..., min_length=1)
    to_account_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    description: str = ""

    @model_validator(mode="after")
    def accounts_differ(self):
        if self.from_account_id == self.to_account_id:
            raise ValueError("Source and destination accounts must be different")
        return self


class TransferResponse(BaseModel):
    reference_number: str
    amount: Decimal
    from_entry_id: str
    to_entry_id: str

    @field_serializer("amount")
    def _serialize_money(self, v):
        return decimal_two_places(v)


class CashFlowByAccount(BaseModel):
    account_name: str
    cash_in: Decimal
    cash_out: Decimal

    @field_serializer("cash_in", "cash_out")
    def _serialize_money(self, v):
        return decimal_two_places(v)


class SalesSummary(BaseModel):
    total_sales: Decimal
    total_cash: Decimal
    total_credit: Decimal
    transaction_count: int

    @field_serializer("total_sales", "total_cash", "total_credit")
    def _serialize_money(self, v):
        return decimal_two_places(v)


class DailyTransactionRow(BaseModel):
    id: str
    time: Optional[str] = None
    customer_name: str
    total: Decimal
    paid_amount: Decimal
    remaining: Decimal
    payment_status: Optional[str] = None
    cashier_name: Optional[str] = None

    @field_serializer("total", "paid_amount", "remaining")
    def _serialize_money(self, v):
        return decimal_two_places(v)


class DailyReportResponse(BaseModel):
    date: DateType
    cash_in: Decimal
    cash_out: Decimal
    net_cash: Decimal
    sales_summary: SalesSummary
    cash_flow_by_account: List[CashFlowByAccount]
    transactions: List[DailyTransactionRow]

    @field_serializer("cash_in", "cash_out", "net_cash")
    def _serialize_money(self, v):
        return decimal_two_places(v)
