from decimal import Decimal
from pydantic import BaseModel, Field, field_serializer
from typing import List, Optional
from datetime import datetime
from kasir.models.account import AccountType
from kasir.schemas.common import decimal_two_places


class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType = AccountType.ASET
    initial_balance: Decimal = Decimal("0")
    is_payment_account: bool = False


class UpdateAccount(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    type: Optional[AccountType] = None
    is_payment_account: Optional[bool] = None


class InitialBalanceUpdate(BaseModel):
    initial_balance: Decimal


class AccountResponse(BaseModel):
    id: str
    name: str
    type: AccountType
    balance: Decimal
    initial_balance: Decimal
    is_payment_account: bool
    created_at: datetime

    @field_serializer("balance", "initial_balance")
    def _serialize_money(self, v):
        return decimal_two_places(v)

    class Config:
        from_attributes = True


class AccountDeleteResponse(BaseModel):
    message: str


class AccountListResponse(BaseModel):
    total: int
    accounts: List[AccountResponse]


class AccountDriftResponse(BaseModel):
    account_id: str
    account_name: str
    balance: Decimal
    initial_balance: Decimal
    ledger_net: Decimal
    expected_balance: Decimal
    drift: Decimal

    @field_serializer("balance", "initial_balance", "ledger_net", "expected_balance", "drift")
    def _serialize_money(self, v):
        return decimal_two_places(v)
