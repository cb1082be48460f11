from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from .common import CurrencyCode
from ..models.account import ACCOUNT_TYPES


class AccountBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    account_type: str = Field(..., max_length=20, description="checking, savings, credit_card, investment, nisa, crypto, cash")
    currency: CurrencyCode = "JPY"

    @field_validator("account_type")
    @classmethod
    def check_account_type(cls, value: str) -> str:
        if value not in ACCOUNT_TYPES:
            raise ValueError(f"Unknown account type {value!r}")
        return value


class AccountCreate(AccountBase):
    # Opening balance; for credit cards this is the debt already owed
    balance: Decimal = Field(default=Decimal("0"), decimal_places=4)


class AccountUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)


class AccountResponse(AccountBase):
    id: int
    user_id: str
    balance: Decimal
    opening_balance: Decimal
    is_liability: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReconcileResponse(BaseModel):
    account_id: int
    opening_balance: Decimal
    stored_balance: Decimal
    expected_balance: Decimal
    difference: Decimal
    transaction_count: int
    consistent: bool
