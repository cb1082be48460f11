"""
Schemas for first-run setup: the wizard payloads and CSV uploads.
"""
from pydantic import BaseModel, Field
from typing import List, Literal
from datetime import date as date_type
from decimal import Decimal

from .account import AccountCreate
from .exchange_rate import ExchangeRateCreate


class SetupTransaction(BaseModel):
    description: str = Field(default="", max_length=500)
    amount: Decimal = Field(..., gt=0, decimal_places=4)
    date: date_type
    type: Literal["income", "expense"]


class SetupAccount(AccountCreate):
    transactions: List[SetupTransaction] = []


class SetupRequest(BaseModel):
    accounts: List[SetupAccount]


class InitializeRequest(BaseModel):
    accounts: List[AccountCreate] = []
    exchange_rates: List[ExchangeRateCreate] = []


class ParsedAccountRow(BaseModel):
    """One row of the accounts CSV (name,type,balance,currency)."""
    name: str
    account_type: str
    balance: Decimal
    currency: str


class ParsedTransactionRow(BaseModel):
    """One row of the transactions CSV (date,description,amount,currency,account_name)."""
    date: date_type
    description: str
    amount: Decimal  # positive income, negative expense
    currency: str
    account_name: str

    @property
    def kind(self) -> str:
        return "income" if self.amount > 0 else "expense"


class SetupResult(BaseModel):
    success: bool
    accounts_created: int
    transactions_imported: int
    exchange_rates_saved: int = 0
    warnings: List[str] = []
