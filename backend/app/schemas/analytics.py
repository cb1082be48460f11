from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import date
from decimal import Decimal


class CurrencyBalance(BaseModel):
    currency: str
    symbol: str
    name: str
    assets: Decimal
    liabilities: Decimal
    net: Decimal
    display: str
    value_in_base: Decimal
    percentage: Decimal


class GoalProgress(BaseModel):
    id: int
    name: str
    target_amount: Decimal
    current_amount: Decimal
    progress: Decimal
    target_date: Optional[date] = None


class CurrencySummary(BaseModel):
    base_currency: str
    total_in_base_currency: Decimal
    currencies: List[CurrencyBalance]
    missing_rates: List[str] = []


class Overview(BaseModel):
    base_currency: str
    total_assets: Decimal
    total_liabilities: Decimal
    holdings_value: Decimal
    net_worth: Decimal
    balances_by_currency: Dict[str, Decimal]
    currency_summary: CurrencySummary
    goals: List[GoalProgress]
    daily_expenses: Dict[str, Decimal]
    account_count: int
    transaction_count: int
