from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal, List, Dict
from datetime import date, datetime
from decimal import Decimal
from .common import CurrencyCode


class HoldingBase(BaseModel):
    account_id: int
    symbol: str = Field(..., max_length=20)
    name: Optional[str] = Field(None, max_length=200)
    shares: Decimal = Field(..., gt=0, decimal_places=4)
    cost_basis: Decimal = Field(..., ge=0, decimal_places=4, description="Purchase price per share")
    current_price: Optional[Decimal] = Field(None, ge=0, decimal_places=4)
    currency: CurrencyCode = "JPY"
    investment_type: Literal["nisa", "regular"] = "regular"
    stock_type: Literal["japanese", "us"] = "japanese"
    purchase_date: Optional[date] = None
    notes: Optional[str] = None


class HoldingCreate(HoldingBase):
    pass


class HoldingUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    shares: Optional[Decimal] = Field(None, gt=0, decimal_places=4)
    cost_basis: Optional[Decimal] = Field(None, ge=0, decimal_places=4)
    current_price: Optional[Decimal] = Field(None, ge=0, decimal_places=4)
    investment_type: Optional[Literal["nisa", "regular"]] = None
    stock_type: Optional[Literal["japanese", "us"]] = None
    purchase_date: Optional[date] = None
    notes: Optional[str] = None


class HoldingResponse(HoldingBase):
    id: int
    price_updated_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HoldingWithValue(HoldingResponse):
    market_value: Decimal
    total_cost: Decimal
    gain_loss: Decimal
    gain_loss_pct: Decimal


class BucketSummary(BaseModel):
    value: Decimal
    cost: Decimal
    gain_loss: Decimal
    percentage: Decimal


class DiversificationEntry(BaseModel):
    symbol: str
    name: Optional[str] = None
    value: Decimal
    percentage: Decimal


class NisaLimit(BaseModel):
    total_cost: Decimal
    annual_limit: Decimal
    remaining_limit: Decimal


class TypeStats(BaseModel):
    count: int
    total_value: Decimal
    total_cost: Decimal
    gain_loss: Decimal


class PortfolioSummary(BaseModel):
    currency: str
    total_value: Decimal
    total_cost: Decimal
    total_gain_loss: Decimal
    gain_loss_percentage: Decimal
    by_type: Dict[str, BucketSummary]
    by_stock_type: Dict[str, BucketSummary]
    diversification: List[DiversificationEntry]
    nisa: NisaLimit
    investment_type_stats: Dict[str, TypeStats]
    stock_type_stats: Dict[str, TypeStats]
    average_cost_basis: Decimal
    holdings_count: int


class PriceRefreshResult(BaseModel):
    updated: int
    missing: List[str]
    prices: Dict[str, Optional[Decimal]]
