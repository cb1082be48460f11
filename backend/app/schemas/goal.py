from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from .common import CurrencyCode


class GoalBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Decimal = Field(..., gt=0, decimal_places=4)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=4)
    currency: CurrencyCode = "JPY"
    target_date: Optional[date] = None


class GoalCreate(GoalBase):
    pass


class GoalUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    target_amount: Optional[Decimal] = Field(None, gt=0, decimal_places=4)
    current_amount: Optional[Decimal] = Field(None, ge=0, decimal_places=4)
    target_date: Optional[date] = None


class GoalResponse(GoalBase):
    id: int
    user_id: str
    progress: Decimal = Decimal("0")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
