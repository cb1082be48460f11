from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from .common import CurrencyCode


class ExchangeRateBase(BaseModel):
    from_currency: CurrencyCode
    to_currency: CurrencyCode
    rate: Decimal = Field(..., gt=0, description="Units of to_currency per 1 from_currency")

    @model_validator(mode="after")
    def check_pair(self):
        if self.from_currency == self.to_currency:
            raise ValueError("from_currency and to_currency must differ")
        return self


class ExchangeRateCreate(ExchangeRateBase):
    source: str = Field(default="manual", max_length=20)


class ExchangeRateUpdate(BaseModel):
    rate: Decimal = Field(..., gt=0)
    source: Optional[str] = Field(None, max_length=20)


class ExchangeRateResponse(ExchangeRateBase):
    id: int
    user_id: str
    source: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConversionRequest(BaseModel):
    amount: Decimal
    from_currency: CurrencyCode
    to_currency: CurrencyCode


class ConversionResponse(BaseModel):
    amount: Decimal
    from_currency: str
    to_currency: str
    converted_amount: Decimal
    rate: Optional[Decimal] = None
    rate_found: bool
