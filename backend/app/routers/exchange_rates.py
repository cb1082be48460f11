from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from ..auth import get_current_user
from ..database import get_db
from ..models.user import User
from ..schemas.exchange_rate import (
    ConversionRequest,
    ConversionResponse,
    ExchangeRateCreate,
    ExchangeRateResponse,
    ExchangeRateUpdate,
)
from ..services.currency_service import (
    DEFAULT_EXCHANGE_RATES,
    CurrencyService,
    convert_currency,
    find_rate,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/exchange-rates", tags=["exchange-rates"])


@router.get("/", response_model=List[ExchangeRateResponse])
def get_exchange_rates(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Get the current user's exchange rates"""
    return CurrencyService.get_rates(db, user.id)


@router.get("/defaults")
def get_default_exchange_rates():
    """Suggested starting rates for manual setup"""
    return {
        "exchange_rates": [
            {"from_currency": r.from_currency, "to_currency": r.to_currency, "rate": r.rate}
            for r in DEFAULT_EXCHANGE_RATES
        ]
    }


@router.post("/", response_model=ExchangeRateResponse, status_code=status.HTTP_200_OK)
def upsert_exchange_rate(
    rate: ExchangeRateCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Create the rate for a currency pair, or update it if it already exists"""
    try:
        db_rate = CurrencyService.save_rate(
            db, user.id,
            rate.from_currency, rate.to_currency, rate.rate,
            source=rate.source,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_rate)
    return db_rate


@router.put("/{rate_id}", response_model=ExchangeRateResponse)
def update_exchange_rate(
    rate_id: int,
    rate_update: ExchangeRateUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Change the rate value of an existing pair"""
    db_rate = CurrencyService.get_owned_rate(db, user.id, rate_id)
    db_rate.rate = rate_update.rate
    if rate_update.source:
        db_rate.source = rate_update.source
    db.commit()
    db.refresh(db_rate)
    logger.info(f"Updated exchange rate {db_rate.from_currency} -> {db_rate.to_currency}: {db_rate.rate}")
    return db_rate


@router.delete("/{rate_id}")
def delete_exchange_rate(
    rate_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Delete one of the current user's exchange rates"""
    db_rate = CurrencyService.get_owned_rate(db, user.id, rate_id)
    db.delete(db_rate)
    db.commit()
    return {"message": "Exchange rate deleted successfully"}


@router.post("/convert", response_model=ConversionResponse)
def convert_amount(
    request: ConversionRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Convert an amount with the user's rates; rate_found is false when it fell back to identity"""
    rates = CurrencyService.get_rates(db, user.id)
    rate = find_rate(request.from_currency, request.to_currency, rates)
    converted = convert_currency(request.amount, request.from_currency, request.to_currency, rates)
    return ConversionResponse(
        amount=request.amount,
        from_currency=request.from_currency,
        to_currency=request.to_currency,
        converted_amount=converted,
        rate=rate,
        rate_found=rate is not None,
    )
