from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from ..auth import get_current_user
from ..database import get_db
from ..models.account import Account
from ..models.user import User
from ..schemas.analytics import CurrencySummary, Overview
from ..services.analytics_service import AnalyticsService, currency_summary
from ..services.currency_service import CurrencyService

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/overview", response_model=Overview)
def get_overview(
    base_currency: Optional[str] = Query(None, pattern="^[A-Z]{3}$", description="Defaults to the user's base currency"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """
    Dashboard overview.

    Returns:
    - Net worth (assets - credit card debt + holdings value)
    - Balances per currency
    - Goal progress
    - Daily expense totals
    """
    return AnalyticsService.overview(db, user.id, base_currency or user.base_currency)


@router.get("/currency-summary", response_model=CurrencySummary)
def get_currency_summary(
    base_currency: Optional[str] = Query(None, pattern="^[A-Z]{3}$"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Net balance per currency and its share of the total in the base currency"""
    accounts = db.query(Account).filter(Account.user_id == user.id).all()
    rates = CurrencyService.get_rates(db, user.id)
    return currency_summary(accounts, base_currency or user.base_currency, rates)
