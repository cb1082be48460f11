from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime, timezone
from decimal import Decimal
from ..auth import get_current_user
from ..database import get_db
from ..models.account import Account
from ..models.holding import Holding, INVESTMENT_TYPES, STOCK_TYPES
from ..models.user import User
from ..schemas.holding import (
    HoldingCreate,
    HoldingUpdate,
    HoldingResponse,
    HoldingWithValue,
    PortfolioSummary,
    PriceRefreshResult,
)
from ..services.account_service import AccountService
from ..services.currency_service import CurrencyService
from ..services.portfolio_service import (
    Position,
    analyze_diversification,
    calculate_average_cost_basis,
    calculate_cost_basis,
    calculate_current_value,
    calculate_gain_loss,
    calculate_gain_loss_percentage,
    calculate_portfolio_summary,
    check_nisa_limit,
    investment_type_stats,
    stock_type_stats,
)
from ..services.price_service import PriceService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/holdings", tags=["holdings"])


def _user_holdings(db: Session, user_id: str):
    return db.query(Holding).join(Account, Holding.account_id == Account.id).filter(
        Account.user_id == user_id
    )


def _get_owned_holding(db: Session, user_id: str, holding_id: int) -> Holding:
    holding = _user_holdings(db, user_id).filter(Holding.id == holding_id).first()
    if not holding:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Holding with id {holding_id} not found"
        )
    return holding


def _with_value(holding: Holding) -> HoldingWithValue:
    position = Position.from_holding(holding)
    value = calculate_current_value(position.shares, position.price)
    cost = calculate_cost_basis(position.shares, position.cost_basis)
    gain = calculate_gain_loss(value, cost)
    return HoldingWithValue(
        **HoldingResponse.model_validate(holding).model_dump(),
        market_value=value,
        total_cost=cost,
        gain_loss=gain,
        gain_loss_pct=calculate_gain_loss_percentage(gain, cost),
    )


@router.get("/types")
def get_holding_types():
    """Investment and stock types a holding can have"""
    return {
        "investment_types": [{"code": code, "name": name} for code, name in INVESTMENT_TYPES.items()],
        "stock_types": [{"code": code, "name": name} for code, name in STOCK_TYPES.items()],
    }


@router.get("/", response_model=List[HoldingWithValue])
def get_holdings(
    account_id: Optional[int] = Query(None, description="Filter by account"),
    investment_type: Optional[str] = Query(None, description="Filter by investment type (nisa, regular)"),
    stock_type: Optional[str] = Query(None, description="Filter by stock type (japanese, us)"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Get the current user's holdings with value and gain/loss"""
    query = _user_holdings(db, user.id)

    if account_id is not None:
        query = query.filter(Holding.account_id == account_id)
    if investment_type:
        query = query.filter(Holding.investment_type == investment_type)
    if stock_type:
        query = query.filter(Holding.stock_type == stock_type)

    return [_with_value(h) for h in query.order_by(Holding.symbol).all()]


@router.get("/summary", response_model=PortfolioSummary)
def get_portfolio_summary(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Portfolio totals in the base currency, with breakdowns and NISA usage"""
    holdings = _user_holdings(db, user.id).all()
    rates = CurrencyService.get_rates(db, user.id)
    positions = [Position.from_holding(h, user.base_currency, rates) for h in holdings]

    summary = calculate_portfolio_summary(positions)
    return PortfolioSummary(
        currency=user.base_currency,
        diversification=analyze_diversification(positions),
        nisa=check_nisa_limit(positions),
        investment_type_stats=investment_type_stats(positions),
        stock_type_stats=stock_type_stats(positions),
        average_cost_basis=calculate_average_cost_basis(positions),
        holdings_count=len(positions),
        **summary,
    )


@router.post("/prices/refresh", response_model=PriceRefreshResult)
def refresh_prices(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Fetch live prices for every holding and store them as current_price"""
    holdings = _user_holdings(db, user.id).all()
    if not holdings:
        return PriceRefreshResult(updated=0, missing=[], prices={})

    prices = PriceService.get_prices_bulk([(h.symbol, h.stock_type) for h in holdings])
    now = datetime.now(timezone.utc)
    updated = 0
    missing = []

    for holding in holdings:
        price = prices.get((holding.symbol, holding.stock_type))
        if price is None:
            missing.append(PriceService.get_yfinance_symbol(holding.symbol, holding.stock_type))
            continue
        holding.current_price = Decimal(str(price))
        holding.price_updated_at = now
        updated += 1

    try:
        db.commit()
    except Exception as e:
        logger.error(f"Failed to store refreshed prices: {e}")
        db.rollback()
        raise

    logger.info(f"Refreshed {updated}/{len(holdings)} prices for user {user.id}")
    return PriceRefreshResult(
        updated=updated,
        missing=missing,
        prices={PriceService.get_yfinance_symbol(s, t): p for (s, t), p in prices.items()},
    )


@router.get("/{holding_id}", response_model=HoldingWithValue)
def get_holding(
    holding_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Get a single holding by ID"""
    return _with_value(_get_owned_holding(db, user.id, holding_id))


@router.post("/", response_model=HoldingResponse, status_code=status.HTTP_201_CREATED)
def create_holding(
    holding: HoldingCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Create a new holding in one of the user's accounts"""
    AccountService.get_account(db, user.id, holding.account_id)

    existing = db.query(Holding).filter(
        Holding.symbol == holding.symbol,
        Holding.account_id == holding.account_id
    ).first()

    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Holding for {holding.symbol} in account {holding.account_id} already exists"
        )

    db_holding = Holding(**holding.model_dump())
    db.add(db_holding)
    db.commit()
    db.refresh(db_holding)

    return db_holding


@router.put("/{holding_id}", response_model=HoldingResponse)
def update_holding(
    holding_id: int,
    holding_update: HoldingUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Update an existing holding"""
    db_holding = _get_owned_holding(db, user.id, holding_id)

    # Update only provided fields
    update_data = holding_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_holding, field, value)

    db.commit()
    db.refresh(db_holding)

    return db_holding


@router.delete("/{holding_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holding(
    holding_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Delete a holding"""
    db_holding = _get_owned_holding(db, user.id, holding_id)
    db.delete(db_holding)
    db.commit()

    return None
