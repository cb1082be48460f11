"""
Portfolio and goal aggregation.

Pure reductions over holdings and goals. Empty inputs and zero
denominators give 0, never an exception.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from ..models.holding import INVESTMENT_TYPES, STOCK_TYPES
from .currency_service import convert_currency

# Annual NISA purchase limit in JPY
NISA_ANNUAL_LIMIT = Decimal("1200000")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class Position:
    symbol: str
    shares: Decimal
    cost_basis: Decimal
    current_price: Optional[Decimal] = None
    name: Optional[str] = None
    investment_type: str = "regular"
    stock_type: str = "japanese"
    currency: str = "JPY"

    @property
    def price(self) -> Decimal:
        """Live price when known, otherwise the purchase price."""
        return self.current_price if self.current_price is not None else self.cost_basis

    @classmethod
    def from_holding(cls, holding, base_currency: Optional[str] = None, rates: Iterable = ()) -> "Position":
        """Build a position, converting prices into base_currency when given."""
        rates = list(rates)
        currency = holding.currency
        cost_basis = Decimal(str(holding.cost_basis))
        current_price = Decimal(str(holding.current_price)) if holding.current_price is not None else None

        if base_currency and base_currency != currency:
            cost_basis = convert_currency(cost_basis, currency, base_currency, rates)
            if current_price is not None:
                current_price = convert_currency(current_price, currency, base_currency, rates)
            currency = base_currency

        return cls(
            symbol=holding.symbol,
            name=holding.name,
            shares=Decimal(str(holding.shares)),
            cost_basis=cost_basis,
            current_price=current_price,
            investment_type=holding.investment_type,
            stock_type=holding.stock_type,
            currency=currency,
        )


def calculate_current_value(shares: Decimal, current_price: Decimal) -> Decimal:
    return shares * current_price


def calculate_cost_basis(shares: Decimal, cost_basis: Decimal) -> Decimal:
    return shares * cost_basis


def calculate_gain_loss(current_value: Decimal, cost_basis: Decimal) -> Decimal:
    return current_value - cost_basis


def calculate_gain_loss_percentage(gain_loss: Decimal, cost_basis: Decimal) -> Decimal:
    if cost_basis == 0:
        return ZERO
    return gain_loss / cost_basis * HUNDRED


def _empty_bucket() -> Dict[str, Decimal]:
    return {"value": ZERO, "cost": ZERO, "gain_loss": ZERO, "percentage": ZERO}


def calculate_portfolio_summary(positions: Iterable[Position]) -> Dict:
    """Totals plus breakdowns by investment type (nisa/regular) and stock type (japanese/us)."""
    total_value = ZERO
    total_cost = ZERO
    by_type = {key: _empty_bucket() for key in INVESTMENT_TYPES}
    by_stock_type = {key: _empty_bucket() for key in STOCK_TYPES}

    for position in positions:
        value = calculate_current_value(position.shares, position.price)
        cost = calculate_cost_basis(position.shares, position.cost_basis)
        gain_loss = calculate_gain_loss(value, cost)

        total_value += value
        total_cost += cost

        for buckets, key in ((by_type, position.investment_type), (by_stock_type, position.stock_type)):
            bucket = buckets.setdefault(key, _empty_bucket())
            bucket["value"] += value
            bucket["cost"] += cost
            bucket["gain_loss"] += gain_loss

    for buckets in (by_type, by_stock_type):
        for bucket in buckets.values():
            bucket["percentage"] = calculate_gain_loss_percentage(bucket["gain_loss"], bucket["cost"])

    total_gain_loss = calculate_gain_loss(total_value, total_cost)
    return {
        "total_value": total_value,
        "total_cost": total_cost,
        "total_gain_loss": total_gain_loss,
        "gain_loss_percentage": calculate_gain_loss_percentage(total_gain_loss, total_cost),
        "by_type": by_type,
        "by_stock_type": by_stock_type,
    }


def analyze_diversification(positions: Iterable[Position]) -> List[Dict]:
    """Each position's share of the total portfolio value."""
    positions = list(positions)
    values = [calculate_current_value(p.shares, p.price) for p in positions]
    total = sum(values, ZERO)

    return [
        {
            "symbol": p.symbol,
            "name": p.name,
            "value": value,
            "percentage": value / total * HUNDRED if total > 0 else ZERO,
        }
        for p, value in zip(positions, values)
    ]


def check_nisa_limit(positions: Iterable[Position], annual_limit: Decimal = NISA_ANNUAL_LIMIT) -> Dict:
    total_cost = sum(
        (calculate_cost_basis(p.shares, p.cost_basis) for p in positions if p.investment_type == "nisa"),
        ZERO,
    )
    return {
        "total_cost": total_cost,
        "annual_limit": annual_limit,
        "remaining_limit": max(ZERO, annual_limit - total_cost),
    }


def calculate_average_cost_basis(positions: Iterable[Position]) -> Decimal:
    positions = list(positions)
    total_shares = sum((p.shares for p in positions), ZERO)
    if total_shares == 0:
        return ZERO
    total_cost = sum((calculate_cost_basis(p.shares, p.cost_basis) for p in positions), ZERO)
    return total_cost / total_shares


def _group_stats(positions: Iterable[Position], attribute: str, keys: Iterable[str]) -> Dict:
    stats = {key: {"count": 0, "total_value": ZERO, "total_cost": ZERO, "gain_loss": ZERO} for key in keys}
    for p in positions:
        value = calculate_current_value(p.shares, p.price)
        cost = calculate_cost_basis(p.shares, p.cost_basis)
        entry = stats.setdefault(
            getattr(p, attribute),
            {"count": 0, "total_value": ZERO, "total_cost": ZERO, "gain_loss": ZERO},
        )
        entry["count"] += 1
        entry["total_value"] += value
        entry["total_cost"] += cost
        entry["gain_loss"] += calculate_gain_loss(value, cost)
    return stats


def investment_type_stats(positions: Iterable[Position]) -> Dict:
    return _group_stats(positions, "investment_type", INVESTMENT_TYPES)


def stock_type_stats(positions: Iterable[Position]) -> Dict:
    return _group_stats(positions, "stock_type", STOCK_TYPES)


def goal_progress(current_amount: Decimal, target_amount: Decimal) -> Decimal:
    """Percentage of the target reached; 0 for a zero target."""
    if not target_amount:
        return ZERO
    return Decimal(str(current_amount)) / Decimal(str(target_amount)) * HUNDRED
