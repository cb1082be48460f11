"""
Overview analytics across accounts, holdings and goals.

All totals are expressed in the user's base currency using their manual
exchange rates. Pairs without a rate are counted at face value and reported
in `missing_rates`.
"""
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List
import logging

from sqlalchemy.orm import Session

from ..models.account import Account
from ..models.goal import Goal
from ..models.holding import Holding
from ..models.transaction import Transaction
from .currency_service import (
    CurrencyService,
    convert_currency,
    convert_to_base_currency,
    currency_name,
    currency_symbol,
    find_rate,
    format_amount,
)
from .portfolio_service import Position, calculate_portfolio_summary, goal_progress

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def balances_by_currency(accounts: Iterable[Account]) -> Dict[str, Dict[str, Decimal]]:
    """Assets, liabilities and net per currency (liabilities counted as positive debt)."""
    totals: Dict[str, Dict[str, Decimal]] = defaultdict(lambda: {"assets": ZERO, "liabilities": ZERO})
    for account in accounts:
        balance = Decimal(str(account.balance))
        bucket = totals[account.currency]
        if account.is_liability:
            bucket["liabilities"] += balance
        else:
            bucket["assets"] += balance
    for bucket in totals.values():
        bucket["net"] = bucket["assets"] - bucket["liabilities"]
    return dict(totals)


def currency_summary(accounts: Iterable[Account], base_currency: str, rates: List) -> Dict:
    """Net balance per currency, its value in the base currency and its share of the total."""
    per_currency = balances_by_currency(accounts)
    missing = sorted({
        f"{currency}->{base_currency}"
        for currency in per_currency
        if find_rate(currency, base_currency, rates) is None
    })

    values = {
        currency: convert_currency(bucket["net"], currency, base_currency, rates)
        for currency, bucket in per_currency.items()
    }
    total = sum(values.values(), ZERO)
    positive_total = sum((v for v in values.values() if v > 0), ZERO)

    breakdown = []
    for currency in sorted(per_currency):
        bucket = per_currency[currency]
        value = values[currency]
        breakdown.append({
            "currency": currency,
            "symbol": currency_symbol(currency),
            "name": currency_name(currency),
            "assets": bucket["assets"],
            "liabilities": bucket["liabilities"],
            "net": bucket["net"],
            "display": format_amount(bucket["net"], currency),
            "value_in_base": value,
            "percentage": value / positive_total * 100 if positive_total > 0 and value > 0 else ZERO,
        })

    return {
        "base_currency": base_currency,
        "total_in_base_currency": total,
        "currencies": breakdown,
        "missing_rates": missing,
    }


class AnalyticsService:
    """Builds the dashboard overview for one user"""

    @staticmethod
    def overview(db: Session, user_id: str, base_currency: str) -> Dict:
        accounts = db.query(Account).filter(Account.user_id == user_id).all()
        rates = CurrencyService.get_rates(db, user_id)

        per_currency = balances_by_currency(accounts)
        total_assets = convert_to_base_currency(
            {c: b["assets"] for c, b in per_currency.items()}, base_currency, rates
        )
        total_liabilities = convert_to_base_currency(
            {c: b["liabilities"] for c, b in per_currency.items()}, base_currency, rates
        )

        holdings = db.query(Holding).join(Account, Holding.account_id == Account.id).filter(
            Account.user_id == user_id
        ).all()
        positions = [Position.from_holding(h, base_currency, rates) for h in holdings]
        portfolio = calculate_portfolio_summary(positions)

        goals = db.query(Goal).filter(Goal.user_id == user_id).order_by(Goal.id).all()
        goal_list = [
            {
                "id": g.id,
                "name": g.name,
                "target_amount": Decimal(str(g.target_amount)),
                "current_amount": Decimal(str(g.current_amount)),
                "progress": goal_progress(g.current_amount, g.target_amount),
                "target_date": g.target_date,
            }
            for g in goals
        ]

        transactions = db.query(Transaction).filter(Transaction.user_id == user_id).all()
        daily_expenses: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        for txn in transactions:
            if txn.kind != "expense":
                continue
            amount = abs(Decimal(str(txn.amount)))
            daily_expenses[txn.date.isoformat()] += convert_currency(amount, txn.currency, base_currency, rates)

        net_worth = total_assets - total_liabilities + portfolio["total_value"]

        logger.info(f"Built overview for user {user_id}: net worth {net_worth} {base_currency}")
        return {
            "base_currency": base_currency,
            "total_assets": total_assets,
            "total_liabilities": total_liabilities,
            "holdings_value": portfolio["total_value"],
            "net_worth": net_worth,
            "balances_by_currency": {c: b["net"] for c, b in per_currency.items()},
            "currency_summary": currency_summary(accounts, base_currency, rates),
            "goals": goal_list,
            "daily_expenses": dict(sorted(daily_expenses.items())),
            "account_count": len(accounts),
            "transaction_count": len(transactions),
        }
