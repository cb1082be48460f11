from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy.orm import Session
import logging
from ..errors import Forbidden, InvalidAmount, NotFound, RateUnavailable
from ..models.exchange_rate import ExchangeRate

logger = logging.getLogger(__name__)


SUPPORTED_CURRENCIES = ["JPY", "KRW", "USD", "CNY", "EUR", "GBP"]

CURRENCY_SYMBOLS = {
    "JPY": "¥",
    "KRW": "₩",
    "USD": "$",
    "CNY": "¥",
    "EUR": "€",
    "GBP": "£",
}

CURRENCY_NAMES = {
    "JPY": "Japanese Yen",
    "KRW": "Korean Won",
    "USD": "US Dollar",
    "CNY": "Chinese Yuan",
    "EUR": "Euro",
    "GBP": "British Pound",
}


class Rate(NamedTuple):
    """Plain rate record; ExchangeRate rows quack the same way."""
    from_currency: str
    to_currency: str
    rate: Decimal


# Starting point offered to new users (manual setup)
DEFAULT_EXCHANGE_RATES = [
    Rate("JPY", "KRW", Decimal("10.5")),
    Rate("JPY", "USD", Decimal("0.0067")),
    Rate("KRW", "JPY", Decimal("0.095")),
    Rate("KRW", "USD", Decimal("0.00077")),
    Rate("USD", "JPY", Decimal("149.25")),
    Rate("USD", "KRW", Decimal("1298.5")),
]


def _lookup_rate(from_currency: str, to_currency: str, rates: Iterable) -> Tuple[Optional[Decimal], bool]:
    """
    Stored rate for the pair and whether it is the inverse pair.

    The direct pair wins over the inverse one; an inverse rate of 0 is
    unusable. Returns (None, False) when neither is available.
    """
    rates = list(rates)
    for r in rates:
        if r.from_currency == from_currency and r.to_currency == to_currency:
            return Decimal(str(r.rate)), False

    for r in rates:
        if r.from_currency == to_currency and r.to_currency == from_currency:
            inverse = Decimal(str(r.rate))
            if inverse != 0:
                return inverse, True
    return None, False


def find_rate(from_currency: str, to_currency: str, rates: Iterable) -> Optional[Decimal]:
    """Multiplier for from_currency -> to_currency, or None when no rate is stored."""
    if from_currency == to_currency:
        return Decimal("1")
    rate, inverse = _lookup_rate(from_currency, to_currency, rates)
    if rate is None:
        return None
    return reverse_rate(rate) if inverse else rate


def convert_currency(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    rates: Iterable,
    strict: bool = False,
) -> Decimal:
    """
    Convert an amount between two currencies using an already-fetched rate list.

    Same currency returns the amount untouched. A direct rate multiplies, an
    inverse rate divides. With no usable rate the amount is returned
    unchanged and a warning is logged; pass strict=True to get
    RateUnavailable instead.
    """
    if from_currency == to_currency:
        return amount

    rate, inverse = _lookup_rate(from_currency, to_currency, rates)
    if rate is not None:
        return amount / rate if inverse else amount * rate

    if strict:
        raise RateUnavailable(from_currency, to_currency)

    logger.warning(f"Exchange rate not found: {from_currency} -> {to_currency}, using amount as-is")
    return amount


def convert_to_base_currency(
    amounts: Dict[str, Optional[Decimal]],
    base_currency: str,
    rates: Iterable,
) -> Decimal:
    """Sum a currency -> amount map into the base currency."""
    rates = list(rates)
    total = Decimal("0")
    for currency, amount in amounts.items():
        if amount is None:
            continue
        total += convert_currency(amount, currency, base_currency, rates)
    return total


def reverse_rate(rate: Decimal) -> Decimal:
    if rate == 0:
        raise InvalidAmount("Cannot reverse a zero exchange rate")
    return Decimal("1") / rate


def currency_symbol(currency: str) -> str:
    return CURRENCY_SYMBOLS.get(currency, currency)


def currency_name(currency: str) -> str:
    return CURRENCY_NAMES.get(currency, currency)


def is_supported_currency(currency: str) -> bool:
    return currency in SUPPORTED_CURRENCIES


def format_amount(amount: Decimal, currency: str) -> str:
    """Format with the currency symbol, thousands separators and at most 2 decimals."""
    rounded = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{abs(rounded):,.2f}"
    if text.endswith(".00"):
        text = text[:-3]
    elif text.endswith("0"):
        text = text[:-1]
    sign = "-" if rounded < 0 else ""
    return f"{sign}{currency_symbol(currency)}{text}"


class CurrencyService:
    """Persistence side of the per-user exchange rate table"""

    @staticmethod
    def get_rates(db: Session, user_id: str) -> List[ExchangeRate]:
        return db.query(ExchangeRate).filter(
            ExchangeRate.user_id == user_id
        ).order_by(ExchangeRate.from_currency, ExchangeRate.to_currency).all()

    @staticmethod
    def save_rate(
        db: Session,
        user_id: str,
        from_currency: str,
        to_currency: str,
        rate: Decimal,
        source: str = "manual",
    ) -> ExchangeRate:
        """
        Create or update the user's rate for an ordered currency pair.

        Flushes only; the caller commits. There is never more than one row
        per (user, from, to).
        """
        if rate is None or rate <= 0:
            raise InvalidAmount("Exchange rate must be positive")

        existing = db.query(ExchangeRate).filter(
            ExchangeRate.user_id == user_id,
            ExchangeRate.from_currency == from_currency,
            ExchangeRate.to_currency == to_currency,
        ).first()

        if existing:
            existing.rate = rate
            existing.source = source
            db.flush()
            logger.info(f"Updated exchange rate {from_currency} -> {to_currency}: {rate}")
            return existing

        db_rate = ExchangeRate(
            user_id=user_id,
            from_currency=from_currency,
            to_currency=to_currency,
            rate=rate,
            source=source,
        )
        db.add(db_rate)
        db.flush()
        logger.info(f"Created exchange rate {from_currency} -> {to_currency}: {rate}")
        return db_rate

    @staticmethod
    def get_owned_rate(db: Session, user_id: str, rate_id: int) -> ExchangeRate:
        db_rate = db.query(ExchangeRate).filter(ExchangeRate.id == rate_id).first()
        if not db_rate:
            raise NotFound(f"Exchange rate with id {rate_id} not found")
        if db_rate.user_id != user_id:
            raise Forbidden("Exchange rate belongs to another user")
        return db_rate
