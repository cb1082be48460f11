"""
Balance Mutation Engine

Pure computation of account balances for creating and deleting
transactions. Nothing here touches the database: callers hand in account
snapshots and get back a MutationPlan, the set of writes that must be
applied together.

Sign policy:
- asset accounts grow on inflow (income, transfer in)
- liability accounts (credit cards) hold debt, so inflow shrinks them
  (refund, payment) and outflow grows them (purchase, cash advance)
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation as DecimalInvalidOperation
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging

from ..errors import InvalidAmount, InvalidOperation, NotFound, RateUnavailable
from ..models.account import LIABILITY_ACCOUNT_TYPES
from .currency_service import convert_currency

logger = logging.getLogger(__name__)

# Matches the Numeric(18, 4) columns so stored values round-trip unchanged
AMOUNT_QUANTUM = Decimal("0.0001")


class AccountClass(str, Enum):
    ASSET = "asset"
    LIABILITY = "liability"


def classify(account_type: str) -> AccountClass:
    if account_type in LIABILITY_ACCOUNT_TYPES:
        return AccountClass.LIABILITY
    return AccountClass.ASSET


@dataclass(frozen=True)
class AccountSnapshot:
    id: int
    account_type: str
    balance: Decimal
    currency: str

    @property
    def account_class(self) -> AccountClass:
        return classify(self.account_type)

    @classmethod
    def from_account(cls, account) -> "AccountSnapshot":
        return cls(
            id=account.id,
            account_type=account.account_type,
            balance=Decimal(str(account.balance)),
            currency=account.currency,
        )


@dataclass(frozen=True)
class BalanceUpdate:
    account_id: int
    previous_balance: Decimal
    balance: Decimal


@dataclass
class MutationPlan:
    """Unit of work: all balance updates plus the record insert or delete."""
    updates: List[BalanceUpdate] = field(default_factory=list)
    record: Optional[Dict[str, Any]] = None
    delete_id: Optional[int] = None
    warnings: List[str] = field(default_factory=list)

    def balance_for(self, account_id: int) -> Decimal:
        for update in self.updates:
            if update.account_id == account_id:
                return update.balance
        raise KeyError(account_id)


def validate_amount(amount) -> Decimal:
    """Coerce to Decimal and reject anything that is not a finite positive number."""
    if isinstance(amount, bool):
        raise InvalidAmount(f"Amount must be numeric, got {amount!r}")
    try:
        value = Decimal(str(amount))
    except (DecimalInvalidOperation, ValueError, TypeError):
        raise InvalidAmount(f"Amount must be numeric, got {amount!r}")
    if not value.is_finite():
        raise InvalidAmount(f"Amount must be finite, got {amount!r}")
    if value <= 0:
        raise InvalidAmount(f"Amount must be positive, got {value}")
    return value


def balance_delta(account_class: AccountClass, inflow: bool, amount: Decimal) -> Decimal:
    """Signed change to a balance for money flowing into (or out of) an account."""
    if account_class == AccountClass.LIABILITY:
        return -amount if inflow else amount
    return amount if inflow else -amount


def apply_income(account_class: AccountClass, balance: Decimal, amount: Decimal) -> Decimal:
    return balance + balance_delta(account_class, True, amount)


def apply_expense(account_class: AccountClass, balance: Decimal, amount: Decimal) -> Decimal:
    return balance + balance_delta(account_class, False, amount)


def apply_transfer(
    from_class: AccountClass,
    from_balance: Decimal,
    to_class: AccountClass,
    to_balance: Decimal,
    amount: Decimal,
    to_amount: Optional[Decimal] = None,
) -> tuple:
    """
    New (from_balance, to_balance) after moving `amount` between two accounts.

    `to_amount` is the magnitude posted on the receiving side when the two
    accounts hold different currencies; it defaults to `amount`.
    """
    if to_amount is None:
        to_amount = amount
    return (
        from_balance + balance_delta(from_class, False, amount),
        to_balance + balance_delta(to_class, True, to_amount),
    )


def _lookup(accounts: Mapping[int, AccountSnapshot], account_id: Optional[int]) -> AccountSnapshot:
    snapshot = accounts.get(account_id) if account_id is not None else None
    if snapshot is None:
        raise NotFound(f"Account with id {account_id} not found")
    return snapshot


def _posted_amount(
    amount: Decimal,
    currency: str,
    account: AccountSnapshot,
    rates: List,
    warnings: List[str],
) -> Decimal:
    """Magnitude to post on `account`, converted into its currency."""
    try:
        converted = convert_currency(amount, currency, account.currency, rates, strict=True)
    except RateUnavailable as e:
        logger.warning(f"{e.message}; posting {amount} {currency} to account {account.id} unconverted")
        warnings.append(e.message)
        converted = amount
    return converted.quantize(AMOUNT_QUANTUM)


def plan_create(
    operation,
    accounts: Mapping[int, AccountSnapshot],
    rates: Iterable = (),
) -> MutationPlan:
    """
    Plan the writes for a new income, expense or transfer.

    `operation` is one of the Operation schema variants (anything with the
    same attributes works). `accounts` maps id -> snapshot for every account
    the caller was able to load for the current user.
    """
    rates = list(rates)
    kind = getattr(operation, "kind", None)
    amount = validate_amount(getattr(operation, "amount", None))
    plan = MutationPlan()

    if kind in ("income", "expense"):
        account = _lookup(accounts, operation.account_id)
        currency = operation.currency or account.currency
        posted = _posted_amount(amount, currency, account, rates, plan.warnings)

        if kind == "income":
            new_balance = apply_income(account.account_class, account.balance, posted)
            signed_amount = amount
        else:
            new_balance = apply_expense(account.account_class, account.balance, posted)
            signed_amount = -amount

        plan.updates.append(BalanceUpdate(account.id, account.balance, new_balance))
        plan.record = {
            "kind": kind,
            "amount": signed_amount,
            "currency": currency,
            "date": operation.date,
            "description": operation.description,
            "category": getattr(operation, "category", None),
            "account_id": account.id,
            "applied_amount": posted,
        }
        return plan

    if kind == "transfer":
        if operation.from_account_id == operation.to_account_id:
            raise InvalidOperation("Cannot transfer to the same account")
        source = _lookup(accounts, operation.from_account_id)
        target = _lookup(accounts, operation.to_account_id)
        currency = operation.currency or source.currency

        from_amount = _posted_amount(amount, currency, source, rates, plan.warnings)
        to_amount = _posted_amount(amount, currency, target, rates, plan.warnings)
        new_from, new_to = apply_transfer(
            source.account_class, source.balance,
            target.account_class, target.balance,
            from_amount, to_amount,
        )

        plan.updates.append(BalanceUpdate(source.id, source.balance, new_from))
        plan.updates.append(BalanceUpdate(target.id, target.balance, new_to))
        plan.record = {
            "kind": "transfer",
            "amount": amount,
            "currency": currency,
            "date": operation.date,
            "description": operation.description,
            "category": getattr(operation, "category", None),
            "from_account_id": source.id,
            "to_account_id": target.id,
            "applied_amount": from_amount,
            "applied_to_amount": to_amount,
        }
        return plan

    raise InvalidOperation(f"Unsupported transaction kind: {kind!r}")


def plan_delete(record, accounts: Mapping[int, AccountSnapshot]) -> MutationPlan:
    """
    Plan the exact reversal of a stored transaction.

    Uses the applied amounts on the record, so the balances come back to
    what they were before the transaction regardless of later rate changes.
    """
    plan = MutationPlan(delete_id=record.id)
    applied = Decimal(str(record.applied_amount))

    if record.kind in ("income", "expense"):
        account = _lookup(accounts, record.account_id)
        # Inverse of income is an outflow of the same size, and vice versa
        inflow = record.kind == "expense"
        new_balance = account.balance + balance_delta(account.account_class, inflow, applied)
        plan.updates.append(BalanceUpdate(account.id, account.balance, new_balance))
        return plan

    if record.kind == "transfer":
        source = _lookup(accounts, record.from_account_id)
        target = _lookup(accounts, record.to_account_id)
        applied_to = (
            Decimal(str(record.applied_to_amount))
            if record.applied_to_amount is not None else applied
        )
        plan.updates.append(BalanceUpdate(
            source.id, source.balance,
            source.balance + balance_delta(source.account_class, True, applied),
        ))
        plan.updates.append(BalanceUpdate(
            target.id, target.balance,
            target.balance + balance_delta(target.account_class, False, applied_to),
        ))
        return plan

    raise InvalidOperation(f"Unsupported transaction kind: {record.kind!r}")


def replay_balance(account: AccountSnapshot, opening_balance: Decimal, records: Iterable) -> Decimal:
    """Recompute an account balance from its opening balance and full history."""
    balance = Decimal(str(opening_balance))
    account_class = account.account_class

    for record in records:
        applied = Decimal(str(record.applied_amount))
        if record.kind in ("income", "expense"):
            if record.account_id == account.id:
                balance += balance_delta(account_class, record.kind == "income", applied)
        elif record.kind == "transfer":
            if record.from_account_id == account.id:
                balance += balance_delta(account_class, False, applied)
            if record.to_account_id == account.id:
                applied_to = (
                    Decimal(str(record.applied_to_amount))
                    if record.applied_to_amount is not None else applied
                )
                balance += balance_delta(account_class, True, applied_to)
    return balance
