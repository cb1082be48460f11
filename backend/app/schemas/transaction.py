from pydantic import BaseModel, Field, ConfigDict, TypeAdapter
from typing import Annotated, Optional, Literal, Union, List
from datetime import date as date_type, datetime
from decimal import Decimal
from .common import CurrencyCode


class OperationBase(BaseModel):
    """Fields shared by every operation. `amount` is always a positive magnitude."""
    amount: Decimal = Field(..., gt=0, decimal_places=4)
    currency: Optional[CurrencyCode] = Field(None, description="Defaults to the account currency")
    date: date_type
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[str] = Field(None, max_length=30)


class IncomeOperation(OperationBase):
    kind: Literal["income"] = "income"
    account_id: int


class ExpenseOperation(OperationBase):
    kind: Literal["expense"] = "expense"
    account_id: int


class TransferOperation(OperationBase):
    kind: Literal["transfer"] = "transfer"
    from_account_id: int
    to_account_id: int


OperationVariant = Union[IncomeOperation, ExpenseOperation, TransferOperation]

Operation = Annotated[OperationVariant, Field(discriminator="kind")]


def parse_operation(data: dict) -> OperationVariant:
    """Validate a raw payload into the matching operation variant."""
    return TypeAdapter(Operation).validate_python(data)


class TransactionResponse(BaseModel):
    id: int
    kind: str
    amount: Decimal
    currency: str
    date: date_type
    description: Optional[str] = None
    category: Optional[str] = None
    account_id: Optional[int] = None
    from_account_id: Optional[int] = None
    to_account_id: Optional[int] = None
    applied_amount: Decimal
    applied_to_amount: Optional[Decimal] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BalanceChange(BaseModel):
    account_id: int
    previous_balance: Decimal
    balance: Decimal


class TransactionResult(BaseModel):
    """Outcome of a create or delete: the record plus every balance it moved."""
    transaction: TransactionResponse
    balances: List[BalanceChange]
    warnings: List[str] = []
