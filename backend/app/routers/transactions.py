from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Annotated, List, Optional, Literal
from datetime import date
from ..auth import get_current_user
from ..database import get_db
from ..models.user import User
from ..schemas.transaction import OperationVariant, TransactionResponse, TransactionResult
from ..services.transaction_service import TransactionService

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("/", response_model=List[TransactionResponse])
def get_transactions(
    account_id: Optional[int] = Query(None, description="Only transactions touching this account"),
    kind: Optional[Literal["income", "expense", "transfer"]] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    skip: int = 0,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """List the current user's transactions, newest first"""
    return TransactionService.list_transactions(
        db, user.id,
        account_id=account_id,
        kind=kind,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@router.post("/", response_model=TransactionResult, status_code=status.HTTP_201_CREATED)
def create_transaction(
    operation: Annotated[OperationVariant, Body(discriminator="kind")],
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """
    Record an income, expense or transfer.

    The body is tagged by `kind`:
    - income / expense: `account_id`
    - transfer: `from_account_id` and `to_account_id`

    `amount` is always a positive magnitude; the account balances are
    updated in the same commit as the record.
    """
    return TransactionService.create_transaction(db, user.id, operation)


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Get a single transaction by ID"""
    return TransactionService.get_transaction(db, user.id, transaction_id)


@router.delete("/{transaction_id}", response_model=TransactionResult)
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Delete a transaction and reverse its effect on every account it touched"""
    return TransactionService.delete_transaction(db, user.id, transaction_id)
