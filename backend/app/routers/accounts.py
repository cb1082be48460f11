from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from ..auth import get_current_user
from ..database import get_db
from ..models.user import User
from ..schemas.account import AccountCreate, AccountUpdate, AccountResponse, ReconcileResponse
from ..schemas.transaction import TransactionResponse
from ..services.account_service import AccountService
from ..services.transaction_service import TransactionService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.get("/", response_model=List[AccountResponse])
def get_accounts(
    account_type: Optional[str] = Query(None, description="Filter by account type (checking, credit_card, ...)"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Get all accounts of the current user"""
    return AccountService.list_accounts(db, user.id, account_type)


@router.post("/", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    account: AccountCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Create a new account with its opening balance"""
    try:
        db_account = AccountService.create_account(db, user.id, account)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_account)
    return db_account


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Get a single account by ID"""
    return AccountService.get_account(db, user.id, account_id)


@router.put("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: int,
    account_update: AccountUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Rename an account. Type, currency and balance only change through transactions."""
    if account_update.name is None:
        return AccountService.get_account(db, user.id, account_id)

    try:
        db_account = AccountService.rename_account(db, user.id, account_id, account_update.name)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_account)
    return db_account


@router.delete("/{account_id}")
def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Delete an account together with its transactions and holdings"""
    result = TransactionService.delete_account(db, user.id, account_id)
    return {"message": "Account deleted successfully", **result}


@router.get("/{account_id}/transactions", response_model=List[TransactionResponse])
def get_account_transactions(
    account_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    skip: int = 0,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Transactions touching this account, newest first"""
    AccountService.get_account(db, user.id, account_id)
    return TransactionService.list_transactions(
        db, user.id,
        account_id=account_id,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        limit=limit,
    )


@router.get("/{account_id}/reconcile", response_model=ReconcileResponse)
def reconcile_account(
    account_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Compare the stored balance with the balance replayed from history"""
    return TransactionService.reconcile_account(db, user.id, account_id)
