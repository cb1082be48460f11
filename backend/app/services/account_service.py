from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..errors import InvalidOperation, NotFound
from ..models.account import Account
from ..schemas.account import AccountCreate

logger = logging.getLogger(__name__)


class AccountService:
    """Account lookups scoped to the authenticated user"""

    @staticmethod
    def get_account(db: Session, user_id: str, account_id: int) -> Account:
        account = db.query(Account).filter(
            Account.id == account_id,
            Account.user_id == user_id
        ).first()
        if not account:
            raise NotFound(f"Account with id {account_id} not found")
        return account

    @staticmethod
    def list_accounts(db: Session, user_id: str, account_type: Optional[str] = None) -> List[Account]:
        query = db.query(Account).filter(Account.user_id == user_id)
        if account_type:
            query = query.filter(Account.account_type == account_type)
        return query.order_by(Account.name).all()

    @staticmethod
    def create_account(db: Session, user_id: str, data: AccountCreate) -> Account:
        """Add a new account; flushes only, the caller commits."""
        existing = db.query(Account).filter(
            Account.user_id == user_id,
            Account.name == data.name
        ).first()
        if existing:
            raise InvalidOperation(f"Account named {data.name!r} already exists")

        account = Account(
            user_id=user_id,
            name=data.name,
            account_type=data.account_type,
            currency=data.currency,
            balance=data.balance,
            opening_balance=data.balance,
        )
        db.add(account)
        db.flush()
        logger.info(f"Created {data.account_type} account {account.id} ({data.name}) for user {user_id}")
        return account

    @classmethod
    def rename_account(cls, db: Session, user_id: str, account_id: int, name: str) -> Account:
        """Change an account's name; flushes only, the caller commits."""
        account = cls.get_account(db, user_id, account_id)
        if name == account.name:
            return account

        clash = db.query(Account).filter(
            Account.user_id == user_id,
            Account.name == name,
            Account.id != account_id
        ).first()
        if clash:
            raise InvalidOperation(f"Account named {name!r} already exists")

        account.name = name
        db.flush()
        logger.info(f"Renamed account {account_id} to {name!r} for user {user_id}")
        return account
