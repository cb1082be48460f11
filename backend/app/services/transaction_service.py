"""
Transaction Service

Runs Balance Mutation Engine plans against the database. Each public call
is one unit of work: every balance update and the record insert/delete are
flushed together and committed once, or rolled back together.
"""
from sqlalchemy import or_
from sqlalchemy.orm import Session
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
import logging

from ..errors import NotFound
from ..models.account import Account
from ..models.holding import Holding
from ..models.transaction import Transaction
from ..schemas.transaction import BalanceChange, TransactionResponse, TransactionResult
from .account_service import AccountService
from .balance_engine import AccountSnapshot, MutationPlan, plan_create, plan_delete, replay_balance
from .currency_service import CurrencyService

logger = logging.getLogger(__name__)


class TransactionService:
    """Unit-of-work wrapper around the balance engine"""

    @staticmethod
    def load_accounts(db: Session, user_id: str, account_ids: Iterable[int]) -> Dict[int, Account]:
        """
        Load the user's accounts for the given ids, locking the rows.

        Accounts owned by other users are simply absent from the result, so
        the engine reports them as NotFound.
        """
        ids = sorted({i for i in account_ids if i is not None})
        if not ids:
            return {}
        rows = db.query(Account).filter(
            Account.id.in_(ids),
            Account.user_id == user_id
        ).with_for_update().all()
        return {row.id: row for row in rows}

    @staticmethod
    def _apply(db: Session, rows: Dict[int, Account], plan: MutationPlan) -> None:
        for update in plan.updates:
            rows[update.account_id].balance = update.balance

    @staticmethod
    def _balance_changes(plan: MutationPlan) -> List[BalanceChange]:
        return [
            BalanceChange(
                account_id=u.account_id,
                previous_balance=u.previous_balance,
                balance=u.balance
            )
            for u in plan.updates
        ]

    @classmethod
    def post_operation(cls, db: Session, user_id: str, operation, rates: Optional[List] = None):
        """
        Apply one operation inside the caller's unit of work.

        Flushes the balance updates and the new record but does not commit,
        so several operations can share one commit (setup, CSV import).
        Returns (transaction, plan).
        """
        if operation.kind == "transfer":
            ids = [operation.from_account_id, operation.to_account_id]
        else:
            ids = [getattr(operation, "account_id", None)]

        rows = cls.load_accounts(db, user_id, ids)
        snapshots = {i: AccountSnapshot.from_account(row) for i, row in rows.items()}
        if rates is None:
            rates = CurrencyService.get_rates(db, user_id)

        plan = plan_create(operation, snapshots, rates)

        cls._apply(db, rows, plan)
        db_txn = Transaction(user_id=user_id, **plan.record)
        db.add(db_txn)
        db.flush()
        return db_txn, plan

    @classmethod
    def create_transaction(cls, db: Session, user_id: str, operation) -> TransactionResult:
        """Record an income, expense or transfer and post it to the balances."""
        try:
            db_txn, plan = cls.post_operation(db, user_id, operation)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(db_txn)
        logger.info(
            f"Created {db_txn.kind} transaction {db_txn.id} for user {user_id}: "
            f"{db_txn.amount} {db_txn.currency}"
        )
        return TransactionResult(
            transaction=TransactionResponse.model_validate(db_txn),
            balances=cls._balance_changes(plan),
            warnings=plan.warnings,
        )

    @staticmethod
    def get_transaction(db: Session, user_id: str, transaction_id: int) -> Transaction:
        db_txn = db.query(Transaction).filter(
            Transaction.id == transaction_id,
            Transaction.user_id == user_id
        ).first()
        if not db_txn:
            raise NotFound(f"Transaction with id {transaction_id} not found")
        return db_txn

    @classmethod
    def delete_transaction(cls, db: Session, user_id: str, transaction_id: int) -> TransactionResult:
        """Reverse a transaction's balance effect and remove the record."""
        try:
            db_txn = cls.get_transaction(db, user_id, transaction_id)
            rows = cls.load_accounts(
                db, user_id,
                [db_txn.account_id, db_txn.from_account_id, db_txn.to_account_id]
            )
            snapshots = {i: AccountSnapshot.from_account(row) for i, row in rows.items()}

            plan = plan_delete(db_txn, snapshots)
            deleted = TransactionResponse.model_validate(db_txn)

            cls._apply(db, rows, plan)
            db.delete(db_txn)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Deleted {deleted.kind} transaction {deleted.id} for user {user_id}")
        return TransactionResult(
            transaction=deleted,
            balances=cls._balance_changes(plan),
        )

    @staticmethod
    def list_transactions(
        db: Session,
        user_id: str,
        account_id: Optional[int] = None,
        kind: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Transaction]:
        query = db.query(Transaction).filter(Transaction.user_id == user_id)

        if account_id is not None:
            query = query.filter(or_(
                Transaction.account_id == account_id,
                Transaction.from_account_id == account_id,
                Transaction.to_account_id == account_id,
            ))
        if kind:
            query = query.filter(Transaction.kind == kind)
        if start_date:
            query = query.filter(Transaction.date >= start_date)
        if end_date:
            query = query.filter(Transaction.date <= end_date)

        return query.order_by(
            Transaction.date.desc(), Transaction.id.desc()
        ).offset(skip).limit(limit).all()

    @classmethod
    def reconcile_account(cls, db: Session, user_id: str, account_id: int) -> Dict:
        """Replay the account history and compare with the stored balance."""
        account = AccountService.get_account(db, user_id, account_id)
        records = db.query(Transaction).filter(
            Transaction.user_id == user_id,
            or_(
                Transaction.account_id == account_id,
                Transaction.from_account_id == account_id,
                Transaction.to_account_id == account_id,
            )
        ).order_by(Transaction.date, Transaction.id).all()

        snapshot = AccountSnapshot.from_account(account)
        expected = replay_balance(snapshot, Decimal(str(account.opening_balance)), records)
        difference = snapshot.balance - expected

        if difference != 0:
            logger.warning(f"Account {account_id} balance drift: stored {snapshot.balance}, expected {expected}")

        return {
            "account_id": account.id,
            "opening_balance": Decimal(str(account.opening_balance)),
            "stored_balance": snapshot.balance,
            "expected_balance": expected,
            "difference": difference,
            "transaction_count": len(records),
            "consistent": difference == 0,
        }

    @classmethod
    def delete_account(cls, db: Session, user_id: str, account_id: int) -> Dict:
        """
        Delete an account with its transactions and holdings.

        Transfers to or from other accounts are reversed on the surviving
        side first, so their balances stay consistent with their history.
        """
        try:
            account = AccountService.get_account(db, user_id, account_id)

            transfers = db.query(Transaction).filter(
                Transaction.user_id == user_id,
                Transaction.kind == "transfer",
                or_(
                    Transaction.from_account_id == account_id,
                    Transaction.to_account_id == account_id,
                )
            ).all()

            counterpart_ids = {
                t.to_account_id if t.from_account_id == account_id else t.from_account_id
                for t in transfers
            }
            rows = cls.load_accounts(db, user_id, counterpart_ids | {account_id})

            for transfer in transfers:
                snapshots = {i: AccountSnapshot.from_account(row) for i, row in rows.items()}
                plan = plan_delete(transfer, snapshots)
                for update in plan.updates:
                    if update.account_id != account_id:
                        rows[update.account_id].balance = update.balance
                db.delete(transfer)
            db.flush()

            simple_deleted = db.query(Transaction).filter(
                Transaction.account_id == account_id
            ).delete(synchronize_session=False)
            holdings_deleted = db.query(Holding).filter(
                Holding.account_id == account_id
            ).delete(synchronize_session=False)

            db.delete(account)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Deleted account {account_id}: {simple_deleted} transactions, "
            f"{len(transfers)} transfers, {holdings_deleted} holdings"
        )
        return {
            "account_id": account_id,
            "transactions_deleted": simple_deleted,
            "transfers_reversed": len(transfers),
            "holdings_deleted": holdings_deleted,
        }
