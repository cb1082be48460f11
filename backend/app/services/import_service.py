"""
Import service for first-run setup and CSV uploads.

Supported inputs:
- Setup wizard payload (accounts with their transactions)
- Initialize payload (accounts plus manual exchange rates)
- accounts.csv:      name,type,balance,currency
- transactions.csv:  date,description,amount,currency,account_name

Every import is a single unit of work: either all accounts, rates and
transactions are stored, or none are.
"""
import csv
import io
from datetime import datetime, date
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple
import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..errors import ImportFormatError
from ..models.account import Account
from ..schemas.account import AccountCreate
from ..schemas.setup import (
    InitializeRequest,
    ParsedAccountRow,
    ParsedTransactionRow,
    SetupRequest,
    SetupResult,
)
from ..schemas.transaction import ExpenseOperation, IncomeOperation
from .account_service import AccountService
from .currency_service import CurrencyService
from .transaction_service import TransactionService

logger = logging.getLogger(__name__)


ACCOUNT_CSV_FIELDS = ["name", "type", "balance", "currency"]
TRANSACTION_CSV_FIELDS = ["date", "description", "amount", "currency", "account_name"]

DATE_FORMATS = ["%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d"]


class ImportService:
    """Service for bulk-creating accounts, rates and transactions."""

    @staticmethod
    def template_csv(fields: List[str]) -> str:
        """Header-only CSV offered as a download template."""
        return ",".join(fields)

    @staticmethod
    def decode_file_content(raw: bytes) -> str:
        """Decode an uploaded file as UTF-8, falling back to EUC-KR (common for Korean bank exports)."""
        try:
            return raw.decode('utf-8-sig')
        except UnicodeDecodeError:
            logger.info("Upload is not valid UTF-8, decoding as EUC-KR")
            try:
                return raw.decode('euc-kr')
            except UnicodeDecodeError:
                raise ImportFormatError("File encoding not supported. Please use UTF-8 or EUC-KR encoded CSV files.")

    @staticmethod
    def parse_date(value: str) -> date:
        value = value.strip()
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(value, fmt).date()
            except ValueError:
                continue
        raise ValueError(f"Unrecognized date {value!r}")

    @staticmethod
    def parse_amount(value: str) -> Decimal:
        cleaned = value.strip().replace(',', '').replace('¥', '').replace('₩', '').replace('$', '')
        try:
            amount = Decimal(cleaned)
        except InvalidOperation:
            raise ValueError(f"Invalid amount {value!r}")
        if not amount.is_finite():
            raise ValueError(f"Invalid amount {value!r}")
        return amount

    @staticmethod
    def _read_rows(content: str, required: List[str], label: str) -> List[Tuple[int, Dict[str, str]]]:
        reader = csv.DictReader(io.StringIO(content))
        headers = [h.strip() for h in (reader.fieldnames or [])]
        missing = [f for f in required if f not in headers]
        if missing:
            raise ImportFormatError(f"{label} CSV is missing columns: {', '.join(missing)}")

        rows = []
        # Row 1 is the header
        for row_num, row in enumerate(reader, start=2):
            # DictReader collects fields beyond the header under the None key
            if None in row:
                raise ImportFormatError(f"{label} CSV row {row_num}: too many columns")
            cleaned = {(k or '').strip(): (v or '').strip() for k, v in row.items()}
            if not any(cleaned.values()):
                continue
            rows.append((row_num, cleaned))
        return rows

    @classmethod
    def parse_accounts_csv(cls, content: str) -> List[ParsedAccountRow]:
        parsed = []
        for row_num, row in cls._read_rows(content, ACCOUNT_CSV_FIELDS, "Accounts"):
            try:
                parsed.append(ParsedAccountRow(
                    name=row['name'],
                    account_type=row['type'],
                    balance=cls.parse_amount(row['balance']) if row['balance'] else Decimal('0'),
                    currency=row['currency'].upper(),
                ))
            except (ValueError, ValidationError) as e:
                raise ImportFormatError(f"Accounts CSV row {row_num}: {e}")
        return parsed

    @classmethod
    def parse_transactions_csv(cls, content: str) -> List[ParsedTransactionRow]:
        parsed = []
        for row_num, row in cls._read_rows(content, TRANSACTION_CSV_FIELDS, "Transactions"):
            try:
                amount = cls.parse_amount(row['amount'])
                if amount == 0:
                    raise ValueError("Amount must not be zero")
                parsed.append(ParsedTransactionRow(
                    date=cls.parse_date(row['date']),
                    description=row['description'],
                    amount=amount,
                    currency=row['currency'].upper(),
                    account_name=row['account_name'],
                ))
            except (ValueError, ValidationError) as e:
                raise ImportFormatError(f"Transactions CSV row {row_num}: {e}")
        return parsed

    @classmethod
    def import_csv(
        cls,
        db: Session,
        user_id: str,
        accounts_content: Optional[str] = None,
        transactions_content: Optional[str] = None,
    ) -> SetupResult:
        """
        Create accounts from accounts.csv and post transactions.csv to them.

        Transactions are matched to accounts by name, first among the
        accounts created in this upload, otherwise among the user's existing
        accounts. Amounts are signed: positive is income, negative expense.
        """
        account_rows = cls.parse_accounts_csv(accounts_content) if accounts_content else []
        transaction_rows = cls.parse_transactions_csv(transactions_content) if transactions_content else []

        accounts_by_name: Dict[str, Account] = {}
        warnings: List[str] = []

        try:
            for row in account_rows:
                try:
                    data = AccountCreate(
                        name=row.name,
                        account_type=row.account_type,
                        balance=row.balance,
                        currency=row.currency,
                    )
                except ValidationError as e:
                    raise ImportFormatError(f"Account {row.name!r}: {e.errors()[0]['msg']}")
                account = AccountService.create_account(db, user_id, data)
                accounts_by_name[account.name] = account

            if transaction_rows and not accounts_by_name:
                for account in AccountService.list_accounts(db, user_id):
                    accounts_by_name[account.name] = account

            rates = CurrencyService.get_rates(db, user_id)
            for row in transaction_rows:
                account = accounts_by_name.get(row.account_name)
                if account is None:
                    raise ImportFormatError(f"Account with name {row.account_name!r} not found for one of the transactions")

                operation_cls = IncomeOperation if row.kind == "income" else ExpenseOperation
                try:
                    operation = operation_cls(
                        account_id=account.id,
                        amount=abs(row.amount),
                        currency=row.currency or account.currency,
                        date=row.date,
                        description=row.description,
                    )
                except ValidationError as e:
                    raise ImportFormatError(f"Transaction on {row.date} for {row.account_name!r}: {e.errors()[0]['msg']}")
                _, plan = TransactionService.post_operation(db, user_id, operation, rates)
                warnings.extend(plan.warnings)

            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"CSV import for user {user_id}: {len(account_rows)} accounts, "
            f"{len(transaction_rows)} transactions"
        )
        return SetupResult(
            success=True,
            accounts_created=len(account_rows),
            transactions_imported=len(transaction_rows),
            warnings=warnings,
        )

    @classmethod
    def run_setup(cls, db: Session, user_id: str, request: SetupRequest) -> SetupResult:
        """Create every account from the setup wizard and post its transactions."""
        imported = 0
        warnings: List[str] = []

        try:
            rates = CurrencyService.get_rates(db, user_id)
            for setup_account in request.accounts:
                account = AccountService.create_account(
                    db, user_id,
                    AccountCreate.model_validate(setup_account.model_dump(exclude={"transactions"}))
                )
                for txn in setup_account.transactions:
                    operation_cls = IncomeOperation if txn.type == "income" else ExpenseOperation
                    operation = operation_cls(
                        account_id=account.id,
                        amount=txn.amount,
                        currency=account.currency,
                        date=txn.date,
                        description=txn.description,
                    )
                    _, plan = TransactionService.post_operation(db, user_id, operation, rates)
                    warnings.extend(plan.warnings)
                    imported += 1
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Setup completed for user {user_id}: {len(request.accounts)} accounts, {imported} transactions")
        return SetupResult(
            success=True,
            accounts_created=len(request.accounts),
            transactions_imported=imported,
            warnings=warnings,
        )

    @classmethod
    def initialize(cls, db: Session, user_id: str, request: InitializeRequest) -> SetupResult:
        """Create starting accounts and upsert manual exchange rates."""
        try:
            for data in request.accounts:
                AccountService.create_account(db, user_id, data)
            for rate in request.exchange_rates:
                CurrencyService.save_rate(
                    db, user_id,
                    rate.from_currency, rate.to_currency, rate.rate,
                    source=rate.source,
                )
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Initialized user {user_id}: {len(request.accounts)} accounts, "
            f"{len(request.exchange_rates)} exchange rates"
        )
        return SetupResult(
            success=True,
            accounts_created=len(request.accounts),
            transactions_imported=0,
            exchange_rates_saved=len(request.exchange_rates),
        )
