"""Unit tests for CSV parsing and setup imports."""

from datetime import date
from decimal import Decimal

import pytest

from app.errors import ImportFormatError, InvalidOperation
from app.models.account import Account
from app.models.exchange_rate import ExchangeRate
from app.models.transaction import Transaction
from app.schemas.setup import InitializeRequest, SetupRequest
from app.services.import_service import ImportService

ACCOUNTS_CSV = """name,type,balance,currency
Main Bank,checking,"100,000",JPY
Visa,credit_card,0,JPY
"""

TRANSACTIONS_CSV = """date,description,amount,currency,account_name
2024-04-01,Salary,250000,JPY,Main Bank
2024/04/02,Lunch,-1200,JPY,Main Bank
2024.04.03,Books,-3000,JPY,Visa
"""


class TestParsing:
    """Test low-level CSV helpers."""

    @pytest.mark.parametrize("text", ["2024-04-01", "2024/04/01", "2024.04.01"])
    def test_parse_date_formats(self, text):
        assert ImportService.parse_date(text) == date(2024, 4, 1)

    def test_parse_date_invalid(self):
        with pytest.raises(ValueError):
            ImportService.parse_date("April 1st")

    def test_parse_amount_strips_symbols(self):
        assert ImportService.parse_amount("¥1,234") == Decimal("1234")
        assert ImportService.parse_amount("-₩5,000") == Decimal("-5000")

    def test_parse_amount_invalid(self):
        with pytest.raises(ValueError):
            ImportService.parse_amount("abc")

    def test_decode_utf8_with_bom(self):
        assert ImportService.decode_file_content("\ufeffname".encode("utf-8")) == "name"

    def test_decode_euc_kr(self):
        raw = "이름,금액".encode("euc-kr")
        assert ImportService.decode_file_content(raw) == "이름,금액"

    def test_template(self):
        assert ImportService.template_csv(["a", "b"]) == "a,b"

    def test_parse_accounts_csv(self):
        rows = ImportService.parse_accounts_csv(ACCOUNTS_CSV)
        assert [r.name for r in rows] == ["Main Bank", "Visa"]
        assert rows[0].balance == Decimal("100000")
        assert rows[1].account_type == "credit_card"

    def test_parse_transactions_csv(self):
        rows = ImportService.parse_transactions_csv(TRANSACTIONS_CSV)
        assert [r.kind for r in rows] == ["income", "expense", "expense"]
        assert rows[1].date == date(2024, 4, 2)

    def test_missing_columns(self):
        with pytest.raises(ImportFormatError, match="missing columns"):
            ImportService.parse_accounts_csv("name,balance\nA,1\n")

    def test_zero_amount_row_rejected(self):
        with pytest.raises(ImportFormatError, match="row 2"):
            ImportService.parse_transactions_csv(
                "date,description,amount,currency,account_name\n2024-04-01,x,0,JPY,A\n"
            )

    def test_blank_rows_are_skipped(self):
        rows = ImportService.parse_accounts_csv("name,type,balance,currency\n,,,\nA,cash,5,JPY\n")
        assert len(rows) == 1

    def test_unquoted_comma_row_rejected(self):
        """Test a row with more fields than the header is a format error."""
        with pytest.raises(ImportFormatError, match="row 3: too many columns"):
            ImportService.parse_transactions_csv(
                "date,description,amount,currency,account_name\n"
                "2024-04-01,Coffee,-300,JPY,Main\n"
                "2024-04-02,Lunch, cafe,-500,JPY,Main\n"
            )


class TestImportCsv:
    """Test the atomic CSV import."""

    def test_accounts_and_transactions(self, db, user):
        result = ImportService.import_csv(db, user.id, ACCOUNTS_CSV, TRANSACTIONS_CSV)

        assert result.accounts_created == 2
        assert result.transactions_imported == 3
        accounts = {a.name: a for a in db.query(Account).filter(Account.user_id == user.id)}
        assert accounts["Main Bank"].balance == Decimal("348800")
        assert accounts["Main Bank"].opening_balance == Decimal("100000")
        assert accounts["Visa"].balance == Decimal("3000")

    def test_transactions_match_existing_accounts(self, db, user):
        ImportService.import_csv(db, user.id, accounts_content=ACCOUNTS_CSV)
        result = ImportService.import_csv(db, user.id, transactions_content=TRANSACTIONS_CSV)
        assert result.accounts_created == 0
        assert result.transactions_imported == 3

    def test_unknown_account_rolls_back(self, db, user):
        """Test nothing is stored when a transaction names an unknown account."""
        bad = TRANSACTIONS_CSV + "2024-04-04,Taxi,-900,JPY,Nowhere\n"
        with pytest.raises(ImportFormatError, match="Nowhere"):
            ImportService.import_csv(db, user.id, ACCOUNTS_CSV, bad)

        assert db.query(Account).count() == 0
        assert db.query(Transaction).count() == 0

    def test_invalid_account_type(self, db, user):
        with pytest.raises(ImportFormatError):
            ImportService.import_csv(db, user.id, "name,type,balance,currency\nX,bitcoin,0,JPY\n")


class TestSetup:
    """Test the setup wizard and initialize payloads."""

    def test_run_setup_posts_transactions(self, db, user):
        request = SetupRequest.model_validate({
            "accounts": [{
                "name": "Wallet",
                "account_type": "cash",
                "balance": "10000",
                "currency": "JPY",
                "transactions": [
                    {"description": "Gift", "amount": "5000", "date": "2024-04-01", "type": "income"},
                    {"description": "Coffee", "amount": "400", "date": "2024-04-02", "type": "expense"},
                ],
            }]
        })
        result = ImportService.run_setup(db, user.id, request)

        assert result.accounts_created == 1
        assert result.transactions_imported == 2
        wallet = db.query(Account).filter(Account.name == "Wallet").one()
        assert wallet.balance == Decimal("14600")
        assert wallet.opening_balance == Decimal("10000")

    def test_duplicate_account_name_rolls_back(self, db, user):
        request = SetupRequest.model_validate({
            "accounts": [
                {"name": "Dup", "account_type": "cash", "balance": "1", "currency": "JPY"},
                {"name": "Dup", "account_type": "savings", "balance": "2", "currency": "JPY"},
            ]
        })
        with pytest.raises(InvalidOperation):
            ImportService.run_setup(db, user.id, request)
        assert db.query(Account).count() == 0

    def test_initialize_upserts_rates(self, db, user):
        request = InitializeRequest.model_validate({
            "accounts": [{"name": "Bank", "account_type": "checking", "currency": "JPY"}],
            "exchange_rates": [
                {"from_currency": "USD", "to_currency": "JPY", "rate": "150"},
                {"from_currency": "USD", "to_currency": "JPY", "rate": "151"},
            ],
        })
        result = ImportService.initialize(db, user.id, request)

        assert result.accounts_created == 1
        rates = db.query(ExchangeRate).filter(ExchangeRate.user_id == user.id).all()
        assert len(rates) == 1
        assert rates[0].rate == Decimal("151")
