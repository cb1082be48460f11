"""Integration tests for setup and CSV upload."""

from decimal import Decimal

API = "/api/v1"

ACCOUNTS_CSV = "name,type,balance,currency\n우리은행,checking,500000,KRW\nCard,credit_card,0,KRW\n"
TRANSACTIONS_CSV = (
    "date,description,amount,currency,account_name\n"
    "2024-04-01,월급,3000000,KRW,우리은행\n"
    "2024-04-02,점심,-12000,KRW,Card\n"
)


def accounts_by_name(client, headers):
    return {a["name"]: a for a in client.get(f"{API}/accounts/", headers=headers).json()}


class TestSetupWizard:
    """Test the JSON setup endpoints."""

    def test_setup_creates_accounts_and_posts_transactions(self, client, auth_headers):
        response = client.post(
            f"{API}/setup/",
            json={"accounts": [{
                "name": "Main",
                "account_type": "checking",
                "balance": "10000",
                "currency": "JPY",
                "transactions": [{"description": "Pay", "amount": "5000", "date": "2024-04-01", "type": "income"}],
            }]},
            headers=auth_headers,
        )
        assert response.status_code == 201, response.text
        assert response.json()["transactions_imported"] == 1

        main = accounts_by_name(client, auth_headers)["Main"]
        assert Decimal(main["balance"]) == Decimal("15000")
        assert Decimal(main["opening_balance"]) == Decimal("10000")

    def test_initialize_with_rates(self, client, auth_headers):
        response = client.post(
            f"{API}/setup/initialize",
            json={
                "accounts": [{"name": "Bank", "account_type": "savings", "balance": "1", "currency": "JPY"}],
                "exchange_rates": [{"from_currency": "USD", "to_currency": "JPY", "rate": "150"}],
            },
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["exchange_rates_saved"] == 1
        assert len(client.get(f"{API}/exchange-rates/", headers=auth_headers).json()) == 1


class TestCsvUpload:
    """Test multipart CSV upload."""

    def test_upload_euc_kr_files(self, client, auth_headers):
        files = {
            "accounts": ("accounts.csv", ACCOUNTS_CSV.encode("euc-kr"), "text/csv"),
            "transactions": ("transactions.csv", TRANSACTIONS_CSV.encode("euc-kr"), "text/csv"),
        }
        response = client.post(f"{API}/setup/upload", files=files, headers=auth_headers)
        assert response.status_code == 200, response.text
        assert response.json()["accounts_created"] == 2
        assert response.json()["transactions_imported"] == 2

        accounts = accounts_by_name(client, auth_headers)
        assert Decimal(accounts["우리은행"]["balance"]) == Decimal("3500000")
        assert Decimal(accounts["Card"]["balance"]) == Decimal("12000")

    def test_unknown_account_name_stores_nothing(self, client, auth_headers):
        bad = TRANSACTIONS_CSV + "2024-04-03,Taxi,-900,KRW,Missing\n"
        files = {
            "accounts": ("accounts.csv", ACCOUNTS_CSV.encode("utf-8"), "text/csv"),
            "transactions": ("transactions.csv", bad.encode("utf-8"), "text/csv"),
        }
        response = client.post(f"{API}/setup/upload", files=files, headers=auth_headers)
        assert response.status_code == 400
        assert "Missing" in response.json()["detail"]
        assert client.get(f"{API}/accounts/", headers=auth_headers).json() == []
        assert client.get(f"{API}/transactions/", headers=auth_headers).json() == []

    def test_extra_column_row_rejected(self, client, auth_headers):
        bad = "date,description,amount,currency,account_name\n2024-04-01,Lunch, cafe,-500,JPY,Main\n"
        files = {"transactions": ("transactions.csv", bad.encode("utf-8"), "text/csv")}
        response = client.post(f"{API}/setup/upload", files=files, headers=auth_headers)
        assert response.status_code == 400
        assert "too many columns" in response.json()["detail"]
        assert client.get(f"{API}/transactions/", headers=auth_headers).json() == []

    def test_non_csv_rejected(self, client, auth_headers):
        files = {"accounts": ("accounts.xlsx", b"name", "application/octet-stream")}
        response = client.post(f"{API}/setup/upload", files=files, headers=auth_headers)
        assert response.status_code == 400

    def test_no_files(self, client, auth_headers):
        response = client.post(f"{API}/setup/upload", headers=auth_headers)
        assert response.status_code == 400

    def test_templates(self, client):
        response = client.get(f"{API}/setup/template/accounts")
        assert response.status_code == 200
        assert response.text == "name,type,balance,currency"
        assert "attachment" in response.headers["content-disposition"]

        response = client.get(f"{API}/setup/template/transactions")
        assert response.text == "date,description,amount,currency,account_name"
