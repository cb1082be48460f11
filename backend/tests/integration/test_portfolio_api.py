"""Integration tests for holdings, goals and analytics."""

from datetime import datetime
from decimal import Decimal

from app.services.price_service import PriceService

API = "/api/v1"


def add_holding(client, headers, account_id, symbol, shares, cost_basis, **extra):
    payload = {"account_id": account_id, "symbol": symbol, "shares": shares, "cost_basis": cost_basis}
    payload.update(extra)
    response = client.post(f"{API}/holdings/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestHoldings:
    """Test holding endpoints and the portfolio summary."""

    def test_empty_summary(self, client, auth_headers):
        data = client.get(f"{API}/holdings/summary", headers=auth_headers).json()
        assert Decimal(data["total_value"]) == 0
        assert Decimal(data["gain_loss_percentage"]) == 0
        assert data["holdings_count"] == 0
        assert data["diversification"] == []

    def test_summary_with_values(self, client, auth_headers, create_account):
        account = create_account(name="NISA", account_type="nisa")
        add_holding(client, auth_headers, account["id"], "7203", "100", "2000",
                    current_price="2500", investment_type="nisa")
        add_holding(client, auth_headers, account["id"], "9984", "10", "8000")

        data = client.get(f"{API}/holdings/summary", headers=auth_headers).json()
        assert Decimal(data["total_value"]) == Decimal("330000")
        assert Decimal(data["total_cost"]) == Decimal("280000")
        assert Decimal(data["by_type"]["nisa"]["percentage"]) == Decimal("25")
        assert Decimal(data["nisa"]["remaining_limit"]) == Decimal("1000000")
        assert data["investment_type_stats"]["nisa"]["count"] == 1
        assert Decimal(data["investment_type_stats"]["nisa"]["total_value"]) == Decimal("250000")
        assert data["investment_type_stats"]["regular"]["count"] == 1
        assert data["stock_type_stats"]["japanese"]["count"] == 2
        assert Decimal(data["stock_type_stats"]["japanese"]["gain_loss"]) == Decimal("50000")

        holdings = client.get(f"{API}/holdings/", headers=auth_headers).json()
        by_symbol = {h["symbol"]: h for h in holdings}
        assert Decimal(by_symbol["7203"]["gain_loss"]) == Decimal("50000")
        assert Decimal(by_symbol["9984"]["gain_loss"]) == 0

    def test_duplicate_symbol_in_account(self, client, auth_headers, create_account):
        account = create_account(name="Broker", account_type="investment")
        add_holding(client, auth_headers, account["id"], "AAPL", "1", "150", stock_type="us")
        response = client.post(
            f"{API}/holdings/",
            json={"account_id": account["id"], "symbol": "AAPL", "shares": "1", "cost_basis": "150"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_holding_in_other_users_account(self, client, other_headers, create_account):
        account = create_account(name="Broker", account_type="investment")
        response = client.post(
            f"{API}/holdings/",
            json={"account_id": account["id"], "symbol": "AAPL", "shares": "1", "cost_basis": "150"},
            headers=other_headers,
        )
        assert response.status_code == 404

    def test_refresh_prices(self, client, auth_headers, create_account, monkeypatch):
        account = create_account(name="Broker", account_type="investment")
        holding = add_holding(client, auth_headers, account["id"], "7203", "10", "2000")
        add_holding(client, auth_headers, account["id"], "AAPL", "1", "150", stock_type="us")

        requested = []

        def fake_bulk(symbols):
            requested.extend(symbols)
            return {("7203", "japanese"): Decimal("2600"), ("AAPL", "us"): None}

        monkeypatch.setattr(PriceService, "get_prices_bulk", staticmethod(fake_bulk))

        response = client.post(f"{API}/holdings/prices/refresh", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["updated"] == 1
        assert data["missing"] == ["AAPL"]
        assert Decimal(data["prices"]["7203.T"]) == Decimal("2600")
        assert data["prices"]["AAPL"] is None
        assert ("7203", "japanese") in requested

        stored = client.get(f"{API}/holdings/{holding['id']}", headers=auth_headers).json()
        assert Decimal(stored["current_price"]) == Decimal("2600")
        assert stored["price_updated_at"] is not None

    def test_refresh_prices_same_symbol_different_markets(self, client, auth_headers, create_account, monkeypatch):
        """Test a code listed in two markets gets each market's own price."""
        tokyo = create_account(name="Tokyo Broker", account_type="investment")
        overseas = create_account(name="Overseas Broker", account_type="investment")
        japanese = add_holding(client, auth_headers, tokyo["id"], "7203", "10", "2000")
        us = add_holding(client, auth_headers, overseas["id"], "7203", "10", "15", stock_type="us")

        def fake_bulk(symbols):
            return {("7203", "japanese"): Decimal("2600"), ("7203", "us"): Decimal("17.5")}

        monkeypatch.setattr(PriceService, "get_prices_bulk", staticmethod(fake_bulk))

        data = client.post(f"{API}/holdings/prices/refresh", headers=auth_headers).json()
        assert data["updated"] == 2
        assert data["missing"] == []
        assert Decimal(data["prices"]["7203.T"]) == Decimal("2600")
        assert Decimal(data["prices"]["7203"]) == Decimal("17.5")

        stored_japanese = client.get(f"{API}/holdings/{japanese['id']}", headers=auth_headers).json()
        stored_us = client.get(f"{API}/holdings/{us['id']}", headers=auth_headers).json()
        assert Decimal(stored_japanese["current_price"]) == Decimal("2600")
        assert Decimal(stored_us["current_price"]) == Decimal("17.5")

    def test_bulk_prices_keyed_by_market(self):
        now = datetime.now()
        PriceService._price_cache["7203:japanese"] = {"price": Decimal("2600"), "timestamp": now}
        PriceService._price_cache["7203:us"] = {"price": Decimal("17.5"), "timestamp": now}

        prices = PriceService.get_prices_bulk([("7203", "japanese"), ("7203", "us")])
        assert prices == {("7203", "japanese"): Decimal("2600"), ("7203", "us"): Decimal("17.5")}

    def test_yfinance_symbol(self):
        assert PriceService.get_yfinance_symbol("7203", "japanese") == "7203.T"
        assert PriceService.get_yfinance_symbol("7203.T", "japanese") == "7203.T"
        assert PriceService.get_yfinance_symbol("AAPL", "us") == "AAPL"

    def test_update_and_delete(self, client, auth_headers, create_account):
        account = create_account(name="Broker", account_type="investment")
        holding = add_holding(client, auth_headers, account["id"], "7203", "10", "2000")

        response = client.put(f"{API}/holdings/{holding['id']}", json={"shares": "20"}, headers=auth_headers)
        assert Decimal(response.json()["shares"]) == Decimal("20")

        assert client.delete(f"{API}/holdings/{holding['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"{API}/holdings/{holding['id']}", headers=auth_headers).status_code == 404


class TestGoals:
    """Test goal endpoints."""

    def test_progress(self, client, auth_headers):
        response = client.post(
            f"{API}/goals/",
            json={"name": "Trip", "target_amount": "400000", "current_amount": "100000"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        goal = response.json()
        assert Decimal(goal["progress"]) == Decimal("25")

        response = client.put(f"{API}/goals/{goal['id']}", json={"current_amount": "200000"}, headers=auth_headers)
        assert Decimal(response.json()["progress"]) == Decimal("50")

    def test_goals_are_private(self, client, auth_headers, other_headers):
        goal = client.post(
            f"{API}/goals/", json={"name": "Car", "target_amount": "1000"}, headers=auth_headers
        ).json()
        assert client.get(f"{API}/goals/{goal['id']}", headers=other_headers).status_code == 404


class TestAnalytics:
    """Test the overview and currency summary."""

    def test_overview_net_worth(self, client, auth_headers, create_account):
        checking = create_account(name="Checking", balance="100000")
        card = create_account(name="Visa", account_type="credit_card")
        create_account(name="Dollars", balance="100", currency="USD")
        client.post(
            f"{API}/exchange-rates/",
            json={"from_currency": "USD", "to_currency": "JPY", "rate": "150"},
            headers=auth_headers,
        )
        client.post(
            f"{API}/transactions/",
            json={"kind": "expense", "account_id": card["id"], "amount": 5000, "date": "2024-04-01"},
            headers=auth_headers,
        )
        client.post(
            f"{API}/transactions/",
            json={"kind": "expense", "account_id": checking["id"], "amount": 1000, "date": "2024-04-01"},
            headers=auth_headers,
        )

        data = client.get(f"{API}/analytics/overview", headers=auth_headers).json()
        assert data["base_currency"] == "JPY"
        assert Decimal(data["total_assets"]) == Decimal("114000")
        assert Decimal(data["total_liabilities"]) == Decimal("5000")
        assert Decimal(data["net_worth"]) == Decimal("109000")
        assert Decimal(data["daily_expenses"]["2024-04-01"]) == Decimal("6000")
        assert data["account_count"] == 3

    def test_currency_summary_reports_missing_rates(self, client, auth_headers, create_account):
        create_account(name="Yen", balance="1000")
        create_account(name="Euro", balance="10", currency="EUR")

        data = client.get(f"{API}/analytics/currency-summary", headers=auth_headers).json()
        assert data["missing_rates"] == ["EUR->JPY"]
        assert [c["currency"] for c in data["currencies"]] == ["EUR", "JPY"]
        assert [c["display"] for c in data["currencies"]] == ["€10", "¥1,000"]


class TestReference:
    """Test reference data endpoints."""

    def test_account_types(self, client):
        types = client.get(f"{API}/reference/account-types").json()["account_types"]
        classes = {t["code"]: t["account_class"] for t in types}
        assert classes["credit_card"] == "liability"
        assert classes["checking"] == "asset"

    def test_categories(self, client):
        categories = client.get(f"{API}/reference/categories").json()["categories"]
        assert {"code": "salary", "name": "Salary", "kind": "income"} in categories

    def test_health(self, client):
        assert client.get(f"{API}/health").json()["status"] == "healthy"
