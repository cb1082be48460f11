"""Integration tests for exchange rate endpoints."""

from decimal import Decimal

API = "/api/v1/exchange-rates"


def save_rate(client, headers, from_currency, to_currency, rate):
    response = client.post(
        f"{API}/",
        json={"from_currency": from_currency, "to_currency": to_currency, "rate": rate},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestExchangeRates:
    """Test the per-user rate table."""

    def test_upsert_keeps_one_row_per_pair(self, client, auth_headers):
        first = save_rate(client, auth_headers, "USD", "JPY", "150")
        second = save_rate(client, auth_headers, "USD", "JPY", "155.5")
        assert first["id"] == second["id"]

        rates = client.get(f"{API}/", headers=auth_headers).json()
        assert len(rates) == 1
        assert Decimal(rates[0]["rate"]) == Decimal("155.5")

    def test_same_pair_rejected(self, client, auth_headers):
        response = client.post(
            f"{API}/",
            json={"from_currency": "JPY", "to_currency": "JPY", "rate": 1},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_non_positive_rate_rejected(self, client, auth_headers):
        response = client.post(
            f"{API}/",
            json={"from_currency": "USD", "to_currency": "JPY", "rate": 0},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_other_users_rate_is_forbidden(self, client, auth_headers, other_headers):
        rate = save_rate(client, auth_headers, "USD", "JPY", "150")

        response = client.put(f"{API}/{rate['id']}", json={"rate": "1"}, headers=other_headers)
        assert response.status_code == 403
        response = client.delete(f"{API}/{rate['id']}", headers=other_headers)
        assert response.status_code == 403
        assert client.get(f"{API}/", headers=other_headers).json() == []

    def test_update_and_delete(self, client, auth_headers):
        rate = save_rate(client, auth_headers, "KRW", "JPY", "0.1")

        response = client.put(f"{API}/{rate['id']}", json={"rate": "0.11"}, headers=auth_headers)
        assert response.status_code == 200
        assert Decimal(response.json()["rate"]) == Decimal("0.11")

        assert client.delete(f"{API}/{rate['id']}", headers=auth_headers).status_code == 200
        assert client.delete(f"{API}/{rate['id']}", headers=auth_headers).status_code == 404

    def test_defaults(self, client):
        data = client.get(f"{API}/defaults").json()
        pairs = {(r["from_currency"], r["to_currency"]) for r in data["exchange_rates"]}
        assert ("USD", "JPY") in pairs


class TestConvert:
    """Test the conversion endpoint."""

    def test_inverse_rate(self, client, auth_headers):
        save_rate(client, auth_headers, "USD", "JPY", "150")
        response = client.post(
            f"{API}/convert",
            json={"amount": "3000", "from_currency": "JPY", "to_currency": "USD"},
            headers=auth_headers,
        )
        data = response.json()
        assert data["rate_found"] is True
        assert Decimal(data["converted_amount"]) == Decimal("20")

    def test_missing_rate_is_identity(self, client, auth_headers):
        response = client.post(
            f"{API}/convert",
            json={"amount": "42", "from_currency": "EUR", "to_currency": "GBP"},
            headers=auth_headers,
        )
        data = response.json()
        assert data["rate_found"] is False
        assert data["rate"] is None
        assert Decimal(data["converted_amount"]) == Decimal("42")
