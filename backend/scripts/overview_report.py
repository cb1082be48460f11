#!/usr/bin/env python3
"""
Finance Overview Report

Prints a plain-text summary of net worth, balances per currency, goals and
recent spending, fetched from the running API.

Usage:
    python overview_report.py --user USER_ID              # Print to stdout
    python overview_report.py --user USER_ID --json       # Output raw JSON
    python overview_report.py --user USER_ID --short      # One-liner
"""

import argparse
import json
import os
import sys
from datetime import datetime
from typing import Dict, Optional
import httpx

# Configuration
API_BASE_URL = os.getenv("KAKEIBO_API_URL", "http://localhost:8000/api/v1")
USER_HEADER = os.getenv("KAKEIBO_USER_HEADER", "X-User-Id")

CURRENCY_SYMBOLS = {"JPY": "¥", "KRW": "₩", "USD": "$", "CNY": "¥", "EUR": "€", "GBP": "£"}


def fetch_overview(base_url: str, user_id: str) -> Optional[Dict]:
    """Fetch the overview data from the API."""
    try:
        response = httpx.get(
            f"{base_url}/analytics/overview",
            headers={USER_HEADER: user_id},
            timeout=30.0,
        )
        response.raise_for_status()
        return response.json()
    except httpx.HTTPError as e:
        print(f"Error fetching overview: {e}", file=sys.stderr)
        return None


def format_currency(amount, currency: str = "JPY") -> str:
    """Format a number as currency."""
    amount = float(amount)
    symbol = CURRENCY_SYMBOLS.get(currency, currency + " ")
    decimals = 0 if currency in ("JPY", "KRW") else 2
    if amount >= 0:
        return f"{symbol}{amount:,.{decimals}f}"
    return f"-{symbol}{abs(amount):,.{decimals}f}"


def generate_report_text(data: Dict) -> str:
    """Generate the multi-line report."""
    base = data["base_currency"]
    date_str = datetime.now().strftime("%Y-%m-%d")

    lines = [
        f"Finance Overview ({date_str})",
        "",
        f"Net worth:    {format_currency(data['net_worth'], base)}",
        f"Assets:       {format_currency(data['total_assets'], base)}",
        f"Card debt:    {format_currency(data['total_liabilities'], base)}",
        f"Investments:  {format_currency(data['holdings_value'], base)}",
        "",
    ]

    currencies = data["currency_summary"]["currencies"]
    if currencies:
        lines.append("Balances by currency")
        for item in currencies:
            lines.append(
                f"  {item['currency']}: {format_currency(item['net'], item['currency'])} "
                f"({float(item['percentage']):.1f}%)"
            )
        lines.append("")

    missing = data["currency_summary"].get("missing_rates", [])
    if missing:
        lines.append(f"Missing exchange rates: {', '.join(missing)}")
        lines.append("")

    if data["goals"]:
        lines.append("Goals")
        for goal in data["goals"]:
            lines.append(f"  {goal['name']}: {float(goal['progress']):.2f}%")
        lines.append("")

    expenses = data.get("daily_expenses", {})
    if expenses:
        lines.append("Recent spending")
        for day in sorted(expenses)[-7:]:
            lines.append(f"  {day}: {format_currency(expenses[day], base)}")

    return "\n".join(lines).rstrip()


def generate_short_report(data: Dict) -> str:
    """Generate a one-line summary."""
    base = data["base_currency"]
    parts = [f"Net worth {format_currency(data['net_worth'], base)}"]
    if float(data["total_liabilities"]) > 0:
        parts.append(f"debt {format_currency(data['total_liabilities'], base)}")
    if data["goals"]:
        top = max(data["goals"], key=lambda g: float(g["progress"]))
        parts.append(f"{top['name']} {float(top['progress']):.0f}%")
    return " | ".join(parts)


def main():
    parser = argparse.ArgumentParser(description="Print a finance overview report")
    parser.add_argument("--user", required=True, help="User id to report for")
    parser.add_argument("--json", action="store_true", help="Output raw JSON data")
    parser.add_argument("--short", action="store_true", help="Generate short one-liner")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    data = fetch_overview(args.url, args.user)

    if not data:
        print("Failed to fetch overview data", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(data, indent=2, default=str))
    elif args.short:
        print(generate_short_report(data))
    else:
        print(generate_report_text(data))


if __name__ == "__main__":
    main()
