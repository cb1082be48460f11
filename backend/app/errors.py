"""
Domain errors raised by the services layer.

Routers never build balances by hand; they call services and let these
exceptions propagate to the handlers registered in main.py.
"""


class FinanceError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(FinanceError):
    """Unknown account, transaction or other record (or one owned by another user)."""

    status_code = 404


class Forbidden(FinanceError):
    """Record exists but belongs to another user."""

    status_code = 403


class InvalidOperation(FinanceError):
    """Same-account transfer, unsupported kind, or a change that would break a balance."""


class InvalidAmount(FinanceError):
    """Non-positive or non-numeric amount."""


class RateUnavailable(FinanceError):
    """No direct or inverse exchange rate for a currency pair.

    Non-fatal by default: conversion degrades to identity and logs a warning.
    Only raised when the caller asks for strict conversion.
    """

    def __init__(self, from_currency: str, to_currency: str):
        super().__init__(f"No exchange rate available for {from_currency} -> {to_currency}")
        self.from_currency = from_currency
        self.to_currency = to_currency


class ImportFormatError(FinanceError):
    """CSV upload could not be parsed or references unknown accounts."""
