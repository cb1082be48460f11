from fastapi import APIRouter, Depends
from ..auth import get_current_user
from ..models.account import ACCOUNT_TYPES, LIABILITY_ACCOUNT_TYPES
from ..models.transaction import TRANSACTION_CATEGORIES
from ..models.user import User
from ..schemas.user import UserResponse
from ..services.currency_service import SUPPORTED_CURRENCIES, currency_name, currency_symbol

router = APIRouter(tags=["reference"])


@router.get("/reference/currencies")
def get_currencies():
    """Supported currencies with display symbol and name"""
    return {
        "currencies": [
            {"code": code, "symbol": currency_symbol(code), "name": currency_name(code)}
            for code in sorted(SUPPORTED_CURRENCIES)
        ]
    }


@router.get("/reference/account-types")
def get_account_types():
    """Get list of available account types"""
    return {
        "account_types": [
            {
                "code": code,
                "name": name,
                "account_class": "liability" if code in LIABILITY_ACCOUNT_TYPES else "asset",
            }
            for code, name in ACCOUNT_TYPES.items()
        ]
    }


@router.get("/reference/categories")
def get_categories():
    """Transaction categories grouped by income and expense"""
    return {
        "categories": [
            {"code": code, "name": name, "kind": kind}
            for code, (name, kind) in TRANSACTION_CATEGORIES.items()
        ]
    }


@router.get("/users/me", response_model=UserResponse)
def get_me(user: User = Depends(get_current_user)):
    """The authenticated user"""
    return user
