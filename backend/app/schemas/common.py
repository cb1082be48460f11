from typing import Annotated
from pydantic import AfterValidator, Field
from ..services.currency_service import SUPPORTED_CURRENCIES, is_supported_currency


def check_supported_currency(value: str) -> str:
    if not is_supported_currency(value):
        raise ValueError(f"Unsupported currency {value!r}, expected one of {', '.join(SUPPORTED_CURRENCIES)}")
    return value


# ISO code limited to the currencies the app has symbols and names for
CurrencyCode = Annotated[str, Field(pattern="^[A-Z]{3}$"), AfterValidator(check_supported_currency)]
