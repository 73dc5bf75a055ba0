"""Display currencies. Formatting only, amounts are never converted."""

from decimal import Decimal

from .models import Currency

CURRENCIES: list[Currency] = [
    Currency(code="USD", symbol="$", name="US Dollar"),
    Currency(code="EUR", symbol="€", name="Euro"),
    Currency(code="GBP", symbol="£", name="British Pound"),
    Currency(code="JPY", symbol="¥", name="Japanese Yen"),
    Currency(code="CAD", symbol="C$", name="Canadian Dollar"),
    Currency(code="AUD", symbol="A$", name="Australian Dollar"),
    Currency(code="INR", symbol="₹", name="Indian Rupee"),
    Currency(code="CNY", symbol="¥", name="Chinese Yuan"),
    Currency(code="BRL", symbol="R$", name="Brazilian Real"),
    Currency(code="MXN", symbol="Mex$", name="Mexican Peso"),
]


def get_default_currency() -> Currency:
    """US Dollar."""
    return CURRENCIES[0]


def get_currency_by_code(code: str) -> Currency:
    """Look up a currency by ISO code, falling back to the default."""
    code = code.upper()
    for currency in CURRENCIES:
        if currency.code == code:
            return currency
    return get_default_currency()


def is_supported(code: str) -> bool:
    return any(currency.code == code.upper() for currency in CURRENCIES)


def format_amount(amount: Decimal, currency: Currency) -> str:
    """
    Format an amount with the currency symbol and 2 decimals.

    Negative amounts keep their sign in front of the symbol: -$12.50
    """
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency.symbol}{abs(amount):,.2f}"
