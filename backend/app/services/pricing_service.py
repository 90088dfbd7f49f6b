"""Boost pricing - pure lookup of boost tier x currency x duration"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

from app.core.exceptions import InvalidPricingInput

# Base price in minor currency units for the reference duration
BOOST_PRICES: Dict[str, Dict[str, int]] = {
    "premium": {
        "USD": 299,   # $2.99
        "EUR": 299,   # €2.99
        "CHF": 400,   # CHF 4.00
        "GBP": 249,   # £2.49
    },
    "featured": {
        "USD": 499,   # $4.99
        "EUR": 499,   # €4.99
        "CHF": 700,   # CHF 7.00
        "GBP": 399,   # £3.99
    },
    "urgent": {
        "USD": 799,   # $7.99
        "EUR": 799,   # €7.99
        "CHF": 1100,  # CHF 11.00
        "GBP": 649,   # £6.49
    },
}

SUPPORTED_CURRENCIES = ("USD", "EUR", "CHF", "GBP")

REFERENCE_DURATION_DAYS = 5

# Fixed durations offered in the boost picker
DURATION_MULTIPLIERS: Dict[int, Decimal] = {
    1: Decimal("0.4"),
    3: Decimal("0.6"),
    5: Decimal("1.0"),
    7: Decimal("1.4"),
    14: Decimal("2.5"),
}


def get_base_price(boost_type: str, currency: str) -> int:
    """Base price for the reference duration

    Raises:
        InvalidPricingInput: unknown boost type or currency
    """
    tier = BOOST_PRICES.get(boost_type)
    if tier is None:
        raise InvalidPricingInput(f"Unknown boost type: {boost_type}")

    code = currency.upper() if isinstance(currency, str) else currency
    if code not in tier:
        raise InvalidPricingInput(f"Unsupported currency: {currency}")
    return tier[code]


def get_duration_multiplier(duration_days: int) -> Decimal:
    """Multiplier for a duration; non-standard durations scale linearly from the reference"""
    multiplier = DURATION_MULTIPLIERS.get(duration_days)
    if multiplier is not None:
        return multiplier
    return Decimal(duration_days) / Decimal(REFERENCE_DURATION_DAYS)


def calculate_boost_price(boost_type: str, currency: str, duration_days: int) -> int:
    """Amount to charge in minor currency units, rounded half up"""
    base_price = get_base_price(boost_type, currency)
    amount = Decimal(base_price) * get_duration_multiplier(duration_days)
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def list_boost_prices(currency: str, duration_days: int) -> List[Dict]:
    """Price quote for every boost tier at the given currency and duration"""
    code = currency.upper()
    return [
        {
            "boost_type": boost_type,
            "currency": code,
            "duration_days": duration_days,
            "base_price": get_base_price(boost_type, code),
            "amount": calculate_boost_price(boost_type, code, duration_days),
        }
        for boost_type in BOOST_PRICES
    ]
