"""
Carbon credit arithmetic for marketplace purchases.

Every dollar buys 10 carbon units; 100 units make one credit.
"""

from typing import Tuple

UNITS_PER_DOLLAR = 10
UNITS_PER_CREDIT = 100


def calculate_carbon_credits(amount: float) -> Tuple[float, float]:
    """Return (carbon_units, carbon_credits), each rounded to 2 decimals."""
    carbon_units = round(amount * UNITS_PER_DOLLAR, 2)
    carbon_credits = round(carbon_units / UNITS_PER_CREDIT, 2)
    return carbon_units, carbon_credits
