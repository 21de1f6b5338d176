"""
Financial calculator.

Net proceeds are the seller's take-home estimate. They are never
floored at zero: an underwater sale surfaces as a negative number.
"""

from typing import Optional

from .validation import ValidationError


def calculate_net_proceeds(
    price: Optional[float],
    loan_balance: Optional[float],
    commission: Optional[float],
) -> float:
    """
    Calculate net proceeds as price - loan balance - commission.

    Args:
        price: Offer price
        loan_balance: Outstanding loan on the listing (None counts as 0)
        commission: Agent commission in dollars

    Raises:
        ValidationError: If price or commission is missing
    """
    if price is None:
        raise ValidationError("price", "Field is required")
    if commission is None:
        raise ValidationError("agent_commission", "Field is required")

    return price - (loan_balance or 0.0) - commission
