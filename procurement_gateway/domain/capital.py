"""Capital classification rules - pure functions over a project's capital figures"""

from decimal import Decimal
from procurement_gateway.domain.models import CapitalClassification, CapitalPosition, CapitalStatus
from procurement_gateway.utils.money import to_money, percentage_of, format_amount

# User-facing warning thresholds; changing either changes warning behavior for every screen
LOW_CAPITAL_RATIO = Decimal("0.10")
INFO_CAPITAL_RATIO = Decimal("0.20")


def build_position(total_invested: Decimal, total_used: Decimal) -> CapitalPosition:
    """Derive balance from the two totals so it can never drift from them"""
    total_invested = to_money(total_invested)
    total_used = to_money(total_used)
    return CapitalPosition(
        capital_balance=total_invested - total_used,
        total_invested=total_invested,
        total_used=total_used,
    )


def classify_capital(balance: Decimal, total_invested: Decimal) -> CapitalClassification:
    """
    Classify a project's capital balance.

    Bands (first match wins):
    - UNFUNDED: nothing invested yet
    - NEGATIVE: more used than invested
    - LOW:      below 10% of invested capital
    - OK:       everything else, with an informational note below 20%
    """
    balance = to_money(balance)
    total_invested = to_money(total_invested)

    if total_invested == 0:
        return CapitalClassification(CapitalStatus.UNFUNDED)
    if balance < 0:
        return CapitalClassification(CapitalStatus.NEGATIVE)
    if balance < LOW_CAPITAL_RATIO * total_invested:
        return CapitalClassification(CapitalStatus.LOW)

    note = None
    if balance < INFO_CAPITAL_RATIO * total_invested:
        note = (
            f"Capital balance is {format_amount(balance)} "
            f"({percentage_of(balance, total_invested)}% of invested capital)."
        )
    return CapitalClassification(CapitalStatus.OK, note)
