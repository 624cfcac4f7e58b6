"""Spending evaluation - advisory classification of a proposed spend"""

from decimal import Decimal
from procurement_gateway.domain.capital import LOW_CAPITAL_RATIO, INFO_CAPITAL_RATIO
from procurement_gateway.domain.exceptions import ValidationError
from procurement_gateway.domain.models import CapitalPosition, SpendingWarning, WarningCode
from procurement_gateway.utils.money import to_money, percentage_of, format_amount


def evaluate_spending(position: CapitalPosition, proposed_amount: Decimal) -> SpendingWarning:
    """
    Evaluate a proposed spend against a capital position.

    Levels in priority order (first match wins):
    1. ERROR/UNFUNDED     - no capital invested
    2. ERROR/INSUFFICIENT - spend exceeds the balance
    3. WARNING/LOW_AFTER  - less than 10% of invested capital left afterwards
    4. INFO/LOW_CURRENT   - balance already below 20% of invested capital
    5. NONE

    The result is advisory only. Callers decide whether to ask for confirmation;
    nothing here stops the spend.
    """
    proposed_amount = to_money(proposed_amount)
    if proposed_amount < 0:
        raise ValidationError("Proposed amount cannot be negative")

    balance = position.capital_balance
    invested = position.total_invested
    remaining_after = balance - proposed_amount

    if invested == 0:
        code = WarningCode.UNFUNDED
        message = "No capital allocated; cannot approve spending."
    elif remaining_after < 0:
        code = WarningCode.INSUFFICIENT
        message = (
            f"Insufficient capital. Available: {format_amount(balance)}, "
            f"required: {format_amount(proposed_amount)}, "
            f"shortfall: {format_amount(-remaining_after)}."
        )
    elif remaining_after < LOW_CAPITAL_RATIO * invested:
        code = WarningCode.LOW_AFTER
        message = (
            f"Capital will be low after this spend: {format_amount(remaining_after)} remaining "
            f"({percentage_of(remaining_after, invested)}% of invested capital)."
        )
    elif balance < INFO_CAPITAL_RATIO * invested:
        code = WarningCode.LOW_CURRENT
        message = (
            f"Capital is running low: {format_amount(balance)} available "
            f"({percentage_of(balance, invested)}% of invested capital)."
        )
    else:
        code = WarningCode.NONE
        message = f"Sufficient capital. Available: {format_amount(balance)}."

    return SpendingWarning(
        code=code,
        message=message,
        remaining_after=remaining_after,
        position=position,
    )
