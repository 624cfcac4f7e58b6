"""Spending request state machine - allowed transitions and input rules"""

from decimal import Decimal
from typing import Dict, FrozenSet
from procurement_gateway.domain.exceptions import InvalidTransitionError, ValidationError
from procurement_gateway.domain.models import PaymentInfo, PaymentMethod, RequestStatus
from procurement_gateway.utils.money import to_money

# REJECTED, PAID and ARCHIVED have no outgoing transitions
ALLOWED_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED}),
    RequestStatus.APPROVED: frozenset({RequestStatus.PAID, RequestStatus.ARCHIVED}),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.PAID: frozenset(),
    RequestStatus.ARCHIVED: frozenset(),
}


def ensure_transition(current: str, target: RequestStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is an edge of the state machine"""
    current_status = RequestStatus(current)
    if target not in ALLOWED_TRANSITIONS[current_status]:
        raise InvalidTransitionError(current_status.value, target.value)


def validate_amount(amount: Decimal) -> Decimal:
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    return amount


def validate_rejection_reason(reason: str | None) -> str:
    if reason is None or not reason.strip():
        raise ValidationError("Rejection reason is required")
    return reason.strip()


def validate_payment_info(payment: PaymentInfo) -> PaymentInfo:
    if payment.date is None:
        raise ValidationError("Payment date is required")
    if payment.method is not None:
        try:
            PaymentMethod(payment.method)
        except ValueError:
            allowed = ", ".join(m.value for m in PaymentMethod)
            raise ValidationError(f"Payment method must be one of: {allowed}")
    return payment
