"""
Approval workflow for spending requests (material requests and professional fees).

PENDING -> APPROVED | REJECTED, APPROVED -> PAID | ARCHIVED.

Each operation is one transaction: the status change, its side effects (expense,
capital debit, audit entry) and nothing else. A failure anywhere rolls all of it back.
Capital warnings are attached to results and never stop an operation.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from procurement_gateway.config import settings
from procurement_gateway.domain.exceptions import AlreadyRecordedError, NotFoundError, ValidationError
from procurement_gateway.domain.models import AuditAction, PaymentInfo, RequestKind, RequestStatus, SpendingWarning
from procurement_gateway.domain.workflow import (
    ensure_transition,
    validate_amount,
    validate_payment_info,
    validate_rejection_reason,
)
from procurement_gateway.infrastructure.database.models import ExpenseRecord, SpendingRequest
from procurement_gateway.infrastructure.database.repositories import SpendingRequestRepository
from procurement_gateway.infrastructure.observability.metrics import record_transition
from procurement_gateway.services.ledger import CapitalLedger, SpendingValidator, position_of
from procurement_gateway.services.recorders import AuditRecorder, ExpenseRecorder, diff_changes
from procurement_gateway.services.transactions import run_atomic
from procurement_gateway.utils.money import ZERO

# Fields captured before/after each transition so the audit log alone can reconstruct them
AUDITED_FIELDS = (
    "status",
    "approved_by",
    "approval_notes",
    "expense_id",
    "rejected_by",
    "rejection_reason",
    "payment_method",
    "payment_date",
    "payment_reference",
    "archived_at",
)


@dataclass
class TransitionResult:
    """Successful transition plus any advisory capital warning"""

    request: SpendingRequest
    expense: Optional[ExpenseRecord] = None
    capital_warning: Optional[SpendingWarning] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _snapshot(request: SpendingRequest) -> Dict[str, Any]:
    return {field: getattr(request, field) for field in AUDITED_FIELDS}


class ApprovalWorkflow:
    """Owns every status change of a spending request"""

    def __init__(self, db: Session):
        self.db = db
        self.requests = SpendingRequestRepository(db)
        self.ledger = CapitalLedger(db)
        self.validator = SpendingValidator(self.ledger)
        self.expenses = ExpenseRecorder(db)
        self.audit = AuditRecorder(db)

    def get_request(self, request_id: uuid.UUID) -> SpendingRequest:
        request = self.requests.get_request(request_id)
        if request is None:
            raise NotFoundError(f"Spending request {request_id} not found")
        return request

    def _lock_request(self, request_id: uuid.UUID) -> SpendingRequest:
        request = self.requests.get_request_for_update(request_id)
        if request is None:
            raise NotFoundError(f"Spending request {request_id} not found")
        return request

    def submit(
        self,
        kind: RequestKind,
        project_id: uuid.UUID,
        amount: Decimal,
        requested_by: str,
        description: Optional[str] = None,
        **details: Any,
    ) -> TransitionResult:
        """
        Create a PENDING request. Capital totals are untouched; the result carries the
        warning for spending `amount` against the current balance.
        """
        amount = validate_amount(amount)
        if kind == RequestKind.MATERIAL_REQUEST:
            if not details.get("material_name"):
                raise ValidationError("Material name is required")
            quantity = details.get("quantity")
            if quantity is not None and Decimal(quantity) <= 0:
                raise ValidationError("Quantity must be greater than zero")
        elif not details.get("fee_type"):
            raise ValidationError("Fee type is required")

        def unit() -> TransitionResult:
            project = self.ledger.get_project(project_id)
            request = self.requests.create_request(
                kind,
                project_id=project.id,
                amount=amount,
                currency=settings.default_currency,
                status=RequestStatus.PENDING.value,
                requested_by=requested_by,
                description=description,
                **details,
            )
            self.audit.append(
                AuditAction.SUBMITTED,
                kind.value,
                request.id,
                requested_by,
                {"status": {"old": None, "new": RequestStatus.PENDING.value}, "amount": {"old": None, "new": str(amount)}},
                project.id,
            )
            warning = self.validator.evaluate_position(position_of(project), amount)
            return TransitionResult(request=request, capital_warning=warning)

        result = run_atomic(self.db, "submit", unit)
        record_transition(kind.value, AuditAction.SUBMITTED.value, result.capital_warning.code.value)
        return result

    def approve(self, request_id: uuid.UUID, approver_id: str, notes: Optional[str] = None) -> TransitionResult:
        """
        PENDING -> APPROVED.

        In one transaction: store notes, record the expense, debit project capital,
        append the audit entry. The attached warning is evaluated against the balance
        after the debit, so callers can report "approved, but capital is now negative".
        """

        def unit() -> TransitionResult:
            request = self._lock_request(request_id)
            ensure_transition(request.status, RequestStatus.APPROVED)
            project = self.ledger.lock_project(request.project_id)
            before = _snapshot(request)

            request.status = RequestStatus.APPROVED.value
            request.approved_by = approver_id
            request.approved_at = _utcnow()
            request.approval_notes = notes.strip() if notes and notes.strip() else None

            try:
                expense = self.expenses.record(request)
                position = self.ledger.debit(project, request.amount)
            except AlreadyRecordedError as e:
                # Capital was charged when the existing expense was written
                expense = e.existing
                position = position_of(project)
            request.expense_id = expense.id
            self.db.flush()

            self.audit.append(
                AuditAction.APPROVED,
                request.kind,
                request.id,
                approver_id,
                diff_changes(before, _snapshot(request)),
                request.project_id,
            )
            warning = self.validator.evaluate_position(position, ZERO)
            return TransitionResult(request=request, expense=expense, capital_warning=warning)

        result = run_atomic(self.db, "approve", unit)
        record_transition(result.request.kind, AuditAction.APPROVED.value, result.capital_warning.code.value)
        return result

    def reject(self, request_id: uuid.UUID, rejecter_id: str, reason: Optional[str]) -> TransitionResult:
        """PENDING -> REJECTED with a mandatory reason; no financial effect"""

        def unit() -> TransitionResult:
            request = self._lock_request(request_id)
            ensure_transition(request.status, RequestStatus.REJECTED)
            cleaned_reason = validate_rejection_reason(reason)
            before = _snapshot(request)

            request.status = RequestStatus.REJECTED.value
            request.rejected_by = rejecter_id
            request.rejected_at = _utcnow()
            request.rejection_reason = cleaned_reason
            self.db.flush()

            self.audit.append(
                AuditAction.REJECTED,
                request.kind,
                request.id,
                rejecter_id,
                diff_changes(before, _snapshot(request)),
                request.project_id,
            )
            return TransitionResult(request=request)

        result = run_atomic(self.db, "reject", unit)
        record_transition(result.request.kind, AuditAction.REJECTED.value)
        return result

    def record_payment(self, request_id: uuid.UUID, payment: PaymentInfo, user_id: str) -> TransitionResult:
        """APPROVED -> PAID; capital was already debited at approval"""

        def unit() -> TransitionResult:
            request = self._lock_request(request_id)
            ensure_transition(request.status, RequestStatus.PAID)
            validate_payment_info(payment)
            before = _snapshot(request)

            request.status = RequestStatus.PAID.value
            request.payment_method = payment.method
            request.payment_date = payment.date
            request.payment_reference = payment.reference
            request.paid_at = _utcnow()
            self.db.flush()

            self.audit.append(
                AuditAction.PAID,
                request.kind,
                request.id,
                user_id,
                diff_changes(before, _snapshot(request)),
                request.project_id,
            )
            return TransitionResult(request=request)

        result = run_atomic(self.db, "record_payment", unit)
        record_transition(result.request.kind, AuditAction.PAID.value)
        return result

    def archive(self, request_id: uuid.UUID, user_id: str) -> TransitionResult:
        """APPROVED -> ARCHIVED"""

        def unit() -> TransitionResult:
            request = self._lock_request(request_id)
            ensure_transition(request.status, RequestStatus.ARCHIVED)
            before = _snapshot(request)

            request.status = RequestStatus.ARCHIVED.value
            request.archived_at = _utcnow()
            self.db.flush()

            self.audit.append(
                AuditAction.ARCHIVED,
                request.kind,
                request.id,
                user_id,
                diff_changes(before, _snapshot(request)),
                request.project_id,
            )
            return TransitionResult(request=request)

        result = run_atomic(self.db, "archive", unit)
        record_transition(result.request.kind, AuditAction.ARCHIVED.value)
        return result
