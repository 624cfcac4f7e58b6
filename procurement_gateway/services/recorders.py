"""
Expense and audit recorders invoked by the approval workflow.

Both only add rows to the caller's session. The caller owns the transaction, so an
approval commits its status change, expense and audit entry together or not at all.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from procurement_gateway.domain.exceptions import AlreadyRecordedError
from procurement_gateway.domain.models import AuditAction
from procurement_gateway.infrastructure.database.models import AuditLogEntry, ExpenseRecord, SpendingRequest
from procurement_gateway.infrastructure.database.repositories import AuditRepository, ExpenseRepository
from procurement_gateway.infrastructure.observability.metrics import duplicate_expense_counter


def _safe_value(value: Any) -> Any:
    """JSON-safe representation for audit snapshots"""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, float)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def diff_changes(before: Dict[str, Any], after: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """{field: {"old": ..., "new": ...}} for every field whose value changed"""
    changes: Dict[str, Dict[str, Any]] = {}
    for key in after:
        old, new = _safe_value(before.get(key)), _safe_value(after.get(key))
        if old != new:
            changes[key] = {"old": old, "new": new}
    return changes


class AuditRecorder:
    """Appends audit entries; every transition writes exactly one"""

    def __init__(self, db: Session):
        self.entries = AuditRepository(db)

    def append(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Any,
        user_id: str,
        changes: Dict[str, Any],
        project_id: Optional[Any] = None,
    ) -> AuditLogEntry:
        return self.entries.add_entry(
            user_id=user_id,
            action=_safe_value(action),
            entity_type=entity_type,
            entity_id=str(entity_id),
            changes=changes,
            project_id=str(project_id) if project_id is not None else None,
        )


class ExpenseRecorder:
    """Sole writer of expense records"""

    def __init__(self, db: Session):
        self.expenses = ExpenseRepository(db)

    def record(self, request: SpendingRequest) -> ExpenseRecord:
        """
        Create the expense for an approved request.

        Raises:
            AlreadyRecordedError: the request already has an expense (carries the existing record)
        """
        existing = self.expenses.get_by_source_request(request.id)
        if existing is not None:
            duplicate_expense_counter.inc()
            logging.warning(
                "Expense already recorded for spending request",
                extra={"entity_id": str(request.id), "expense_id": str(existing.id)},
            )
            raise AlreadyRecordedError(existing)

        return self.expenses.create_expense(
            source_request_id=request.id,
            project_id=request.project_id,
            amount=request.amount,
            currency=request.currency,
            category=request.expense_category,
            description=request.description or f"Approved {request.kind.lower().replace('_', ' ')}",
        )
