"""Project capital ledger and the advisory spending validator that reads it"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from procurement_gateway.domain.capital import build_position, classify_capital
from procurement_gateway.domain.exceptions import NotFoundError, ValidationError
from procurement_gateway.domain.models import (
    AuditAction,
    CapitalClassification,
    CapitalPosition,
    SpendingWarning,
)
from procurement_gateway.domain.spending import evaluate_spending
from procurement_gateway.domain.workflow import validate_amount
from procurement_gateway.infrastructure.database.models import Project
from procurement_gateway.infrastructure.database.repositories import ProjectRepository
from procurement_gateway.services.recorders import AuditRecorder, diff_changes
from procurement_gateway.services.transactions import run_atomic
from procurement_gateway.utils.money import to_money

PROJECT_ENTITY = "PROJECT"


def position_of(project: Project) -> CapitalPosition:
    return build_position(project.total_invested_capital, project.total_used_capital)


def _capital_fields(project: Project) -> dict:
    return {
        "total_invested_capital": project.total_invested_capital,
        "total_used_capital": project.total_used_capital,
        "capital_balance": project.capital_balance,
    }


class CapitalLedger:
    """Single source of a project's capital figures"""

    def __init__(self, db: Session):
        self.db = db
        self.projects = ProjectRepository(db)
        self.audit = AuditRecorder(db)

    def get_project(self, project_id: uuid.UUID) -> Project:
        project = self.projects.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        return project

    def lock_project(self, project_id: uuid.UUID) -> Project:
        """Load the project row for a capital write; serializes writers on the same project"""
        project = self.projects.get_project_for_update(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        return project

    def get_balance(self, project_id: uuid.UUID) -> CapitalPosition:
        return position_of(self.get_project(project_id))

    @staticmethod
    def classify(balance: Decimal, total_invested: Decimal) -> CapitalClassification:
        return classify_capital(balance, total_invested)

    def debit(self, project: Project, amount: Decimal) -> CapitalPosition:
        """Charge approved spend to the project; caller must hold the project lock"""
        project.total_used_capital = to_money(project.total_used_capital) + to_money(amount)
        project.recompute_balance()
        return position_of(project)

    def open_project(self, name: str, user_id: str, initial_capital: Optional[Decimal] = None) -> Project:
        if not name or not name.strip():
            raise ValidationError("Project name is required")
        initial_capital = to_money(initial_capital)
        if initial_capital < 0:
            raise ValidationError("Initial capital cannot be negative")

        def unit() -> Project:
            project = self.projects.create_project(name.strip(), Decimal("0.00"))
            if initial_capital > 0:
                self._inject(project, initial_capital, user_id, "Initial capital")
            return project

        return run_atomic(self.db, "open_project", unit)

    def inject_capital(
        self,
        project_id: uuid.UUID,
        amount: Decimal,
        user_id: str,
        notes: Optional[str] = None,
    ) -> CapitalPosition:
        """Raise invested capital by a positive amount, audited, in one transaction"""
        amount = validate_amount(amount)

        def unit() -> CapitalPosition:
            project = self.lock_project(project_id)
            self._inject(project, amount, user_id, notes)
            return position_of(project)

        return run_atomic(self.db, "inject_capital", unit)

    def _inject(self, project: Project, amount: Decimal, user_id: str, notes: Optional[str]) -> None:
        before = _capital_fields(project)
        project.total_invested_capital = to_money(project.total_invested_capital) + amount
        project.recompute_balance()
        self.db.flush()

        changes = diff_changes(before, _capital_fields(project))
        if notes:
            changes["notes"] = {"old": None, "new": notes}
        self.audit.append(AuditAction.CAPITAL_INJECTED, PROJECT_ENTITY, project.id, user_id, changes, project.id)


class SpendingValidator:
    """Classifies proposed spend against the ledger; never blocks"""

    def __init__(self, ledger: CapitalLedger):
        self.ledger = ledger

    def evaluate(self, project_id: uuid.UUID, proposed_amount: Decimal) -> SpendingWarning:
        return evaluate_spending(self.ledger.get_balance(project_id), proposed_amount)

    @staticmethod
    def evaluate_position(position: CapitalPosition, proposed_amount: Decimal) -> SpendingWarning:
        return evaluate_spending(position, proposed_amount)
