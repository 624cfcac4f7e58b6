"""Integration tests for the approval workflow against the test database"""

import pytest
import uuid
from datetime import date
from decimal import Decimal
from sqlalchemy.orm.exc import StaleDataError
from procurement_gateway.domain.exceptions import (
    AlreadyRecordedError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from procurement_gateway.domain.models import PaymentInfo, RequestKind, RequestStatus, WarningCode
from procurement_gateway.infrastructure.database.models import AuditLogEntry, ExpenseRecord, Project
from procurement_gateway.infrastructure.database.repositories import AuditRepository
from procurement_gateway.services.ledger import CapitalLedger
from procurement_gateway.services.recorders import ExpenseRecorder
from procurement_gateway.services.workflow import ApprovalWorkflow


@pytest.fixture
def workflow(db) -> ApprovalWorkflow:
    return ApprovalWorkflow(db)


def submit_material(workflow: ApprovalWorkflow, project: Project, amount: str = "5000"):
    return workflow.submit(
        RequestKind.MATERIAL_REQUEST,
        project.id,
        Decimal(amount),
        "site-manager",
        description="Cement for slab",
        material_name="Cement",
        quantity=Decimal("10"),
        unit="bag",
    )


def expense_count(db, request_id) -> int:
    return db.query(ExpenseRecord).filter(ExpenseRecord.source_request_id == request_id).count()


def assert_capital_invariant(project: Project):
    assert project.capital_balance == project.total_invested_capital - project.total_used_capital


def test_submit_creates_pending_request_without_touching_capital(db, workflow, funded_project):
    result = submit_material(workflow, funded_project)

    assert result.request.status == RequestStatus.PENDING.value
    assert result.request.kind == RequestKind.MATERIAL_REQUEST.value
    assert result.request.amount == Decimal("5000")
    assert result.capital_warning.code == WarningCode.LOW_AFTER

    db.refresh(funded_project)
    assert funded_project.total_used_capital == Decimal("92000")

    entries = AuditRepository(db).get_entries_by_entity(str(result.request.id))
    assert [e.action for e in entries] == ["SUBMITTED"]


def test_submit_validates_input(workflow, funded_project):
    with pytest.raises(ValidationError):
        workflow.submit(RequestKind.MATERIAL_REQUEST, funded_project.id, Decimal("0"), "u", material_name="Cement")
    with pytest.raises(ValidationError):
        workflow.submit(RequestKind.MATERIAL_REQUEST, funded_project.id, Decimal("100"), "u")
    with pytest.raises(ValidationError):
        workflow.submit(RequestKind.PROFESSIONAL_FEE, funded_project.id, Decimal("100"), "u")


def test_submit_for_unknown_project(workflow):
    with pytest.raises(NotFoundError):
        workflow.submit(RequestKind.PROFESSIONAL_FEE, uuid.uuid4(), Decimal("100"), "u", fee_type="architect")


def test_approve_debits_capital_and_warns_low_after(db, workflow, funded_project):
    """8% left; approving 5,000 leaves 3,000 (3%)"""
    request = submit_material(workflow, funded_project).request

    result = workflow.approve(request.id, "director-1", notes="  Urgent for slab pour  ")

    assert result.request.status == RequestStatus.APPROVED.value
    assert result.request.approved_by == "director-1"
    assert result.request.approval_notes == "Urgent for slab pour"
    assert result.request.expense_id == result.expense.id
    assert result.expense.amount == Decimal("5000")
    assert result.expense.category == "materials"
    assert result.capital_warning.code == WarningCode.LOW_AFTER
    assert result.capital_warning.remaining_after == Decimal("3000")

    project = CapitalLedger(db).get_project(funded_project.id)
    assert project.total_used_capital == Decimal("97000")
    assert project.capital_balance == Decimal("3000")
    assert_capital_invariant(project)


def test_approve_professional_fee_uses_service_category(db, workflow, make_project):
    project = make_project("100000", "0")
    request = workflow.submit(
        RequestKind.PROFESSIONAL_FEE, project.id, Decimal("20000"), "pm", fee_type="structural engineer"
    ).request

    result = workflow.approve(request.id, "director-1")

    assert result.expense.category == "construction_services"
    assert result.capital_warning.code == WarningCode.NONE


def test_approval_may_drive_capital_negative(db, workflow, make_project):
    project = make_project("100000", "98000")
    request = submit_material(workflow, project, "5000").request

    result = workflow.approve(request.id, "director-1")

    assert result.request.status == RequestStatus.APPROVED.value
    assert result.capital_warning.code == WarningCode.INSUFFICIENT
    refreshed = CapitalLedger(db).get_project(project.id)
    assert refreshed.capital_balance == Decimal("-3000")
    assert_capital_invariant(refreshed)


def test_double_approve_is_rejected_and_records_one_expense(db, workflow, funded_project):
    request = submit_material(workflow, funded_project).request
    workflow.approve(request.id, "director-1")

    with pytest.raises(InvalidTransitionError) as exc_info:
        workflow.approve(request.id, "director-2")

    assert exc_info.value.current == RequestStatus.APPROVED.value
    assert expense_count(db, request.id) == 1
    assert CapitalLedger(db).get_project(funded_project.id).total_used_capital == Decimal("97000")


def test_approve_unknown_request(workflow):
    with pytest.raises(NotFoundError):
        workflow.approve(uuid.uuid4(), "director-1")


def test_reject_requires_reason_and_leaves_request_pending(db, workflow, funded_project):
    request = submit_material(workflow, funded_project).request

    with pytest.raises(ValidationError):
        workflow.reject(request.id, "director-1", "   ")

    assert workflow.get_request(request.id).status == RequestStatus.PENDING.value


def test_reject_records_reason_without_financial_effect(db, workflow, funded_project):
    request = submit_material(workflow, funded_project).request

    result = workflow.reject(request.id, "director-1", "  Over budget  ")

    assert result.request.status == RequestStatus.REJECTED.value
    assert result.request.rejection_reason == "Over budget"
    assert expense_count(db, request.id) == 0
    assert CapitalLedger(db).get_project(funded_project.id).total_used_capital == Decimal("92000")

    entry = AuditRepository(db).get_entries_by_entity(str(request.id))[-1]
    assert entry.action == "REJECTED"
    assert entry.changes["status"] == {"old": "PENDING", "new": "REJECTED"}
    assert entry.changes["rejection_reason"] == {"old": None, "new": "Over budget"}


def test_rejected_request_cannot_be_approved(workflow, funded_project):
    request = submit_material(workflow, funded_project).request
    workflow.reject(request.id, "director-1", "Duplicate")

    with pytest.raises(InvalidTransitionError):
        workflow.approve(request.id, "director-1")


def test_payment_after_approval_has_no_capital_effect(db, workflow, funded_project):
    request = submit_material(workflow, funded_project).request
    workflow.approve(request.id, "director-1")

    result = workflow.record_payment(
        request.id,
        PaymentInfo(date=date(2026, 3, 14), method="M_PESA", reference="QF12XYZ"),
        "accountant",
    )

    assert result.request.status == RequestStatus.PAID.value
    assert result.request.payment_method == "M_PESA"
    assert result.request.payment_date == date(2026, 3, 14)
    assert CapitalLedger(db).get_project(funded_project.id).total_used_capital == Decimal("97000")
    assert expense_count(db, request.id) == 1


def test_payment_requires_approval(workflow, funded_project):
    request = submit_material(workflow, funded_project).request

    with pytest.raises(InvalidTransitionError):
        workflow.record_payment(request.id, PaymentInfo(date=date(2026, 3, 14)), "accountant")


def test_payment_without_date_is_invalid(workflow, funded_project):
    request = submit_material(workflow, funded_project).request
    workflow.approve(request.id, "director-1")

    with pytest.raises(ValidationError):
        workflow.record_payment(request.id, PaymentInfo(date=None), "accountant")

    assert workflow.get_request(request.id).status == RequestStatus.APPROVED.value


def test_archive_is_terminal(workflow, funded_project):
    request = submit_material(workflow, funded_project).request
    workflow.approve(request.id, "director-1")

    result = workflow.archive(request.id, "director-1")

    assert result.request.status == RequestStatus.ARCHIVED.value
    assert result.request.archived_at is not None
    with pytest.raises(InvalidTransitionError):
        workflow.record_payment(request.id, PaymentInfo(date=date(2026, 3, 14)), "accountant")


def test_audit_trail_follows_lifecycle(db, workflow, funded_project):
    request = submit_material(workflow, funded_project).request
    workflow.approve(request.id, "director-1")
    workflow.record_payment(request.id, PaymentInfo(date=date(2026, 3, 14), method="CASH"), "accountant")

    entries = AuditRepository(db).get_entries_by_entity(str(request.id))

    assert [e.action for e in entries] == ["SUBMITTED", "APPROVED", "PAID"]
    assert [e.user_id for e in entries] == ["site-manager", "director-1", "accountant"]
    approved = entries[1]
    assert approved.entity_type == "MATERIAL_REQUEST"
    assert approved.project_id == str(funded_project.id)
    assert approved.changes["status"] == {"old": "PENDING", "new": "APPROVED"}
    assert approved.changes["expense_id"]["old"] is None


def test_failure_in_audit_rolls_back_whole_approval(db, workflow, funded_project, monkeypatch):
    request = submit_material(workflow, funded_project).request
    audit_before = db.query(AuditLogEntry).count()

    def broken_append(*args, **kwargs):
        raise RuntimeError("audit store unavailable")

    monkeypatch.setattr(workflow.audit, "append", broken_append)

    with pytest.raises(RuntimeError):
        workflow.approve(request.id, "director-1")

    assert workflow.get_request(request.id).status == RequestStatus.PENDING.value
    assert expense_count(db, request.id) == 0
    assert db.query(AuditLogEntry).count() == audit_before
    project = CapitalLedger(db).get_project(funded_project.id)
    assert project.total_used_capital == Decimal("92000")
    assert project.capital_balance == Decimal("8000")


def test_conflict_retries_whole_unit_once(db, workflow, funded_project, monkeypatch):
    request = submit_material(workflow, funded_project).request
    original_record = workflow.expenses.record
    calls = []

    def flaky_record(spending_request):
        calls.append(spending_request.id)
        if len(calls) == 1:
            raise StaleDataError("concurrent update")
        return original_record(spending_request)

    monkeypatch.setattr(workflow.expenses, "record", flaky_record)

    result = workflow.approve(request.id, "director-1")

    assert len(calls) == 2
    assert result.request.status == RequestStatus.APPROVED.value
    assert expense_count(db, request.id) == 1
    assert CapitalLedger(db).get_project(funded_project.id).total_used_capital == Decimal("97000")


def test_persistent_conflict_surfaces_persistence_error(db, workflow, funded_project, monkeypatch):
    request = submit_material(workflow, funded_project).request

    def always_stale(spending_request):
        raise StaleDataError("concurrent update")

    monkeypatch.setattr(workflow.expenses, "record", always_stale)

    with pytest.raises(PersistenceError):
        workflow.approve(request.id, "director-1")

    assert workflow.get_request(request.id).status == RequestStatus.PENDING.value
    assert CapitalLedger(db).get_project(funded_project.id).total_used_capital == Decimal("92000")


def test_stale_project_version_is_detected(db, workflow, funded_project, session_factory):
    """A writer holding an old copy of the project cannot overwrite a newer debit"""
    request = submit_material(workflow, funded_project).request
    other = session_factory()
    try:
        stale_copy = other.query(Project).filter(Project.id == funded_project.id).one()
        workflow.approve(request.id, "director-1")

        stale_copy.total_used_capital = Decimal("0")
        stale_copy.recompute_balance()
        with pytest.raises(StaleDataError):
            other.commit()
        other.rollback()
    finally:
        other.close()

    assert CapitalLedger(db).get_project(funded_project.id).total_used_capital == Decimal("97000")


def test_expense_recorder_refuses_second_expense(db, workflow, funded_project):
    request = submit_material(workflow, funded_project).request
    recorder = ExpenseRecorder(db)
    first = recorder.record(request)
    db.commit()

    with pytest.raises(AlreadyRecordedError) as exc_info:
        recorder.record(request)

    assert exc_info.value.existing.id == first.id
    assert expense_count(db, request.id) == 1


def test_approve_links_existing_expense_without_second_debit(db, workflow, funded_project):
    request = submit_material(workflow, funded_project).request
    existing = ExpenseRecorder(db).record(request)
    db.commit()

    result = workflow.approve(request.id, "director-1")

    assert result.expense.id == existing.id
    assert result.request.expense_id == existing.id
    assert expense_count(db, request.id) == 1
    assert CapitalLedger(db).get_project(funded_project.id).total_used_capital == Decimal("92000")


def test_inject_capital_raises_invested_and_audits(db, funded_project):
    ledger = CapitalLedger(db)

    position = ledger.inject_capital(funded_project.id, Decimal("50000"), "owner-1", notes="Second tranche")

    assert position.total_invested == Decimal("150000")
    assert position.capital_balance == Decimal("58000")
    entry = AuditRepository(db).get_entries_by_entity(str(funded_project.id))[-1]
    assert entry.action == "CAPITAL_INJECTED"
    assert entry.entity_type == "PROJECT"
    assert entry.changes["total_invested_capital"] == {"old": "100000.00", "new": "150000.00"}
    assert entry.changes["notes"] == {"old": None, "new": "Second tranche"}


def test_inject_capital_rejects_bad_input(db, funded_project):
    ledger = CapitalLedger(db)

    with pytest.raises(ValidationError):
        ledger.inject_capital(funded_project.id, Decimal("0"), "owner-1")
    with pytest.raises(NotFoundError):
        ledger.inject_capital(uuid.uuid4(), Decimal("100"), "owner-1")


def test_open_project_without_capital_is_unfunded(db):
    ledger = CapitalLedger(db)

    project = ledger.open_project("Greenfield Villas", "owner-1")

    position = ledger.get_balance(project.id)
    assert position.total_invested == Decimal("0")
    assert ledger.classify(position.capital_balance, position.total_invested).status.value == "UNFUNDED"
    assert AuditRepository(db).get_entries_by_entity(str(project.id)) == []


def test_reject_racing_an_approval_cannot_overwrite_it(db, funded_project, session_factory, monkeypatch):
    """Reject reads PENDING, another session approves and commits, then reject flushes"""
    request_id = submit_material(ApprovalWorkflow(db), funded_project).request.id
    rejecter = ApprovalWorkflow(db)
    original_lock = rejecter._lock_request
    other = session_factory()
    reads = []

    def lock_then_approve_elsewhere(rid):
        request = original_lock(rid)
        reads.append(request.status)
        if len(reads) == 1:
            ApprovalWorkflow(other).approve(rid, "director-2")
        return request

    monkeypatch.setattr(rejecter, "_lock_request", lock_then_approve_elsewhere)
    try:
        with pytest.raises(InvalidTransitionError):
            rejecter.reject(request_id, "director-1", "Too expensive")
    finally:
        other.close()

    assert reads == [RequestStatus.PENDING.value, RequestStatus.APPROVED.value]
    assert ApprovalWorkflow(db).get_request(request_id).status == RequestStatus.APPROVED.value
    assert expense_count(db, request_id) == 1
    assert CapitalLedger(db).get_project(funded_project.id).total_used_capital == Decimal("97000")


def test_concurrent_approvals_on_one_project_are_serialized(db, funded_project, session_factory, monkeypatch):
    """A second approval commits while the first holds a stale project; the first retries on top of it"""
    first = submit_material(ApprovalWorkflow(db), funded_project).request.id
    second = submit_material(ApprovalWorkflow(db), funded_project).request.id
    workflow = ApprovalWorkflow(db)
    original_lock = workflow.ledger.lock_project
    other = session_factory()
    locks = []

    def lock_then_approve_elsewhere(project_id):
        project = original_lock(project_id)
        locks.append(project.total_used_capital)
        if len(locks) == 1:
            ApprovalWorkflow(other).approve(second, "director-2")
        return project

    monkeypatch.setattr(workflow.ledger, "lock_project", lock_then_approve_elsewhere)
    try:
        result = workflow.approve(first, "director-1")
    finally:
        other.close()

    assert locks == [Decimal("92000"), Decimal("97000")]
    assert result.capital_warning.code == WarningCode.INSUFFICIENT
    project = CapitalLedger(db).get_project(funded_project.id)
    assert project.total_used_capital == Decimal("102000")
    assert project.capital_balance == Decimal("-2000")
    assert_capital_invariant(project)
    assert expense_count(db, first) == 1
    assert expense_count(db, second) == 1
