"""Spending request endpoints - submit, approve, reject, record payment, archive"""

import time
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from procurement_gateway.api.dependencies import (
    get_notification_client,
    get_request_id,
    get_user_id,
    parse_uuid,
    to_http_error,
)
from procurement_gateway.api.v1.schemas import (
    ApproveRequest,
    CapitalWarningSchema,
    PaymentRequest,
    RejectRequest,
    SpendingRequestCreate,
    SpendingRequestSchema,
    TransitionResponse,
)
from procurement_gateway.domain.exceptions import DomainException
from procurement_gateway.domain.models import PaymentInfo, RequestKind
from procurement_gateway.infrastructure.clients.notifications import NotificationClient
from procurement_gateway.infrastructure.database.session import get_db
from procurement_gateway.infrastructure.observability.logging import log_transition
from procurement_gateway.services.workflow import ApprovalWorkflow, TransitionResult

router = APIRouter()


def _to_response(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        request=SpendingRequestSchema.model_validate(result.request),
        expense_id=str(result.expense.id) if result.expense is not None else None,
        capital_warning=(
            CapitalWarningSchema.from_warning(result.capital_warning)
            if result.capital_warning is not None
            else None
        ),
    )


def _event(name: str, result: TransitionResult, user_id: str) -> dict:
    request = result.request
    return {
        "event": name,
        "request_id": str(request.id),
        "project_id": str(request.project_id),
        "kind": request.kind,
        "amount": str(request.amount),
        "status": request.status,
        "actor_id": user_id,
    }


def _finish(
    action: str,
    result: TransitionResult,
    request_id: str,
    start_time: float,
) -> TransitionResponse:
    duration_ms = (time.time() - start_time) * 1000
    log_transition(
        request_id,
        str(result.request.id),
        action,
        result.request.status,
        duration_ms,
        result.capital_warning.code.value if result.capital_warning is not None else None,
    )
    return _to_response(result)


@router.post("/spending-requests", response_model=TransitionResponse, status_code=201)
def submit_request(
    body: SpendingRequestCreate,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Submit a material request or professional fee for approval.

    The response carries the capital warning for this amount; submission is never
    refused because of it.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    project_uuid = parse_uuid(body.project_id, "project")

    details: dict = {}
    if body.kind == RequestKind.MATERIAL_REQUEST:
        details = {
            "material_name": body.material_name,
            "quantity": body.quantity,
            "unit": body.unit,
            "supplier_id": parse_uuid(body.supplier_id, "supplier") if body.supplier_id else None,
        }
    else:
        details = {"fee_type": body.fee_type}

    try:
        result = ApprovalWorkflow(db).submit(
            body.kind,
            project_uuid,
            body.amount,
            user_id,
            description=body.description,
            **details,
        )
    except DomainException as e:
        raise to_http_error(e, request_id)

    return _finish("SUBMITTED", result, request_id, start_time)


@router.get("/spending-requests/{spending_request_id}", response_model=SpendingRequestSchema)
def get_request(spending_request_id: str, request: Request, db: Session = Depends(get_db)):
    request_uuid = parse_uuid(spending_request_id, "spending request")
    try:
        spending_request = ApprovalWorkflow(db).get_request(request_uuid)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))
    return SpendingRequestSchema.model_validate(spending_request)


@router.post("/spending-requests/{spending_request_id}/approve", response_model=TransitionResponse)
def approve_request(
    spending_request_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    body: Optional[ApproveRequest] = None,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    notification_client: NotificationClient = Depends(get_notification_client),
):
    """
    Approve a pending request.

    Flow (single transaction):
    1. Guard PENDING -> APPROVED
    2. Record the expense
    3. Debit project capital
    4. Append audit entry
    Then evaluate the new balance and return it as an advisory warning, and
    notify asynchronously.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    request_uuid = parse_uuid(spending_request_id, "spending request")
    notes = body.notes if body is not None else None

    try:
        result = ApprovalWorkflow(db).approve(request_uuid, user_id, notes)
    except DomainException as e:
        raise to_http_error(e, request_id)

    background_tasks.add_task(notification_client.send_event, _event("SPENDING_REQUEST_APPROVED", result, user_id))
    return _finish("APPROVED", result, request_id, start_time)


@router.post("/spending-requests/{spending_request_id}/reject", response_model=TransitionResponse)
def reject_request(
    spending_request_id: str,
    body: RejectRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    notification_client: NotificationClient = Depends(get_notification_client),
):
    """Reject a pending request; a non-blank reason is required"""
    start_time = time.time()
    request_id = get_request_id(request)
    request_uuid = parse_uuid(spending_request_id, "spending request")

    try:
        result = ApprovalWorkflow(db).reject(request_uuid, user_id, body.reason)
    except DomainException as e:
        raise to_http_error(e, request_id)

    background_tasks.add_task(notification_client.send_event, _event("SPENDING_REQUEST_REJECTED", result, user_id))
    return _finish("REJECTED", result, request_id, start_time)


@router.post("/spending-requests/{spending_request_id}/payment", response_model=TransitionResponse)
def record_payment(
    spending_request_id: str,
    body: PaymentRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
    notification_client: NotificationClient = Depends(get_notification_client),
):
    """Mark an approved request as paid; no further capital effect"""
    start_time = time.time()
    request_id = get_request_id(request)
    request_uuid = parse_uuid(spending_request_id, "spending request")
    payment = PaymentInfo(date=body.payment_date, method=body.payment_method, reference=body.reference)

    try:
        result = ApprovalWorkflow(db).record_payment(request_uuid, payment, user_id)
    except DomainException as e:
        raise to_http_error(e, request_id)

    background_tasks.add_task(notification_client.send_event, _event("SPENDING_REQUEST_PAID", result, user_id))
    return _finish("PAID", result, request_id, start_time)


@router.post("/spending-requests/{spending_request_id}/archive", response_model=TransitionResponse)
def archive_request(
    spending_request_id: str,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    start_time = time.time()
    request_id = get_request_id(request)
    request_uuid = parse_uuid(spending_request_id, "spending request")

    try:
        result = ApprovalWorkflow(db).archive(request_uuid, user_id)
    except DomainException as e:
        raise to_http_error(e, request_id)

    return _finish("ARCHIVED", result, request_id, start_time)
