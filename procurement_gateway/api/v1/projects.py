"""Project capital endpoints - balance, classification, injections and spend evaluation"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from procurement_gateway.api.dependencies import get_request_id, get_user_id, parse_uuid, to_http_error
from procurement_gateway.api.v1.schemas import (
    CapitalInjectionRequest,
    CapitalPositionSchema,
    CapitalStatusResponse,
    CapitalWarningSchema,
    ProjectCreateRequest,
    ProjectResponse,
    SpendingEvaluationRequest,
)
from procurement_gateway.domain.exceptions import DomainException
from procurement_gateway.domain.models import CapitalPosition
from procurement_gateway.infrastructure.database.session import get_db
from procurement_gateway.infrastructure.observability.metrics import capital_warning_counter
from procurement_gateway.services.ledger import CapitalLedger, SpendingValidator, position_of

router = APIRouter()


def _position_schema(position: CapitalPosition) -> CapitalPositionSchema:
    return CapitalPositionSchema(
        capital_balance=position.capital_balance,
        total_invested=position.total_invested,
        total_used=position.total_used,
    )


@router.post("/projects", response_model=ProjectResponse, status_code=201)
def create_project(
    body: ProjectCreateRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Open a project, optionally with its initial capital"""
    request_id = get_request_id(request)
    try:
        project = CapitalLedger(db).open_project(body.name, user_id, body.initial_capital)
        return ProjectResponse(
            project_id=str(project.id),
            name=project.name,
            capital=_position_schema(position_of(project)),
        )
    except DomainException as e:
        raise to_http_error(e, request_id)


@router.get("/projects/{project_id}/capital", response_model=CapitalStatusResponse)
def get_capital(project_id: str, request: Request, db: Session = Depends(get_db)):
    """
    Current capital figures and their classification.

    Returns:
        Balance, totals and one of OK | LOW | NEGATIVE | UNFUNDED, with an
        informational note when the balance is under 20% of invested capital
    """
    project_uuid = parse_uuid(project_id, "project")
    ledger = CapitalLedger(db)
    try:
        position = ledger.get_balance(project_uuid)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))

    classification = ledger.classify(position.capital_balance, position.total_invested)
    return CapitalStatusResponse(
        project_id=project_id,
        capital=_position_schema(position),
        status=classification.status.value,
        note=classification.note,
    )


@router.post("/projects/{project_id}/capital/injections", response_model=CapitalPositionSchema)
def inject_capital(
    project_id: str,
    body: CapitalInjectionRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Record newly raised capital for the project"""
    project_uuid = parse_uuid(project_id, "project")
    request_id = get_request_id(request)
    try:
        position = CapitalLedger(db).inject_capital(project_uuid, body.amount, user_id, body.notes)
    except DomainException as e:
        raise to_http_error(e, request_id)

    return _position_schema(position)


@router.post("/projects/{project_id}/capital/evaluate", response_model=CapitalWarningSchema)
def evaluate_spending(
    project_id: str,
    body: SpendingEvaluationRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Classify a proposed spend against available capital.

    Always 200 for an existing project: the level (ERROR, WARNING, INFO, NONE) is
    advice for the caller, not a refusal.
    """
    project_uuid = parse_uuid(project_id, "project")
    try:
        warning = SpendingValidator(CapitalLedger(db)).evaluate(project_uuid, body.amount)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))

    capital_warning_counter.labels(code=warning.code.value).inc()
    return CapitalWarningSchema.from_warning(warning)
