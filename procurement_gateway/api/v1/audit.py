"""GET /v1/audit - Change history for a project or spending request"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from procurement_gateway.api.v1.schemas import AuditEntrySchema, AuditHistoryResponse
from procurement_gateway.infrastructure.database.session import get_db
from procurement_gateway.infrastructure.database.repositories import AuditRepository

router = APIRouter()


@router.get("/audit", response_model=AuditHistoryResponse)
def get_audit_history(
    entity_id: str = Query(..., description="Project or spending request identifier"),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """
    Retrieve the audit trail for an entity, oldest first.

    Returns:
        Entries with before/after values for every field a transition changed
    """
    entries = AuditRepository(db).get_entries_by_entity(entity_id, limit=limit)

    return AuditHistoryResponse(
        entity_id=entity_id,
        entries=[
            AuditEntrySchema(
                user_id=e.user_id,
                action=e.action,
                entity_type=e.entity_type,
                entity_id=e.entity_id,
                changes=e.changes,
                timestamp=e.timestamp,
            )
            for e in entries
        ],
    )
