"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from procurement_gateway.domain.models import RequestKind, SpendingWarning


class ProjectCreateRequest(BaseModel):
    """Request body for POST /v1/projects"""

    name: str = Field(..., min_length=1)
    initial_capital: Decimal = Field(Decimal("0"), ge=0, description="Capital raised at project start")


class CapitalPositionSchema(BaseModel):
    capital_balance: Decimal
    total_invested: Decimal
    total_used: Decimal


class ProjectResponse(BaseModel):
    project_id: str
    name: str
    capital: CapitalPositionSchema


class CapitalStatusResponse(BaseModel):
    """Response for GET /v1/projects/{project_id}/capital"""

    project_id: str
    capital: CapitalPositionSchema
    status: str
    note: Optional[str] = None


class CapitalInjectionRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    notes: Optional[str] = None


class SpendingEvaluationRequest(BaseModel):
    amount: Decimal = Field(..., ge=0, description="Proposed spend")


class CapitalWarningSchema(BaseModel):
    """Advisory result - present on success responses, never an error"""

    level: str
    code: str
    message: str
    remaining_after: Decimal
    capital: CapitalPositionSchema

    @classmethod
    def from_warning(cls, warning: SpendingWarning) -> "CapitalWarningSchema":
        return cls(
            level=warning.severity.value,
            code=warning.code.value,
            message=warning.message,
            remaining_after=warning.remaining_after,
            capital=CapitalPositionSchema(
                capital_balance=warning.position.capital_balance,
                total_invested=warning.position.total_invested,
                total_used=warning.position.total_used,
            ),
        )


class SpendingRequestCreate(BaseModel):
    """Request body for POST /v1/spending-requests"""

    kind: RequestKind
    project_id: str
    amount: Decimal = Field(..., gt=0)
    description: Optional[str] = None
    # Material requests
    material_name: Optional[str] = None
    quantity: Optional[Decimal] = Field(None, gt=0)
    unit: Optional[str] = None
    supplier_id: Optional[str] = None
    # Professional fees
    fee_type: Optional[str] = None


class SpendingRequestSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID
    kind: str
    status: str
    amount: Decimal
    currency: str
    description: Optional[str] = None
    requested_by: str
    material_name: Optional[str] = None
    quantity: Optional[Decimal] = None
    unit: Optional[str] = None
    fee_type: Optional[str] = None
    approved_by: Optional[str] = None
    approval_notes: Optional[str] = None
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    payment_method: Optional[str] = None
    payment_date: Optional[date] = None
    payment_reference: Optional[str] = None
    expense_id: Optional[UUID] = None


class TransitionResponse(BaseModel):
    request: SpendingRequestSchema
    expense_id: Optional[str] = None
    capital_warning: Optional[CapitalWarningSchema] = None


class ApproveRequest(BaseModel):
    notes: Optional[str] = None


class RejectRequest(BaseModel):
    reason: str = ""


class PaymentRequest(BaseModel):
    payment_date: Optional[date] = None
    payment_method: Optional[str] = None
    reference: Optional[str] = None


class AuditEntrySchema(BaseModel):
    user_id: str
    action: str
    entity_type: str
    entity_id: str
    changes: Optional[Dict[str, Any]] = None
    timestamp: datetime


class AuditHistoryResponse(BaseModel):
    """Response for GET /v1/audit"""

    entity_id: str
    entries: List[AuditEntrySchema]


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1)


class SupplierResponse(BaseModel):
    supplier_id: str
    name: str
    status: str


class PricePointCreate(BaseModel):
    material_name: str = Field(..., min_length=1)
    unit: Optional[str] = None
    unit_cost: Decimal = Field(..., gt=0)


class PricePointResponse(BaseModel):
    supplier_id: str
    material_name: str
    unit: Optional[str] = None
    unit_cost: Decimal


class ComparisonMaterial(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0)
    unit: Optional[str] = None
    material_request_id: Optional[str] = None


class PriceComparisonRequest(BaseModel):
    """Request body for POST /v1/suppliers/compare-prices"""

    materials: List[ComparisonMaterial] = Field(..., min_length=1)


class MaterialQuoteSchema(BaseModel):
    name: str
    quantity: Decimal
    unit: Optional[str] = None
    data_points: int
    confidence: str
    estimated_unit_cost: Optional[Decimal] = None
    estimated_total_cost: Optional[Decimal] = None
    material_request_id: Optional[str] = None


class SupplierQuoteSchema(BaseModel):
    supplier_id: str
    supplier_name: str
    total_estimated_cost: Decimal
    has_historical_data: bool
    data_points: int
    is_cheapest: bool
    materials: List[MaterialQuoteSchema]


class ComparisonSummarySchema(BaseModel):
    cheapest_supplier_id: Optional[str] = None
    cheapest_supplier_name: Optional[str] = None
    cheapest_total: Optional[Decimal] = None
    suppliers_with_data: int
    total_suppliers: int


class PriceComparisonResponse(BaseModel):
    comparisons: List[SupplierQuoteSchema]
    summary: ComparisonSummarySchema


class StockItemSchema(BaseModel):
    name: Optional[str] = None
    quantity_purchased: Decimal = Field(Decimal("0"), ge=0)
    quantity_delivered: Decimal = Field(Decimal("0"), ge=0)
    quantity_remaining: Decimal = Field(Decimal("0"), ge=0)
    unit: Optional[str] = None


class StockAssessRequest(BaseModel):
    """Request body for POST /v1/stock/assess"""

    items: List[StockItemSchema] = Field(..., min_length=1)


class StockAssessmentSchema(BaseModel):
    name: Optional[str] = None
    status: str
    percentage: Optional[float] = None
    is_low_stock: bool
    suggested_reorder_quantity: int
    unit: Optional[str] = None


class StockAssessResponse(BaseModel):
    items: List[StockAssessmentSchema]
