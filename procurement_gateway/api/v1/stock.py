"""POST /v1/stock/assess - Stock level classification and reorder suggestions"""

from fastapi import APIRouter

from procurement_gateway.api.v1.schemas import StockAssessRequest, StockAssessResponse, StockAssessmentSchema
from procurement_gateway.domain.models import StockItem
from procurement_gateway.domain.stock import classify_stock, is_low_stock, suggest_reorder_quantity

router = APIRouter()


@router.post("/stock/assess", response_model=StockAssessResponse)
def assess_stock(body: StockAssessRequest):
    """
    Classify each item and suggest how much to reorder.

    Returns:
        Per item: status, remaining percentage of delivered quantity (null while
        delivery is pending), low-stock flag and suggested reorder quantity
    """
    assessments = []
    for entry in body.items:
        item = StockItem(
            quantity_purchased=entry.quantity_purchased,
            quantity_delivered=entry.quantity_delivered,
            quantity_remaining=entry.quantity_remaining,
            unit=entry.unit,
        )
        assessment = classify_stock(item)
        assessments.append(
            StockAssessmentSchema(
                name=entry.name,
                status=assessment.status.value,
                percentage=round(float(assessment.percentage), 1) if assessment.percentage is not None else None,
                is_low_stock=is_low_stock(item),
                suggested_reorder_quantity=suggest_reorder_quantity(item),
                unit=entry.unit,
            )
        )

    return StockAssessResponse(items=assessments)
