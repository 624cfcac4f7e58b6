"""Supplier endpoints - registration, price history and price comparison"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from procurement_gateway.api.dependencies import get_request_id, parse_uuid, to_http_error
from procurement_gateway.api.v1.schemas import (
    ComparisonSummarySchema,
    MaterialQuoteSchema,
    PriceComparisonRequest,
    PriceComparisonResponse,
    PricePointCreate,
    PricePointResponse,
    SupplierCreate,
    SupplierQuoteSchema,
    SupplierResponse,
)
from procurement_gateway.domain.exceptions import DomainException
from procurement_gateway.domain.models import RequestedMaterial
from procurement_gateway.infrastructure.database.session import get_db
from procurement_gateway.services.sourcing import SupplierPriceComparator

router = APIRouter()


@router.post("/suppliers", response_model=SupplierResponse, status_code=201)
def create_supplier(body: SupplierCreate, request: Request, db: Session = Depends(get_db)):
    try:
        supplier = SupplierPriceComparator(db).register_supplier(body.name)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))
    return SupplierResponse(supplier_id=str(supplier.id), name=supplier.name, status=supplier.status)


@router.post("/suppliers/compare-prices", response_model=PriceComparisonResponse)
def compare_prices(body: PriceComparisonRequest, request: Request, db: Session = Depends(get_db)):
    """
    Compare suppliers on historical unit costs for the requested materials.

    Suppliers without any matching history are listed with has_historical_data=false
    and are never picked as cheapest. Totals only count materials with history.
    """
    materials = [
        RequestedMaterial(
            name=m.name,
            quantity=m.quantity,
            unit=m.unit,
            material_request_id=m.material_request_id,
        )
        for m in body.materials
    ]
    try:
        comparison = SupplierPriceComparator(db).compare(materials)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))

    return PriceComparisonResponse(
        comparisons=[
            SupplierQuoteSchema(
                supplier_id=q.supplier_id,
                supplier_name=q.supplier_name,
                total_estimated_cost=q.total_estimated_cost,
                has_historical_data=q.has_historical_data,
                data_points=q.data_points,
                is_cheapest=q.is_cheapest,
                materials=[
                    MaterialQuoteSchema(
                        name=m.name,
                        quantity=m.quantity,
                        unit=m.unit,
                        data_points=m.data_points,
                        confidence=m.confidence.value,
                        estimated_unit_cost=m.estimated_unit_cost,
                        estimated_total_cost=m.estimated_total_cost,
                        material_request_id=m.material_request_id,
                    )
                    for m in q.materials
                ],
            )
            for q in comparison.comparisons
        ],
        summary=ComparisonSummarySchema(
            cheapest_supplier_id=comparison.summary.cheapest_supplier_id,
            cheapest_supplier_name=comparison.summary.cheapest_supplier_name,
            cheapest_total=comparison.summary.cheapest_total,
            suppliers_with_data=comparison.summary.suppliers_with_data,
            total_suppliers=comparison.summary.total_suppliers,
        ),
    )


@router.post("/suppliers/{supplier_id}/prices", response_model=PricePointResponse, status_code=201)
def record_price(supplier_id: str, body: PricePointCreate, request: Request, db: Session = Depends(get_db)):
    """Add a historical unit cost for a supplier/material pair"""
    supplier_uuid = parse_uuid(supplier_id, "supplier")
    try:
        point = SupplierPriceComparator(db).record_price(supplier_uuid, body.material_name, body.unit_cost, body.unit)
    except DomainException as e:
        raise to_http_error(e, get_request_id(request))

    return PricePointResponse(
        supplier_id=supplier_id,
        material_name=point.material_name,
        unit=point.unit,
        unit_cost=point.unit_cost,
    )
