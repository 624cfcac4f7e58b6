"""Supplier price comparison - estimates and ranking from historical unit costs"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from procurement_gateway.domain.exceptions import ValidationError
from procurement_gateway.domain.models import (
    ComparisonSummary,
    Confidence,
    MaterialQuote,
    PriceComparison,
    PricePoint,
    RequestedMaterial,
    SupplierQuote,
    SupplierRef,
)
from procurement_gateway.utils.money import to_money, ZERO


def normalize_material_name(name: str) -> str:
    return " ".join(name.split()).lower()


def normalize_unit(unit: Optional[str]) -> Optional[str]:
    if unit is None or not unit.strip():
        return None
    return unit.strip().lower()


def confidence_for(data_points: int) -> Confidence:
    """5+ points is high, 2-4 medium, 0-1 low"""
    if data_points >= 5:
        return Confidence.HIGH
    if data_points >= 2:
        return Confidence.MEDIUM
    return Confidence.LOW


def _index_history(history: Iterable[PricePoint]) -> Dict[Tuple[str, str], List[PricePoint]]:
    index: Dict[Tuple[str, str], List[PricePoint]] = defaultdict(list)
    for point in history:
        index[(point.supplier_id, point.material_key)].append(point)
    return index


def _quote_material(material: RequestedMaterial, points: List[PricePoint]) -> MaterialQuote:
    unit = normalize_unit(material.unit)
    if unit is not None:
        points = [p for p in points if normalize_unit(p.unit) == unit]

    quote = MaterialQuote(
        name=material.name,
        quantity=material.quantity,
        unit=material.unit,
        data_points=len(points),
        confidence=confidence_for(len(points)),
        material_request_id=material.material_request_id,
    )
    if points:
        mean = sum((p.unit_cost for p in points), Decimal("0")) / len(points)
        quote.estimated_unit_cost = to_money(mean)
        quote.estimated_total_cost = to_money(quote.estimated_unit_cost * material.quantity)
    return quote


def compare_supplier_prices(
    suppliers: List[SupplierRef],
    materials: List[RequestedMaterial],
    history: Iterable[PricePoint],
) -> PriceComparison:
    """
    Estimate each supplier's cost for the requested materials and rank them.

    - Unit cost estimate = mean of the supplier's historical unit costs for the material
    - Supplier total = sum over materials with at least one data point; materials with
      no history add nothing, so partially-quoted suppliers can look cheaper
    - Suppliers with no resolvable material stay in the output but are not ranked
    - Ranking: total ascending, then more data points first, then supplier id
    """
    if not materials:
        raise ValidationError("At least one material is required for comparison")
    for material in materials:
        if not material.name or not material.name.strip():
            raise ValidationError("Material name is required")
        if material.quantity is None or material.quantity <= 0:
            raise ValidationError(f"Quantity for {material.name} must be greater than zero")

    index = _index_history(history)
    quotes: List[SupplierQuote] = []

    for supplier in suppliers:
        quote = SupplierQuote(supplier_id=supplier.supplier_id, supplier_name=supplier.name)
        total = ZERO
        for material in materials:
            key = (supplier.supplier_id, normalize_material_name(material.name))
            material_quote = _quote_material(material, index.get(key, []))
            quote.materials.append(material_quote)
            if material_quote.estimated_total_cost is not None:
                total += material_quote.estimated_total_cost
                quote.data_points += material_quote.data_points
        quote.total_estimated_cost = total
        quote.has_historical_data = any(m.data_points > 0 for m in quote.materials)
        quotes.append(quote)

    ranked = sorted(
        (q for q in quotes if q.has_historical_data),
        key=lambda q: (q.total_estimated_cost, -q.data_points, q.supplier_id),
    )
    unranked = sorted(
        (q for q in quotes if not q.has_historical_data),
        key=lambda q: q.supplier_id,
    )

    cheapest = ranked[0] if ranked else None
    if cheapest is not None:
        cheapest.is_cheapest = True

    summary = ComparisonSummary(
        cheapest_supplier_id=cheapest.supplier_id if cheapest else None,
        cheapest_supplier_name=cheapest.supplier_name if cheapest else None,
        cheapest_total=cheapest.total_estimated_cost if cheapest else None,
        suppliers_with_data=len(ranked),
        total_suppliers=len(quotes),
    )
    return PriceComparison(comparisons=ranked + unranked, summary=summary)
