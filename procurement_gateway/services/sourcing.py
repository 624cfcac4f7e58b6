"""Supplier sourcing: price history input and on-demand price comparison"""

import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from procurement_gateway.domain.exceptions import NotFoundError, ValidationError
from procurement_gateway.domain.models import PriceComparison, RequestedMaterial
from procurement_gateway.domain.pricing import compare_supplier_prices, normalize_material_name, normalize_unit
from procurement_gateway.infrastructure.database.models import Supplier, SupplierPricePoint
from procurement_gateway.infrastructure.database.repositories import SupplierRepository
from procurement_gateway.services.transactions import run_atomic
from procurement_gateway.utils.money import to_money


class SupplierPriceComparator:
    """Ranks suppliers by historical unit costs; results are computed per call, never cached"""

    def __init__(self, db: Session):
        self.db = db
        self.suppliers = SupplierRepository(db)

    def register_supplier(self, name: str) -> Supplier:
        if not name or not name.strip():
            raise ValidationError("Supplier name is required")
        return run_atomic(self.db, "register_supplier", lambda: self.suppliers.create_supplier(name.strip()))

    def record_price(
        self,
        supplier_id: uuid.UUID,
        material_name: str,
        unit_cost: Decimal,
        unit: Optional[str] = None,
    ) -> SupplierPricePoint:
        """Add one historical unit cost (e.g. from a delivered purchase order)"""
        if not material_name or not material_name.strip():
            raise ValidationError("Material name is required")
        unit_cost = to_money(unit_cost)
        if unit_cost <= 0:
            raise ValidationError("Unit cost must be greater than zero")

        def unit_of_work() -> SupplierPricePoint:
            if self.suppliers.get_supplier(supplier_id) is None:
                raise NotFoundError(f"Supplier {supplier_id} not found")
            return self.suppliers.add_price_point(
                supplier_id=supplier_id,
                material_key=normalize_material_name(material_name),
                material_name=material_name.strip(),
                unit=normalize_unit(unit),
                unit_cost=unit_cost,
            )

        return run_atomic(self.db, "record_price", unit_of_work)

    def compare(self, materials: List[RequestedMaterial]) -> PriceComparison:
        keys = [normalize_material_name(m.name) for m in materials if m.name]
        return compare_supplier_prices(
            self.suppliers.list_active_suppliers(),
            materials,
            self.suppliers.get_price_history(keys),
        )
