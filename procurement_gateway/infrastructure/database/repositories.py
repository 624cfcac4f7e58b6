"""Data access layer for procurement entities"""

import uuid
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.orm import Session
from procurement_gateway.infrastructure.database.models import (
    AuditLogEntry,
    ExpenseRecord,
    MaterialRequest,
    ProfessionalFee,
    Project,
    SpendingRequest,
    Supplier,
    SupplierPricePoint,
)
from procurement_gateway.domain.models import PricePoint, RequestKind, SupplierRef


class ProjectRepository:
    """Repository for projects and their capital totals"""

    def __init__(self, db: Session):
        self.db = db

    def create_project(self, name: str, total_invested_capital: Decimal) -> Project:
        db_project = Project(
            name=name,
            total_invested_capital=total_invested_capital,
            total_used_capital=Decimal("0.00"),
        )
        db_project.recompute_balance()
        self.db.add(db_project)
        self.db.flush()
        return db_project

    def get_project(self, project_id: uuid.UUID) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id).first()

    def get_project_for_update(self, project_id: uuid.UUID) -> Optional[Project]:
        """Fetch project with a row lock so capital writes on it serialize"""
        return (
            self.db.query(Project)
            .filter(Project.id == project_id)
            .with_for_update()
            .populate_existing()
            .first()
        )


class SpendingRequestRepository:
    """Repository for material requests and professional fees"""

    def __init__(self, db: Session):
        self.db = db

    def create_request(self, kind: RequestKind, **fields: Any) -> SpendingRequest:
        model = MaterialRequest if kind == RequestKind.MATERIAL_REQUEST else ProfessionalFee
        db_request = model(**fields)
        self.db.add(db_request)
        self.db.flush()
        return db_request

    def get_request(self, request_id: uuid.UUID) -> Optional[SpendingRequest]:
        return self.db.query(SpendingRequest).filter(SpendingRequest.id == request_id).first()

    def get_request_for_update(self, request_id: uuid.UUID) -> Optional[SpendingRequest]:
        return (
            self.db.query(SpendingRequest)
            .filter(SpendingRequest.id == request_id)
            .with_for_update()
            .populate_existing()
            .first()
        )


class ExpenseRepository:
    """Repository for expense records"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_source_request(self, request_id: uuid.UUID) -> Optional[ExpenseRecord]:
        return (
            self.db.query(ExpenseRecord)
            .filter(ExpenseRecord.source_request_id == request_id)
            .first()
        )

    def create_expense(self, **fields: Any) -> ExpenseRecord:
        db_expense = ExpenseRecord(**fields)
        self.db.add(db_expense)
        self.db.flush()  # Surface UNIQUE(source_request_id) violations inside the unit
        return db_expense


class AuditRepository:
    """Repository for the append-only audit log"""

    def __init__(self, db: Session):
        self.db = db

    def add_entry(
        self,
        user_id: str,
        action: str,
        entity_type: str,
        entity_id: str,
        changes: Dict[str, Any],
        project_id: Optional[str] = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            project_id=project_id,
            changes=changes,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def get_entries_by_entity(self, entity_id: str, limit: int = 50) -> List[AuditLogEntry]:
        """Entries in the order they were written"""
        return (
            self.db.query(AuditLogEntry)
            .filter(AuditLogEntry.entity_id == entity_id)
            .order_by(AuditLogEntry.id.asc())
            .limit(limit)
            .all()
        )


class SupplierRepository:
    """Repository for suppliers and their price history"""

    def __init__(self, db: Session):
        self.db = db

    def create_supplier(self, name: str) -> Supplier:
        db_supplier = Supplier(name=name, status="ACTIVE")
        self.db.add(db_supplier)
        self.db.flush()
        return db_supplier

    def get_supplier(self, supplier_id: uuid.UUID) -> Optional[Supplier]:
        return self.db.query(Supplier).filter(Supplier.id == supplier_id).first()

    def add_price_point(
        self,
        supplier_id: uuid.UUID,
        material_key: str,
        material_name: str,
        unit: Optional[str],
        unit_cost: Decimal,
    ) -> SupplierPricePoint:
        point = SupplierPricePoint(
            supplier_id=supplier_id,
            material_key=material_key,
            material_name=material_name,
            unit=unit,
            unit_cost=unit_cost,
        )
        self.db.add(point)
        self.db.flush()
        return point

    def list_active_suppliers(self) -> List[SupplierRef]:
        rows = self.db.query(Supplier).filter(Supplier.status == "ACTIVE").all()
        return [SupplierRef(supplier_id=str(s.id), name=s.name) for s in rows]

    def get_price_history(self, material_keys: Iterable[str]) -> List[PricePoint]:
        """Price points for the given materials across active suppliers"""
        keys = list(set(material_keys))
        if not keys:
            return []
        rows = (
            self.db.query(SupplierPricePoint)
            .join(Supplier, Supplier.id == SupplierPricePoint.supplier_id)
            .filter(SupplierPricePoint.material_key.in_(keys))
            .filter(Supplier.status == "ACTIVE")
            .all()
        )
        return [
            PricePoint(
                supplier_id=str(row.supplier_id),
                material_key=row.material_key,
                unit=row.unit,
                unit_cost=Decimal(row.unit_cost),
            )
            for row in rows
        ]
