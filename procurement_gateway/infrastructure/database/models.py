"""SQLAlchemy ORM models for projects, spending requests, expenses, audit log and supplier pricing"""

import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Date, ForeignKey, Text, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

Money = Numeric(14, 2)


class Project(Base):
    """Construction project with its capital totals"""

    __tablename__ = "project"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    total_invested_capital = Column(Money, nullable=False, default=Decimal("0.00"))
    total_used_capital = Column(Money, nullable=False, default=Decimal("0.00"))
    capital_balance = Column(Money, nullable=False, default=Decimal("0.00"))
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Concurrent writers on the same project raise StaleDataError on flush
    __mapper_args__ = {"version_id_col": version}

    spending_requests = relationship("SpendingRequest", back_populates="project")

    def recompute_balance(self) -> None:
        self.capital_balance = Decimal(self.total_invested_capital) - Decimal(self.total_used_capital)


class SpendingRequest(Base):
    """Request to spend project capital; concrete kinds share one table"""

    __tablename__ = "spending_request"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), ForeignKey("project.id"), nullable=False, index=True)
    kind = Column(String(32), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Money, nullable=False)
    currency = Column(String(3), nullable=False, default="KES")
    status = Column(String(16), nullable=False, default="PENDING", index=True)
    requested_by = Column(Text, nullable=False)

    approved_by = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approval_notes = Column(Text, nullable=True)

    rejected_by = Column(Text, nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    payment_method = Column(String(32), nullable=True)
    payment_date = Column(Date, nullable=True)
    payment_reference = Column(Text, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    archived_at = Column(DateTime(timezone=True), nullable=True)
    expense_id = Column(UUID(as_uuid=True), nullable=True)
    version = Column(Integer, nullable=False)

    # Material request fields
    material_name = Column(Text, nullable=True)
    quantity = Column(Numeric(14, 3), nullable=True)
    unit = Column(String(32), nullable=True)
    supplier_id = Column(UUID(as_uuid=True), ForeignKey("supplier.id"), nullable=True)

    # Professional fee fields
    fee_type = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    project = relationship("Project", back_populates="spending_requests")

    # Transitions racing on the same request raise StaleDataError on flush
    __mapper_args__ = {
        "polymorphic_on": kind,
        "polymorphic_identity": "SPENDING_REQUEST",
        "version_id_col": version,
    }

    expense_category = "general"


class MaterialRequest(SpendingRequest):
    __mapper_args__ = {"polymorphic_identity": "MATERIAL_REQUEST"}

    expense_category = "materials"


class ProfessionalFee(SpendingRequest):
    __mapper_args__ = {"polymorphic_identity": "PROFESSIONAL_FEE"}

    expense_category = "construction_services"


class ExpenseRecord(Base):
    """Immutable expense created when a spending request is approved"""

    __tablename__ = "expense_record"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    source_request_id = Column(UUID(as_uuid=True), ForeignKey("spending_request.id"), nullable=False, unique=True)
    project_id = Column(UUID(as_uuid=True), ForeignKey("project.id"), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    currency = Column(String(3), nullable=False, default="KES")
    category = Column(String(64), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class AuditLogEntry(Base):
    """Append-only change record"""

    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False)
    action = Column(String(32), nullable=False)
    entity_type = Column(String(32), nullable=False)
    entity_id = Column(Text, nullable=False, index=True)
    project_id = Column(Text, nullable=True, index=True)
    changes = Column(JSON, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Supplier(Base):
    __tablename__ = "supplier"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    status = Column(String(16), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    price_points = relationship("SupplierPricePoint", back_populates="supplier", cascade="all, delete-orphan")


class SupplierPricePoint(Base):
    """Unit cost actually paid to a supplier for a material"""

    __tablename__ = "supplier_price_point"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    supplier_id = Column(UUID(as_uuid=True), ForeignKey("supplier.id", ondelete="CASCADE"), nullable=False)
    material_key = Column(Text, nullable=False, index=True)
    material_name = Column(Text, nullable=False)
    unit = Column(String(32), nullable=True)
    unit_cost = Column(Money, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    supplier = relationship("Supplier", back_populates="price_points")
