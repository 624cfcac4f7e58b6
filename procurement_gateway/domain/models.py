"""Domain models - pure Python dataclasses and enums representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class RequestStatus(str, Enum):
    """Lifecycle states of a spending request"""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"
    ARCHIVED = "ARCHIVED"


class RequestKind(str, Enum):
    MATERIAL_REQUEST = "MATERIAL_REQUEST"
    PROFESSIONAL_FEE = "PROFESSIONAL_FEE"


class AuditAction(str, Enum):
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"
    ARCHIVED = "ARCHIVED"
    CAPITAL_INJECTED = "CAPITAL_INJECTED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    M_PESA = "M_PESA"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHEQUE = "CHEQUE"


class CapitalStatus(str, Enum):
    OK = "OK"
    LOW = "LOW"
    NEGATIVE = "NEGATIVE"
    UNFUNDED = "UNFUNDED"


class Severity(str, Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    NONE = "NONE"


class WarningCode(str, Enum):
    """Closed set of advisory outcomes, each tied to one severity"""

    UNFUNDED = "UNFUNDED"
    INSUFFICIENT = "INSUFFICIENT"
    LOW_AFTER = "LOW_AFTER"
    LOW_CURRENT = "LOW_CURRENT"
    NONE = "NONE"

    @property
    def severity(self) -> Severity:
        return {
            WarningCode.UNFUNDED: Severity.ERROR,
            WarningCode.INSUFFICIENT: Severity.ERROR,
            WarningCode.LOW_AFTER: Severity.WARNING,
            WarningCode.LOW_CURRENT: Severity.INFO,
            WarningCode.NONE: Severity.NONE,
        }[self]


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class StockStatus(str, Enum):
    PENDING_DELIVERY = "PENDING_DELIVERY"
    DEPLETED = "DEPLETED"
    LOW = "LOW"
    MODERATE = "MODERATE"
    HEALTHY = "HEALTHY"
    NO_STOCK = "NO_STOCK"


@dataclass
class CapitalPosition:
    """Snapshot of a project's capital figures"""

    capital_balance: Decimal
    total_invested: Decimal
    total_used: Decimal


@dataclass
class CapitalClassification:
    status: CapitalStatus
    note: Optional[str] = None


@dataclass
class SpendingWarning:
    """Advisory outcome of evaluating a spend - never a reason to fail"""

    code: WarningCode
    message: str
    remaining_after: Decimal
    position: CapitalPosition

    @property
    def severity(self) -> Severity:
        return self.code.severity


@dataclass
class PaymentInfo:
    date: Optional[date]
    method: Optional[str] = None
    reference: Optional[str] = None


@dataclass
class RequestedMaterial:
    """One line of a sourcing request"""

    name: str
    quantity: Decimal
    unit: Optional[str] = None
    material_request_id: Optional[str] = None


@dataclass
class PricePoint:
    """Historical unit cost paid to a supplier for a material"""

    supplier_id: str
    material_key: str
    unit: Optional[str]
    unit_cost: Decimal


@dataclass
class SupplierRef:
    supplier_id: str
    name: str


@dataclass
class MaterialQuote:
    name: str
    quantity: Decimal
    unit: Optional[str]
    data_points: int
    confidence: Confidence
    estimated_unit_cost: Optional[Decimal] = None
    estimated_total_cost: Optional[Decimal] = None
    material_request_id: Optional[str] = None


@dataclass
class SupplierQuote:
    supplier_id: str
    supplier_name: str
    materials: List[MaterialQuote] = field(default_factory=list)
    total_estimated_cost: Decimal = Decimal("0.00")
    has_historical_data: bool = False
    data_points: int = 0
    is_cheapest: bool = False


@dataclass
class ComparisonSummary:
    cheapest_supplier_id: Optional[str]
    cheapest_supplier_name: Optional[str]
    cheapest_total: Optional[Decimal]
    suppliers_with_data: int
    total_suppliers: int


@dataclass
class PriceComparison:
    comparisons: List[SupplierQuote]
    summary: ComparisonSummary


@dataclass
class StockItem:
    """Inventory read model - quantities as recorded by the site"""

    quantity_purchased: Decimal
    quantity_delivered: Decimal
    quantity_remaining: Decimal
    unit: Optional[str] = None


@dataclass
class StockAssessment:
    status: StockStatus
    percentage: Optional[Decimal]
