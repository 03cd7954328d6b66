from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class Unit(str, Enum):
    """Units of measure accepted on takeoff and bid line items."""

    EA = "EA"
    SF = "SF"
    LF = "LF"
    CY = "CY"
    SY = "SY"
    TON = "TON"
    LB = "LB"
    GAL = "GAL"
    HR = "HR"
    LS = "LS"


class CategoryStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    COMPLETE = "complete"


class BidStatus(str, Enum):
    RECEIVED = "received"
    REVIEWED = "reviewed"
    SELECTED = "selected"
    REJECTED = "rejected"


class StepStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"
    SKIPPED = "skipped"


class ApprovalStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUBMITTED = "submitted"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AreaType(str, Enum):
    AC_SF = "AC SF"
    GROSS_SF = "Gross SF"
    COVERED_PATIO = "Covered Patio"
    COVERED_SERVICE = "Covered Service"
    UNCOVERED_PATIO = "Uncovered Patio"
    PARKING = "Parking"


DOCUMENT_CATEGORIES: Tuple[str, ...] = (
    "Architectural",
    "Structural",
    "MEP",
    "Electrical",
    "Plumbing",
    "Civil",
    "Landscape",
    "Other",
)


@dataclass(frozen=True)
class LineItem:
    """Quantity x unit price row; ``total`` is derived, never stored."""

    id: str
    description: str
    quantity: float
    unit: Unit
    unit_price: float
    category: str = ""
    notes: str = ""

    @property
    def total(self) -> float:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class CostCategory:
    id: str
    name: str
    amount: float
    status: CategoryStatus = CategoryStatus.DRAFT
    items: int = 0
    last_updated: Optional[datetime] = None


@dataclass(frozen=True)
class VendorBid:
    id: str
    vendor_name: str
    trade: str
    total_amount: float
    line_items: Tuple[LineItem, ...] = ()
    confidence: float = 0.0
    status: BidStatus = BidStatus.RECEIVED
    inclusions: Tuple[str, ...] = ()
    exclusions: Tuple[str, ...] = ()
    submitted_at: Optional[datetime] = None
    vendor_id: str = ""
    notes: str = ""


@dataclass(frozen=True)
class ApprovalStep:
    id: str
    title: str
    description: str = ""
    status: StepStatus = StepStatus.PENDING
    completed_by: Optional[str] = None
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class MarkupRates:
    """Markup fractions, each applied to the subtotal independently."""

    overhead_rate: float = 0.10
    profit_rate: float = 0.08
    contingency_rate: float = 0.05


DEFAULT_RATES = MarkupRates()


@dataclass(frozen=True)
class Breakdown:
    subtotal: float
    overhead: float
    profit: float
    contingency: float
    total: float
    markup_percentage: float
    cost_per_gross_sf: float
    cost_per_net_sf: float


@dataclass(frozen=True)
class BidVariance:
    variance_percent: float
    risk_level: RiskLevel


@dataclass(frozen=True)
class ApprovalProgress:
    progress_percent: float
    is_fully_approved: bool


@dataclass(frozen=True)
class CostSummary:
    id: str
    rfp_id: str
    cost_categories: Tuple[CostCategory, ...] = ()
    approval_steps: Tuple[ApprovalStep, ...] = ()
    breakdown: Optional[Breakdown] = None
    approval_status: ApprovalStatus = ApprovalStatus.DRAFT
    notes: str = ""
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None


# Workflow records surrounding the roll-up.


@dataclass(frozen=True)
class RFP:
    id: str
    project_name: str
    client: str = ""
    location: str = ""
    due_date: Optional[datetime] = None
    status: str = "active"
    description: str = ""
    estimated_value: float = 0.0
    trades_required: Tuple[str, ...] = ()
    gross_sf: Optional[float] = None
    net_sf: Optional[float] = None
    duration_months: Optional[int] = None


@dataclass(frozen=True)
class AreaCalculation:
    id: str
    building: str
    level: str
    area_type: AreaType
    square_footage: float
    notes: str = ""


@dataclass(frozen=True)
class Clarification:
    id: str
    csi_division: str
    description: str
    type: str = "Assumption"
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class RFI:
    id: str
    number: str
    question: str
    status: str = "Pending"
    date_submitted: str = ""
    response: str = ""
    date_answered: str = ""
    assigned_to: str = ""
    priority: str = ""


@dataclass(frozen=True)
class Document:
    id: str
    sheet_number: str
    description: str
    date_issued: str
    date_received: str
    category: str = "Other"
    notes: str = ""
    revision: str = ""


@dataclass(frozen=True)
class GCAndGRItem:
    id: str
    item_number: str
    description: str
    category: str = "General Conditions"
    estimated_cost: Optional[float] = None
    is_included: bool = True
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Allowance:
    id: str
    csi_division: str
    description: str
    value: float
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class ValueAnalysisItem:
    id: str
    item_number: str
    description: str
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class CSVImportResult:
    total_rows: int
    successful_rows: int
    error_rows: int
    errors: Tuple[str, ...] = ()
    imported_documents: Tuple[Document, ...] = field(default_factory=tuple)


__all__ = [
    "Allowance",
    "ApprovalProgress",
    "ApprovalStatus",
    "ApprovalStep",
    "AreaCalculation",
    "AreaType",
    "BidStatus",
    "BidVariance",
    "Breakdown",
    "CSVImportResult",
    "CategoryStatus",
    "Clarification",
    "CostCategory",
    "CostSummary",
    "DEFAULT_RATES",
    "DOCUMENT_CATEGORIES",
    "Document",
    "GCAndGRItem",
    "LineItem",
    "MarkupRates",
    "RFI",
    "RFP",
    "RiskLevel",
    "StepStatus",
    "Unit",
    "ValueAnalysisItem",
    "VendorBid",
]
