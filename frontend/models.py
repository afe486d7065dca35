from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


# Enums
class PlanTier(str, Enum):
    starter = "starter"
    professional = "professional"
    enterprise = "enterprise"


class BillingCycle(str, Enum):
    monthly = "monthly"
    annual = "annual"


class ReportType(str, Enum):
    asset_inventory = "asset-inventory"
    financial_summary = "financial-summary"
    depreciation_analysis = "depreciation-analysis"
    category_distribution = "category-distribution"
    maintenance_report = "maintenance-report"
    utilization_analysis = "utilization-analysis"
    compliance_audit = "compliance-audit"
    assignment_report = "assignment-report"
    status_breakdown = "status-breakdown"


class ChartType(str, Enum):
    table = "table"
    bar = "bar"
    line = "line"
    pie = "pie"


class FilterType(str, Enum):
    date = "date"
    select = "select"
    multiselect = "multiselect"
    text = "text"


# Billing
class SubscriptionQuote(BaseModel):
    """Inputs of the pricing calculator. Immutable; price is derived on access."""
    model_config = ConfigDict(frozen=True)

    plan: PlanTier
    asset_count: PositiveInt
    user_count: PositiveInt
    billing_cycle: BillingCycle = BillingCycle.monthly

    @property
    def price(self) -> int:
        from frontend.pricing import calculate_price
        return calculate_price(self)


class PaymentMetadata(BaseModel):
    plan: PlanTier
    asset_count: int = Field(..., serialization_alias="assetCount")
    user_count: int = Field(..., serialization_alias="userCount")
    billing_cycle: BillingCycle = Field(..., serialization_alias="billingCycle")
    user_id: Optional[str] = Field(None, serialization_alias="userId")


class PaymentRequest(BaseModel):
    """Payload for POST /payments/initialize. `amount` is in kobo."""
    amount: int
    email: str
    reference: str
    callback_url: str
    metadata: PaymentMetadata


class PaymentInitResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    authorization_url: str
    access_code: Optional[str] = None
    reference: str


class PaymentVerification(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    status: str
    amount: int = 0
    currency: str = "NGN"
    reference: str
    paid_at: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    transaction_id: Optional[str] = Field(None, alias="transactionId")

    @property
    def is_successful(self) -> bool:
        return self.status == "success"


# Assets
class MaintenanceRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    performed_on: Optional[date] = Field(None, alias="date")
    type: str = "general"
    cost: float = 0.0
    description: str = ""
    performed_by: Optional[str] = Field(None, alias="performedBy")
    next_scheduled: Optional[date] = Field(None, alias="nextScheduled")


class AssetRecord(BaseModel):
    """
    Normalized asset as returned by the backend.

    The backend uses camelCase keys and sometimes `_id` instead of `id`;
    adapters.parse_asset() handles both before validation.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str
    category: str = "Uncategorized"
    location: Optional[str] = None
    status: str = "active"
    department: Optional[str] = None
    assigned_to: Optional[str] = Field(None, alias="assignedTo")
    purchase_date: Optional[date] = Field(None, alias="purchaseDate")
    purchase_value: float = Field(0.0, alias="purchaseValue")
    current_value: float = Field(0.0, alias="currentValue")
    serial_number: Optional[str] = Field(None, alias="serialNumber")
    model: Optional[str] = None
    manufacturer: Optional[str] = None
    warranty_expiry: Optional[date] = Field(None, alias="warrantyExpiry")
    maintenance_history: List[MaintenanceRecord] = Field(default_factory=list, alias="maintenanceHistory")

    # Utilization metrics (present only when the backend tracks usage)
    utilization: Optional[float] = None
    hours_used: Optional[float] = Field(None, alias="hoursUsed")
    efficiency_score: Optional[float] = Field(None, alias="efficiencyScore")

    # Compliance metrics
    compliance_status: Optional[str] = Field(None, alias="complianceStatus")
    last_audit: Optional[date] = Field(None, alias="lastAudit")
    issues: int = 0
    risk_level: Optional[str] = Field(None, alias="riskLevel")


class FilterOption(BaseModel):
    value: str
    label: str


# Reports
class ReportFilter(BaseModel):
    """Declared filter: what the report builder offers and how it validates."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    type: FilterType
    required: bool = False
    options: List[FilterOption] = Field(default_factory=list)


class ReportTypeInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: ReportType
    name: str
    description: str
    chart_type: ChartType


class ChartPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: float


Cell = Union[str, int, float, None]


class ReportData(BaseModel):
    model_config = ConfigDict(frozen=True)

    headers: List[str] = Field(default_factory=list)
    table_data: List[List[Cell]] = Field(default_factory=list)
    chart_data: Optional[List[ChartPoint]] = None
    total_value: Optional[float] = None


class ReportSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_records: int = 0
    total_value: float = 0.0
    categories: List[str] = Field(default_factory=list)
    locations: Optional[List[str]] = None
    departments: Optional[List[str]] = None


class ReportResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    report_type: ReportType
    filters: Dict[str, Any] = Field(default_factory=dict)
    data: ReportData
    generated_at: datetime
    summary: ReportSummary


class SavedReport(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    name: str
    type: ReportType
    filters: Dict[str, Any] = Field(default_factory=dict)
    description: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    last_modified: Optional[datetime] = Field(None, alias="lastModified")
    created_by: Optional[str] = Field(None, alias="createdBy")
