import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from pydantic import ConfigDict, Field, field_validator
from backoffice.config import settings
from backoffice.models.base import ApiModel
from backoffice.utils.clock import ensure_utc, utcnow

logger = logging.getLogger(__name__)

class ExpenseStatus(str, Enum):
    """
    Status of an expense request.

    Status flow:
        Pending → Approved → Paid
            ↓        ↑ (toggle, 1h window)
          Rejected ←─┘

    The remote API speaks uppercase (PENDING, APPROVED, ...); the enum value
    is the display form.
    """
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    PAID = "Paid"

    @classmethod
    def from_wire(cls, value: Any) -> "ExpenseStatus":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise ValueError(f"Unknown expense status: {value!r}")

    def to_wire(self) -> str:
        return self.name

class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"

    @classmethod
    def from_wire(cls, value: Any) -> "Priority":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise ValueError(f"Unknown priority: {value!r}")

    def to_wire(self) -> str:
        return self.name

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]

PRIORITY_RANK = {
    Priority.URGENT: 4,
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}

EXPENSE_CATEGORIES = [
    "Office Supplies",
    "Equipment & Hardware",
    "Software & Licenses",
    "Marketing & Advertising",
    "Travel & Transportation",
    "Meals & Entertainment",
    "Utilities & Bills",
    "Professional Services",
    "Training & Development",
    "Maintenance & Repairs",
    "Insurance",
    "Legal & Compliance",
    "Other",
]

DEPARTMENTS = [
    "Administration",
    "Sales & Marketing",
    "IT & Technology",
    "Human Resources",
    "Finance & Accounting",
    "Operations",
    "Customer Service",
    "Research & Development",
]

# Local field name -> remote API field name, where they differ from camelCase
_WIRE_FIELD_NAMES = {
    "approved_date": "approvedAt",
    "paid_date": "paidAt",
}

def _priority_or_default(value: Any, expense_id: str) -> Priority:
    try:
        return Priority.from_wire(value) if value is not None else Priority.MEDIUM
    except ValueError:
        logger.warning(f"Expense {expense_id} has unknown priority {value!r}, using Medium")
        return Priority.MEDIUM

class Requester(ApiModel):
    model_config = ConfigDict(frozen=True)

    name: str = "Unknown User"
    email: str = "unknown@example.com"

class Expense(ApiModel):
    """An expense request and its decision state."""
    id: str
    title: str
    description: str = ""
    category: str = "Other"
    department: str = "N/A"
    vendor: Optional[str] = None
    invoice_number: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    priority: Priority = Priority.MEDIUM
    receipt_image: Optional[str] = None

    amount: float = Field(..., ge=0)
    currency: str = Field(default_factory=lambda: settings.CURRENCY_SYMBOL)

    requested_by: Requester = Field(default_factory=Requester)
    request_date: datetime = Field(default_factory=utcnow)

    status: ExpenseStatus = ExpenseStatus.PENDING
    approved_by: Optional[str] = None
    approved_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    decision_date: Optional[datetime] = None
    paid_by: Optional[str] = None
    paid_date: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        return ExpenseStatus.from_wire(v)

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v):
        if v is None:
            return Priority.MEDIUM
        return Priority.from_wire(v)

    @field_validator("request_date", "approved_date", "decision_date", "paid_date")
    @classmethod
    def normalise_timestamps(cls, v):
        return ensure_utc(v)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Expense":
        """
        Normalise a record from the remote expenses API the way the
        dashboard list does (fallback labels, uppercase enums, decision date).
        """
        expense_id = str(data["id"])
        user = data.get("user") or data.get("requester") or {}

        approved_by = data.get("approvedBy")
        if not approved_by and data.get("approvedById"):
            approved_by = "Approved by Admin"

        return cls(
            id=expense_id,
            title=data.get("title", ""),
            description=data.get("description") or "",
            category=data.get("category") or "Other",
            department=data.get("department") or "N/A",
            vendor=data.get("vendor") or "Unknown Vendor",
            invoice_number=data.get("invoiceNumber") or f"INV-{expense_id[-6:]}",
            tags=data.get("tags") or [],
            priority=_priority_or_default(data.get("priority"), expense_id),
            receipt_image=data.get("receiptUrl"),
            amount=data.get("amount", 0),
            currency=settings.CURRENCY_SYMBOL,
            requested_by=Requester(
                name=user.get("name") or "Unknown User",
                email=user.get("email") or "unknown@example.com",
            ),
            request_date=data.get("createdAt") or utcnow(),
            status=data.get("status", "PENDING"),
            approved_by=approved_by,
            approved_date=data.get("approvedAt"),
            rejection_reason=data.get("rejectionReason"),
            decision_date=data.get("decisionDate") or data.get("approvedAt") or data.get("updatedAt"),
            paid_by=data.get("paidBy"),
            paid_date=data.get("paidAt"),
        )

    def to_patch(self, fields: Iterable[str]) -> Dict[str, Any]:
        """Build the remote update payload for the given (changed) fields."""
        fields = set(fields)
        dumped = self.model_dump(include=fields, mode="json")
        patch = {}
        for name, value in dumped.items():
            if name == "status":
                value = self.status.to_wire()
            elif name == "priority":
                value = self.priority.to_wire()
            key = _WIRE_FIELD_NAMES.get(name) or type(self).model_fields[name].alias or name
            patch[key] = value
        return patch

class ExpenseSummary(ApiModel):
    total_expenses: int = 0
    pending_expenses: int = 0
    approved_expenses: int = 0
    rejected_expenses: int = 0
    paid_expenses: int = 0
    total_amount: float = 0.0
    monthly_amount: float = 0.0
    department_breakdown: Dict[str, float] = Field(default_factory=dict)

class ExpenseQuery(ApiModel):
    """Search, filter and sort state of the expenses list."""
    search: str = ""
    status: str = "All"
    category: str = "All"
    department: str = "All"
    priority: str = "All"
    sort_by: str = "requestDate"
    sort_order: str = "desc"
    page: int = 1

class ExpensePage(ApiModel):
    items: List[Expense] = []
    page: int = 1
    total_pages: int = 1
    total_items: int = 0
    start_index: int = 0
    end_index: int = 0

class CreateExpensePayload(ApiModel):
    title: str
    description: str = ""
    amount: float = Field(..., ge=0)
    category: str
    department: str
    priority: Priority = Priority.MEDIUM
    vendor: Optional[str] = None
    invoice_number: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    receipt_url: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v):
        return Priority.from_wire(v)

    def to_wire(self, exclude_none: bool = True) -> Dict[str, Any]:
        data = super().to_wire(exclude_none=exclude_none)
        data["priority"] = self.priority.to_wire()
        return data

class UpdateExpensePayload(ApiModel):
    title: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    department: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[ExpenseStatus] = None
    receipt_url: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        return None if v is None else ExpenseStatus.from_wire(v)

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v):
        return None if v is None else Priority.from_wire(v)

    def to_wire(self, exclude_none: bool = True) -> Dict[str, Any]:
        data = super().to_wire(exclude_none=exclude_none)
        if self.status is not None:
            data["status"] = self.status.to_wire()
        if self.priority is not None:
            data["priority"] = self.priority.to_wire()
        return data
