from datetime import datetime
from typing import Optional, List
from pydantic import Field, field_validator
from backoffice.models.base import ApiModel
from backoffice.models.expense import ExpenseStatus

class ApprovalAction(ApiModel):
    action: str # approve, reject, mark-paid
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None

class ApprovalRequest(ApiModel):
    """Approval request as served by the remote approvals API."""
    id: str
    type: str = "expense" # expense, purchase, refund, other
    title: str
    description: str = ""
    amount: float = 0.0
    currency: str = "NGN"
    status: ExpenseStatus = ExpenseStatus.PENDING

    requester_id: Optional[str] = None
    requester_name: Optional[str] = None
    approver_id: Optional[str] = None
    approver_name: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v):
        return ExpenseStatus.from_wire(v)
