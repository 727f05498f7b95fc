from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import Field
from backoffice.models.base import ApiModel, MongoModel
from backoffice.utils.clock import utcnow

class ActionType(str, Enum):
    CREATE = "CREATE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    TOGGLE = "TOGGLE"
    MARK_PAID = "MARK_PAID"
    PERMISSION_CHANGE = "PERMISSION_CHANGE"
    STATE_CHANGE = "STATE_CHANGE"

class Actor(MongoModel):
    id: str
    name: str
    type: str = "USER" # USER, SYSTEM

class AuditEvent(MongoModel):
    """
    Local audit trail entry for a workflow transition or access change.
    """
    event_id: str = Field(..., description="Unique event ID")
    tenant_id: str
    entity_type: str = Field(..., description="e.g. 'expense', 'access'")
    entity_id: Optional[str] = None

    action_type: ActionType
    actor: Actor
    details: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    success: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)

    timestamp: datetime = Field(default_factory=utcnow)

class AuditLogUser(ApiModel):
    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""

class AuditLog(ApiModel):
    """Audit log record as served by the remote API."""
    id: str
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    user_id: Optional[str] = None
    user: Optional[AuditLogUser] = None
    details: Any = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

class AuditLogPage(ApiModel):
    data: List[AuditLog] = []
    total: int = 0
    page: int = 1
    limit: int = 0
