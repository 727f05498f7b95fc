import logging
import uuid
from typing import Any, Dict, List, Optional, Union

from pymongo.errors import PyMongoError

from backoffice.config import settings
from backoffice.database import db
from backoffice.models.audit import AuditEvent, Actor, ActionType
from backoffice.models.expense import Expense, ExpenseStatus

logger = logging.getLogger(__name__)

class AuditLogger:
    def __init__(self, tenant_id: str = None):
        self.tenant_id = tenant_id or settings.TENANT_ID

    async def log_event(self,
                        entity_type: str,
                        entity_id: Optional[str],
                        action_type: Union[str, ActionType],
                        actor: Union[Dict[str, Any], Actor],
                        details: str,
                        from_status: Optional[str] = None,
                        to_status: Optional[str] = None,
                        success: bool = True,
                        metadata: Dict[str, Any] = None) -> AuditEvent:
        """
        Generic logging point. Unknown action strings are recorded as STATE_CHANGE.
        """
        actor_obj = Actor(**actor) if isinstance(actor, dict) else actor

        if isinstance(action_type, str):
            try:
                action_type = ActionType(action_type)
            except ValueError:
                action_type = ActionType.STATE_CHANGE

        event = AuditEvent(
            event_id=f"EVT-{uuid.uuid4().hex}",
            tenant_id=self.tenant_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action_type=action_type,
            actor=actor_obj,
            details=details,
            from_status=from_status,
            to_status=to_status,
            success=success,
            metadata=metadata or {},
        )

        if db.audit:
            try:
                await db.audit.log_event(event)
            except PyMongoError as e:
                logger.error(f"Failed to save audit event {event.event_id}: {e}")
        else:
            logger.warning("Audit DB not available, skipping log save.")

        logger.info(f"AUDIT [{action_type.value}]: {details} ({entity_type}:{entity_id})")
        return event

    async def log_transition(self,
                             before: Expense,
                             after: Expense,
                             action_type: ActionType,
                             actor_name: str) -> AuditEvent:
        actor = Actor(id=actor_name, name=actor_name, type="USER")
        details = f"Expense {after.id} {before.status.value} -> {after.status.value}"
        if after.status == ExpenseStatus.REJECTED and after.rejection_reason:
            details += f" (reason: {after.rejection_reason})"

        return await self.log_event(
            entity_type="expense",
            entity_id=after.id,
            action_type=action_type,
            actor=actor,
            details=details,
            from_status=before.status.value,
            to_status=after.status.value,
            metadata={"amount": after.amount, "decision_date": after.decision_date.isoformat() if after.decision_date else None},
        )

    async def get_audit_trail(self, expense_id: str) -> List[AuditEvent]:
        if not db.audit:
            return []
        return await db.audit.get_for_entity("expense", expense_id)

audit_logger = AuditLogger()
