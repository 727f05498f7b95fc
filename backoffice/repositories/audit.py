from typing import List
from backoffice.repositories.base import BaseRepository
from backoffice.models.audit import AuditEvent

class AuditRepository(BaseRepository[AuditEvent]):

    async def log_event(self, event: AuditEvent) -> AuditEvent:
        """Append an event to the audit trail."""
        return await self.create(event)

    async def get_for_entity(self, entity_type: str, entity_id: str, limit: int = 100) -> List[AuditEvent]:
        """All events for one entity, oldest first."""
        return await self.list(
            {"entity_type": entity_type, "entity_id": entity_id},
            limit=limit,
            sort=[("timestamp", 1)],
        )
