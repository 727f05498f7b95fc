import logging
from typing import Dict, Optional, Protocol

from backoffice.models.access import AccessState, ADMIN_ROLE_ID, VIEWER_ROLE_ID, build_default_state
from backoffice.repositories.base import BaseRepository
from backoffice.utils.clock import utcnow

logger = logging.getLogger(__name__)

class AccessStore(Protocol):
    """Where the users/roles permission state lives between requests."""

    async def load(self) -> AccessState: ...

    async def save(self, state: AccessState) -> None: ...

def normalise_loaded_state(state: AccessState) -> AccessState:
    """
    The viewer row only exists in the matrix: drop it from the visible roles
    and move any user still pointing at it to admin.
    """
    roles = [r for r in state.roles if r.role_id != VIEWER_ROLE_ID]
    users = [
        u.model_copy(update={"role_id": ADMIN_ROLE_ID}) if u.role_id == VIEWER_ROLE_ID else u
        for u in state.users
    ]
    return state.model_copy(update={"roles": roles, "users": users})

class MongoAccessStore(BaseRepository[AccessState]):
    """One access-state document per tenant."""

    def __init__(self, collection, tenant_id: str):
        super().__init__(collection, AccessState)
        self.tenant_id = tenant_id

    async def load(self) -> AccessState:
        state = await self.get_by_field("tenant_id", self.tenant_id)
        if state is None:
            logger.info(f"No access state for tenant {self.tenant_id}, using defaults")
            return build_default_state(self.tenant_id)
        return normalise_loaded_state(state)

    async def save(self, state: AccessState) -> None:
        state.updated_at = utcnow()
        await self.replace_by_field("tenant_id", self.tenant_id, state)

class InMemoryAccessStore:
    def __init__(self, tenant_id: str, initial: Optional[AccessState] = None):
        self.tenant_id = tenant_id
        self._states: Dict[str, AccessState] = {}
        if initial is not None:
            self._states[tenant_id] = initial

    async def load(self) -> AccessState:
        state = self._states.get(self.tenant_id)
        if state is None:
            return build_default_state(self.tenant_id)
        return normalise_loaded_state(state.model_copy(deep=True))

    async def save(self, state: AccessState) -> None:
        state.updated_at = utcnow()
        self._states[self.tenant_id] = state.model_copy(deep=True)
