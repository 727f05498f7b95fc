import logging
import re
from typing import Dict, Iterable, List

from backoffice.models.access import (
    AccessState, AppUser, Role, ADMIN_ROLE_ID, VIEWER_ROLE_ID, permission_key,
)

logger = logging.getLogger(__name__)

# "entity.action" -> "action_entity" where the pattern rule does not apply
EXPLICIT_TOKEN_FORMAT = {
    "audit.view_logs": "view_audit_logs",
}

_TO_TOKEN_ACTION = {"edit": "update"}
_FROM_TOKEN_ACTION = {"update": "edit"}


def has_token_permission(granted: Iterable[str], required: str) -> bool:
    """
    Match a permission against the list carried by an auth token.
    Tokens may use either 'entity.action' or 'action_entity'.
    """
    granted = set(granted)
    if required in granted:
        return True

    explicit = EXPLICIT_TOKEN_FORMAT.get(required)
    if explicit and explicit in granted:
        return True

    parts = required.split(".")
    if len(parts) == 2:
        entity, action = parts
        if f"{_TO_TOKEN_ACTION.get(action, action)}_{entity}" in granted:
            return True

    if "_" in required:
        action, _, entity = required.partition("_")
        if f"{entity}.{_FROM_TOKEN_ACTION.get(action, action)}" in granted:
            return True

    return False


def slugify_role(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


class PermissionChecker:
    """
    Role/permission checks over an AccessState. Mutating helpers change the
    state in place; persisting it is the caller's job (AccessStore.save).
    """
    def __init__(self, state: AccessState):
        self.state = state

    def effective_permission(self, user_id: str, key: str) -> bool:
        overrides = self.state.user_overrides.get(user_id)
        if overrides and key in overrides:
            return bool(overrides[key])

        user = self.state.get_user(user_id)
        if user is None:
            return False
        return bool(self.state.permission_matrix.get(user.role_id, {}).get(key))

    def check_permission(self, user_id: str, entity: str, action: str) -> bool:
        key = permission_key(entity, action)
        user = self.state.get_user(user_id)
        if user is None:
            logger.warning(f"Unknown user {user_id} asked for {key}")
            return False

        if self.effective_permission(user_id, key):
            return True

        logger.warning(f"User {user.name} ({user.role_id}) denied permission {key}")
        return False

    def toggle_role_permission(self, role_id: str, key: str) -> bool:
        row = self.state.permission_matrix.setdefault(role_id, {})
        row[key] = not row.get(key, False)
        return row[key]

    def toggle_user_permission(self, user_id: str, key: str) -> bool:
        current = self.effective_permission(user_id, key)
        self.state.user_overrides.setdefault(user_id, {})[key] = not current
        return not current

    def reset_user_permissions(self, user_id: str) -> None:
        self.state.user_overrides.pop(user_id, None)

    def create_role(self, name: str, source_role_id: str = VIEWER_ROLE_ID) -> Role:
        role_id = slugify_role(name)
        if not role_id:
            raise ValueError("Role name is required")
        if self.state.get_role(role_id) is not None:
            raise ValueError(f"Role with id {role_id} already exists")

        source = self.state.get_role(source_role_id)
        role = Role(role_id=role_id, name=name, description=source.description if source else "")
        self.state.roles.append(role)
        self.state.permission_matrix[role_id] = dict(self.state.permission_matrix.get(source_role_id, {}))
        return role

    def clone_role(self, source_role_id: str, name: str) -> Role:
        if self.state.get_role(source_role_id) is None:
            raise ValueError(f"Unknown role {source_role_id}")
        return self.create_role(name, source_role_id=source_role_id)

    def delete_role(self, role_id: str) -> List[AppUser]:
        """Remove a non-system role; its users fall back to admin. Returns the moved users."""
        role = self.state.get_role(role_id)
        if role is None or role.is_system:
            raise ValueError("Cannot delete system role")

        self.state.roles = [r for r in self.state.roles if r.role_id != role_id]
        self.state.permission_matrix.pop(role_id, None)

        moved = []
        for user in self.state.users:
            if user.role_id == role_id:
                user.role_id = ADMIN_ROLE_ID
                moved.append(user)
        return moved

    def assign_role(self, user_id: str, role_id: str) -> AppUser:
        user = self.state.get_user(user_id)
        if user is None:
            raise ValueError(f"Unknown user {user_id}")
        if self.state.get_role(role_id) is None:
            raise ValueError(f"Unknown role {role_id}")
        user.role_id = role_id
        return user

    def permissions_for(self, user_id: str) -> Dict[str, bool]:
        user = self.state.get_user(user_id)
        if user is None:
            return {}
        merged = dict(self.state.permission_matrix.get(user.role_id, {}))
        merged.update(self.state.user_overrides.get(user_id, {}))
        return merged
