from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import Field
from backoffice.models.base import MongoModel
from backoffice.utils.clock import utcnow

PERMISSION_ENTITIES = [
    "Dashboard",
    "Orders",
    "Inventory",
    "Reports",
    "Customers",
    "Settings",
    "Approvals",
    "Audits",
    "Expenses",
    "Users & Roles",
]

PERMISSION_ACTIONS = ["View", "Create", "Edit", "Delete", "Approve"]

ADMIN_ROLE_ID = "admin"
VIEWER_ROLE_ID = "viewer"

def permission_key(entity: str, action: str) -> str:
    return f"{entity}:{action}"

class UserStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"

class Role(MongoModel):
    role_id: str
    name: str
    description: str = ""
    is_system: bool = False

class AppUser(MongoModel):
    user_id: str
    name: str
    email: str
    status: UserStatus = UserStatus.ACTIVE
    role_id: str

class AccessState(MongoModel):
    """
    Users, roles and the role -> permission matrix for one tenant.
    `user_overrides` take precedence over the matrix for a given user.
    """
    tenant_id: str
    roles: List[Role] = Field(default_factory=list)
    users: List[AppUser] = Field(default_factory=list)
    permission_matrix: Dict[str, Dict[str, bool]] = Field(default_factory=dict)
    user_overrides: Dict[str, Dict[str, bool]] = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=utcnow)

    def get_role(self, role_id: str) -> Optional[Role]:
        return next((r for r in self.roles if r.role_id == role_id), None)

    def get_user(self, user_id: str) -> Optional[AppUser]:
        return next((u for u in self.users if u.user_id == user_id), None)

def _default_grant(role_id: str, entity: str, action: str) -> bool:
    if role_id == ADMIN_ROLE_ID:
        return True
    if role_id == "inventory":
        return action != "Approve" if entity == "Inventory" else action == "View"
    if role_id == "sales":
        return action != "Approve" if entity in ("Orders", "Customers") else action == "View"
    if role_id == "manager":
        managed = ("Orders", "Inventory", "Approvals", "Reports", "Customers")
        return action != "Delete" if entity in managed else action == "View"
    if role_id == VIEWER_ROLE_ID:
        return action == "View"
    return False

def default_roles() -> List[Role]:
    return [
        Role(role_id=ADMIN_ROLE_ID, name="Administrator", description="Full access to all features", is_system=True),
        Role(role_id="manager", name="Manager", description="Manage operations and approvals"),
        Role(role_id="sales", name="Sales", description="Manage orders and customers"),
        Role(role_id="inventory", name="Inventory", description="Manage inventory only"),
    ]

def build_default_matrix(roles: List[Role]) -> Dict[str, Dict[str, bool]]:
    """Matrix for the given roles plus the hidden viewer row."""
    matrix = {}
    for role_id in [r.role_id for r in roles] + [VIEWER_ROLE_ID]:
        matrix[role_id] = {
            permission_key(entity, action): _default_grant(role_id, entity, action)
            for entity in PERMISSION_ENTITIES
            for action in PERMISSION_ACTIONS
        }
    return matrix

def build_default_state(tenant_id: str) -> AccessState:
    roles = default_roles()
    return AccessState(
        tenant_id=tenant_id,
        roles=roles,
        users=[
            AppUser(user_id="u1", name="Admin User", email="admin@company.com", role_id=ADMIN_ROLE_ID),
            AppUser(user_id="u2", name="Mary Johnson", email="mary@company.com", role_id="manager"),
            AppUser(user_id="u3", name="Ken Obi", email="ken@company.com", status=UserStatus.INACTIVE, role_id="sales"),
            AppUser(user_id="u4", name="James Doe", email="james@company.com", role_id="inventory"),
        ],
        permission_matrix=build_default_matrix(roles),
    )
