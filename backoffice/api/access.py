from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from backoffice.api.deps import get_access_store, get_actor_id
from backoffice.guardrails.audit_logger import audit_logger
from backoffice.guardrails.permissions import PermissionChecker
from backoffice.models.access import AccessState, VIEWER_ROLE_ID
from backoffice.models.audit import ActionType
from backoffice.repositories.access import AccessStore

router = APIRouter(prefix="/api/access", tags=["Users & Roles"])

class RoleCreate(BaseModel):
    name: str
    source_role_id: str = VIEWER_ROLE_ID

class RoleAssignment(BaseModel):
    role_id: str

def _dump(state: AccessState) -> Dict[str, Any]:
    return state.model_dump(exclude={"id"}, mode="json")

def _authorize(checker: PermissionChecker, actor_id: Optional[str]):
    if actor_id and not checker.check_permission(actor_id, "Users & Roles", "Edit"):
        raise HTTPException(status_code=403, detail="You do not have permission to perform this action.")

async def _record(actor_id: Optional[str], entity_id: str, details: str, metadata: Dict[str, Any] = None):
    await audit_logger.log_event(
        entity_type="access",
        entity_id=entity_id,
        action_type=ActionType.PERMISSION_CHANGE,
        actor={"id": actor_id or "admin", "name": actor_id or "admin", "type": "USER"},
        details=details,
        metadata=metadata,
    )

@router.get("")
async def get_access_state(store: AccessStore = Depends(get_access_store)):
    state = await store.load()
    return _dump(state)

@router.get("/users/{user_id}/permissions")
async def get_user_permissions(user_id: str, store: AccessStore = Depends(get_access_store)):
    state = await store.load()
    if state.get_user(user_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown user {user_id}")
    return PermissionChecker(state).permissions_for(user_id)

@router.post("/users/{user_id}/permissions/{key}/toggle")
async def toggle_user_permission(
    user_id: str,
    key: str,
    actor_id: Optional[str] = Depends(get_actor_id),
    store: AccessStore = Depends(get_access_store),
):
    state = await store.load()
    checker = PermissionChecker(state)
    _authorize(checker, actor_id)
    if state.get_user(user_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown user {user_id}")

    granted = checker.toggle_user_permission(user_id, key)
    await store.save(state)
    await _record(actor_id, user_id, f"{key} {'granted to' if granted else 'revoked from'} {user_id}", {"key": key})
    return {"userId": user_id, "key": key, "granted": granted}

@router.delete("/users/{user_id}/permissions")
async def reset_user_permissions(
    user_id: str,
    actor_id: Optional[str] = Depends(get_actor_id),
    store: AccessStore = Depends(get_access_store),
):
    state = await store.load()
    checker = PermissionChecker(state)
    _authorize(checker, actor_id)
    checker.reset_user_permissions(user_id)
    await store.save(state)
    await _record(actor_id, user_id, f"Overrides reset for {user_id}")
    return {"userId": user_id, "permissions": checker.permissions_for(user_id)}

@router.put("/users/{user_id}/role")
async def assign_role(
    user_id: str,
    body: RoleAssignment,
    actor_id: Optional[str] = Depends(get_actor_id),
    store: AccessStore = Depends(get_access_store),
):
    state = await store.load()
    checker = PermissionChecker(state)
    _authorize(checker, actor_id)
    try:
        user = checker.assign_role(user_id, body.role_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    await store.save(state)
    await _record(actor_id, user_id, f"{user_id} assigned role {body.role_id}")
    return user.model_dump(exclude={"id"}, mode="json")

@router.post("/roles/{role_id}/permissions/{key}/toggle")
async def toggle_role_permission(
    role_id: str,
    key: str,
    actor_id: Optional[str] = Depends(get_actor_id),
    store: AccessStore = Depends(get_access_store),
):
    state = await store.load()
    checker = PermissionChecker(state)
    _authorize(checker, actor_id)
    if role_id not in state.permission_matrix:
        raise HTTPException(status_code=404, detail=f"Unknown role {role_id}")

    granted = checker.toggle_role_permission(role_id, key)
    await store.save(state)
    await _record(actor_id, role_id, f"{key} {'granted to' if granted else 'revoked from'} role {role_id}", {"key": key})
    return {"roleId": role_id, "key": key, "granted": granted}

@router.post("/roles", status_code=201)
async def create_role(
    body: RoleCreate,
    actor_id: Optional[str] = Depends(get_actor_id),
    store: AccessStore = Depends(get_access_store),
):
    state = await store.load()
    checker = PermissionChecker(state)
    _authorize(checker, actor_id)
    try:
        if body.source_role_id == VIEWER_ROLE_ID:
            role = checker.create_role(body.name)
        else:
            role = checker.clone_role(body.source_role_id, body.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await store.save(state)
    await _record(actor_id, role.role_id, f"Role {role.name} created from {body.source_role_id}")
    return role.model_dump(exclude={"id"}, mode="json")

@router.delete("/roles/{role_id}")
async def delete_role(
    role_id: str,
    actor_id: Optional[str] = Depends(get_actor_id),
    store: AccessStore = Depends(get_access_store),
):
    state = await store.load()
    checker = PermissionChecker(state)
    _authorize(checker, actor_id)
    try:
        moved = checker.delete_role(role_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await store.save(state)
    await _record(actor_id, role_id, f"Role {role_id} deleted, {len(moved)} user(s) moved to admin")
    return {"roleId": role_id, "movedUsers": [u.user_id for u in moved]}
