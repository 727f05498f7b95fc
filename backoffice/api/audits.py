from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from backoffice.api.deps import get_api_client, http_error
from backoffice.errors import ApiError
from backoffice.guardrails.audit_logger import audit_logger
from backoffice.models.audit import AuditEvent, AuditLogPage
from backoffice.tools.api_client import BackofficeApiClient

router = APIRouter(prefix="/api/audits", tags=["Audits"])

@router.get("", response_model=AuditLogPage)
async def list_audit_logs(
    page: int = 1,
    limit: int = 50,
    user_id: Optional[str] = Query(None, alias="userId"),
    action: Optional[str] = None,
    entity_type: Optional[str] = Query(None, alias="entityType"),
    entity_id: Optional[str] = Query(None, alias="entityId"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    api: BackofficeApiClient = Depends(get_api_client),
):
    """Remote audit log, passed through with its filters."""
    params = {
        "page": page,
        "limit": limit,
        "userId": user_id,
        "action": action,
        "entityType": entity_type,
        "entityId": entity_id,
        "startDate": start_date,
        "endDate": end_date,
    }
    try:
        return await api.audit_logs.list(params)
    except ApiError as e:
        raise http_error(e)

@router.get("/expenses/{expense_id}", response_model=List[AuditEvent])
async def get_expense_trail(expense_id: str):
    """Decisions recorded locally for one expense."""
    return await audit_logger.get_audit_trail(expense_id)
