import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from backoffice.config import settings
from backoffice.errors import ApiError, Unauthorized, api_error_from_response
from backoffice.models.approval import ApprovalAction, ApprovalRequest
from backoffice.models.audit import AuditLogPage
from backoffice.models.expense import CreateExpensePayload, Expense, UpdateExpensePayload

logger = logging.getLogger(__name__)

EXPENSE_PARAMS = ("page", "limit", "search", "status", "category", "department", "priority", "startDate", "endDate")
AUDIT_PARAMS = ("page", "limit", "userId", "action", "entityType", "entityId", "startDate", "endDate")
APPROVAL_PARAMS = ("page", "limit", "status", "type", "requesterId")


def build_params(params: Optional[Dict[str, Any]], allowed: tuple) -> Dict[str, str]:
    """Keep only known, non-empty query parameters."""
    if not params:
        return {}
    return {
        key: str(params[key])
        for key in allowed
        if params.get(key) not in (None, "")
    }


def _items(data: Any, *keys: str) -> List[Dict[str, Any]]:
    if isinstance(data, list):
        return data
    for key in keys:
        if isinstance(data, dict) and isinstance(data.get(key), list):
            return data[key]
    return []


class BackofficeApiClient:
    """
    Authenticated JSON client for the remote back-office API.
    A 401 clears the stored token.
    """
    def __init__(self,
                 base_url: str = None,
                 token: Optional[str] = None,
                 timeout: float = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or f"{settings.API_BASE_URL}{settings.API_PREFIX}").rstrip("/")
        self.token = token if token is not None else settings.API_TOKEN
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout or settings.API_TIMEOUT,
            transport=transport,
        )
        self.expenses = ExpensesApi(self)
        self.approvals = ApprovalsApi(self)
        self.audit_logs = AuditLogsApi(self)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BackofficeApiClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def request(self, method: str, path: str, **kwargs) -> Any:
        headers = {**self._auth_headers(), **kwargs.pop("headers", {})}
        try:
            resp = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out: {e}")
            raise ApiError("Network error. Please check your connection.") from e
        except httpx.TransportError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError("Network error. Please check your connection.") from e

        if resp.status_code == 204 or not resp.content:
            if resp.is_success:
                return None

        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.is_success:
            return data

        error = api_error_from_response(resp.status_code, data)
        if isinstance(error, Unauthorized):
            self.token = None
        logger.warning(f"{method} {path} -> {resp.status_code}: {error.message}")
        raise error


class ExpensesApi:
    def __init__(self, client: BackofficeApiClient):
        self.client = client

    async def list(self, params: Optional[Dict[str, Any]] = None) -> List[Expense]:
        data = await self.client.request("GET", "/expenses", params=build_params(params, EXPENSE_PARAMS))
        return [Expense.from_api(item) for item in _items(data, "expenses", "data")]

    async def get(self, expense_id: str) -> Expense:
        data = await self.client.request("GET", f"/expenses/{expense_id}")
        return Expense.from_api(data)

    async def create(self, payload: CreateExpensePayload) -> Expense:
        data = await self.client.request("POST", "/expenses", json=payload.to_wire())
        return Expense.from_api(data)

    async def update(self, expense_id: str, patch: Union[UpdateExpensePayload, Dict[str, Any]]) -> Optional[Expense]:
        body = patch.to_wire() if isinstance(patch, UpdateExpensePayload) else patch
        data = await self.client.request("PUT", f"/expenses/{expense_id}", json=body)
        return Expense.from_api(data) if isinstance(data, dict) and data.get("id") else None

    async def delete(self, expense_id: str) -> None:
        await self.client.request("DELETE", f"/expenses/{expense_id}")

    async def categories(self) -> List[Dict[str, Any]]:
        return _items(await self.client.request("GET", "/expenses/categories"), "data")

    async def departments(self) -> List[Dict[str, Any]]:
        return _items(await self.client.request("GET", "/expenses/departments"), "data")


class ApprovalsApi:
    def __init__(self, client: BackofficeApiClient):
        self.client = client

    async def list(self, params: Optional[Dict[str, Any]] = None) -> List[ApprovalRequest]:
        data = await self.client.request("GET", "/approvals", params=build_params(params, APPROVAL_PARAMS))
        return [ApprovalRequest.model_validate(item) for item in _items(data, "data")]

    async def pending(self) -> List[ApprovalRequest]:
        data = await self.client.request("GET", "/approvals/pending")
        return [ApprovalRequest.model_validate(item) for item in _items(data, "data")]

    async def _act(self, approval_id: str, action: ApprovalAction) -> ApprovalRequest:
        data = await self.client.request("POST", f"/approvals/{approval_id}/{action.action}", json=action.to_wire())
        return ApprovalRequest.model_validate(data)

    async def approve(self, approval_id: str, notes: Optional[str] = None) -> ApprovalRequest:
        return await self._act(approval_id, ApprovalAction(action="approve", notes=notes))

    async def reject(self, approval_id: str, rejection_reason: str) -> ApprovalRequest:
        return await self._act(approval_id, ApprovalAction(action="reject", rejection_reason=rejection_reason))

    async def mark_paid(self, approval_id: str, notes: Optional[str] = None) -> ApprovalRequest:
        return await self._act(approval_id, ApprovalAction(action="mark-paid", notes=notes))


class AuditLogsApi:
    def __init__(self, client: BackofficeApiClient):
        self.client = client

    async def list(self, params: Optional[Dict[str, Any]] = None) -> AuditLogPage:
        data = await self.client.request("GET", "/audit-logs", params=build_params(params, AUDIT_PARAMS))
        if isinstance(data, list):
            return AuditLogPage(data=data, total=len(data), page=1, limit=len(data))
        return AuditLogPage.model_validate(data or {})
