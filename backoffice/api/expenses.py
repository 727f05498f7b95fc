import os
import tempfile
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask
from pydantic import BaseModel

from backoffice.api.deps import get_actor_id, get_api_client, get_expense_service, http_error
from backoffice.config import settings
from backoffice.errors import BackofficeError
from backoffice.models.base import ApiModel
from backoffice.models.expense import CreateExpensePayload, Expense, ExpensePage, ExpenseQuery, ExpenseSummary
from backoffice.services.expense_service import ExpenseDecisionService
from backoffice.tools.api_client import BackofficeApiClient
from backoffice.tools.report_tool import report_tool

router = APIRouter(prefix="/api/expenses", tags=["Expenses"])

class ExpenseListResponse(ApiModel):
    page: ExpensePage
    summary: ExpenseSummary

class ApproveRequest(BaseModel):
    approver: Optional[str] = None

class RejectRequest(BaseModel):
    reason: Optional[str] = None
    actor: Optional[str] = None

class ToggleRequest(BaseModel):
    target: str
    actor: Optional[str] = None

class MarkPaidRequest(BaseModel):
    paid_by: Optional[str] = None

class CanToggleResponse(ApiModel):
    expense_id: str
    can_toggle: bool

@router.get("", response_model=ExpenseListResponse)
async def list_expenses(
    search: str = "",
    status: str = "All",
    category: str = "All",
    department: str = "All",
    priority: str = "All",
    sort_by: str = Query("requestDate", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    page: int = 1,
    service: ExpenseDecisionService = Depends(get_expense_service),
):
    query = ExpenseQuery(
        search=search,
        status=status,
        category=category,
        department=department,
        priority=priority,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
    )
    try:
        expense_page = service.view(query)
    except ValueError as e:
        # unknown status / priority filter value
        raise HTTPException(status_code=422, detail=str(e))
    return ExpenseListResponse(page=expense_page, summary=service.summary())

@router.post("", response_model=Expense, status_code=201)
async def create_expense(
    payload: CreateExpensePayload,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: ExpenseDecisionService = Depends(get_expense_service),
):
    try:
        return await service.create(payload, actor_name=actor_id)
    except BackofficeError as e:
        raise http_error(e)

@router.get("/report")
async def export_report(
    format: str = "PDF",
    service: ExpenseDecisionService = Depends(get_expense_service),
):
    suffix = f".{format.lower()}"
    fd, path = tempfile.mkstemp(suffix=suffix, prefix="expense_report_")
    os.close(fd)
    try:
        report_tool.generate(service.expenses, format=format, path=path)
    except ValueError as e:
        os.remove(path)
        raise HTTPException(status_code=400, detail=str(e))

    media_type = "application/pdf" if format.upper() == "PDF" else "application/json"
    return FileResponse(path, media_type=media_type, filename=f"expense_report{suffix}",
                        background=BackgroundTask(os.remove, path))

@router.get("/categories")
async def list_categories(api: BackofficeApiClient = Depends(get_api_client)):
    try:
        return await api.expenses.categories()
    except BackofficeError as e:
        raise http_error(e)

@router.get("/departments")
async def list_departments(api: BackofficeApiClient = Depends(get_api_client)):
    try:
        return await api.expenses.departments()
    except BackofficeError as e:
        raise http_error(e)

@router.post("/{expense_id}/approve", response_model=Expense)
async def approve_expense(
    expense_id: str,
    body: Optional[ApproveRequest] = None,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: ExpenseDecisionService = Depends(get_expense_service),
):
    try:
        body = body or ApproveRequest()
        return await service.approve(expense_id, body.approver or settings.ADMIN_ACTOR_LABEL, actor_id=actor_id)
    except BackofficeError as e:
        raise http_error(e)

@router.post("/{expense_id}/reject", response_model=Expense)
async def reject_expense(
    expense_id: str,
    body: RejectRequest = Body(...),
    actor_id: Optional[str] = Depends(get_actor_id),
    service: ExpenseDecisionService = Depends(get_expense_service),
):
    try:
        return await service.reject(expense_id, body.reason, actor_name=body.actor, actor_id=actor_id)
    except BackofficeError as e:
        raise http_error(e)

@router.post("/{expense_id}/toggle", response_model=Expense)
async def toggle_expense(
    expense_id: str,
    body: ToggleRequest = Body(...),
    actor_id: Optional[str] = Depends(get_actor_id),
    service: ExpenseDecisionService = Depends(get_expense_service),
):
    try:
        return await service.toggle(expense_id, body.target, actor_name=body.actor, actor_id=actor_id)
    except BackofficeError as e:
        raise http_error(e)

@router.post("/{expense_id}/mark-paid", response_model=Expense)
async def mark_expense_paid(
    expense_id: str,
    body: Optional[MarkPaidRequest] = None,
    actor_id: Optional[str] = Depends(get_actor_id),
    service: ExpenseDecisionService = Depends(get_expense_service),
):
    try:
        body = body or MarkPaidRequest()
        return await service.mark_paid(expense_id, body.paid_by or settings.ADMIN_ACTOR_LABEL, actor_id=actor_id)
    except BackofficeError as e:
        raise http_error(e)

@router.get("/{expense_id}/can-toggle", response_model=CanToggleResponse)
async def can_toggle_expense(
    expense_id: str,
    service: ExpenseDecisionService = Depends(get_expense_service),
):
    try:
        return CanToggleResponse(expense_id=expense_id, can_toggle=service.can_toggle(expense_id))
    except BackofficeError as e:
        raise http_error(e)
