import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from backoffice.config import settings
from backoffice.errors import ApiError, ExpenseNotFound, Forbidden, ToggleWindowExpired, WorkflowError
from backoffice.guardrails.audit_logger import AuditLogger, audit_logger
from backoffice.guardrails.permissions import PermissionChecker
from backoffice.models.audit import ActionType
from backoffice.models.expense import (
    CreateExpensePayload, Expense, ExpensePage, ExpenseQuery, ExpenseStatus, ExpenseSummary,
)
from backoffice.repositories.access import AccessStore
from backoffice.tools.api_client import BackofficeApiClient
from backoffice.tools.notification_tool import NotificationTool, notification_tool
from backoffice.utils.clock import utcnow
from backoffice.workflow.decision import DecisionWorkflow, decision_workflow
from backoffice.workflow.pipeline import apply_view, paginate

logger = logging.getLogger(__name__)

DECISION_ENTITY = "Expenses"
DECISION_ACTION = "Approve"


def changed_fields(before: Expense, after: Expense) -> List[str]:
    return [
        name for name in type(after).model_fields
        if getattr(before, name) != getattr(after, name)
    ]


class ExpenseDecisionService:
    """
    Runs approve / reject / toggle / mark-paid against a working set of
    expenses loaded from the remote API.

    Each decision is applied locally, the changed fields are pushed to the
    API, and the working set is only updated once the API accepted them.
    """
    def __init__(self,
                 api: BackofficeApiClient,
                 access_store: Optional[AccessStore] = None,
                 workflow: DecisionWorkflow = None,
                 notifier: NotificationTool = None,
                 auditor: AuditLogger = None,
                 clock: Callable[[], datetime] = utcnow):
        self.api = api
        self.access_store = access_store
        self.workflow = workflow or decision_workflow
        self.notifier = notifier or notification_tool
        self.auditor = auditor or audit_logger
        self.clock = clock
        self.expenses: List[Expense] = []

    async def load(self, params: Optional[Dict[str, Any]] = None) -> List[Expense]:
        query = {"page": 1, "limit": settings.FETCH_LIMIT, **(params or {})}
        try:
            self.expenses = await self.api.expenses.list(query)
        except ApiError as e:
            self.notifier.show_error("Error", e.message)
            raise
        logger.info(f"Loaded {len(self.expenses)} expenses")
        return self.expenses

    def get(self, expense_id: str) -> Expense:
        for expense in self.expenses:
            if expense.id == expense_id:
                return expense
        raise ExpenseNotFound(expense_id)

    async def authorize(self, actor_id: Optional[str]) -> None:
        """No actor or no access store means the caller already did the check."""
        if actor_id is None or self.access_store is None:
            return
        state = await self.access_store.load()
        if not PermissionChecker(state).check_permission(actor_id, DECISION_ENTITY, DECISION_ACTION):
            self.notifier.show_error("Not allowed", Forbidden().message)
            raise Forbidden()

    async def _commit(self,
                      before: Expense,
                      after: Expense,
                      action_type: ActionType,
                      actor_name: str) -> Expense:
        patch = after.to_patch(changed_fields(before, after))
        try:
            await self.api.expenses.update(after.id, patch)
        except ApiError as e:
            self.notifier.show_error("Error", e.message)
            raise

        self.expenses = [after if e.id == after.id else e for e in self.expenses]
        await self.auditor.log_transition(before, after, action_type, actor_name)
        return after

    async def approve(self, expense_id: str, approver_name: str, actor_id: Optional[str] = None) -> Expense:
        await self.authorize(actor_id)
        before = self.get(expense_id)
        after = self.workflow.approve(before, approver_name, now=self.clock())

        await self._commit(before, after, ActionType.APPROVE, approver_name)
        self.notifier.show_success("Approved", "Expense approved successfully")
        return after

    async def reject(self,
                     expense_id: str,
                     rejection_reason: Optional[str],
                     actor_name: str = None,
                     actor_id: Optional[str] = None) -> Expense:
        await self.authorize(actor_id)
        before = self.get(expense_id)
        try:
            after = self.workflow.reject(before, rejection_reason, now=self.clock())
        except WorkflowError as e:
            self.notifier.show_error("Error", str(e))
            raise

        await self._commit(before, after, ActionType.REJECT, actor_name or self.workflow.admin_label)
        self.notifier.show_success("Rejected", "Expense rejected")
        return after

    def can_toggle(self, expense_id: str) -> bool:
        return self.workflow.can_toggle_decision(self.get(expense_id), now=self.clock())

    async def toggle(self,
                     expense_id: str,
                     target: Union[ExpenseStatus, str],
                     actor_name: str = None,
                     actor_id: Optional[str] = None) -> Expense:
        await self.authorize(actor_id)
        before = self.get(expense_id)
        try:
            after = self.workflow.toggle_decision(before, target, now=self.clock())
        except ToggleWindowExpired as e:
            self.notifier.show_error("Not allowed", str(e))
            raise
        except WorkflowError as e:
            self.notifier.show_error("Error", str(e))
            raise

        await self._commit(before, after, ActionType.TOGGLE, actor_name or self.workflow.admin_label)
        self.notifier.show_success("Updated", f"Expense toggled to {after.status.value}.")
        return after

    async def mark_paid(self, expense_id: str, paid_by: str, actor_id: Optional[str] = None) -> Expense:
        await self.authorize(actor_id)
        before = self.get(expense_id)
        try:
            after = self.workflow.mark_paid(before, paid_by, now=self.clock())
        except WorkflowError as e:
            self.notifier.show_error("Error", str(e))
            raise

        await self._commit(before, after, ActionType.MARK_PAID, paid_by)
        self.notifier.show_success("Paid", "Expense marked as paid")
        return after

    async def create(self, payload: CreateExpensePayload, actor_name: str = None) -> Expense:
        try:
            created = await self.api.expenses.create(payload)
        except ApiError as e:
            self.notifier.show_error("Error", e.message)
            raise

        self.expenses = [created] + self.expenses
        await self.auditor.log_event(
            entity_type="expense",
            entity_id=created.id,
            action_type=ActionType.CREATE,
            actor={"id": actor_name or "system", "name": actor_name or "system", "type": "USER" if actor_name else "SYSTEM"},
            details=f"Expense {created.id} created: {created.title}",
            to_status=created.status.value,
            metadata={"amount": created.amount},
        )
        self.notifier.show_success("Success", "Expense created successfully")
        return created

    def view(self, query: Optional[ExpenseQuery] = None, page_size: int = None) -> ExpensePage:
        query = query or ExpenseQuery()
        return paginate(apply_view(self.expenses, query), page=query.page, page_size=page_size)

    def summary(self) -> ExpenseSummary:
        return self.workflow.generate_expense_summary(self.expenses, now=self.clock())
