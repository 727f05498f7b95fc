import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional, Union

from backoffice.config import settings
from backoffice.errors import InvalidTransition, ToggleWindowExpired, ValidationError
from backoffice.models.expense import Expense, ExpenseStatus, ExpenseSummary
from backoffice.utils.clock import ensure_utc, utcnow

logger = logging.getLogger(__name__)

TOGGLE_TARGETS = (ExpenseStatus.APPROVED, ExpenseStatus.REJECTED)

class DecisionWorkflow:
    """
    Status rules for an expense: approve, reject, the time-boxed toggle
    between Approved and Rejected, and marking an approved expense as paid.

    Every operation returns an updated copy; the expense passed in is never
    modified. `now` may be supplied to pin the clock.
    """
    def __init__(self,
                 toggle_window_seconds: int = None,
                 admin_label: str = None,
                 default_toggle_reason: str = None):
        self.toggle_window = timedelta(
            seconds=toggle_window_seconds if toggle_window_seconds is not None else settings.TOGGLE_WINDOW_SECONDS
        )
        self.admin_label = admin_label or settings.ADMIN_ACTOR_LABEL
        self.default_toggle_reason = default_toggle_reason or settings.DEFAULT_TOGGLE_REASON

    def approve(self, expense: Expense, approver_name: str, now: Optional[datetime] = None) -> Expense:
        # No guard on the current status: an already rejected or paid expense
        # can be approved again.
        now = ensure_utc(now) or utcnow()
        if expense.status != ExpenseStatus.PENDING:
            logger.info(f"Approving expense {expense.id} from status {expense.status.value}")

        return expense.model_copy(update={
            "status": ExpenseStatus.APPROVED,
            "approved_by": approver_name,
            "approved_date": now,
            "decision_date": now,
        })

    def reject(self, expense: Expense, rejection_reason: Optional[str], now: Optional[datetime] = None) -> Expense:
        if not rejection_reason or not rejection_reason.strip():
            raise ValidationError("A rejection reason is required")

        now = ensure_utc(now) or utcnow()
        return expense.model_copy(update={
            "status": ExpenseStatus.REJECTED,
            "rejection_reason": rejection_reason,
            "decision_date": now,
        })

    def can_toggle_decision(self, expense: Expense, now: Optional[datetime] = None) -> bool:
        if expense.decision_date is None:
            return False
        now = ensure_utc(now) or utcnow()
        return now - ensure_utc(expense.decision_date) <= self.toggle_window

    def toggle_decision(self,
                        expense: Expense,
                        target: Union[ExpenseStatus, str],
                        now: Optional[datetime] = None) -> Expense:
        try:
            target = ExpenseStatus.from_wire(target)
        except ValueError:
            raise ValidationError(f"Cannot toggle to {target!r}") from None
        if target not in TOGGLE_TARGETS:
            raise ValidationError(f"Cannot toggle to {target.value}")

        now = ensure_utc(now) or utcnow()
        if not self.can_toggle_decision(expense, now=now):
            logger.warning(f"Toggle of expense {expense.id} refused, last decision at {expense.decision_date}")
            raise ToggleWindowExpired()

        if target == ExpenseStatus.APPROVED:
            update = {
                "status": ExpenseStatus.APPROVED,
                "approved_by": self.admin_label,
                "approved_date": now,
                "rejection_reason": None,
                "decision_date": now,
            }
        else:
            update = {
                "status": ExpenseStatus.REJECTED,
                "rejection_reason": expense.rejection_reason or self.default_toggle_reason,
                "decision_date": now,
            }
        return expense.model_copy(update=update)

    def mark_paid(self, expense: Expense, paid_by: str, now: Optional[datetime] = None) -> Expense:
        if expense.status != ExpenseStatus.APPROVED:
            raise InvalidTransition(expense.status.value, ExpenseStatus.PAID.value)

        now = ensure_utc(now) or utcnow()
        return expense.model_copy(update={
            "status": ExpenseStatus.PAID,
            "paid_by": paid_by,
            "paid_date": now,
        })

    def generate_expense_summary(self, expenses: Iterable[Expense], now: Optional[datetime] = None) -> ExpenseSummary:
        """
        Counts per status and amount totals. `monthly_amount` covers the
        calendar month of `now`; `total_amount` ignores status.
        """
        now = ensure_utc(now) or utcnow()
        summary = ExpenseSummary()
        counters = {
            ExpenseStatus.PENDING: "pending_expenses",
            ExpenseStatus.APPROVED: "approved_expenses",
            ExpenseStatus.REJECTED: "rejected_expenses",
            ExpenseStatus.PAID: "paid_expenses",
        }

        for expense in expenses:
            summary.total_expenses += 1
            counter = counters[expense.status]
            setattr(summary, counter, getattr(summary, counter) + 1)
            summary.total_amount += expense.amount

            requested = ensure_utc(expense.request_date)
            if requested.year == now.year and requested.month == now.month:
                summary.monthly_amount += expense.amount

            breakdown = summary.department_breakdown
            breakdown[expense.department] = breakdown.get(expense.department, 0) + expense.amount

        return summary

decision_workflow = DecisionWorkflow()
