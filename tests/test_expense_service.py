import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from backoffice.errors import (
    ApiError, ExpenseNotFound, Forbidden, InvalidTransition, ToggleWindowExpired, ValidationError,
)
from backoffice.models.access import build_default_state
from backoffice.models.audit import ActionType
from backoffice.models.expense import CreateExpensePayload, ExpenseQuery, ExpenseStatus
from backoffice.repositories.access import InMemoryAccessStore
from backoffice.services.expense_service import ExpenseDecisionService, changed_fields
from backoffice.tools.notification_tool import NotificationTool


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock(t0):
    return Clock(t0)


@pytest.fixture
def api(sample_expenses):
    mock_api = MagicMock()
    mock_api.expenses.list = AsyncMock(return_value=list(sample_expenses))
    mock_api.expenses.update = AsyncMock(return_value=None)
    mock_api.expenses.create = AsyncMock()
    return mock_api


@pytest.fixture
def auditor():
    mock_auditor = MagicMock()
    mock_auditor.log_transition = AsyncMock()
    mock_auditor.log_event = AsyncMock()
    return mock_auditor


@pytest.fixture
def service(api, auditor, clock):
    return ExpenseDecisionService(
        api,
        access_store=InMemoryAccessStore("acme", build_default_state("acme")),
        notifier=NotificationTool(),
        auditor=auditor,
        clock=clock,
    )


@pytest.mark.asyncio
async def test_load_requests_first_page(service, api):
    expenses = await service.load()

    assert len(expenses) == 4
    api.expenses.list.assert_called_once_with({"page": 1, "limit": 100})


@pytest.mark.asyncio
async def test_load_failure_notifies(service, api):
    api.expenses.list = AsyncMock(side_effect=ApiError("Server error. Please try again later.", 500))

    with pytest.raises(ApiError):
        await service.load()
    assert service.notifier.last().kind == "error"


@pytest.mark.asyncio
async def test_approve_persists_changed_fields(service, api, auditor, t0):
    await service.load()
    approved = await service.approve("exp_000001", "Admin User", actor_id="u1")

    assert approved.status == ExpenseStatus.APPROVED
    assert service.get("exp_000001") is approved

    expense_id, patch = api.expenses.update.call_args[0]
    assert expense_id == "exp_000001"
    assert patch == {
        "status": "APPROVED",
        "approvedBy": "Admin User",
        "approvedAt": t0.isoformat().replace("+00:00", "Z"),
        "decisionDate": t0.isoformat().replace("+00:00", "Z"),
    }

    auditor.log_transition.assert_called_once()
    assert auditor.log_transition.call_args[0][2] == ActionType.APPROVE
    assert service.notifier.last().message == "Expense approved successfully"


@pytest.mark.asyncio
async def test_approve_needs_permission(service, api):
    await service.load()

    with pytest.raises(Forbidden):
        await service.approve("exp_000001", "Mary Johnson", actor_id="u2")

    api.expenses.update.assert_not_called()
    assert service.get("exp_000001").status == ExpenseStatus.PENDING


@pytest.mark.asyncio
async def test_unknown_expense(service):
    await service.load()
    with pytest.raises(ExpenseNotFound):
        await service.approve("exp_missing", "Admin User")


@pytest.mark.asyncio
async def test_reject_without_reason_changes_nothing(service, api, auditor):
    await service.load()

    with pytest.raises(ValidationError):
        await service.reject("exp_000001", "  ")

    api.expenses.update.assert_not_called()
    auditor.log_transition.assert_not_called()
    assert service.notifier.last().kind == "error"


@pytest.mark.asyncio
async def test_reject(service, api):
    await service.load()
    rejected = await service.reject("exp_000001", "budget exceeded", actor_name="Mary Johnson")

    assert rejected.rejection_reason == "budget exceeded"
    patch = api.expenses.update.call_args[0][1]
    assert patch["status"] == "REJECTED"
    assert patch["rejectionReason"] == "budget exceeded"
    assert service.notifier.last().message == "Expense rejected"


@pytest.mark.asyncio
async def test_toggle_within_window(service, clock, t0):
    await service.load()
    await service.reject("exp_000001", "wrong vendor")

    clock.now = t0 + timedelta(minutes=20)
    assert service.can_toggle("exp_000001")
    toggled = await service.toggle("exp_000001", "Approved")

    assert toggled.status == ExpenseStatus.APPROVED
    assert toggled.rejection_reason is None
    assert service.notifier.last().message == "Expense toggled to Approved."


@pytest.mark.asyncio
async def test_toggle_window_expired(service, api, clock, t0):
    await service.load()
    await service.approve("exp_000001", "Admin User")
    api.expenses.update.reset_mock()

    clock.now = t0 + timedelta(hours=2)
    with pytest.raises(ToggleWindowExpired):
        await service.toggle("exp_000001", ExpenseStatus.REJECTED)

    api.expenses.update.assert_not_called()
    assert service.get("exp_000001").status == ExpenseStatus.APPROVED
    last = service.notifier.last()
    assert last.title == "Not allowed"
    assert last.message == "Toggle window expired (1 hour)."


@pytest.mark.asyncio
async def test_failed_update_keeps_working_set(service, api, auditor):
    await service.load()
    api.expenses.update = AsyncMock(side_effect=ApiError("Resource not found.", 404))

    with pytest.raises(ApiError):
        await service.approve("exp_000001", "Admin User")

    assert service.get("exp_000001").status == ExpenseStatus.PENDING
    auditor.log_transition.assert_not_called()


@pytest.mark.asyncio
async def test_mark_paid(service, api):
    await service.load()
    paid = await service.mark_paid("exp_000002", "Finance")

    assert paid.status == ExpenseStatus.PAID
    patch = api.expenses.update.call_args[0][1]
    assert set(patch) == {"status", "paidBy", "paidAt"}
    assert patch["status"] == "PAID"


@pytest.mark.asyncio
async def test_mark_paid_requires_approved(service, api):
    await service.load()
    with pytest.raises(InvalidTransition):
        await service.mark_paid("exp_000001", "Finance")
    api.expenses.update.assert_not_called()


@pytest.mark.asyncio
async def test_create_prepends(service, api, auditor, make_expense):
    await service.load()
    created = make_expense("exp_000099", title="Torque wrench")
    api.expenses.create = AsyncMock(return_value=created)

    payload = CreateExpensePayload(
        title="Torque wrench", amount=45000, category="Equipment & Hardware", department="Operations",
    )
    result = await service.create(payload, actor_name="u1")

    assert result is created
    assert service.expenses[0] is created
    assert auditor.log_event.call_args.kwargs["action_type"] == ActionType.CREATE
    assert service.notifier.last().message == "Expense created successfully"


@pytest.mark.asyncio
async def test_view_and_summary(service):
    await service.load()

    page = service.view(ExpenseQuery(status="Pending"))
    assert [e.id for e in page.items] == ["exp_000001"]
    assert page.total_items == 1

    summary = service.summary()
    assert summary.total_expenses == 4


def test_changed_fields(make_expense, t0):
    before = make_expense()
    after = before.model_copy(update={"status": ExpenseStatus.REJECTED, "rejection_reason": "r", "decision_date": t0})
    assert set(changed_fields(before, after)) == {"status", "rejection_reason", "decision_date"}
