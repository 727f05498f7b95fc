import pytest
from datetime import datetime, timezone

from backoffice.models.expense import Expense, ExpenseStatus, Priority, Requester
from backoffice.tools.notification_tool import notification_tool

T0 = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

@pytest.fixture
def t0():
    return T0

@pytest.fixture(autouse=True)
def clear_notifications():
    notification_tool.clear()
    yield
    notification_tool.clear()

@pytest.fixture
def make_expense():
    def _make(expense_id="exp_000001", **overrides):
        data = {
            "id": expense_id,
            "title": "Office chairs",
            "description": "Ergonomic chairs for the sales floor",
            "category": "Office Supplies",
            "department": "Sales & Marketing",
            "vendor": "Lagos Furniture Ltd",
            "invoice_number": "INV-000001",
            "tags": ["furniture"],
            "priority": Priority.MEDIUM,
            "amount": 150000.0,
            "requested_by": Requester(name="Ada Obi", email="ada@company.com"),
            "request_date": T0,
            "status": ExpenseStatus.PENDING,
        }
        data.update(overrides)
        return Expense(**data)
    return _make

@pytest.fixture
def sample_expenses(make_expense):
    return [
        make_expense("exp_000001"),
        make_expense(
            "exp_000002",
            title="Tyre changer machine",
            description="Replacement for workshop bay 2",
            category="Equipment & Hardware",
            department="Operations",
            vendor="Hofmann Nigeria",
            tags=["workshop", "equipment"],
            priority=Priority.URGENT,
            amount=2400000.0,
            requested_by=Requester(name="Bola Ade", email="bola@company.com"),
            request_date=datetime(2025, 3, 8, 14, 30, tzinfo=timezone.utc),
            status=ExpenseStatus.APPROVED,
            approved_by="Admin User",
            approved_date=datetime(2025, 3, 9, 10, 0, tzinfo=timezone.utc),
            decision_date=datetime(2025, 3, 9, 10, 0, tzinfo=timezone.utc),
        ),
        make_expense(
            "exp_000003",
            title="Facebook ads campaign",
            description="March promo for winter tyres",
            category="Marketing & Advertising",
            department="Sales & Marketing",
            vendor="Meta",
            tags=["promo"],
            priority=Priority.LOW,
            amount=80000.0,
            requested_by=Requester(name="Chidi Eze", email="chidi@company.com"),
            request_date=datetime(2025, 2, 20, 8, 0, tzinfo=timezone.utc),
            status=ExpenseStatus.REJECTED,
            rejection_reason="Budget exceeded",
            decision_date=datetime(2025, 2, 21, 8, 0, tzinfo=timezone.utc),
        ),
        make_expense(
            "exp_000004",
            title="Diesel for generator",
            description="Weekly fuel",
            category="Utilities & Bills",
            department="Operations",
            vendor="Total Energies",
            tags=[],
            priority=Priority.HIGH,
            amount=150000.0,
            requested_by=Requester(name="Ada Obi", email="ada@company.com"),
            request_date=datetime(2025, 3, 1, 7, 0, tzinfo=timezone.utc),
            status=ExpenseStatus.PAID,
            approved_by="Admin User",
            paid_by="Finance",
        ),
    ]
