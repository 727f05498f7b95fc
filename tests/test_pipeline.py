import pytest

from backoffice.models.expense import ExpenseQuery, ExpenseStatus, Priority
from backoffice.workflow.pipeline import (
    apply_view, filter_by_category, filter_by_department, filter_by_priority, filter_by_status,
    paginate, search_expenses, sort_expenses,
)


def ids(items):
    return [e.id for e in items]


def test_search_blank_returns_everything(sample_expenses):
    assert ids(search_expenses(sample_expenses, "")) == ids(sample_expenses)
    assert ids(search_expenses(sample_expenses, "   ")) == ids(sample_expenses)


@pytest.mark.parametrize("query, expected", [
    ("TYRE", ["exp_000002", "exp_000003"]),   # title / description
    ("ada obi", ["exp_000001", "exp_000004"]),  # requester
    ("operations", ["exp_000002", "exp_000004"]),  # department
    ("meta", ["exp_000003"]),                   # vendor
    ("workshop", ["exp_000002"]),               # tag
    ("utilities", ["exp_000004"]),              # category
    ("nothing like this", []),
])
def test_search_fields(sample_expenses, query, expected):
    assert ids(search_expenses(sample_expenses, query)) == expected


def test_filters_all_is_identity(sample_expenses):
    assert ids(filter_by_status(sample_expenses, "All")) == ids(sample_expenses)
    assert ids(filter_by_category(sample_expenses, "All")) == ids(sample_expenses)
    assert ids(filter_by_department(sample_expenses, None)) == ids(sample_expenses)
    assert ids(filter_by_priority(sample_expenses, "")) == ids(sample_expenses)


def test_filter_by_status_accepts_wire_values(sample_expenses):
    assert ids(filter_by_status(sample_expenses, "APPROVED")) == ["exp_000002"]
    assert ids(filter_by_status(sample_expenses, ExpenseStatus.PAID)) == ["exp_000004"]


def test_filter_by_unknown_status(sample_expenses):
    with pytest.raises(ValueError):
        filter_by_status(sample_expenses, "Archived")


def test_filter_by_category_department_priority(sample_expenses):
    assert ids(filter_by_category(sample_expenses, "Office Supplies")) == ["exp_000001"]
    assert ids(filter_by_department(sample_expenses, "Operations")) == ["exp_000002", "exp_000004"]
    assert ids(filter_by_priority(sample_expenses, Priority.URGENT)) == ["exp_000002"]


def test_sort_by_amount(sample_expenses):
    assert ids(sort_expenses(sample_expenses, "amount", "asc")) == [
        "exp_000003", "exp_000001", "exp_000004", "exp_000002",
    ]


def test_sort_desc_keeps_ties_in_input_order(sample_expenses):
    # exp_000001 and exp_000004 share an amount
    assert ids(sort_expenses(sample_expenses, "amount", "desc")) == [
        "exp_000002", "exp_000001", "exp_000004", "exp_000003",
    ]


def test_sort_by_priority_uses_rank(sample_expenses):
    assert ids(sort_expenses(sample_expenses, "priority", "desc")) == [
        "exp_000002", "exp_000004", "exp_000001", "exp_000003",
    ]


def test_sort_by_request_date(sample_expenses):
    assert ids(sort_expenses(sample_expenses, "requestDate", "desc")) == [
        "exp_000001", "exp_000002", "exp_000004", "exp_000003",
    ]


def test_sort_unknown_key_is_noop(sample_expenses):
    assert ids(sort_expenses(sample_expenses, "colour", "asc")) == ids(sample_expenses)


def test_paginate_clamps_page(make_expense):
    items = [make_expense(f"exp_{i:06d}") for i in range(120)]

    first = paginate(items, page=1, page_size=50)
    assert first.total_pages == 3
    assert first.start_index == 0
    assert first.end_index == 50
    assert len(first.items) == 50

    last = paginate(items, page=99, page_size=50)
    assert last.page == 3
    assert last.start_index == 100
    assert last.end_index == 120
    assert len(last.items) == 20

    assert paginate(items, page=0, page_size=50).page == 1


def test_paginate_empty():
    page = paginate([], page=4, page_size=50)
    assert page.page == 1
    assert page.total_pages == 1
    assert page.items == []


def test_apply_view_combines_steps(sample_expenses):
    query = ExpenseQuery(search="o", department="Operations", sort_by="amount", sort_order="asc")
    assert ids(apply_view(sample_expenses, query)) == ["exp_000004", "exp_000002"]
