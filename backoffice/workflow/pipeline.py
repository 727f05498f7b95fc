"""
Search, filter, sort and pagination over an in-memory expense list.

All functions return new lists and keep the relative order of the input
(sorting is stable), so they can be chained in any order.
"""
import math
from typing import Callable, Dict, List, Optional, Any

from backoffice.config import settings
from backoffice.models.expense import Expense, ExpensePage, ExpenseQuery, ExpenseStatus, Priority
from backoffice.utils.clock import ensure_utc

ALL = "All"


def _is_all(value) -> bool:
    return value is None or value == "" or value == ALL


def search_expenses(items: List[Expense], query: Optional[str]) -> List[Expense]:
    if not query or not query.strip():
        return list(items)

    needle = query.lower()

    def matches(item: Expense) -> bool:
        fields = [
            item.title,
            item.description,
            item.category,
            item.requested_by.name,
            item.department,
            item.vendor or "",
        ]
        if any(needle in field.lower() for field in fields):
            return True
        return any(needle in tag.lower() for tag in item.tags)

    return [item for item in items if matches(item)]


def filter_by_status(items: List[Expense], status) -> List[Expense]:
    if _is_all(status):
        return list(items)
    status = ExpenseStatus.from_wire(status)
    return [item for item in items if item.status == status]


def filter_by_category(items: List[Expense], category: Optional[str]) -> List[Expense]:
    if _is_all(category):
        return list(items)
    return [item for item in items if item.category == category]


def filter_by_department(items: List[Expense], department: Optional[str]) -> List[Expense]:
    if _is_all(department):
        return list(items)
    return [item for item in items if item.department == department]


def filter_by_priority(items: List[Expense], priority) -> List[Expense]:
    if _is_all(priority):
        return list(items)
    priority = Priority.from_wire(priority)
    return [item for item in items if item.priority == priority]


SORT_KEYS: Dict[str, Callable[[Expense], Any]] = {
    "title": lambda e: e.title.lower(),
    "amount": lambda e: e.amount,
    "requestDate": lambda e: ensure_utc(e.request_date),
    "requestedBy": lambda e: e.requested_by.name.lower(),
    "status": lambda e: e.status.value,
    "priority": lambda e: e.priority.rank,
}


def sort_expenses(items: List[Expense], sort_by: str, sort_order: str = "asc") -> List[Expense]:
    key = SORT_KEYS.get(sort_by)
    if key is None:
        return list(items)
    # sorted(reverse=True) keeps ties in their original order
    return sorted(items, key=key, reverse=(sort_order == "desc"))


def paginate(items: List[Expense], page: int = 1, page_size: int = None) -> ExpensePage:
    page_size = page_size or settings.PAGE_SIZE
    total_pages = max(1, math.ceil(len(items) / page_size))
    safe_page = min(max(1, page), total_pages)
    start = (safe_page - 1) * page_size
    end = start + page_size
    return ExpensePage(
        items=items[start:end],
        page=safe_page,
        total_pages=total_pages,
        total_items=len(items),
        start_index=start,
        end_index=min(end, len(items)),
    )


def apply_view(items: List[Expense], query: ExpenseQuery) -> List[Expense]:
    filtered = search_expenses(items, query.search)
    filtered = filter_by_status(filtered, query.status)
    filtered = filter_by_category(filtered, query.category)
    filtered = filter_by_department(filtered, query.department)
    filtered = filter_by_priority(filtered, query.priority)
    return sort_expenses(filtered, query.sort_by, query.sort_order)
