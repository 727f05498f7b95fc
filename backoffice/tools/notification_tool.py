import logging
from collections import deque
from datetime import datetime
from typing import Deque, List, Optional

from pydantic import BaseModel, Field

from backoffice.utils.clock import utcnow

logger = logging.getLogger(__name__)

class Notification(BaseModel):
    kind: str # success, error
    title: str
    message: str
    created_at: datetime = Field(default_factory=utcnow)

class NotificationTool:
    """
    Operator-facing success/error signals. Keeps the most recent ones so the
    HTTP layer can hand them back to the dashboard.
    """
    def __init__(self, max_items: int = 50):
        self._items: Deque[Notification] = deque(maxlen=max_items)

    def show_success(self, title: str, message: str) -> Notification:
        logger.info(f"[SUCCESS] {title}: {message}")
        return self._push("success", title, message)

    def show_error(self, title: str, message: str) -> Notification:
        logger.warning(f"[ERROR] {title}: {message}")
        return self._push("error", title, message)

    def recent(self, limit: Optional[int] = None) -> List[Notification]:
        items = list(self._items)
        return items[-limit:] if limit else items

    def last(self) -> Optional[Notification]:
        return self._items[-1] if self._items else None

    def clear(self) -> None:
        self._items.clear()

    def _push(self, kind: str, title: str, message: str) -> Notification:
        notification = Notification(kind=kind, title=title, message=message)
        self._items.append(notification)
        return notification

notification_tool = NotificationTool()
