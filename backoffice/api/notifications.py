from typing import List, Optional

from fastapi import APIRouter

from backoffice.tools.notification_tool import Notification, notification_tool

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])

@router.get("", response_model=List[Notification])
async def list_notifications(limit: Optional[int] = None):
    return notification_tool.recent(limit)

@router.delete("")
async def clear_notifications():
    notification_tool.clear()
    return {"status": "ok"}
