# alumni_hub/routers/notifications.py
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.security import Principal, get_current_principal
from ..services.notification_service import NotificationService

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("")
async def get_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    is_read: Optional[bool] = Query(None),
    type: Optional[str] = Query(None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Caller's notifications, newest first, limited to types their role receives"""
    service = NotificationService(db)
    result = await service.get_notifications(
        principal, page=page, limit=limit, is_read=is_read, notification_type=type
    )
    return {"success": True, **result}


@router.get("/unread-count")
async def get_unread_count(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = NotificationService(db)
    return {"success": True, "unread_count": await service.get_unread_count(principal)}


@router.put("/mark-all-read")
async def mark_all_as_read(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = NotificationService(db)
    await service.mark_all_as_read(principal)
    return {"success": True, "message": "All notifications marked as read", "unread_count": 0}


@router.put("/{notification_id}/read")
async def mark_as_read(
    notification_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = NotificationService(db)
    unread = await service.mark_as_read(principal, notification_id)
    return {"success": True, "message": "Notification marked as read", "unread_count": unread}


@router.delete("/delete-all")
async def delete_all_notifications(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = NotificationService(db)
    deleted = await service.delete_all(principal)
    return {
        "success": True,
        "message": "All notifications deleted",
        "deleted_count": deleted,
        "unread_count": 0
    }


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    service = NotificationService(db)
    unread = await service.delete_notification(principal, notification_id)
    return {"success": True, "message": "Notification deleted", "unread_count": unread}
