# alumni_hub/routers/messages.py
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.security import Principal, get_current_principal
from ..services.message_service import MessageService
from ..services.notification_service import NotificationEmitter, get_notification_emitter
from ..utils.file_storage import FileStorage, get_file_storage
from ..utils.message_window import DELETE_FOR_EVERYONE

router = APIRouter(prefix="/api/v1/messages", tags=["Messages"])


def get_message_service(
    db: AsyncSession = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
    storage: FileStorage = Depends(get_file_storage),
) -> MessageService:
    return MessageService(db, emitter=emitter, storage=storage)


@router.post("/send", status_code=201)
async def send_message(
    receiver_id: Optional[int] = Form(None),
    message_text: Optional[str] = Form(None),
    attachments: Optional[List[UploadFile]] = File(None),
    principal: Principal = Depends(get_current_principal),
    service: MessageService = Depends(get_message_service),
):
    """Send a direct message with up to five attachments"""
    data = await service.send_message(principal, receiver_id, message_text, attachments or [])
    return {"success": True, "message": "Message sent successfully", "data": data}


@router.get("/conversations")
async def get_conversations(
    principal: Principal = Depends(get_current_principal),
    service: MessageService = Depends(get_message_service),
):
    conversations = await service.get_conversations(principal)
    return {"success": True, "conversations": conversations}


@router.get("/conversation/{user_id}")
async def get_conversation(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    service: MessageService = Depends(get_message_service),
):
    """Messages with a user, oldest first. Marks their messages to the caller as read."""
    result = await service.get_conversation(principal, user_id, page=page, limit=limit)
    return {"success": True, **result}


@router.get("/unread-count")
async def get_unread_count(
    principal: Principal = Depends(get_current_principal),
    service: MessageService = Depends(get_message_service),
):
    return {"success": True, "unread_count": await service.get_unread_count(principal)}


@router.delete("/{message_id}")
async def delete_message(
    message_id: int,
    delete_for: Optional[str] = Query(None),
    principal: Principal = Depends(get_current_principal),
    service: MessageService = Depends(get_message_service),
):
    scope = await service.delete_message(principal, message_id, delete_for)
    return {
        "success": True,
        "message": "Message deleted for everyone" if scope == DELETE_FOR_EVERYONE else "Message deleted for you"
    }
