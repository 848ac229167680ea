# alumni_hub/routers/groups.py
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.security import Principal, get_current_principal
from ..schemas.group_schemas import AddMembersRequest, UpdateMemberRoleRequest
from ..services.group_chat_service import GroupChatService
from ..services.notification_service import NotificationEmitter, get_notification_emitter
from ..utils.file_storage import FileStorage, get_file_storage
from ..utils.message_window import DELETE_FOR_EVERYONE

router = APIRouter(prefix="/api/v1/groups", tags=["Group Chats"])


def get_group_service(
    db: AsyncSession = Depends(get_db),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
    storage: FileStorage = Depends(get_file_storage),
) -> GroupChatService:
    return GroupChatService(db, emitter=emitter, storage=storage)


@router.get("")
async def get_my_groups(
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    return {"success": True, "groups": await service.get_my_groups(principal)}


@router.post("", status_code=201)
async def create_group(
    group_name: Optional[str] = Form(None),
    group_description: Optional[str] = Form(None),
    member_ids: Optional[str] = Form(None),
    group_avatar: Optional[UploadFile] = File(None),
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    """Create a group; member_ids is a JSON array of connection user ids"""
    group = await service.create_group(principal, group_name, group_description, member_ids, group_avatar)
    return {"success": True, "message": "Group created successfully", "group": group}


@router.delete("/messages/{message_id}")
async def delete_group_message(
    message_id: int,
    delete_for: Optional[str] = Query(None),
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    scope = await service.delete_group_message(principal, message_id, delete_for)
    return {
        "success": True,
        "message": "Message deleted for everyone" if scope == DELETE_FOR_EVERYONE else "Message deleted for you"
    }


@router.get("/{group_id}")
async def get_group_details(
    group_id: int,
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    return {"success": True, "group": await service.get_group_details(principal, group_id)}


@router.put("/{group_id}")
async def update_group(
    group_id: int,
    group_name: Optional[str] = Form(None),
    group_description: Optional[str] = Form(None),
    group_avatar: Optional[UploadFile] = File(None),
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    await service.update_group(principal, group_id, group_name, group_description, group_avatar)
    return {"success": True, "message": "Group updated successfully"}


@router.delete("/{group_id}/leave")
async def leave_group(
    group_id: int,
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    await service.leave_group(principal, group_id)
    return {"success": True, "message": "Left group successfully"}


@router.delete("/{group_id}")
async def delete_group(
    group_id: int,
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    await service.delete_group(principal, group_id)
    return {"success": True, "message": "Group deleted successfully"}


@router.post("/{group_id}/members")
async def add_group_members(
    group_id: int,
    request: AddMembersRequest,
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    result = await service.add_group_members(principal, group_id, request.member_ids)
    return {
        "success": True,
        "message": f"{len(result['added_members'])} member(s) added successfully",
        **result
    }


@router.delete("/{group_id}/members/{user_id}")
async def remove_member(
    group_id: int,
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    await service.remove_member(principal, group_id, user_id)
    return {"success": True, "message": "Member removed successfully"}


@router.put("/{group_id}/members/{user_id}/role")
async def update_member_role(
    group_id: int,
    user_id: int,
    request: UpdateMemberRoleRequest,
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    role = await service.update_member_role(principal, group_id, user_id, request.role)
    action = "promoted to admin" if role == "admin" else "demoted to member"
    return {"success": True, "message": f"Member {action} successfully"}


@router.post("/{group_id}/messages", status_code=201)
async def send_group_message(
    group_id: int,
    message_text: Optional[str] = Form(None),
    attachments: Optional[List[UploadFile]] = File(None),
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    data = await service.send_group_message(principal, group_id, message_text, attachments or [])
    return {"success": True, "message": "Message sent successfully", "data": data}


@router.get("/{group_id}/messages")
async def get_group_messages(
    group_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    principal: Principal = Depends(get_current_principal),
    service: GroupChatService = Depends(get_group_service),
):
    result = await service.get_group_messages(principal, group_id, page=page, limit=limit)
    return {"success": True, **result}
