# alumni_hub/services/group_chat_service.py
"""Group chats whose members are drawn from the creator's and admins' connections."""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
import json
import logging

from fastapi import UploadFile
from sqlalchemy import select, func, and_, not_, case, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from .base_service import BaseService
from .connection_service import ConnectionService
from .message_service import serialize_attachment
from .notification_service import NotificationEmitter
from ..core.exceptions import InvalidArgumentError, ForbiddenError, NotFoundError, ConflictError
from ..core.security import is_peer_eligible
from ..models.base import utcnow
from ..models.group_chat import (
    GroupChat, GroupMember, GroupMessage, GroupMessageAttachment,
    GROUP_ROLE_ADMIN, GROUP_ROLE_MEMBER
)
from ..models.user import User
from ..utils.file_storage import FileStorage, GROUP_AVATAR_DIR, GROUP_MESSAGE_DIR
from ..utils.message_window import DELETE_FOR_EVERYONE, normalize_delete_scope, can_delete_for_everyone
from ..utils.pagination import Paginator

logger = logging.getLogger(__name__)

GROUP_ROLES = (GROUP_ROLE_ADMIN, GROUP_ROLE_MEMBER)


def parse_member_ids(raw: Union[None, str, Sequence[Any]]) -> List[int]:
    """Accepts a list, a JSON array string or a comma separated string.

    Duplicates are dropped, order is kept.
    """
    if raw is None:
        return []
    values = raw
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return []
        try:
            values = json.loads(raw) if raw.startswith("[") else raw.split(",")
        except ValueError:
            raise InvalidArgumentError("Invalid member_ids format")
    if not isinstance(values, (list, tuple)):
        raise InvalidArgumentError("Invalid member_ids format")

    ids = []
    for value in values:
        try:
            member_id = int(value)
        except (TypeError, ValueError):
            raise InvalidArgumentError("Invalid member_ids format")
        if member_id not in ids:
            ids.append(member_id)
    return ids


class GroupChatService(BaseService[GroupChat]):
    def __init__(
        self,
        db: AsyncSession,
        emitter: Optional[NotificationEmitter] = None,
        storage: Optional[FileStorage] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(GroupChat, db)
        self.clock = clock
        self.emitter = emitter or NotificationEmitter()
        self.storage = storage or FileStorage()
        self.connections = ConnectionService(db, emitter=self.emitter)

    # ---- membership lookups ----

    async def _active_membership(self, group_id: int, user_id: int) -> Optional[Tuple[GroupMember, GroupChat]]:
        """Active membership in an active group."""
        stmt = (
            select(GroupMember, GroupChat)
            .join(GroupChat, GroupChat.group_id == GroupMember.group_id)
            .where(
                GroupMember.group_id == group_id,
                GroupMember.user_id == user_id,
                GroupMember.is_active == True,
                GroupChat.is_active == True,
            )
        )
        row = (await self.db.execute(stmt)).first()
        return tuple(row) if row else None

    async def _membership_of(self, principal, group_id: int) -> Optional[Tuple[GroupMember, GroupChat]]:
        # Admin ids live in another table and may equal a user_id
        if not is_peer_eligible(principal):
            return None
        return await self._active_membership(group_id, principal.user_id)

    async def _get_active_group(self, group_id: int) -> GroupChat:
        group = await self.get(group_id)
        if group is None or not group.is_active:
            raise NotFoundError("Group not found")
        return group

    async def _require_admin(self, principal, group_id: int, message: str) -> Tuple[GroupMember, GroupChat]:
        group = await self._get_active_group(group_id)
        membership = await self._membership_of(principal, group_id)
        if membership is None or membership[0].role != GROUP_ROLE_ADMIN:
            raise ForbiddenError(message)
        return membership[0], group

    async def _get_member_row(self, group_id: int, user_id: int, active_only: bool = True) -> Optional[GroupMember]:
        stmt = select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
        if active_only:
            stmt = stmt.where(GroupMember.is_active == True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _verify_connections(self, principal, member_ids: List[int]):
        verified = await self.connections.accepted_connection_ids(principal.user_id, member_ids)
        if len(verified) != len(member_ids):
            raise InvalidArgumentError("You can only add your connections to a group")

    @staticmethod
    def serialize_group(group: GroupChat) -> Dict[str, Any]:
        return {
            "group_id": group.group_id,
            "group_name": group.group_name,
            "group_description": group.group_description,
            "group_avatar": group.group_avatar,
            "group_type": group.group_type,
            "created_by": group.created_by,
            "is_active": group.is_active,
            "created_at": group.created_at,
            "updated_at": group.updated_at,
        }

    async def _notify_added(self, principal, group: GroupChat, user_ids: Sequence[int]):
        for user_id in user_ids:
            await self.emitter.notify(
                user_id,
                "system",
                "Added to Group",
                f'{principal.full_name} added you to "{group.group_name}"',
                related_id=group.group_id,
            )

    # ---- groups ----

    async def get_my_groups(self, principal) -> List[Dict[str, Any]]:
        if not is_peer_eligible(principal):
            return []

        me = aliased(GroupMember)
        others = aliased(GroupMember)
        member_count = (
            select(func.count())
            .select_from(others)
            .where(others.group_id == GroupChat.group_id, others.is_active == True)
            .correlate(GroupChat)
            .scalar_subquery()
        )
        stmt = (
            select(
                GroupChat,
                me.role.label("my_role"),
                me.is_muted,
                me.last_read_at,
                member_count.label("member_count"),
            )
            .join(me, me.group_id == GroupChat.group_id)
            .where(
                me.user_id == principal.user_id,
                me.is_active == True,
                GroupChat.is_active == True,
            )
        )
        rows = (await self.db.execute(stmt)).all()
        if not rows:
            return []

        # Per-member hides live in JSON, so last message and unread are worked out here
        last_read = {row.GroupChat.group_id: row.last_read_at for row in rows}
        latest: Dict[int, GroupMessage] = {}
        unread = dict.fromkeys(last_read, 0)
        messages = await self.db.execute(
            select(GroupMessage)
            .where(GroupMessage.group_id.in_(list(last_read)))
            .order_by(desc(GroupMessage.created_at), desc(GroupMessage.message_id))
        )
        for message in messages.scalars():
            if message.is_hidden_for(principal.user_id):
                continue
            latest.setdefault(message.group_id, message)
            if message.sender_id != principal.user_id and message.created_at > last_read[message.group_id]:
                unread[message.group_id] += 1

        groups = []
        for row in rows:
            group = self.serialize_group(row.GroupChat)
            last = latest.get(group["group_id"])
            group.update({
                "my_role": row.my_role,
                "is_muted": row.is_muted,
                "last_read_at": row.last_read_at,
                "member_count": row.member_count,
                "unread_count": unread[group["group_id"]],
                "last_message": last.message_text if last else None,
                "last_message_time": last.created_at if last else None,
            })
            groups.append(group)
        groups.sort(key=lambda g: g["last_message_time"] or g["created_at"], reverse=True)
        return groups

    async def create_group(
        self,
        principal,
        group_name: Optional[str],
        group_description: Optional[str] = None,
        member_ids: Union[None, str, Sequence[Any]] = None,
        avatar: Optional[UploadFile] = None,
    ) -> Dict[str, Any]:
        if not is_peer_eligible(principal):
            raise ForbiddenError("Administrators cannot create groups")
        name = (group_name or "").strip()
        if not name:
            raise InvalidArgumentError("Group name is required")
        ids = parse_member_ids(member_ids)
        if not ids:
            raise InvalidArgumentError("At least one member is required")
        await self._verify_connections(principal, ids)

        avatar_path = await self.storage.save_avatar(avatar, GROUP_AVATAR_DIR)
        group = GroupChat(
            group_name=name,
            group_description=group_description or None,
            group_avatar=avatar_path,
            created_by=principal.user_id,
            group_type="custom",
        )
        group.members = [GroupMember(user_id=principal.user_id, role=GROUP_ROLE_ADMIN)] + [
            GroupMember(user_id=member_id, role=GROUP_ROLE_MEMBER) for member_id in ids
        ]
        self.db.add(group)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self.storage.remove([avatar_path])
            raise
        logger.info(f"Group {group.group_id} created by {principal.user_id} with {len(ids)} members")

        await self._notify_added(principal, group, ids)

        result = self.serialize_group(group)
        result["member_count"] = len(ids) + 1
        return result

    async def update_group(
        self,
        principal,
        group_id: int,
        group_name: Optional[str] = None,
        group_description: Optional[str] = None,
        avatar: Optional[UploadFile] = None,
    ):
        _, group = await self._require_admin(principal, group_id, "Only admins can update group details")
        if group_name is not None:
            if not group_name.strip():
                raise InvalidArgumentError("Group name is required")
            group.group_name = group_name.strip()
        if group_description is not None:
            group.group_description = group_description or None
        old_avatar = None
        if avatar is not None and avatar.filename:
            old_avatar = group.group_avatar
            group.group_avatar = await self.storage.save_avatar(avatar, GROUP_AVATAR_DIR)
        await self.db.commit()
        if old_avatar:
            self.storage.remove([old_avatar])

    async def get_group_details(self, principal, group_id: int) -> Dict[str, Any]:
        membership = await self._membership_of(principal, group_id)
        if membership is None:
            await self._get_active_group(group_id)
            raise ForbiddenError("You are not a member of this group")
        my_membership, group = membership

        creator = await self.db.get(User, group.created_by)
        stmt = (
            select(
                User.user_id,
                User.first_name,
                User.last_name,
                User.profile_picture,
                User.current_city,
                GroupMember.role,
                GroupMember.joined_at,
            )
            .join(User, User.user_id == GroupMember.user_id)
            .where(GroupMember.group_id == group_id, GroupMember.is_active == True)
            .order_by(case((GroupMember.role == GROUP_ROLE_ADMIN, 1), else_=2), User.first_name)
        )
        members = [dict(row._mapping) for row in await self.db.execute(stmt)]

        details = self.serialize_group(group)
        details.update({
            "creator_first_name": creator.first_name if creator else None,
            "creator_last_name": creator.last_name if creator else None,
            "members": members,
            "member_count": len(members),
            "my_role": my_membership.role,
        })
        return details

    async def delete_group(self, principal, group_id: int):
        group = await self._get_active_group(group_id)
        if group.created_by != principal.user_id or not is_peer_eligible(principal):
            raise ForbiddenError("Only the group creator can delete the group")
        group.is_active = False
        await self.db.commit()
        logger.info(f"Group {group_id} deleted by {principal.user_id}")

    async def leave_group(self, principal, group_id: int):
        group = await self._get_active_group(group_id)
        if group.created_by == principal.user_id:
            raise InvalidArgumentError("Group creator cannot leave. Delete the group instead.")
        member = await self._get_member_row(group_id, principal.user_id)
        if member is None or not is_peer_eligible(principal):
            raise ForbiddenError("You are not a member of this group")
        member.is_active = False
        await self.db.commit()

    # ---- members ----

    async def add_group_members(self, principal, group_id: int, member_ids: Union[None, str, Sequence[Any]]) -> Dict[str, Any]:
        ids = parse_member_ids(member_ids)
        if not ids:
            raise InvalidArgumentError("Member IDs are required")
        _, group = await self._require_admin(principal, group_id, "Only admins can add members")
        await self._verify_connections(principal, ids)

        result = await self.db.execute(
            select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id.in_(ids))
        )
        existing = {member.user_id: member for member in result.scalars()}

        new_members = [user_id for user_id in ids if user_id not in existing]
        reactivated = [user_id for user_id, member in existing.items() if not member.is_active]
        if not new_members and not reactivated:
            raise InvalidArgumentError("All selected members are already in the group")

        now = utcnow()
        for user_id in new_members:
            self.db.add(GroupMember(group_id=group_id, user_id=user_id, role=GROUP_ROLE_MEMBER))
        for user_id in reactivated:
            member = existing[user_id]
            member.is_active = True
            member.role = GROUP_ROLE_MEMBER
            member.joined_at = now
            member.last_read_at = now
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Some members are already in the group. Please refresh and try again.")

        added = new_members + reactivated
        await self._notify_added(principal, group, added)
        return {
            "added_members": added,
            "details": {"new_members": new_members, "reactivated_members": reactivated},
        }

    async def remove_member(self, principal, group_id: int, user_id: int):
        _, group = await self._require_admin(principal, group_id, "Only admins can remove members")
        if user_id == group.created_by:
            raise InvalidArgumentError("Cannot remove the group creator")
        member = await self._get_member_row(group_id, user_id)
        if member is None:
            raise NotFoundError("Member not found")
        member.is_active = False
        await self.db.commit()

    async def update_member_role(self, principal, group_id: int, user_id: int, role: Optional[str]) -> str:
        if role not in GROUP_ROLES:
            raise InvalidArgumentError("Invalid role")
        _, group = await self._require_admin(principal, group_id, "Only admins can update member roles")
        member = await self._get_member_row(group_id, user_id)
        if member is None:
            raise NotFoundError("Member not found")
        # The creator stays an active admin, so a group always keeps one admin
        if role == GROUP_ROLE_MEMBER and user_id == group.created_by:
            raise InvalidArgumentError("Cannot demote the group creator")
        member.role = role
        await self.db.commit()
        return role

    # ---- messages ----

    @staticmethod
    def serialize_message(message: GroupMessage, sender: User) -> Dict[str, Any]:
        return {
            "message_id": message.message_id,
            "group_id": message.group_id,
            "sender_id": message.sender_id,
            "message_text": message.message_text,
            "has_attachments": message.has_attachments,
            "created_at": message.created_at,
            "sender_first_name": sender.first_name,
            "sender_last_name": sender.last_name,
            "sender_profile_picture": sender.profile_picture,
            "attachments": [serialize_attachment(a) for a in message.attachments],
        }

    async def _load_message(self, message_id: int) -> Optional[GroupMessage]:
        stmt = (
            select(GroupMessage)
            .options(selectinload(GroupMessage.attachments), selectinload(GroupMessage.sender))
            .where(GroupMessage.message_id == message_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def send_group_message(
        self,
        principal,
        group_id: int,
        message_text: Optional[str],
        attachments: Sequence[UploadFile] = (),
    ) -> Dict[str, Any]:
        if await self._membership_of(principal, group_id) is None:
            raise ForbiddenError("You are not a member of this group")
        text = (message_text or "").strip()
        files = [f for f in attachments or [] if f is not None and f.filename]
        if not text and not files:
            raise InvalidArgumentError("Message text or attachments are required")

        stored = await self.storage.save_attachments(files, GROUP_MESSAGE_DIR)
        try:
            message = GroupMessage(
                group_id=group_id,
                sender_id=principal.user_id,
                message_text=text,
                has_attachments=bool(stored),
                deleted_by_members=[],
            )
            message.attachments = [GroupMessageAttachment(**s.model_dump()) for s in stored]
            self.db.add(message)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self.storage.remove([s.file_path for s in stored])
            raise

        message = await self._load_message(message.message_id)
        return self.serialize_message(message, message.sender)

    async def get_group_messages(self, principal, group_id: int, page: int = 1, limit: int = 50) -> Dict[str, Any]:
        membership = await self._membership_of(principal, group_id)
        if membership is None:
            raise ForbiddenError("You are not a member of this group or the group is inactive")
        member, _ = membership
        viewer_id = principal.user_id

        # Sender-side deletes are filtered in SQL, per-member deletes below
        stmt = (
            select(GroupMessage)
            .options(selectinload(GroupMessage.attachments), selectinload(GroupMessage.sender))
            .where(
                GroupMessage.group_id == group_id,
                not_(and_(GroupMessage.sender_id == viewer_id, GroupMessage.deleted_by_sender == True)),
            )
            .order_by(desc(GroupMessage.created_at), desc(GroupMessage.message_id))
        )
        visible = [m for m in (await self.db.execute(stmt)).scalars() if not m.is_hidden_for(viewer_id)]
        offset = Paginator.calculate_offset(page, limit)
        page_items = visible[offset:offset + limit]
        messages = [self.serialize_message(m, m.sender) for m in reversed(page_items)]

        member.last_read_at = utcnow()
        await self.db.commit()

        return {
            "messages": messages,
            "pagination": Paginator.page_meta(page, limit, len(visible)),
        }

    async def delete_group_message(
        self, principal, message_id: int, delete_for: Optional[str] = None
    ) -> str:
        scope = normalize_delete_scope(delete_for)
        message = await self._load_message(message_id)
        if message is None:
            raise NotFoundError("Message not found")
        if not is_peer_eligible(principal):
            raise ForbiddenError("You are not a member of this group")
        is_sender = message.sender_id == principal.user_id
        if not is_sender and await self._get_member_row(message.group_id, principal.user_id, active_only=False) is None:
            raise ForbiddenError("You are not a member of this group")

        if scope == DELETE_FOR_EVERYONE:
            if not is_sender:
                raise ForbiddenError("Only sender can delete message for everyone")
            if not can_delete_for_everyone(message.created_at, self.clock()):
                raise InvalidArgumentError("You can only delete for everyone within 15 minutes")
            paths = [a.file_path for a in message.attachments]
            await self.hard_delete(message)
            self.storage.remove(paths)
            return scope

        if is_sender:
            message.deleted_by_sender = True
        elif principal.user_id not in (message.deleted_by_members or []):
            # Reassign so the JSON column change is detected
            message.deleted_by_members = list(message.deleted_by_members or []) + [principal.user_id]
        await self.db.commit()
        return scope
