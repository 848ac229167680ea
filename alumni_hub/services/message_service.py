# alumni_hub/services/message_service.py
"""Direct messages between alumni who are allowed to message each other."""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging

from fastapi import UploadFile
from sqlalchemy import select, update, func, and_, or_, not_, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .base_service import BaseService
from .connection_service import ConnectionService
from .notification_service import NotificationEmitter
from ..core.exceptions import InvalidArgumentError, ForbiddenError, NotFoundError
from ..core.security import is_peer_eligible
from ..models.base import utcnow
from ..models.message import Message, MessageAttachment
from ..models.user import User
from ..utils.file_storage import FileStorage, MESSAGE_DIR
from ..utils.message_window import (
    DELETE_FOR_EVERYONE, normalize_delete_scope, can_delete_for_everyone
)
from ..utils.pagination import Paginator

logger = logging.getLogger(__name__)


def serialize_attachment(attachment) -> Dict[str, Any]:
    return {
        "attachment_id": attachment.attachment_id,
        "message_id": attachment.message_id,
        "file_name": attachment.file_name,
        "file_path": attachment.file_path,
        "file_type": attachment.file_type,
        "file_size": attachment.file_size,
        "mime_type": attachment.mime_type,
        "created_at": attachment.created_at,
    }


class MessageService(BaseService[Message]):
    def __init__(
        self,
        db: AsyncSession,
        emitter: Optional[NotificationEmitter] = None,
        storage: Optional[FileStorage] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(Message, db)
        self.clock = clock
        self.emitter = emitter or NotificationEmitter()
        self.storage = storage or FileStorage()
        self.connections = ConnectionService(db, emitter=self.emitter)

    def _visible_to(self, viewer_id: int):
        """Excludes messages the viewer deleted for themselves."""
        return not_(or_(
            and_(Message.sender_id == viewer_id, Message.deleted_for_sender == True),
            and_(Message.receiver_id == viewer_id, Message.deleted_for_receiver == True),
        ))

    @staticmethod
    def _between(a: int, b: int):
        return or_(
            and_(Message.sender_id == a, Message.receiver_id == b),
            and_(Message.sender_id == b, Message.receiver_id == a),
        )

    @staticmethod
    def serialize(message: Message, sender: User) -> Dict[str, Any]:
        return {
            "message_id": message.message_id,
            "sender_id": message.sender_id,
            "receiver_id": message.receiver_id,
            "message_text": message.message_text,
            "has_attachments": message.has_attachments,
            "is_read": message.is_read,
            "created_at": message.created_at,
            "sender_first_name": sender.first_name,
            "sender_last_name": sender.last_name,
            "sender_profile_picture": sender.profile_picture,
            "attachments": [serialize_attachment(a) for a in message.attachments],
        }

    async def send_message(
        self,
        principal,
        receiver_id: Optional[int],
        message_text: Optional[str],
        attachments: Sequence[UploadFile] = (),
    ) -> Dict[str, Any]:
        if not is_peer_eligible(principal):
            raise ForbiddenError("Administrators cannot send direct messages")

        text = (message_text or "").strip()
        files = [f for f in attachments or [] if f is not None and f.filename]
        if not receiver_id or (not text and not files):
            raise InvalidArgumentError("Receiver and message text or attachments are required")

        result = await self.db.execute(
            select(User).where(User.user_id == receiver_id, User.is_active == True)
        )
        receiver = result.scalar_one_or_none()
        if receiver is None:
            raise NotFoundError("Receiver not found")
        if not is_peer_eligible(receiver):
            raise ForbiddenError("Cannot send messages to administrators")
        if not await self.connections.can_message(principal.user_id, receiver_id):
            raise ForbiddenError("You can only message your connections")

        stored = await self.storage.save_attachments(files, MESSAGE_DIR)
        try:
            message = Message(
                sender_id=principal.user_id,
                receiver_id=receiver_id,
                message_text=text,
                has_attachments=bool(stored),
            )
            message.attachments = [MessageAttachment(**s.model_dump()) for s in stored]
            self.db.add(message)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self.storage.remove([s.file_path for s in stored])
            raise

        logger.info(f"Message {message.message_id}: {principal.user_id} -> {receiver_id} ({len(stored)} attachments)")
        await self.emitter.notify(
            receiver_id,
            "message",
            "New Message",
            f"{principal.full_name} sent you a message",
            related_id=principal.user_id,
        )

        message = await self._load(message.message_id)
        sender = await self.db.get(User, principal.user_id)
        return self.serialize(message, sender)

    async def _load(self, message_id: int) -> Optional[Message]:
        stmt = (
            select(Message)
            .options(selectinload(Message.attachments))
            .where(Message.message_id == message_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_conversation(self, principal, other_id: int, page: int = 1, limit: int = 50) -> Dict[str, Any]:
        if not is_peer_eligible(principal):
            raise ForbiddenError("Administrators cannot use direct messages")
        if not await self.connections.can_message(principal.user_id, other_id):
            raise ForbiddenError("You can only view conversations with your connections")

        stmt = (
            select(Message, User)
            .join(User, User.user_id == Message.sender_id)
            .options(selectinload(Message.attachments))
            .where(self._between(principal.user_id, other_id), self._visible_to(principal.user_id))
            .order_by(desc(Message.created_at), desc(Message.message_id))
            .offset(Paginator.calculate_offset(page, limit))
            .limit(limit)
        )
        rows = (await self.db.execute(stmt)).all()
        messages = [self.serialize(message, sender) for message, sender in reversed(rows)]

        await self.db.execute(
            update(Message)
            .where(
                Message.sender_id == other_id,
                Message.receiver_id == principal.user_id,
                Message.is_read == False,
            )
            .values(is_read=True)
        )
        await self.db.commit()

        return {"messages": messages, "pagination": {"page": page, "limit": limit}}

    async def delete_message(
        self, principal, message_id: int, delete_for: Optional[str] = None
    ) -> str:
        scope = normalize_delete_scope(delete_for)
        message = await self.get(message_id)
        if message is None:
            raise NotFoundError("Message not found")

        is_sender = message.sender_id == principal.user_id
        is_receiver = message.receiver_id == principal.user_id
        if not is_sender and not is_receiver or not is_peer_eligible(principal):
            raise ForbiddenError("Unauthorized to delete this message")

        if scope == DELETE_FOR_EVERYONE:
            if not is_sender:
                raise ForbiddenError("Only sender can delete message for everyone")
            if not can_delete_for_everyone(message.created_at, self.clock()):
                raise InvalidArgumentError("You can only delete for everyone within 15 minutes")
            message = await self._load(message_id)
            paths = [a.file_path for a in message.attachments]
            await self.hard_delete(message)
            self.storage.remove(paths)
            return scope

        if is_sender:
            message.deleted_for_sender = True
        else:
            message.deleted_for_receiver = True
        await self.db.commit()
        return scope

    async def get_conversations(self, principal) -> List[Dict[str, Any]]:
        """One entry per counterpart with the last visible message and unread count."""
        if not is_peer_eligible(principal):
            return []
        viewer_id = principal.user_id

        stmt = (
            select(Message)
            .where(
                or_(Message.sender_id == viewer_id, Message.receiver_id == viewer_id),
                self._visible_to(viewer_id),
            )
            .order_by(desc(Message.created_at), desc(Message.message_id))
        )
        latest: Dict[int, Message] = {}
        for message in (await self.db.execute(stmt)).scalars():
            partner_id = message.receiver_id if message.sender_id == viewer_id else message.sender_id
            latest.setdefault(partner_id, message)
        if not latest:
            return []

        unread_stmt = (
            select(Message.sender_id, func.count())
            .where(
                Message.receiver_id == viewer_id,
                Message.sender_id.in_(latest.keys()),
                Message.is_read == False,
                Message.deleted_for_receiver == False,
            )
            .group_by(Message.sender_id)
        )
        unread = dict((await self.db.execute(unread_stmt)).all())

        users = await self.db.execute(
            select(User).where(User.user_id.in_(latest.keys()), User.is_active == True)
        )
        conversations = []
        for user in users.scalars():
            last = latest[user.user_id]
            conversations.append({
                "user_id": user.user_id,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "profile_picture": user.profile_picture,
                "current_city": user.current_city,
                "last_message": last.message_text,
                "last_message_time": last.created_at,
                "unread_count": unread.get(user.user_id, 0),
            })
        conversations.sort(key=lambda c: c["last_message_time"], reverse=True)
        return conversations

    async def get_unread_count(self, principal) -> int:
        return await self.count(
            Message.receiver_id == principal.user_id,
            Message.is_read == False,
            Message.deleted_for_receiver == False,
        )
