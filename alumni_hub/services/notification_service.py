# alumni_hub/services/notification_service.py
from typing import Any, Dict, Optional, Tuple
import logging

from sqlalchemy import select, update, delete, desc
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .base_service import BaseService
from ..core.database import AsyncSessionLocal
from ..core.exceptions import NotFoundError
from ..models.notification import (
    Notification, ALLOWED_NOTIFICATION_TYPES, RECIPIENT_USER, RECIPIENT_SCHOOL_ADMIN
)
from ..models.user import User, SchoolAdmin, ROLE_ALUMNI, ROLE_SCHOOL_ADMIN
from ..utils.pagination import Paginator

logger = logging.getLogger(__name__)


def allowed_types_for(role: str) -> Tuple[str, ...]:
    """Unknown roles fall back to the alumni set."""
    return ALLOWED_NOTIFICATION_TYPES.get(role, ALLOWED_NOTIFICATION_TYPES[ROLE_ALUMNI])


def recipient_type_for(principal) -> str:
    return RECIPIENT_SCHOOL_ADMIN if principal.role == ROLE_SCHOOL_ADMIN else RECIPIENT_USER


class NotificationEmitter:
    """Persists notifications in a session of its own.

    notify() never raises, so a failed notification cannot undo or fail
    the operation that triggered it.
    """

    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self.session_factory = session_factory

    async def notify(
        self,
        user_id: int,
        notification_type: str,
        title: str,
        message: str,
        related_id: Optional[int] = None,
        category: Optional[str] = None,
        recipient_type: str = RECIPIENT_USER,
    ) -> None:
        try:
            async with self.session_factory() as session:
                role = await self._recipient_role(session, user_id, recipient_type)
                if role is None:
                    logger.info(f"Skipping {notification_type} notification: recipient {user_id} not found")
                    return
                if notification_type not in allowed_types_for(role):
                    logger.debug(f"Skipping {notification_type} notification for {role} {user_id}")
                    return
                session.add(Notification(
                    user_id=user_id,
                    recipient_type=recipient_type,
                    notification_type=notification_type,
                    title=title,
                    message=message,
                    related_id=related_id,
                    category=category,
                ))
                await session.commit()
        except Exception as e:
            logger.error(f"Create notification error for user {user_id}: {e}")

    async def _recipient_role(self, session: AsyncSession, user_id: int, recipient_type: str) -> Optional[str]:
        if recipient_type == RECIPIENT_SCHOOL_ADMIN:
            result = await session.execute(select(SchoolAdmin.admin_id).where(SchoolAdmin.admin_id == user_id))
            return ROLE_SCHOOL_ADMIN if result.scalar_one_or_none() is not None else None
        result = await session.execute(select(User.role).where(User.user_id == user_id))
        return result.scalar_one_or_none()


def get_notification_emitter() -> NotificationEmitter:
    return NotificationEmitter()


class NotificationService(BaseService[Notification]):
    """Recipient-side inbox, filtered to the types the caller's role may see."""

    def __init__(self, db: AsyncSession):
        super().__init__(Notification, db)

    def _visible(self, principal):
        return (
            Notification.user_id == principal.user_id,
            Notification.recipient_type == recipient_type_for(principal),
            Notification.notification_type.in_(allowed_types_for(principal.role)),
        )

    async def get_notifications(
        self,
        principal,
        page: int = 1,
        limit: int = 50,
        is_read: Optional[bool] = None,
        notification_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        allowed = allowed_types_for(principal.role)
        if not allowed:
            return {
                "notifications": [],
                "unread_count": 0,
                "pagination": Paginator.page_meta(page, limit, 0),
            }

        criteria = list(self._visible(principal))
        if is_read is not None:
            criteria.append(Notification.is_read == is_read)
        if notification_type and notification_type in allowed:
            criteria.append(Notification.notification_type == notification_type)

        stmt = (
            select(Notification)
            .where(*criteria)
            .order_by(desc(Notification.created_at), desc(Notification.notification_id))
            .offset(Paginator.calculate_offset(page, limit))
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        notifications = result.scalars().all()

        total = await self.count(*criteria)
        unread = await self.get_unread_count(principal)

        return {
            "notifications": [self.serialize(n) for n in notifications],
            "unread_count": unread,
            "pagination": Paginator.page_meta(page, limit, total),
        }

    async def get_unread_count(self, principal) -> int:
        if not allowed_types_for(principal.role):
            return 0
        return await self.count(*self._visible(principal), Notification.is_read == False)

    async def _get_owned(self, principal, notification_id: int) -> Notification:
        stmt = select(Notification).where(
            Notification.notification_id == notification_id,
            Notification.user_id == principal.user_id,
            Notification.recipient_type == recipient_type_for(principal),
        )
        result = await self.db.execute(stmt)
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError("Notification not found")
        return notification

    async def mark_as_read(self, principal, notification_id: int) -> int:
        notification = await self._get_owned(principal, notification_id)
        if not notification.is_read:
            notification.is_read = True
            await self.db.commit()
        return await self.get_unread_count(principal)

    async def mark_all_as_read(self, principal):
        if not allowed_types_for(principal.role):
            return
        stmt = (
            update(Notification)
            .where(*self._visible(principal), Notification.is_read == False)
            .values(is_read=True)
        )
        await self.db.execute(stmt)
        await self.db.commit()

    async def delete_notification(self, principal, notification_id: int) -> int:
        notification = await self._get_owned(principal, notification_id)
        await self.hard_delete(notification)
        return await self.get_unread_count(principal)

    async def delete_all(self, principal) -> int:
        """Delete every notification the caller can see; returns the number removed."""
        if not allowed_types_for(principal.role):
            return 0
        result = await self.db.execute(delete(Notification).where(*self._visible(principal)))
        await self.db.commit()
        return result.rowcount or 0

    @staticmethod
    def serialize(notification: Notification) -> Dict[str, Any]:
        return {
            "notification_id": notification.notification_id,
            "user_id": notification.user_id,
            "recipient_type": notification.recipient_type,
            "notification_type": notification.notification_type,
            "title": notification.title,
            "message": notification.message,
            "related_id": notification.related_id,
            "category": notification.category,
            "is_read": notification.is_read,
            "created_at": notification.created_at.isoformat() if notification.created_at else None,
        }
