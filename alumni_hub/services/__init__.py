# alumni_hub/services/__init__.py
from .base_service import BaseService
from .email_service import EmailService
from .notification_service import NotificationService, NotificationEmitter
from .connection_service import ConnectionService
from .message_service import MessageService
from .group_chat_service import GroupChatService

__all__ = [
    "BaseService",
    "EmailService",
    "NotificationService",
    "NotificationEmitter",
    "ConnectionService",
    "MessageService",
    "GroupChatService",
]
