# alumni_hub/models/__init__.py
"""Import all models here, if needed for Alembic migration."""
from .base import Base, utcnow

from .user import User, SchoolAdmin, School, AlumniEducation, WorkExperience
from .connection import Connection, Mentorship
from .message import Message, MessageAttachment
from .group_chat import GroupChat, GroupMember, GroupMessage, GroupMessageAttachment
from .notification import Notification

__all__ = [
    "Base", "utcnow",
    "User", "SchoolAdmin", "School", "AlumniEducation", "WorkExperience",
    "Connection", "Mentorship",
    "Message", "MessageAttachment",
    "GroupChat", "GroupMember", "GroupMessage", "GroupMessageAttachment",
    "Notification",
]
