# alumni_hub/models/group_chat.py
from sqlalchemy import Column, Integer, String, Text, Boolean, BigInteger, DateTime, JSON, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, utcnow

GROUP_ROLE_ADMIN = "admin"
GROUP_ROLE_MEMBER = "member"


class GroupChat(Base):
    __tablename__ = "group_chats"

    group_id = Column(Integer, primary_key=True, autoincrement=True)
    group_name = Column(String(100), nullable=False)
    group_description = Column(Text)
    group_avatar = Column(String(500))
    group_type = Column(String(20), nullable=False, default="custom")
    created_by = Column(Integer, ForeignKey("users.user_id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    members = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan")


class GroupMember(Base):
    __tablename__ = "group_members"

    member_id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey("group_chats.group_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(10), nullable=False, default=GROUP_ROLE_MEMBER)
    is_active = Column(Boolean, default=True, nullable=False)
    is_muted = Column(Boolean, default=False, nullable=False)
    joined_at = Column(DateTime, default=utcnow, nullable=False)
    last_read_at = Column(DateTime, default=utcnow, nullable=False)

    group = relationship("GroupChat", back_populates="members")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('group_id', 'user_id', name='uq_group_members_group_user'),
        Index('idx_group_members_group_active', 'group_id', 'is_active'),
    )


class GroupMessage(Base):
    __tablename__ = "group_messages"

    message_id = Column(Integer, primary_key=True, autoincrement=True)
    group_id = Column(Integer, ForeignKey("group_chats.group_id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    message_text = Column(Text)
    has_attachments = Column(Boolean, default=False, nullable=False)
    deleted_by_sender = Column(Boolean, default=False, nullable=False)
    deleted_by_members = Column(JSON, nullable=False, default=list)  # user ids that hid the message

    sender = relationship("User")
    attachments = relationship(
        "GroupMessageAttachment",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="GroupMessageAttachment.attachment_id",
    )

    __table_args__ = (
        Index('idx_group_messages_group_time', 'group_id', 'created_at'),
    )

    def is_hidden_for(self, user_id: int) -> bool:
        if self.sender_id == user_id:
            return bool(self.deleted_by_sender)
        return user_id in (self.deleted_by_members or [])


class GroupMessageAttachment(Base):
    __tablename__ = "group_message_attachments"

    attachment_id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(Integer, ForeignKey("group_messages.message_id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_type = Column(String(20), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    mime_type = Column(String(100), nullable=False)

    message = relationship("GroupMessage", back_populates="attachments")
