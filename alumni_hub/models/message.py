# alumni_hub/models/message.py
from sqlalchemy import Column, Integer, String, Text, Boolean, BigInteger, ForeignKey, Index
from sqlalchemy.orm import relationship
from .base import Base


class Message(Base):
    __tablename__ = "messages"

    message_id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    message_text = Column(Text)
    has_attachments = Column(Boolean, default=False, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    deleted_for_sender = Column(Boolean, default=False, nullable=False)
    deleted_for_receiver = Column(Boolean, default=False, nullable=False)

    attachments = relationship(
        "MessageAttachment",
        back_populates="message",
        cascade="all, delete-orphan",
        order_by="MessageAttachment.attachment_id",
    )

    __table_args__ = (
        Index('idx_messages_pair_time', 'sender_id', 'receiver_id', 'created_at'),
        Index('idx_messages_unread', 'receiver_id', 'is_read'),
    )


class MessageAttachment(Base):
    __tablename__ = "message_attachments"

    attachment_id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(Integer, ForeignKey("messages.message_id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_type = Column(String(20), nullable=False)  # image / video / audio / document
    file_size = Column(BigInteger, nullable=False)
    mime_type = Column(String(100), nullable=False)

    message = relationship("Message", back_populates="attachments")
