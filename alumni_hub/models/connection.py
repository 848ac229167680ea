# alumni_hub/models/connection.py
from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, ForeignKey, Index,
    UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import relationship
from .base import Base, utcnow

CONNECTION_PENDING = "pending"
CONNECTION_ACCEPTED = "accepted"

# Mentorship statuses that count as a live relationship
MENTORSHIP_RELATIONSHIP_STATUSES = ("requested", "active", "completed")


class Connection(Base):
    """At most one row exists per unordered pair of users.

    user_low_id/user_high_id hold min/max of the pair so the unique
    constraint covers both directions.
    """
    __tablename__ = "connections"

    connection_id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    user_low_id = Column(Integer, nullable=False)
    user_high_id = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=CONNECTION_PENDING)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    sender = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])

    __table_args__ = (
        UniqueConstraint('user_low_id', 'user_high_id', name='uq_connections_pair'),
        CheckConstraint('sender_id <> receiver_id', name='ck_connections_not_self'),
        Index('idx_connections_receiver_status', 'receiver_id', 'status'),
        Index('idx_connections_sender_status', 'sender_id', 'status'),
    )

    def __init__(self, **kwargs):
        sender_id = kwargs.get("sender_id")
        receiver_id = kwargs.get("receiver_id")
        if sender_id is not None and receiver_id is not None:
            kwargs.setdefault("user_low_id", min(sender_id, receiver_id))
            kwargs.setdefault("user_high_id", max(sender_id, receiver_id))
        super().__init__(**kwargs)

    def other_party(self, user_id: int) -> int:
        return self.receiver_id if self.sender_id == user_id else self.sender_id


class Mentorship(Base):
    __tablename__ = "mentorship"

    mentorship_id = Column(Integer, primary_key=True, autoincrement=True)
    mentor_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    mentee_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="requested")  # requested/active/completed/rejected/cancelled
    area_of_guidance = Column(Text)
    start_date = Column(Date)
    end_date = Column(Date)
