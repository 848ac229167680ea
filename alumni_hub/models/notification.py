# alumni_hub/models/notification.py
from sqlalchemy import Column, Integer, String, Text, Boolean, Index
from .base import Base

RECIPIENT_USER = "user"
RECIPIENT_SCHOOL_ADMIN = "school_admin"

# Notification types each recipient role may receive
ALLOWED_NOTIFICATION_TYPES = {
    "alumni": ("connection_request", "connection_accepted", "message", "event", "job", "mentorship", "system"),
    "school_admin": ("system", "event", "verification_request", "school_update", "job_application"),
    "super_admin": (),
}


class Notification(Base):
    """user_id is a users.user_id or a school_admins.admin_id; recipient_type says which."""
    __tablename__ = "notifications"

    notification_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    recipient_type = Column(String(20), nullable=False, default=RECIPIENT_USER)
    notification_type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    related_id = Column(Integer)
    category = Column(String(50))
    is_read = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index('idx_notifications_user_read', 'user_id', 'recipient_type', 'is_read'),
        Index('idx_notifications_user_time', 'user_id', 'recipient_type', 'created_at'),
    )
