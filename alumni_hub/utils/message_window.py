# alumni_hub/utils/message_window.py
"""Rules shared by direct and group message deletion."""
from datetime import datetime, timedelta
from typing import Optional

from ..core.config import settings
from ..core.exceptions import InvalidArgumentError

DELETE_FOR_SELF = "self"
DELETE_FOR_EVERYONE = "everyone"

# "both" is what older clients send for everyone
_SCOPE_ALIASES = {
    "self": DELETE_FOR_SELF,
    "me": DELETE_FOR_SELF,
    "everyone": DELETE_FOR_EVERYONE,
    "both": DELETE_FOR_EVERYONE,
}


def normalize_delete_scope(delete_for: Optional[str]) -> str:
    if not delete_for:
        return DELETE_FOR_SELF
    scope = _SCOPE_ALIASES.get(delete_for.strip().lower())
    if scope is None:
        raise InvalidArgumentError("delete_for must be 'self' or 'everyone'")
    return scope


def can_delete_for_everyone(created_at: datetime, now: datetime, window_minutes: Optional[int] = None) -> bool:
    """True while now is within the window after created_at, boundary included."""
    if window_minutes is None:
        window_minutes = settings.delete_for_everyone_window_minutes
    return now - created_at <= timedelta(minutes=window_minutes)
