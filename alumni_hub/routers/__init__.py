# alumni_hub/routers/__init__.py
from . import health, connections, messages, groups, notifications

__all__ = ["health", "connections", "messages", "groups", "notifications"]
