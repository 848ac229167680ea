# alumni_hub/utils/pagination.py
"""Pagination utilities for consistent API responses."""
from typing import Any, Dict
from math import ceil


class Paginator:
    """Pagination utility class."""

    @staticmethod
    def calculate_offset(page: int, limit: int) -> int:
        """Calculate offset for database queries."""
        return (page - 1) * limit

    @staticmethod
    def page_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
        """Metadata for page-number listings (messages, notifications)."""
        return {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": ceil(total / limit) if limit > 0 else 0,
        }

    @staticmethod
    def offset_meta(limit: int, offset: int, total: int) -> Dict[str, Any]:
        """Metadata for offset listings (connections)."""
        return {"total": total, "limit": limit, "offset": offset}
