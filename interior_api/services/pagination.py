from __future__ import annotations

import math
from typing import TypeVar

from interior_api.models.contracts import Pagination

T = TypeVar("T")


def paginate(items: list[T], page: int, limit: int) -> tuple[list[T], Pagination]:
    """Slice one page out of an already filtered and sorted list."""
    total_pages = math.ceil(len(items) / limit) if items else 0
    start = (page - 1) * limit
    return items[start : start + limit], Pagination(
        current=page,
        total=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
        total_items=len(items),
    )
