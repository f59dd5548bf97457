"""Page slicing shared by the listing endpoints."""
import math
from typing import Any, Dict, Sequence, Tuple


def page_bounds(page: int, per_page: int) -> Tuple[int, int]:
    """Offset and limit of a 1-based page."""
    page = max(page, 1)
    return (page - 1) * per_page, per_page


def paginate(items: Sequence[Any], page: int, per_page: int) -> Dict[str, Any]:
    """Slice an already-sorted sequence into one page."""
    offset, limit = page_bounds(page, per_page)
    total = len(items)
    return {
        "items": list(items[offset:offset + limit]),
        "total": total,
        "page": max(page, 1),
        "per_page": per_page,
        "pages": max(1, math.ceil(total / per_page)) if per_page else 1,
    }


def paginate_query(query, page: int, per_page: int) -> Dict[str, Any]:
    """Run a count and one page of an ORM query."""
    offset, limit = page_bounds(page, per_page)
    total = query.count()
    return {
        "items": query.offset(offset).limit(limit).all(),
        "total": total,
        "page": max(page, 1),
        "per_page": per_page,
        "pages": max(1, math.ceil(total / per_page)) if per_page else 1,
    }
