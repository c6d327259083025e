"""
Shared request parameters and lookups for API endpoints.
"""

import math
from datetime import datetime, time, timedelta
from typing import Optional, Tuple
from fastapi import Query
from sqlalchemy import or_
from sqlalchemy.orm import Query as OrmQuery

from app.schemas.article import Pagination


# Query parameter dependencies for common validations
PageParam = Query(1, ge=1, le=100000, description="Page number, starting at 1")
LimitParam = Query(10, ge=1, le=100, description="Maximum items per page")
SearchParam = Query("", max_length=200, description="Case-insensitive search text")


def by_slug_or_id(query: OrmQuery, model, identifier: str) -> OrmQuery:
    """Filter a query to the row whose id or slug equals ``identifier``."""
    return query.filter(or_(model.id == identifier, model.slug == identifier))


def paginate(query: OrmQuery, page: int, limit: int):
    """
    Apply offset/limit to a query.

    Returns:
        Tuple of (rows, Pagination)
    """
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if limit else 0,
    )


def like_pattern(text: Optional[str]) -> Optional[str]:
    """Build an ILIKE pattern, escaping the wildcard characters in ``text``."""
    if not text:
        return None
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def today_bounds() -> Tuple[datetime, datetime]:
    """Start of today and start of tomorrow, naive UTC like the stored timestamps."""
    start = datetime.combine(datetime.utcnow().date(), time.min)
    return start, start + timedelta(days=1)
