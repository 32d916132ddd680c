"""Pagination envelope shared by list endpoints.

Response shape: ``{results, page, limit, total_pages, total_results}``.
"""

import math
from typing import Any, Callable, Dict, Optional

from fastapi import Query
from sqlalchemy.orm import Query as SAQuery

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class PageParams:
    """Query-string pagination parameters (``?page=2&limit=20``)."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-indexed)"),
        limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description="Results per page"),
    ):
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def paginate(
    query: SAQuery,
    params: PageParams,
    serialize: Optional[Callable[[Any], Any]] = None,
) -> Dict[str, Any]:
    """Run a counted, paged query and wrap it in the envelope."""
    total_results = query.order_by(None).count()
    rows = query.offset(params.offset).limit(params.limit).all()
    serialize = serialize or (lambda row: row.to_dict())
    return {
        "results": [serialize(row) for row in rows],
        "page": params.page,
        "limit": params.limit,
        "total_pages": math.ceil(total_results / params.limit) if total_results else 0,
        "total_results": total_results,
    }
