import math

from fastapi import Query
from pydantic import BaseModel

MAX_PAGE_SIZE = 100


class PageParams(BaseModel):
    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def page_params(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
) -> PageParams:
    """Query-string pagination dependency."""
    return PageParams(page=page, page_size=page_size)


def page_meta(params: PageParams, total: int) -> dict:
    total_pages = math.ceil(total / params.page_size) if total else 0
    return {
        "page": params.page,
        "page_size": params.page_size,
        "total": total,
        "total_pages": total_pages,
        "has_next_page": params.page < total_pages,
        "has_previous_page": params.page > 1,
    }


def paginate(query, params: PageParams) -> tuple[list, dict]:
    """Apply offset/limit to a SQLAlchemy query and build the page metadata."""
    total = query.order_by(None).count()
    items = query.offset(params.offset).limit(params.page_size).all()
    return items, page_meta(params, total)
