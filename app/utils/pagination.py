"""페이지네이션 유틸리티 모듈.

Pagination utility module.
List endpoints accept ``page``/``limit`` query parameters and return a
``Page``-shaped payload inside the standard response envelope.
"""

import math
from typing import Annotated, Any, Sequence

from fastapi import Query
from pydantic import BaseModel


class Page(BaseModel):
    """페이지네이션 결과 모델.

    Attributes:
        items: 현재 페이지 항목 목록 (Items for the current page)
        total: 전체 항목 수 (Total count across all pages)
        page: 현재 페이지 번호 (Current page number, 1-based)
        limit: 페이지당 항목 수 (Items per page)
        pages: 전체 페이지 수 (Total number of pages)
    """

    items: list[Any]
    total: int
    page: int
    limit: int
    pages: int


class PageParams(BaseModel):
    """페이지 요청 파라미터 — page / limit query parameters."""

    page: int = 1
    limit: int = 20


def page_params(
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> PageParams:
    """FastAPI 의존성 — Read and bound the page/limit query parameters."""
    return PageParams(page=page, limit=limit)


def build_page(items: Sequence[Any], total: int, params: PageParams) -> dict[str, Any]:
    """페이지 응답 딕셔너리 생성 — Build the paginated payload."""
    return Page(
        items=list(items),
        total=total,
        page=params.page,
        limit=params.limit,
        pages=math.ceil(total / params.limit) if total else 0,
    ).model_dump()
