"""Offset pagination shared by every list endpoint: ?page=1&limit=20."""

from dataclasses import dataclass

from fastapi import Query


@dataclass
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> PageParams:
    return PageParams(page=page, limit=limit)
