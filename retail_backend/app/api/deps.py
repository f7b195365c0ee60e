from __future__ import annotations

from dataclasses import dataclass
from typing import Generator

from fastapi import Query
from sqlalchemy.orm import Session

from retail_backend.app.core.config import settings
from retail_backend.app.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        # anything not committed by the endpoint is rolled back here
        db.close()


@dataclass
class Pagination:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def wrap(self, data: list, total: int) -> dict:
        return {"data": data, "total": total, "page": self.page, "limit": self.limit}


def get_pagination(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> Pagination:
    return Pagination(page=page, limit=limit)
