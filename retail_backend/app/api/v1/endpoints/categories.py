from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from retail_backend.app.api.deps import Pagination, get_db, get_pagination
from retail_backend.app.db.models.models_v1 import Category

router = APIRouter(prefix="/categories")


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_active: bool = True
    created_by: UUID


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_active: bool | None = None
    updated_by: UUID


class CategoryRead(BaseModel):
    id: UUID
    name: str
    description: str | None
    is_active: bool
    created_by: UUID
    created_at: datetime
    updated_by: UUID | None
    updated_at: datetime | None
    deleted_at: datetime | None

    class Config:
        from_attributes = True


class CategoryPage(BaseModel):
    data: list[CategoryRead]
    total: int
    page: int
    limit: int


def _get_category(db: Session, category_id: UUID, with_deleted: bool = False) -> Category:
    c = db.get(Category, category_id)
    if not c or (c.deleted_at is not None and not with_deleted):
        raise HTTPException(status_code=404, detail="Category not found")
    return c


def _check_name(db: Session, name: str, exclude_id: UUID | None = None) -> None:
    stmt = select(Category).where(func.lower(Category.name) == name.strip().lower())
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    if db.execute(stmt).scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Category name already exists")


@router.post("", response_model=CategoryRead, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    _check_name(db, payload.name)

    c = Category(**payload.model_dump())
    db.add(c)
    db.commit()
    db.refresh(c)
    return CategoryRead.model_validate(c)


@router.get("", response_model=CategoryPage)
def list_categories(
    search: str | None = None,
    is_active: bool | None = None,
    with_deleted: bool = False,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    stmt = select(Category)
    if not with_deleted:
        stmt = stmt.where(Category.deleted_at.is_(None))
    if search:
        stmt = stmt.where(Category.name.ilike(f"%{search.strip()}%"))
    if is_active is not None:
        stmt = stmt.where(Category.is_active == is_active)

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = db.execute(stmt.order_by(Category.name).offset(pagination.offset).limit(pagination.limit)).scalars().all()
    return pagination.wrap([CategoryRead.model_validate(c) for c in rows], total)


@router.get("/active", response_model=list[CategoryRead])
def list_active_categories(db: Session = Depends(get_db)):
    rows = (
        db.execute(
            select(Category)
            .where(Category.deleted_at.is_(None))
            .where(Category.is_active.is_(True))
            .order_by(Category.name)
        )
        .scalars()
        .all()
    )
    return [CategoryRead.model_validate(c) for c in rows]


@router.get("/{category_id}", response_model=CategoryRead)
def get_category(category_id: UUID, db: Session = Depends(get_db)):
    return CategoryRead.model_validate(_get_category(db, category_id))


@router.patch("/{category_id}", response_model=CategoryRead)
def update_category(category_id: UUID, payload: CategoryUpdate, db: Session = Depends(get_db)):
    c = _get_category(db, category_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"updated_by"})
    if changes.get("name") is not None:
        _check_name(db, changes["name"], exclude_id=c.id)

    for field, value in changes.items():
        setattr(c, field, value)
    c.touch(payload.updated_by)
    db.commit()
    db.refresh(c)
    return CategoryRead.model_validate(c)


@router.patch("/{category_id}/restore", response_model=CategoryRead)
def restore_category(category_id: UUID, restored_by: UUID, db: Session = Depends(get_db)):
    c = _get_category(db, category_id, with_deleted=True)
    if c.deleted_at is None:
        raise HTTPException(status_code=400, detail="Category is not deleted")
    c.restore(restored_by)
    db.commit()
    db.refresh(c)
    return CategoryRead.model_validate(c)


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: UUID, deleted_by: UUID, db: Session = Depends(get_db)):
    c = _get_category(db, category_id)
    c.soft_delete(deleted_by)
    db.commit()
    return Response(status_code=204)
