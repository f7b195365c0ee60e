from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session

from retail_backend.app.api.deps import Pagination, get_db, get_pagination
from retail_backend.app.db.models.models_v1 import Category, Product

router = APIRouter(prefix="/products")


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    sku: str = Field(min_length=1, max_length=64)
    barcode: str | None = Field(default=None, max_length=64)
    category_id: UUID | None = None
    description: str | None = None
    unit_price: Decimal = Field(ge=0, decimal_places=2)
    cost_price: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    minimum_stock_level: int = Field(default=0, ge=0)
    is_active: bool = True
    created_by: UUID


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    sku: str | None = Field(default=None, min_length=1, max_length=64)
    barcode: str | None = Field(default=None, max_length=64)
    category_id: UUID | None = None
    description: str | None = None
    unit_price: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    cost_price: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    minimum_stock_level: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    updated_by: UUID


class ProductRead(BaseModel):
    id: UUID
    name: str
    sku: str
    barcode: str | None
    category_id: UUID | None
    description: str | None
    unit_price: Decimal
    cost_price: Decimal | None
    minimum_stock_level: int
    is_active: bool
    created_by: UUID
    created_at: datetime
    updated_by: UUID | None
    updated_at: datetime | None
    deleted_at: datetime | None

    class Config:
        from_attributes = True


class ProductPage(BaseModel):
    data: list[ProductRead]
    total: int
    page: int
    limit: int


def _get_product(db: Session, product_id: UUID, with_deleted: bool = False) -> Product:
    p = db.get(Product, product_id)
    if not p or (p.deleted_at is not None and not with_deleted):
        raise HTTPException(status_code=404, detail="Product not found")
    return p


def _check_unique(db: Session, *, sku: str | None, barcode: str | None, exclude_id: UUID | None = None) -> None:
    if sku is not None:
        stmt = select(Product).where(Product.sku == sku)
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        if db.execute(stmt).scalar_one_or_none():
            raise HTTPException(status_code=409, detail="SKU already exists")
    if barcode is not None:
        stmt = select(Product).where(Product.barcode == barcode)
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        if db.execute(stmt).scalar_one_or_none():
            raise HTTPException(status_code=409, detail="Barcode already exists")


def _check_category(db: Session, category_id: UUID | None) -> None:
    if category_id is None:
        return
    c = db.get(Category, category_id)
    if not c or c.deleted_at is not None:
        raise HTTPException(status_code=400, detail="Category not found")
    if not c.is_active:
        raise HTTPException(status_code=400, detail="Cannot assign product to inactive category")


@router.post("", response_model=ProductRead, status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    _check_unique(db, sku=payload.sku, barcode=payload.barcode)
    _check_category(db, payload.category_id)

    p = Product(**payload.model_dump())
    db.add(p)
    db.commit()
    db.refresh(p)
    return ProductRead.model_validate(p)


@router.get("", response_model=ProductPage)
def list_products(
    search: str | None = None,
    category_id: UUID | None = None,
    is_active: bool | None = None,
    with_deleted: bool = False,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    stmt = select(Product)
    if not with_deleted:
        stmt = stmt.where(Product.deleted_at.is_(None))
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern), Product.barcode.ilike(pattern)))
    if category_id is not None:
        stmt = stmt.where(Product.category_id == category_id)
    if is_active is not None:
        stmt = stmt.where(Product.is_active == is_active)

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = db.execute(stmt.order_by(Product.sku).offset(pagination.offset).limit(pagination.limit)).scalars().all()
    return pagination.wrap([ProductRead.model_validate(p) for p in rows], total)


@router.get("/sku/{sku}", response_model=ProductRead)
def get_product_by_sku(sku: str, db: Session = Depends(get_db)):
    p = db.execute(
        select(Product).where(Product.sku == sku).where(Product.deleted_at.is_(None))
    ).scalar_one_or_none()
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductRead.model_validate(p)


@router.get("/barcode/{barcode}", response_model=ProductRead)
def get_product_by_barcode(barcode: str, db: Session = Depends(get_db)):
    p = db.execute(
        select(Product).where(Product.barcode == barcode).where(Product.deleted_at.is_(None))
    ).scalar_one_or_none()
    if not p:
        raise HTTPException(status_code=404, detail="Product not found")
    return ProductRead.model_validate(p)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: UUID, with_deleted: bool = False, db: Session = Depends(get_db)):
    return ProductRead.model_validate(_get_product(db, product_id, with_deleted))


@router.patch("/{product_id}", response_model=ProductRead)
def update_product(product_id: UUID, payload: ProductUpdate, db: Session = Depends(get_db)):
    p = _get_product(db, product_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"updated_by"})
    _check_unique(db, sku=changes.get("sku"), barcode=changes.get("barcode"), exclude_id=p.id)
    if "category_id" in changes:
        _check_category(db, changes["category_id"])

    for field, value in changes.items():
        setattr(p, field, value)
    p.touch(payload.updated_by)
    db.commit()
    db.refresh(p)
    return ProductRead.model_validate(p)


@router.patch("/{product_id}/restore", response_model=ProductRead)
def restore_product(product_id: UUID, restored_by: UUID, db: Session = Depends(get_db)):
    p = _get_product(db, product_id, with_deleted=True)
    if p.deleted_at is None:
        raise HTTPException(status_code=400, detail="Product is not deleted")
    p.restore(restored_by)
    db.commit()
    db.refresh(p)
    return ProductRead.model_validate(p)


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: UUID, deleted_by: UUID, db: Session = Depends(get_db)):
    p = _get_product(db, product_id)
    p.soft_delete(deleted_by)
    db.commit()
    return Response(status_code=204)
