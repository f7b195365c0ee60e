from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from retail_backend.app.api.deps import Pagination, get_db, get_pagination
from retail_backend.app.db.models.models_v1 import Supplier

router = APIRouter(prefix="/suppliers")


class SupplierCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    is_active: bool = True
    created_by: UUID


class SupplierUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    is_active: bool | None = None
    updated_by: UUID


class SupplierRead(BaseModel):
    id: UUID
    name: str
    contact_person: str | None
    email: str | None
    phone: str | None
    address: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime | None
    deleted_at: datetime | None

    class Config:
        from_attributes = True


class SupplierPage(BaseModel):
    data: list[SupplierRead]
    total: int
    page: int
    limit: int


def _get_supplier(db: Session, supplier_id: UUID, with_deleted: bool = False) -> Supplier:
    s = db.get(Supplier, supplier_id)
    if not s or (s.deleted_at is not None and not with_deleted):
        raise HTTPException(status_code=404, detail="Supplier not found")
    return s


@router.get("", response_model=SupplierPage)
def list_suppliers(
    name: str | None = None,
    email: str | None = None,
    is_active: bool | None = None,
    with_deleted: bool = False,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    stmt = select(Supplier)
    if not with_deleted:
        stmt = stmt.where(Supplier.deleted_at.is_(None))
    if name:
        stmt = stmt.where(Supplier.name.ilike(f"%{name.strip()}%"))
    if email:
        stmt = stmt.where(Supplier.email.ilike(f"%{email.strip()}%"))
    if is_active is not None:
        stmt = stmt.where(Supplier.is_active == is_active)

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = db.execute(stmt.order_by(Supplier.name).offset(pagination.offset).limit(pagination.limit)).scalars().all()
    return pagination.wrap([SupplierRead.model_validate(s) for s in rows], total)


@router.post("", response_model=SupplierRead, status_code=201)
def create_supplier(payload: SupplierCreate, db: Session = Depends(get_db)):
    exists = db.execute(
        select(Supplier).where(Supplier.name == payload.name).where(Supplier.deleted_at.is_(None))
    ).scalar_one_or_none()
    if exists:
        raise HTTPException(status_code=409, detail="Supplier already exists")

    s = Supplier(**payload.model_dump())
    db.add(s)
    db.commit()
    db.refresh(s)
    return SupplierRead.model_validate(s)


@router.get("/{supplier_id}", response_model=SupplierRead)
def get_supplier(supplier_id: UUID, db: Session = Depends(get_db)):
    return SupplierRead.model_validate(_get_supplier(db, supplier_id))


@router.patch("/{supplier_id}", response_model=SupplierRead)
def update_supplier(supplier_id: UUID, payload: SupplierUpdate, db: Session = Depends(get_db)):
    s = _get_supplier(db, supplier_id)
    for field, value in payload.model_dump(exclude_unset=True, exclude={"updated_by"}).items():
        setattr(s, field, value)
    s.touch(payload.updated_by)
    db.commit()
    db.refresh(s)
    return SupplierRead.model_validate(s)


@router.post("/{supplier_id}/restore", response_model=SupplierRead)
def restore_supplier(supplier_id: UUID, restored_by: UUID, db: Session = Depends(get_db)):
    s = _get_supplier(db, supplier_id, with_deleted=True)
    if s.deleted_at is None:
        raise HTTPException(status_code=400, detail="Supplier is not deleted")
    s.restore(restored_by)
    db.commit()
    db.refresh(s)
    return SupplierRead.model_validate(s)


@router.delete("/{supplier_id}", status_code=204)
def delete_supplier(supplier_id: UUID, deleted_by: UUID, db: Session = Depends(get_db)):
    s = _get_supplier(db, supplier_id)
    s.soft_delete(deleted_by)
    db.commit()
    return Response(status_code=204)
