from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from retail_backend.app.api.deps import Pagination, get_db, get_pagination
from retail_backend.app.db.models.models_v1 import User
from retail_backend.app.db.models.core_types import Role

router = APIRouter(prefix="/admin/users")


class UserCreate(BaseModel):
    email: EmailStr
    role: Role = Role.staff
    permissions: list[str] = Field(default_factory=list)
    is_email_verified: bool = False
    is_active: bool = True
    created_by: UUID


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    role: Role | None = None
    permissions: list[str] | None = None
    is_email_verified: bool | None = None
    is_active: bool | None = None
    updated_by: UUID


class UserRead(BaseModel):
    id: UUID
    email: str
    role: Role
    permissions: list[str]
    is_email_verified: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime | None

    class Config:
        from_attributes = True


class UserPage(BaseModel):
    data: list[UserRead]
    total: int
    page: int
    limit: int


def _get_user(db: Session, user_id: UUID) -> User:
    u = db.get(User, user_id)
    if not u or u.deleted_at is not None:
        raise HTTPException(status_code=404, detail="User not found")
    return u


def _check_email(db: Session, email: str, exclude_id: UUID | None = None) -> None:
    stmt = select(User).where(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if db.execute(stmt).scalar_one_or_none():
        raise HTTPException(status_code=409, detail="Email already registered")


@router.post("", response_model=UserRead, status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    _check_email(db, payload.email)

    u = User(**payload.model_dump())
    db.add(u)
    db.commit()
    db.refresh(u)
    return UserRead.model_validate(u)


@router.get("", response_model=UserPage)
def list_users(
    role: Role | None = None,
    email: str | None = None,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    stmt = select(User).where(User.deleted_at.is_(None))
    if role is not None:
        stmt = stmt.where(User.role == role)
    if email:
        stmt = stmt.where(User.email.ilike(f"%{email.strip()}%"))

    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    rows = db.execute(stmt.order_by(User.email).offset(pagination.offset).limit(pagination.limit)).scalars().all()
    return pagination.wrap([UserRead.model_validate(u) for u in rows], total)


@router.get("/role/{role}", response_model=list[UserRead])
def list_users_by_role(role: Role, db: Session = Depends(get_db)):
    rows = (
        db.execute(select(User).where(User.deleted_at.is_(None)).where(User.role == role).order_by(User.email))
        .scalars()
        .all()
    )
    return [UserRead.model_validate(u) for u in rows]


@router.get("/{user_id}", response_model=UserRead)
def get_user(user_id: UUID, db: Session = Depends(get_db)):
    return UserRead.model_validate(_get_user(db, user_id))


@router.put("/{user_id}", response_model=UserRead)
def update_user(user_id: UUID, payload: UserUpdate, db: Session = Depends(get_db)):
    u = _get_user(db, user_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"updated_by"})
    if changes.get("email") is not None:
        _check_email(db, changes["email"], exclude_id=u.id)

    for field, value in changes.items():
        setattr(u, field, value)
    u.touch(payload.updated_by)
    db.commit()
    db.refresh(u)
    return UserRead.model_validate(u)


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: UUID, deleted_by: UUID, db: Session = Depends(get_db)):
    u = _get_user(db, user_id)
    u.soft_delete(deleted_by)
    u.is_active = False
    db.commit()
    return Response(status_code=204)
