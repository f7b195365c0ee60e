from __future__ import annotations

import uuid

from sqlalchemy import select

from retail_backend.app.db.session import SessionLocal
from retail_backend.app.db.models.models_v1 import Category, User
from retail_backend.app.db.models.core_types import Role

# actor recorded on rows created by the seed itself
SYSTEM_ACTOR = uuid.UUID("00000000-0000-0000-0000-000000000001")


def run_seed(db=None):
    own_session = db is None
    if own_session:
        db = SessionLocal()
    try:
        # 1) Admin user
        user = db.scalar(select(User).where(User.email == "admin@retail.local"))
        if not user:
            user = User(
                id=SYSTEM_ACTOR,
                email="admin@retail.local",
                role=Role.admin,
                permissions=["*"],
                is_email_verified=True,
                is_active=True,
                created_by=SYSTEM_ACTOR,
            )
            db.add(user)
            db.commit()

        # 2) Default category
        category = db.scalar(select(Category).where(Category.name == "General"))
        if not category:
            category = Category(
                name="General",
                description="Uncategorised products",
                created_by=user.id,
            )
            db.add(category)
            db.commit()

        print(f"SEED OK: user={user.email}, category={category.name}")
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    run_seed()
