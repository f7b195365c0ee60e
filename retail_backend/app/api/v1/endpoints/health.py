from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from retail_backend.app.api.deps import get_db
from retail_backend.app.core.config import settings

router = APIRouter()


@router.get("/health")
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok", "app": settings.APP_NAME, "version": settings.APP_VERSION}
