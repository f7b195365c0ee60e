from fastapi import FastAPI

from retail_backend.app.api.v1.router import router as v1_router
from retail_backend.app.core.config import settings
from retail_backend.app.core.exception_handler import register_exception_handlers
from retail_backend.app.core.logging import setup_logging

setup_logging()

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)
register_exception_handlers(app)
app.include_router(v1_router, prefix=settings.API_PREFIX)
