from fastapi import APIRouter

from retail_backend.app.api.v1.endpoints.health import router as health_router
from retail_backend.app.api.v1.endpoints.users import router as users_router
from retail_backend.app.api.v1.endpoints.categories import router as categories_router
from retail_backend.app.api.v1.endpoints.products import router as products_router
from retail_backend.app.api.v1.endpoints.suppliers import router as suppliers_router
from retail_backend.app.api.v1.endpoints.purchase_orders import router as purchase_orders_router
from retail_backend.app.api.v1.endpoints.stock import router as stock_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(users_router, tags=["users"])
router.include_router(categories_router, tags=["categories"])
router.include_router(products_router, tags=["products"])
router.include_router(suppliers_router, tags=["suppliers"])
router.include_router(purchase_orders_router, tags=["purchase_orders"])
router.include_router(stock_router, tags=["stock"])
