from fastapi import APIRouter
from skytour.api.v1.routes.public import router as public_router
from skytour.api.v1.routes.payments import router as payments_router
from skytour.api.v1.routes.admin import router as admin_router
from skytour.api.v1.routes.cron import router as cron_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(public_router)
api_router.include_router(payments_router)
api_router.include_router(admin_router)
api_router.include_router(cron_router)
