from fastapi import APIRouter

from stockpipe.app.api.v1.endpoints.inventory import router as inventory_router

router = APIRouter()
router.include_router(inventory_router, tags=["inventory"])
