from fastapi import FastAPI

from stockpipe.app.api.v1.router import router as v1_router
from stockpipe.app.core.config import settings
from stockpipe.app.core.logging import setup_logging

setup_logging()

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)
app.include_router(v1_router, prefix="/v1")
